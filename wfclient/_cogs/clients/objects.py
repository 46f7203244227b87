"""
A typed client for the objects: get, list, create, update, delete.

Unlike the requests, all the operations here raise the errors instead of
latching them. The objects are updated in place with the responses.

The updates are protected from the optimistic concurrency conflicts
("the object has been modified"): if only the status or the metadata of the
object was changed on the server since it was read, the update is retried
with the new resource version. If the spec was changed (as seen by
the ``metadata.generation``), the conflict is escalated, so that the changes
made by others are never overwritten silently.
"""
import asyncio
import logging
from collections.abc import Iterable

from wfclient._cogs.clients import api, errors, requests, retries, urls
from wfclient._cogs.structs import bodies, resources

logger = logging.getLogger('wfclient.objects')

# The endpoints which are already prefixed with the API base paths.
RAW_ENDPOINT_PREFIXES = ('/resources/', '/api/')


def _get_list_resource(lst: bodies.ObjectList) -> resources.Resource:
    if lst.resource is None:
        raise TypeError(f"The list type is not bound to a resource: {type(lst).__name__}")
    return lst.resource


class ObjectClient:

    def __init__(self, client: api.Client) -> None:
        super().__init__()
        self._client = client

    @property
    def resource_client(self) -> api.Client:
        return self._client

    async def get(
            self,
            key: bodies.ObjectKey,
            obj: bodies.Object,
            *,
            stopper: asyncio.Event | None = None,
    ) -> None:
        """ Read the object by its key into ``obj``. The versioned objects need a version. """
        resource = obj._get_resource()
        request = self._client.request()
        if key.workspace:
            request.workspace(key.workspace)
        if obj.is_versioned:
            if not key.version:
                raise ValueError(f"must set version of {key.name} to retrieve")
            request.resource_version(key.version)
        await request.stopper(stopper).resource(resource).name(key.name).result(obj).get()
        request.raise_for_error()

    async def list(
            self,
            lst: bodies.ObjectList,
            *,
            workspace: str = '',
            query: Iterable[tuple[str, str]] = (),
            stopper: asyncio.Event | None = None,
    ) -> None:
        resource = _get_list_resource(lst)
        request = self._client.request()
        if workspace:
            request.workspace(workspace)
        request.parameters(*[urls.query_parameter(key, value) for key, value in query])
        await request.stopper(stopper).resource(resource).result(lst).get()
        request.raise_for_error()

    async def list_versions(
            self,
            name: str,
            lst: bodies.ObjectList,
            *,
            workspace: str = '',
            query: Iterable[tuple[str, str]] = (),
            stopper: asyncio.Event | None = None,
    ) -> None:
        """ List all the versions of a named versioned object. """
        resource = _get_list_resource(lst)
        if not resource.is_versioned():
            raise ValueError("cannot use list_versions on non-versioned object")
        request = self._client.request()
        if workspace:
            request.workspace(workspace)
        request.parameters(*[urls.query_parameter(key, value) for key, value in query])
        await request.stopper(stopper).resource(resource).name(name).result(lst).get()
        request.raise_for_error()

    async def create(
            self,
            obj: bodies.Object,
            *,
            dry_run: bool = False,
            warning_handler: requests.WarningHandler | None = None,
            stopper: asyncio.Event | None = None,
    ) -> None:
        resource = obj._get_resource()
        request = self._client.request()
        if obj.namespace:
            request.workspace(obj.workspace)
        if dry_run:
            request.parameters(urls.dry_run_parameter())
        if warning_handler is not None:
            request.with_warning_handler(warning_handler)
        await request.stopper(stopper).resource(resource).payload(obj).result(obj).create()
        request.raise_for_error()

    async def delete(
            self,
            obj: bodies.Object,
            *,
            dry_run: bool = False,
            orphan: bool = False,
            cascade: bool = False,
            force: bool = False,
            stopper: asyncio.Event | None = None,
    ) -> None:
        resource = obj._get_resource()
        request = self._client.request()
        if obj.is_versioned:
            if not obj.version:
                raise ValueError("version must be set on provided object to delete")
            request.resource_version(obj.version)
        if obj.namespace:
            request.workspace(obj.workspace)
        request.resource(resource).name(obj.name).result(obj)
        request.parameters(*_make_delete_parameters(dry_run=dry_run, orphan=orphan, cascade=cascade, force=force))
        await request.stopper(stopper).delete()
        request.raise_for_error()

    async def delete_all_versions(
            self,
            key: bodies.ObjectKey,
            lst: bodies.ObjectList,
            *,
            dry_run: bool = False,
            orphan: bool = False,
            cascade: bool = False,
            force: bool = False,
            stopper: asyncio.Event | None = None,
    ) -> None:
        """ Delete the named object with all its versions; the deleted ones go to ``lst``. """
        resource = _get_list_resource(lst)
        request = self._client.request()
        if key.workspace:
            request.workspace(key.workspace)
        request.resource(resource).name(key.name).result(lst)
        request.parameters(*_make_delete_parameters(dry_run=dry_run, orphan=orphan, cascade=cascade, force=force))
        await request.stopper(stopper).delete()
        request.raise_for_error()

    async def update(
            self,
            obj: bodies.Object,
            *,
            dry_run: bool = False,
            force: bool = False,
            apply: bool = False,
            no_retry_on_conflict: bool = False,
            warning_handler: requests.WarningHandler | None = None,
            stopper: asyncio.Event | None = None,
    ) -> None:
        """
        Update the object, retrying on the conflicts if the spec is unchanged.

        If the conflicts persist beyond the allowed attempts, the last conflict
        is raised (not the exhaustion of the attempts).
        """
        resource = obj._get_resource()
        if obj.is_versioned and not obj.version:
            raise ValueError("version must be set on provided object to update")

        last_error: BaseException | None = None

        async def attempt() -> bool:
            nonlocal last_error
            request = self._client.request()
            if obj.namespace:
                request.workspace(obj.workspace)
            if dry_run:
                request.parameters(urls.dry_run_parameter())
            if force:
                request.parameters(urls.force_parameter())
            if apply:
                request.parameters(urls.apply_parameter())
            if obj.is_versioned:
                request.resource_version(obj.version)
            if warning_handler is not None:
                request.with_warning_handler(warning_handler)

            await request.stopper(stopper).resource(resource).name(obj.name).payload(obj).result(obj).update()
            error = request.error()
            if error is None:
                return True
            if not errors.is_object_modified(error) or no_retry_on_conflict:
                raise error

            # Only the status/metadata changes are safe to override: re-check the generation.
            last_error = error
            fresh = obj.clone()
            try:
                await self.get(bodies.ObjectKey.from_object(obj), fresh, stopper=stopper)
            except requests.LATCHED_ERRORS as e:
                raise errors.RefetchError(
                    f"failed to retrieve updated version of the object"
                    f" after an object modified conflict: {e}") from e

            if fresh.generation != obj.generation:
                raise error

            logger.debug(f"The object {obj.workspace}/{obj.name} was modified; "
                         f"retrying with resourceVersion={fresh.resource_version!r}.")
            obj.resource_version = fresh.resource_version
            return False

        try:
            await retries.retry(
                attempt,
                attempts=self._client.settings.conflicts.attempts,
                min_interval=self._client.settings.conflicts.backoff,
                stopper=stopper,
                logger=logger,
            )
        except retries.RetryFailed:
            if last_error is not None:
                raise last_error
            raise

    def endpoint_request(self, endpoint: str) -> requests.Request:
        """ A request to an endpoint, either relative to the API or already prefixed. """
        request = self._client.request()
        if endpoint.startswith(RAW_ENDPOINT_PREFIXES):
            return request.raw_endpoint(endpoint)
        return request.endpoint(endpoint)

    def resource_request(self, obj: bodies.Object | type[bodies.Object]) -> requests.Request:
        """ A request to the resource of the object (or of the object type). """
        resource = obj.resource
        if resource is None:
            raise TypeError(f"The object type is not bound to a resource: {obj!r}")
        return self._client.request().resource(resource)


def _make_delete_parameters(
        *,
        dry_run: bool,
        orphan: bool,
        cascade: bool,
        force: bool,
) -> list[urls.ParameterFn]:
    fns: list[urls.ParameterFn] = []
    if dry_run:
        fns.append(urls.dry_run_parameter())
    if orphan:
        fns.append(urls.orphan_parameter())
    if cascade:
        fns.append(urls.cascade_parameter())
    if force:
        fns.append(urls.force_parameter())
    return fns
