"""
Persistence of the client configuration: files & environment variables.

The configuration is stored as a YAML file, by default ``~/.wayfinder/config``,
or as specified in the ``WAYFINDER_CONFIG`` environment variable.

Alternatively, an ephemeral configuration is made from the environment
variables ``WAYFINDER_SERVER`` & ``WAYFINDER_TOKEN`` (& ``WAYFINDER_WORKSPACE``),
typically in CI/CD pipelines. The ephemeral configuration is never persisted.
"""
import logging
import os
import pathlib
from collections.abc import Callable

import yaml

from wfclient._cogs.configs import profiles
from wfclient._cogs.structs import claims

logger = logging.getLogger(__name__)

ENV_CONFIG = 'WAYFINDER_CONFIG'
ENV_SERVER = 'WAYFINDER_SERVER'
ENV_TOKEN = 'WAYFINDER_TOKEN'
ENV_WORKSPACE = 'WAYFINDER_WORKSPACE'

EPHEMERAL_PROFILE = 'default'
DEFAULT_CONFIG_PATH = os.path.join('~', '.wayfinder', 'config')


def get_config_path() -> pathlib.Path:
    path = os.path.expandvars(os.environ.get(ENV_CONFIG, ''))
    if not path:
        path = os.path.expandvars(DEFAULT_CONFIG_PATH)
    return pathlib.Path(path).expanduser().absolute()


def load_config(path: str | os.PathLike[str]) -> profiles.Config:
    with open(path, encoding='utf-8') as f:
        raw = yaml.safe_load(f)
    return profiles.Config.from_raw(raw)


def update_config(config: profiles.Config, path: str | os.PathLike[str]) -> None:
    """ Write the configuration to the file, creating the parent directories. """
    path = pathlib.Path(path)
    text = yaml.safe_dump(config.to_raw(), default_flow_style=False, sort_keys=True)
    path.parent.mkdir(mode=0o750, parents=True, exist_ok=True)
    path.write_text(text, encoding='utf-8')
    path.chmod(0o640)


def get_or_create_client_configuration(path: str | os.PathLike[str] | None = None) -> profiles.Config:
    """ Load the configuration file, or create an empty one if it is absent. """
    path = pathlib.Path(path) if path is not None else get_config_path()
    logger.debug(f"Using the configuration file: {path}")
    if not path.is_file():
        config = profiles.Config.new_empty()
        update_config(config, path)
        return config
    return load_config(path)


def is_ephemeral_config() -> bool:
    return bool(os.environ.get(ENV_SERVER)) and bool(os.environ.get(ENV_TOKEN))


def create_ephemeral_configuration() -> profiles.Config:
    """
    Make a single-profile configuration from the environment variables.

    The exchange-scoped tokens are used as the refresh tokens (to be exchanged
    for the API tokens on the first request); all others are used as is.
    """
    server = os.environ.get(ENV_SERVER, '')
    token = os.environ.get(ENV_TOKEN, '')
    workspace = os.environ.get(ENV_WORKSPACE, '')

    identity = profiles.Identity()
    if claims.is_exchange_token(token):
        identity.refresh_token = token
    else:
        identity.token = token

    config = profiles.Config(current_profile=EPHEMERAL_PROFILE)
    config.create_profile(EPHEMERAL_PROFILE, server)
    config.add_auth_info(EPHEMERAL_PROFILE, profiles.AuthInfo(identity=identity))
    if workspace:
        config.profiles[EPHEMERAL_PROFILE].workspace = workspace
    return config


def get_config() -> profiles.Config:
    """ Get the ephemeral configuration if defined, or the file-based one. """
    if is_ephemeral_config():
        return create_ephemeral_configuration()
    return get_or_create_client_configuration()


def make_update_handler(
        config: profiles.Config,
        path: str | os.PathLike[str] | None = None,
) -> Callable[[], None]:
    """
    Make a configuration update handler for :class:`wfclient.Client`,
    which persists the refreshed tokens and the discovered API layouts.

    The ephemeral configurations are not persisted.
    """
    def handler() -> None:
        if is_ephemeral_config():
            return
        update_config(config, path if path is not None else get_config_path())
    return handler
