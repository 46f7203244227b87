"""
Detecting the client's own version.

The codebase does not contain the version directly: releases depend on
tagging rather than in-code version bumps (see ``use_scm_version``).
The version is reported to the API in the ``X-Client-Version`` header.

The version is determined only once at startup when the code is loaded.
"""
import importlib.metadata

version: str | None = None

try:
    name, *_ = __name__.split('.')  # usually "wfclient", unless renamed/forked.
    version = importlib.metadata.version(name)
except Exception:
    pass  # running from a source tree, installed as an egg, etc.
