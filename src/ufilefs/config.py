"""
Building clients and file systems from an application's configuration

The configuration is a mapping with the keys ``bucket``, ``public_key``,
``secret_key``, ``suffix``, ``use_https`` and ``debug``, the layout storage
drivers are usually configured with.
"""
import logging
import os
from typing import Any, Mapping

import fsspec

from .client import DEFAULT_SUFFIX, UFileClient
from .core import UFileFileSystem

logger = logging.getLogger("ufilefs")

PROTOCOL = "ufile"


def _credentials(config: Mapping[str, Any]):
    public_key = config.get("public_key") or os.getenv("UFILE_PUBLIC_KEY")
    secret_key = config.get("secret_key") or os.getenv("UFILE_SECRET_KEY")
    if not public_key or not secret_key:
        raise ValueError("public_key and secret_key are required")
    return public_key, secret_key


def client_from_config(config: Mapping[str, Any]) -> UFileClient:
    """Configured client of ``config["bucket"]``"""
    if not config.get("bucket"):
        raise ValueError("bucket is required")
    public_key, secret_key = _credentials(config)
    return UFileClient(
        config["bucket"],
        public_key,
        secret_key,
        suffix=config.get("suffix") or os.getenv("UFILE_SUFFIX") or DEFAULT_SUFFIX,
        use_https=bool(config.get("use_https", False)),
        debug=bool(config.get("debug", False)),
        timeout=config.get("timeout"),
    )


def filesystem_from_config(config: Mapping[str, Any]) -> UFileFileSystem:
    """File system bound to ``config["bucket"]`` when one is given"""
    public_key, secret_key = _credentials(config)
    return fsspec.filesystem(
        PROTOCOL,
        key=public_key,
        secret=secret_key,
        bucket=config.get("bucket"),
        suffix=config.get("suffix"),
        use_https=bool(config.get("use_https", False)),
        debug=bool(config.get("debug", False)),
        timeout=config.get("timeout"),
    )


def register(protocol: str = PROTOCOL, clobber: bool = True):
    """Bind ``protocol`` to UFileFileSystem in fsspec's registry"""
    logger.debug("Registering %s as %s", UFileFileSystem.__name__, protocol)
    fsspec.register_implementation(protocol, UFileFileSystem, clobber=clobber)
