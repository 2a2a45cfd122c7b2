"""
UFILEFS
----------------------------------------------------------------
A pythonic file-systems interface to UCloud UFile object storage
"""
from .auth import UFileAuth
from .client import UFileClient
from .config import client_from_config, filesystem_from_config, register
from .core import UFileFileSystem
from .exceptions import MultipartError, RemoteError, UFileError
from .file import UFileFile
from .multipart import MultipartUpload

register()

__all__ = [
    "MultipartError",
    "MultipartUpload",
    "RemoteError",
    "UFileAuth",
    "UFileClient",
    "UFileError",
    "UFileFile",
    "UFileFileSystem",
    "client_from_config",
    "filesystem_from_config",
    "register",
]
