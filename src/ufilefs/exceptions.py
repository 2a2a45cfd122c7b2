"""UFile errors, and their translation into more natural Python ones.
Status codes are documented at:
    https://docs.ucloud.cn/ufile/api/api_errcode
"""

import errno
from typing import Optional


class UFileError(IOError):
    """Base class of every error raised by ufilefs"""


class RemoteError(UFileError):
    """The service answered an object request with a disallowed status"""

    def __init__(
        self,
        operation: str,
        key: str,
        status_code: int,
        body: Optional[bytes] = None,
    ):
        self.operation = operation
        self.key = key
        self.status_code = status_code
        self.body = body
        super().__init__(f"{operation} {key} error: {status_code}")


class MultipartError(UFileError):
    """A multipart upload call failed or returned an unusable answer"""


STATUS_TO_EXCEPTION = {
    401: PermissionError,
    403: PermissionError,
    404: FileNotFoundError,
}


def translate_ufile_error(
    error: Exception, *args, message=None, set_cause=True, **kwargs
):
    """Convert a RemoteError exception into a Python one.
    Parameters
    ----------
    error : ufilefs.exceptions.RemoteError
        The exception raised for the service's answer.
    message : str
        An error message to use for the returned exception. If not given, the
        message of the original error is used instead.
    set_cause : bool
        Whether to set the __cause__ attribute to the previous exception if the
        exception is translated.
    *args, **kwargs :
        Additional arguments to pass to the exception constructor, after the
        error message. Useful for passing the filename arguments to
        ``IOError``.
    Returns
    -------
    An instantiated exception ready to be thrown. If the status code isn't
    recognized, an IOError with the original error message is returned.
    """
    if not isinstance(error, RemoteError):
        # not a status error:
        return error
    constructor = STATUS_TO_EXCEPTION.get(error.status_code)
    if constructor:
        custom_exc = constructor(message or error.key, *args, **kwargs)
    else:
        # No match found, wrap this in an IOError with the appropriate message.
        custom_exc = IOError(errno.EIO, message or str(error), *args)

    if set_cause:
        custom_exc.__cause__ = error
    return custom_exc
