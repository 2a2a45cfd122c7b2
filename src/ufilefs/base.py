"""
Code of base class of UFileFileSystem
"""
import logging
import os
from typing import Any, Dict, Optional, Tuple

from fsspec.spec import AbstractFileSystem
from fsspec.utils import stringify_path

from .client import DEFAULT_SUFFIX, UFileClient
from .utils import parse_ufile_url

logger = logging.getLogger("ufilefs")
logging.getLogger("urllib3").setLevel(logging.WARNING)


DEFAULT_BLOCK_SIZE = 4 * 2**20
LIST_LIMIT = 1000


class BaseUFileFileSystem(AbstractFileSystem):
    # pylint: disable=abstract-method

    """
    base class of the ufilefs file system, access UFile object storage as
    if it were a file system.

    This exposes a filesystem-like API (ls, cp, open, etc.) on top of UFile
    buckets.

    Provide credentials with `key` and `secret`. Paths are `bucket/key`,
    or plain keys when the file system is bound to one `bucket`.
    """

    protocol = "ufile"
    root_marker = ""

    def __init__(
        self,
        key: Optional[str] = None,
        secret: Optional[str] = None,
        bucket: Optional[str] = None,
        suffix: Optional[str] = None,
        use_https: bool = False,
        debug: bool = False,
        timeout: Optional[float] = None,
        default_cache_type: str = "readahead",
        default_block_size: Optional[int] = None,
        **kwargs,  # pylint: disable=too-many-arguments
    ):
        """
        Parameters
        ----------
        key : string (None)
            UFile public key, read from ``UFILE_PUBLIC_KEY`` when not given.
        secret : string (None)
            UFile private key, read from ``UFILE_SECRET_KEY`` when not given.
        bucket : string (None)
            If given, every path is a key inside this bucket.
        suffix : string (None)
            Host suffix appended to the bucket name, like
            `.cn-bj.ufileos.com`. Read from ``UFILE_SUFFIX`` when not given,
            defaults to `.ufile.ucloud.cn`.
        use_https : bool (False)
            Talk https instead of http.
        debug : bool (False)
            Log every request and response at DEBUG level.
        timeout : float (None)
            Passed to ``requests`` for every call.
        default_block_size: int (None)
            If given, the default block size value used for ``open()``, if no
            specific value is given at all time. The built-in default is 4MB.
        default_cache_type : string ("readahead")
            If given, the default cache_type value used for ``open()``. Set to "none"
            if no caching is desired. See fsspec's documentation for other available
            cache_type values. Default cache_type is "readahead".

        The following parameters are passed on to fsspec:

        skip_instance_cache: to control reuse of instances
        use_listings_cache, listings_expiry_time, max_paths: to control reuse of
        directory listings
        """
        self._key = key or os.getenv("UFILE_PUBLIC_KEY")
        self._secret = secret or os.getenv("UFILE_SECRET_KEY")
        if not self._key or not self._secret:
            logger.warning(
                "UFile credentials are not set, every request will be "
                "rejected, pass `key` and `secret` or set UFILE_PUBLIC_KEY "
                "and UFILE_SECRET_KEY"
            )
        self._suffix = suffix or os.getenv("UFILE_SUFFIX") or DEFAULT_SUFFIX
        self._use_https = use_https
        self._debug = debug
        self._timeout = timeout
        self.bucket = bucket
        self._clients: Dict[str, UFileClient] = {}

        super_kwargs = {
            k: kwargs.pop(k)
            for k in ["use_listings_cache", "listings_expiry_time", "max_paths"]
            if k in kwargs
        }  # passed to fsspec superclass
        super().__init__(**super_kwargs)

        self._default_block_size = default_block_size or DEFAULT_BLOCK_SIZE
        self._default_cache_type = default_cache_type

    def get_client(self, bucket_name: str) -> UFileClient:
        """
        get the client of one bucket
        """
        if not bucket_name:
            raise ValueError("bucket is required")
        if bucket_name not in self._clients:
            self._clients[bucket_name] = UFileClient(
                bucket_name,
                self._key or "",
                self._secret or "",
                suffix=self._suffix,
                use_https=self._use_https,
                debug=self._debug,
                timeout=self._timeout,
            )
        return self._clients[bucket_name]

    @classmethod
    def _strip_protocol(cls, path):
        """Turn path from fully-qualified to file-system-specific
        Parameters
        ----------
        path : Union[str, List[str]]
            Input path, like
            `http://mybucket.cn-bj.ufileos.com/myobject`
            `ufile://mybucket/myobject`
        Examples
        --------
        >>> _strip_protocol(
            "http://mybucket.cn-bj.ufileos.com/myobject"
            )
        ('mybucket/myobject')
        >>> _strip_protocol(
            "ufile://mybucket/myobject"
            )
        ('mybucket/myobject')
        """
        if isinstance(path, list):
            return [cls._strip_protocol(p) for p in path]
        path_string: str = stringify_path(path)
        if path_string.startswith("ufile://"):
            path_string = path_string[len("ufile://") :]

        parsed = parse_ufile_url(path_string)
        if parsed["suffix"]:
            path_string = f"{parsed['bucket']}/{parsed['object']}"
        return path_string.strip("/") or cls.root_marker

    def split_path(self, path: str) -> Tuple[str, str]:
        """
        Normalise object path string into bucket and key.
        Parameters
        ----------
        path : string
            Input path, like `mybucket/path/to/file`
        Examples
        --------
        >>> split_path("mybucket/path/to/file")
        ('mybucket', 'path/to/file')
        >>> UFileFileSystem(bucket="mybucket").split_path("path/to/file")
        ('mybucket', 'path/to/file')
        """
        path = self._strip_protocol(path)
        if self.bucket:
            return self.bucket, path
        if "/" not in path:
            return path, ""
        bucket_name, obj_name = path.split("/", 1)
        return bucket_name, obj_name

    def _join_path(self, bucket: str, key: str) -> str:
        if self.bucket:
            return key
        return "/".join([bucket, key]) if key else bucket

    def invalidate_cache(self, path: Optional[str] = None):
        if path is None:
            self.dircache.clear()
        else:
            norm_path: str = self._strip_protocol(path)
            self.dircache.pop(norm_path, None)
            while norm_path:
                self.dircache.pop(norm_path, None)
                norm_path = self._parent(norm_path)
            self.dircache.pop(norm_path, None)

    def _transfer_object_info_to_dict(self, bucket: str, obj: Dict[str, Any]) -> Dict:
        """One ``DataSet`` entry of a listing to an fsspec info dict"""
        data: Dict[str, Any] = {
            "name": self._join_path(bucket, obj["FileName"]),
            "type": "file",
            "size": int(obj.get("Size") or 0),
        }
        if obj.get("MimeType"):
            data["ContentType"] = obj["MimeType"]
        if obj.get("Hash"):
            data["ETag"] = obj["Hash"].strip('"')
        if obj.get("ModifyTime"):
            data["LastModified"] = int(obj["ModifyTime"])
        return data

    def _directory_info(self, bucket: str, key: str) -> Dict:
        return {"name": self._join_path(bucket, key), "type": "directory", "size": 0}
