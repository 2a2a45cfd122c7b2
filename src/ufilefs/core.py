"""
Code of UFileFileSystem
"""
# pylint:disable=missing-function-docstring
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

import requests
from fsspec.utils import tokenize

from .base import LIST_LIMIT, BaseUFileFileSystem
from .exceptions import RemoteError, UFileError, translate_ufile_error
from .file import UFileFile
from .multipart import MultipartUpload
from .utils import chunks, http_date_to_timestamp, read_file_parts

logger = logging.getLogger("ufilefs")


class UFileFileSystem(BaseUFileFileSystem):  # pylint:disable=too-many-public-methods
    """
    A pythonic file-systems interface to UCloud UFile

    Examples
    --------
    >>> ufs = UFileFileSystem(key="public-key", secret="secret-key")
    >>> ufs.ls('my-bucket/')
    ['my-bucket/my-file.txt']

    >>> with ufs.open('my-bucket/my-file.txt', mode='rb') as f:
    ...     print(f.read())
    b'Hello, world!'
    """

    def _call_ufile(self, method_name: str, *args, bucket: str, **kwargs):
        method = getattr(self.get_client(bucket), method_name)
        logger.debug("CALL: %s - %s - %s", method_name, args, kwargs)
        try:
            return method(*args, **kwargs)
        except RemoteError as err:
            logger.debug("Remote error: %s", err)
            raise translate_ufile_error(err) from err

    def _check_status(self, operation: str, key: str, answer):
        body, status = answer
        if not 200 <= status <= 299:
            err = RemoteError(operation, key, status, body)
            raise translate_ufile_error(err) from err
        return body

    def _iter_objects(self, bucket_name: str, prefix: str) -> Iterator[Dict[str, Any]]:
        """
        Walk every page of the prefix listing
        """
        marker = None
        while True:
            page = json.loads(
                self._check_status(
                    "list",
                    prefix or "/",
                    self._call_ufile(
                        "list",
                        prefix=prefix or None,
                        marker=marker,
                        limit=LIST_LIMIT,
                        bucket=bucket_name,
                    ),
                )
                or b"{}"
            )
            yield from page.get("DataSet") or []
            next_marker = page.get("NextMarker")
            if not next_marker or next_marker == marker:
                return
            marker = next_marker

    def _ls_dir(self, path: str, refresh: bool = False) -> List[Dict]:
        norm_path = self._strip_protocol(path)
        if norm_path in self.dircache and not refresh:
            return self.dircache[norm_path]

        logger.debug("Get directory listing page for %s", norm_path)
        bucket_name, key = self.split_path(norm_path)
        prefix = f"{key}/" if key else ""

        entries: Dict[str, Dict] = {}
        for obj in self._iter_objects(bucket_name, prefix):
            rest = obj["FileName"][len(prefix) :]
            if not rest:
                continue
            if "/" in rest:
                dirname = prefix + rest.split("/", 1)[0]
                entries.setdefault(dirname, self._directory_info(bucket_name, dirname))
            else:
                entries[obj["FileName"]] = self._transfer_object_info_to_dict(
                    bucket_name, obj
                )
        self.dircache[norm_path] = [entries[name] for name in sorted(entries)]
        return self.dircache[norm_path]

    def ls(self, path: str, detail: bool = True, **kwargs):
        refresh = kwargs.pop("refresh", False)
        norm_path = self._strip_protocol(path)
        if norm_path == "" and not self.bucket:
            logger.warning("UFile buckets cannot be listed, give a bucket name")
            return []
        files = self._ls_dir(norm_path, refresh=refresh)
        if not files:
            _, key = self.split_path(norm_path)
            if key:
                files = [
                    info
                    for info in self._ls_dir(self._parent(norm_path), refresh=refresh)
                    if info["type"] == "file" and info["name"] == norm_path
                ]
        if detail:
            return files
        return [info["name"] for info in files]

    def _meta_to_info(self, path: str, meta: Dict[str, str]) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "name": path,
            "type": "file",
            "size": int(meta.get("Content-Length") or 0),
        }
        if meta.get("Content-Type"):
            info["ContentType"] = meta["Content-Type"]
        if meta.get("ETag"):
            info["ETag"] = meta["ETag"].strip('"')
        last_modified = http_date_to_timestamp(meta.get("Last-Modified"))
        if last_modified is not None:
            info["LastModified"] = last_modified
        return info

    def info(self, path: str, **kwargs):
        norm_path = self._strip_protocol(path)
        bucket_name, key = self.split_path(norm_path)
        if not key:
            return {"name": norm_path, "size": 0, "type": "directory"}
        try:
            meta = self._call_ufile("meta", key, bucket=bucket_name)
            return self._meta_to_info(norm_path, meta)
        except FileNotFoundError:
            pass
        if self._ls_dir(norm_path, refresh=kwargs.get("refresh", False)):
            return self._directory_info(bucket_name, key)
        raise FileNotFoundError(path)

    def _bucket_exist(self, bucket_name: str) -> bool:
        if not bucket_name:
            return False
        _, status = self._call_ufile("list", limit=1, bucket=bucket_name)
        return status == 200

    def exists(self, path: str, **kwargs) -> bool:
        """Is there a file at the given path"""
        norm_path = self._strip_protocol(path)
        if norm_path == "":
            return True

        bucket_name, obj_name = self.split_path(norm_path)
        if not obj_name:
            return self._bucket_exist(bucket_name)

        if self._call_ufile("exists", obj_name, bucket=bucket_name):
            return True
        return bool(self._ls_dir(norm_path, refresh=kwargs.get("refresh", False)))

    def mime(self, path: str) -> str:
        """Content type of the object at path"""
        bucket_name, obj_name = self.split_path(path)
        return self._call_ufile("mime", obj_name, bucket=bucket_name)

    def ukey(self, path: str):
        """Hash of file properties, to tell if it has changed"""
        return self.info(path).get("ETag")

    def checksum(self, path: str) -> int:
        """Unique value for current version of file, derived from its ETag"""
        return int(tokenize(self.ukey(path)), 16)

    def modified(self, path: str):
        """Return the modified timestamp of a file as a datetime.datetime"""
        info = self.info(path)
        if info["type"] == "directory" or "LastModified" not in info:
            raise NotImplementedError("directories have no modified timestamp")
        return datetime.fromtimestamp(info["LastModified"], tz=timezone.utc)

    def created(self, path: str):
        raise NotImplementedError("UFile has no created timestamp")

    def start_multipart(self, path: str) -> MultipartUpload:
        """
        Initiate a multipart upload of path
        """
        bucket_name, obj_name = self.split_path(path)
        return MultipartUpload.initiate(self.get_client(bucket_name), obj_name)

    def _upload_parts(
        self,
        path: str,
        read_parts: Callable[[int], Iterator[bytes]],
        callback: Optional[Any] = None,
    ):
        """Send the parts cut at the part size the service dictates

        The upload is aborted when a part or the finish call fails.
        """
        mpu = self.start_multipart(path)
        try:
            for data in read_parts(mpu.part_size):
                mpu.upload_part(data)
                if callback is not None:
                    callback.relative_update(len(data))
            mpu.complete()
        except (UFileError, requests.RequestException):
            logger.debug("Aborting upload %s of %s", mpu.upload_id, path)
            mpu.abort()
            raise

    def pipe_file(self, path: str, value, **kwargs):
        """Set the bytes of given file"""
        bucket_name, key = self.split_path(path)
        if isinstance(value, str):
            value = value.encode("utf-8")
        block_size = kwargs.get("block_size") or self._default_block_size
        self.invalidate_cache(path)
        if len(value) < 2 * block_size:
            self._check_status(
                "put", key, self._call_ufile("put", key, value, bucket=bucket_name)
            )
            return
        self._upload_parts(path, lambda part_size: chunks(value, part_size))

    def put_file(
        self, lpath: str, rpath: str, callback: Optional[Callable] = None, **kwargs
    ):  # pylint: disable=arguments-differ
        """
        Copy single file to remote
        """
        if os.path.isdir(lpath):
            # directories are implied by keys
            return
        bucket_name, obj_name = self.split_path(rpath)
        size = os.path.getsize(lpath)
        if callback is not None:
            callback.set_size(size)
        if size < 2 * self._default_block_size:
            self._check_status(
                "put",
                obj_name,
                self._call_ufile("put_file", obj_name, lpath, bucket=bucket_name),
            )
            if callback is not None:
                callback.relative_update(size)
        else:
            self._upload_parts(
                rpath,
                lambda part_size: read_file_parts(lpath, part_size),
                callback=callback,
            )
        self.invalidate_cache(self._parent(rpath))

    def cat_file(self, path: str, start: int = None, end: int = None, **kwargs):
        bucket_name, obj_name = self.split_path(path)
        if start is None and end is None:
            return self._call_ufile("get", obj_name, bucket=bucket_name)
        start = start or 0
        if start < 0 or end is None or end < 0:
            size = self.size(path)
            if start < 0:
                start = max(size + start, 0)
            if end is None:
                end = size
            elif end < 0:
                end = size + end
        return self.get_object(path, start, end)

    def get_object(self, path: str, start: int, end: int) -> bytes:
        """
        Return object bytes in range
        """
        if start >= end:
            return b""
        bucket_name, obj_name = self.split_path(path)
        return self._call_ufile("get_range", obj_name, start, end, bucket=bucket_name)

    def cp_file(self, path1: str, path2: str, **kwargs):
        """
        Copy within two locations in the filesystem
        """
        self.pipe_file(path2, self.cat_file(path1), **kwargs)
        self.invalidate_cache(self._parent(path2))

    def rm_file(self, path: str):
        bucket_name, obj_name = self.split_path(path)
        self.invalidate_cache(self._parent(path))
        self._call_ufile("delete", obj_name, bucket=bucket_name)

    def rm(self, path: Union[str, List[str]], recursive=False, maxdepth=None):
        """Delete files.

        Parameters
        ----------
        path: str or list of str
            File(s) to delete.
        recursive: bool
            If file(s) are directories, recursively delete contents. The
            directories themselves disappear with their last key.
        maxdepth: int or None
            Depth to pass to walk for finding files to delete, if recursive.
            If None, there will be no limit and infinite recursion may be
            possible.
        """
        if isinstance(path, list):
            for file in path:
                self.rm(file, recursive=recursive, maxdepth=maxdepth)
            return

        for file in self.expand_path(path, recursive=recursive, maxdepth=maxdepth):
            if self.isfile(file):
                self.rm_file(file)

    def _open(
        self,
        path,
        mode="rb",
        block_size=None,
        autocommit=True,
        cache_options=None,
        **kwargs,  # pylint: disable=too-many-arguments
    ):
        """
        Open a file for reading or writing.
        Parameters
        ----------
        path: str
            File location
        mode: str
            'rb' or 'wb', UFile objects cannot be appended to
        kwargs
        Returns
        -------
        UFileFile instance
        """
        if "a" in mode:
            raise NotImplementedError("UFile objects cannot be appended to")
        cache_type = kwargs.pop("cache_type", self._default_cache_type)
        return UFileFile(
            self,
            path,
            mode,
            block_size=block_size or self._default_block_size,
            autocommit=autocommit,
            cache_type=cache_type,
            cache_options=cache_options,
            **kwargs,
        )

    def sign(self, path: str, expiration: int = 100, **kwargs):
        raise NotImplementedError("Sign is not implemented for this filesystem")
