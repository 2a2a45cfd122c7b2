"""
Code of UFileClient, the signed HTTP client of one UFile bucket
"""
import logging
from typing import Dict, Optional, Tuple
from urllib.parse import quote, urlencode

import requests

from .auth import UFileAuth, body_length
from .exceptions import RemoteError

logger = logging.getLogger("ufilefs")
logging.getLogger("urllib3").setLevel(logging.WARNING)

DEFAULT_SUFFIX = ".ufile.ucloud.cn"

Response = Tuple[bytes, int]


def _query(flag: str, **params) -> str:
    """``?flag&name=value...`` skipping empty values"""
    filters = {name: value for name, value in params.items() if value}
    if not filters:
        return f"?{flag}"
    return f"?{flag}&{urlencode(filters)}"


class UFileClient:
    """
    Object operations of one UFile bucket.

    Requests go to ``http(s)://<bucket><suffix>`` and are signed by
    :class:`~ufilefs.auth.UFileAuth`. Plain operations return
    ``(body, status_code)`` and leave the status to the caller, the
    ``get``/``size``/``mime``/``meta``/``delete`` family raises
    :class:`~ufilefs.exceptions.RemoteError` instead.

    Examples
    --------
    >>> client = UFileClient("my-bucket", "public-key", "secret-key")
    >>> client.put("hello.txt", b"Hello, world!")
    (b'', 200)
    >>> client.get("hello.txt")
    b'Hello, world!'
    """

    def __init__(
        self,
        bucket: str,
        public_key: str,
        secret_key: str,
        suffix: str = DEFAULT_SUFFIX,
        use_https: bool = False,
        debug: bool = False,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):  # pylint: disable=too-many-arguments
        if not bucket:
            raise ValueError("bucket is required")
        self._bucket = bucket
        self._host = ("https://" if use_https else "http://") + bucket + suffix
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.auth = UFileAuth(bucket, public_key, secret_key, debug=debug)
        self.debug = debug

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def host(self) -> str:
        return self._host

    def _url(self, key: str) -> str:
        return f"{self._host}/{quote(key.lstrip('/'), safe='/~')}"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        if self.debug:
            logger.debug("%s %s - %s", method, url, kwargs.get("headers"))
        resp = self._session.request(method, url, timeout=self._timeout, **kwargs)
        if self.debug:
            logger.debug("%s %s -> %s", method, url, resp.status_code)
        return resp

    def _head_ok(self, operation: str, key: str) -> requests.Response:
        resp = self._request("HEAD", self._url(key))
        if resp.status_code != 200:
            raise RemoteError(operation, key, resp.status_code, resp.content)
        return resp

    def put(self, key: str, content, headers: Optional[Dict] = None) -> Response:
        if isinstance(content, str):
            content = content.encode("utf-8")
        resp = self._request("PUT", self._url(key), headers=headers, data=content)
        return resp.content, resp.status_code

    def put_file(self, key: str, path: str, headers: Optional[Dict] = None) -> Response:
        with open(path, "rb") as f_rb:
            resp = self._request("PUT", self._url(key), headers=headers, data=f_rb)
        return resp.content, resp.status_code

    def get(self, key: str) -> bytes:
        resp = self._request("GET", self._url(key))
        if resp.status_code != 200:
            raise RemoteError("get", key, resp.status_code, resp.content)
        return resp.content

    def get_range(self, key: str, start: int, end: int) -> bytes:
        """Bytes ``[start, end)`` of the object"""
        headers = {"Range": f"bytes={start}-{end - 1}"}
        resp = self._request("GET", self._url(key), headers=headers)
        if resp.status_code not in (200, 206):
            raise RemoteError("get", key, resp.status_code, resp.content)
        if resp.status_code == 200:
            return resp.content[start:end]
        return resp.content

    def exists(self, key: str) -> bool:
        """Whether HEAD answers 200.

        Any other answer, transport errors included, reads as absent.
        """
        try:
            resp = self._request("HEAD", self._url(key))
        except requests.RequestException as err:
            logger.debug("HEAD %s failed, treated as absent: %s", key, err)
            return False
        if resp.status_code != 200:
            logger.debug("HEAD %s -> %s, treated as absent", key, resp.status_code)
        return resp.status_code == 200

    def size(self, key: str) -> int:
        return int(self._head_ok("size", key).headers["Content-Length"])

    def mime(self, key: str) -> str:
        return self._head_ok("mime", key).headers["Content-Type"]

    def meta(self, key: str) -> Dict[str, str]:
        """Response headers of HEAD, first value only per header"""
        resp = self._head_ok("meta", key)
        raw_headers = getattr(resp.raw, "headers", None)
        if not hasattr(raw_headers, "getlist"):
            return dict(resp.headers.items())
        return {name: raw_headers.getlist(name)[0] for name in raw_headers}

    def delete(self, key: str) -> bool:
        resp = self._request("DELETE", self._url(key))
        if not 200 <= resp.status_code <= 299:
            raise RemoteError("delete", key, resp.status_code, resp.content)
        return True

    def list(
        self,
        prefix: Optional[str] = None,
        marker: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Response:
        url = self._host + "/" + _query("list", prefix=prefix, marker=marker, limit=limit)
        resp = self._request("GET", url)
        return resp.content, resp.status_code

    def init_parts(self, key: str, headers: Optional[Dict] = None) -> Response:
        # https://docs.ucloud.cn/api/ufile-api/initiate_multipart_upload
        resp = self._request("POST", self._url(key) + "?uploads", headers=headers)
        return resp.content, resp.status_code

    def send_part(
        self,
        key: str,
        upload_id: str,
        part_number: int,
        content: bytes,
        headers: Optional[Dict] = None,
    ) -> requests.Response:  # pylint: disable=too-many-arguments
        """Upload one part and return the whole response, ETag header included"""
        # https://docs.ucloud.cn/api/ufile-api/upload_part
        headers = dict(headers or {})
        headers["Content-Type"] = "application/octet-stream"
        headers["Content-Length"] = str(body_length(content))
        query = urlencode({"uploadId": upload_id, "partNumber": part_number})
        return self._request(
            "POST", f"{self._url(key)}?{query}", headers=headers, data=content
        )

    def upload_part(
        self,
        key: str,
        upload_id: str,
        part_number: int,
        content: bytes,
        headers: Optional[Dict] = None,
    ) -> Response:  # pylint: disable=too-many-arguments
        resp = self.send_part(key, upload_id, part_number, content, headers)
        return resp.content, resp.status_code

    def finish_parts(
        self,
        key: str,
        upload_id: str,
        new_key: str,
        content=b"",
        headers: Optional[Dict] = None,
    ) -> Response:  # pylint: disable=too-many-arguments
        # https://docs.ucloud.cn/api/ufile-api/finish_multipart_upload
        if isinstance(content, str):
            content = content.encode("utf-8")
        headers = dict(headers or {})
        headers["Content-Length"] = str(body_length(content))
        query = urlencode({"uploadId": upload_id, "newKey": new_key})
        resp = self._request(
            "POST", f"{self._url(key)}?{query}", headers=headers, data=content
        )
        return resp.content, resp.status_code

    def delete_parts(self, key: str, upload_id: str) -> Response:
        # https://docs.ucloud.cn/api/ufile-api/abort_multipart_upload
        query = urlencode({"uploadId": upload_id})
        resp = self._request("DELETE", f"{self._url(key)}?{query}")
        return resp.content, resp.status_code

    def get_parts(self, upload_id: str) -> Response:
        # https://docs.ucloud.cn/api/ufile-api/get_multi_upload_part
        url = self._host + "/" + _query("muploadpart", uploadId=upload_id)
        resp = self._request("GET", url)
        return resp.content, resp.status_code

    def get_all_parts(
        self,
        prefix: Optional[str] = None,
        marker: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Response:
        # https://docs.ucloud.cn/api/ufile-api/get_multi_upload_id
        url = self._host + "/" + _query(
            "muploadid", prefix=prefix, marker=marker, limit=limit
        )
        resp = self._request("GET", url)
        return resp.content, resp.status_code
