"""
Pytest setup
"""

import base64
import hashlib
import hmac
import itertools
import json
import time
import uuid
from email.utils import formatdate
from typing import Dict, List, Optional, Tuple
from urllib.parse import parse_qs, unquote, urlsplit

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from ufilefs import UFileClient, UFileFileSystem

BUCKET = "mybucket"
PUBLIC_KEY = "test-public-key"
SECRET_KEY = "s3cr3t"
SUFFIX = ".cn-bj.ufileos.com"
BLOCK_SIZE = 16
NUMBERS = b"1234567890\n"


def expected_authorization(request: requests.PreparedRequest, bucket: str) -> str:
    """UFile's own recomputation of a request signature"""
    headers = request.headers
    lines = [request.method] + [
        headers.get(name, "") for name in ("Content-MD5", "Content-Type", "Date")
    ]
    ucloud = sorted(
        (name.lower(), value.strip(" "))
        for name, value in headers.items()
        if name.lower().startswith("x-ucloud-")
    )
    to_sign = "\n".join(lines) + "\n"
    to_sign += "".join(f"{name}:{value}\n" for name, value in ucloud)
    to_sign += f"/{bucket}{urlsplit(request.url).path}"
    digest = hmac.new(SECRET_KEY.encode(), to_sign.encode(), hashlib.sha1).digest()
    return f"UCloud {PUBLIC_KEY}:{base64.b64encode(digest).decode()}"


class UFileEmulator(BaseAdapter):
    """In memory UFile service speaking the REST API through requests"""

    def __init__(self, blk_size: int = BLOCK_SIZE):
        super().__init__()
        self.blk_size = blk_size
        self.objects: Dict[Tuple[str, str], Dict] = {}
        self.uploads: Dict[str, Dict] = {}
        self.requests: List[requests.PreparedRequest] = []
        self.bodies: List[bytes] = []
        self.overrides: Dict[Tuple[str, str], int] = {}
        self.unreachable: set = set()
        self._ids = itertools.count()

    # helpers used by the tests
    def add_object(
        self,
        key: str,
        data: bytes,
        bucket: str = BUCKET,
        content_type: str = "application/octet-stream",
    ):
        self.objects[(bucket, key)] = {
            "data": data,
            "type": content_type,
            "etag": hashlib.md5(data).hexdigest(),
            "mtime": int(time.time()),
        }

    def data(self, key: str, bucket: str = BUCKET) -> bytes:
        return self.objects[(bucket, key)]["data"]

    def fail(self, method: str, key: str, status: int):
        self.overrides[(method, key)] = status

    # transport
    def close(self):
        pass

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        # pylint: disable=too-many-arguments
        self.requests.append(request)
        body = request.body
        if hasattr(body, "read"):
            body = body.read()
        if isinstance(body, str):
            body = body.encode("utf-8")
        body = body or b""
        self.bodies.append(body)

        url = urlsplit(request.url)
        bucket = url.hostname.split(".", 1)[0]
        key = unquote(url.path.lstrip("/"))
        query = parse_qs(url.query, keep_blank_values=True)
        if key in self.unreachable:
            raise requests.ConnectionError(f"cannot reach {key}")

        if request.headers.get("Authorization") != expected_authorization(
            request, bucket
        ):
            return self._respond(request, 401, {"RetCode": -148653, "ErrMsg": "auth"})
        if request.method in ("PUT", "POST") and int(
            request.headers.get("Content-Length", -1)
        ) != len(body):
            return self._respond(request, 400, {"ErrMsg": "bad content length"})
        if (request.method, key) in self.overrides:
            return self._respond(request, self.overrides[(request.method, key)], {})

        handler = getattr(self, f"_do_{request.method.lower()}")
        return handler(request, bucket, key, query, body)

    def _respond(
        self,
        request,
        status: int,
        payload=None,
        headers: Optional[Dict] = None,
    ) -> requests.Response:
        resp = requests.Response()
        resp.status_code = status
        if isinstance(payload, bytes):
            content = payload
        else:
            content = json.dumps(payload).encode() if payload is not None else b""
        # pylint: disable=protected-access
        resp._content = b"" if request.method == "HEAD" else content
        resp.headers = CaseInsensitiveDict(headers or {})
        resp.url = request.url
        resp.request = request
        resp.encoding = "utf-8"
        return resp

    def _object_headers(self, obj: Dict) -> Dict:
        return {
            "Content-Length": str(len(obj["data"])),
            "Content-Type": obj["type"],
            "ETag": f'"{obj["etag"]}"',
            "Last-Modified": formatdate(obj["mtime"], usegmt=True),
        }

    def _do_get(self, request, bucket, key, query, body):
        if not key:
            return self._list(request, bucket, query)
        obj = self.objects.get((bucket, key))
        if obj is None:
            return self._respond(request, 404, {"RetCode": -148654, "ErrMsg": "file not exist"})
        data = obj["data"]
        headers = self._object_headers(obj)
        if "Range" in request.headers:
            start, end = request.headers["Range"][len("bytes=") :].split("-")
            data = data[int(start) : int(end) + 1]
            headers["Content-Length"] = str(len(data))
            return self._respond(request, 206, data, headers)
        return self._respond(request, 200, data, headers)

    def _do_head(self, request, bucket, key, query, body):
        obj = self.objects.get((bucket, key))
        if obj is None:
            return self._respond(request, 404)
        return self._respond(request, 200, b"", self._object_headers(obj))

    def _do_put(self, request, bucket, key, query, body):
        self.add_object(
            key,
            body,
            bucket,
            request.headers.get("Content-Type") or "application/octet-stream",
        )
        etag = self.objects[(bucket, key)]["etag"]
        return self._respond(request, 200, b"", {"ETag": f'"{etag}"'})

    def _do_delete(self, request, bucket, key, query, body):
        if "uploadId" in query:
            if self.uploads.pop(query["uploadId"][0], None) is None:
                return self._respond(request, 404, {"ErrMsg": "no such upload"})
            return self._respond(request, 200, b"")
        if self.objects.pop((bucket, key), None) is None:
            return self._respond(request, 404, {"ErrMsg": "file not exist"})
        return self._respond(request, 204)

    def _do_post(self, request, bucket, key, query, body):
        if "uploads" in query:
            upload_id = f"upload-{next(self._ids)}"
            self.uploads[upload_id] = {"bucket": bucket, "key": key, "parts": {}}
            return self._respond(
                request,
                200,
                {"UploadId": upload_id, "BlkSize": self.blk_size, "Bucket": bucket, "Key": key},
            )
        upload = self.uploads.get(query.get("uploadId", [""])[0])
        if upload is None:
            return self._respond(request, 404, {"ErrMsg": "no such upload"})
        if "partNumber" in query:
            number = int(query["partNumber"][0])
            etag = uuid.uuid4().hex
            upload["parts"][number] = (etag, body)
            return self._respond(request, 200, {"PartNumber": number}, {"ETag": f'"{etag}"'})
        parts = [upload["parts"][number] for number in sorted(upload["parts"])]
        if body.decode() != ",".join(etag for etag, _ in parts):
            return self._respond(request, 400, {"ErrMsg": "etag list mismatch"})
        new_key = query.get("newKey", [key])[0]
        self.add_object(new_key, b"".join(data for _, data in parts), bucket)
        del self.uploads[query["uploadId"][0]]
        size = len(self.objects[(bucket, new_key)]["data"])
        return self._respond(request, 200, {"Bucket": bucket, "Key": new_key, "FileSize": size})

    def _list(self, request, bucket, query):
        if "muploadid" in query:
            prefix = query.get("prefix", [""])[0]
            data_set = [
                {"UploadId": upload_id, "FileName": upload["key"]}
                for upload_id, upload in sorted(self.uploads.items())
                if upload["bucket"] == bucket and upload["key"].startswith(prefix)
            ]
            return self._respond(request, 200, {"DataSet": data_set, "NextMarker": ""})
        if "muploadpart" in query:
            upload = self.uploads.get(query.get("uploadId", [""])[0])
            if upload is None:
                return self._respond(request, 404, {"ErrMsg": "no such upload"})
            data_set = [
                {"PartId": number, "Size": len(data), "Etag": etag}
                for number, (etag, data) in sorted(upload["parts"].items())
            ]
            return self._respond(request, 200, {"DataSet": data_set})

        prefix = query.get("prefix", [""])[0]
        marker = query.get("marker", [""])[0]
        limit = int(query.get("limit", ["20"])[0])
        keys = sorted(
            key
            for obj_bucket, key in self.objects
            if obj_bucket == bucket and key.startswith(prefix) and key > marker
        )
        page = keys[:limit]
        data_set = []
        for key in page:
            obj = self.objects[(bucket, key)]
            data_set.append(
                {
                    "BucketName": bucket,
                    "FileName": key,
                    "Hash": obj["etag"],
                    "MimeType": obj["type"],
                    "Size": len(obj["data"]),
                    "CreateTime": obj["mtime"],
                    "ModifyTime": obj["mtime"],
                }
            )
        next_marker = page[-1] if len(keys) > limit else ""
        return self._respond(
            request,
            200,
            {"BucketName": bucket, "DataSet": data_set, "NextMarker": next_marker},
        )


@pytest.fixture
def emulator(monkeypatch) -> UFileEmulator:
    """
    Route every requests.Session created by ufilefs to the emulator
    """
    emulator = UFileEmulator()

    class EmulatedSession(requests.Session):
        def __init__(self):
            super().__init__()
            self.mount("http://", emulator)
            self.mount("https://", emulator)

    monkeypatch.setattr(requests, "Session", EmulatedSession)
    return emulator


@pytest.fixture
def client(emulator: UFileEmulator) -> UFileClient:  # pylint: disable=unused-argument
    return UFileClient(BUCKET, PUBLIC_KEY, SECRET_KEY, suffix=SUFFIX)


@pytest.fixture
def ufilefs(emulator: UFileEmulator) -> UFileFileSystem:  # pylint: disable=unused-argument
    UFileFileSystem.clear_instance_cache()
    return UFileFileSystem(
        key=PUBLIC_KEY,
        secret=SECRET_KEY,
        suffix=SUFFIX,
        default_block_size=BLOCK_SIZE,
        skip_instance_cache=True,
    )


@pytest.fixture
def bound_fs(emulator: UFileEmulator) -> UFileFileSystem:  # pylint: disable=unused-argument
    UFileFileSystem.clear_instance_cache()
    return UFileFileSystem(
        key=PUBLIC_KEY,
        secret=SECRET_KEY,
        bucket=BUCKET,
        suffix=SUFFIX,
        default_block_size=BLOCK_SIZE,
        skip_instance_cache=True,
    )


@pytest.fixture
def number_file(emulator: UFileEmulator) -> str:
    emulator.add_object("numbers/number", NUMBERS, content_type="text/plain")
    return f"{BUCKET}/numbers/number"

