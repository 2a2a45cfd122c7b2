"""
Multipart upload sessions

A session is initiated, takes any number of parts and is then either
finished, which commits the parts as one object, or aborted. The service
owns the session, this object only remembers its id and the parts sent.
"""
import json
import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional

from .exceptions import MultipartError

if TYPE_CHECKING:
    from .client import UFileClient

logger = logging.getLogger("ufilefs")

DEFAULT_PART_SIZE = 4 * 2**20


class UploadState(Enum):
    INITIATED = "initiated"
    FINISHED = "finished"
    ABORTED = "aborted"


def _decode(body: bytes) -> Dict:
    try:
        return json.loads(body.decode("utf-8")) if body else {}
    except ValueError as err:
        raise MultipartError(f"Unreadable answer: {body!r}") from err


class MultipartUpload:
    """One multipart upload of ``key``

    Examples
    --------
    >>> mpu = MultipartUpload.initiate(client, "big.bin")
    >>> for chunk in chunks:
    ...     mpu.upload_part(chunk)
    >>> mpu.complete()
    """

    def __init__(
        self,
        client: "UFileClient",
        key: str,
        upload_id: str,
        part_size: int = DEFAULT_PART_SIZE,
    ):
        self.client = client
        self.key = key
        self.upload_id = upload_id
        self.part_size = part_size
        self.parts: Dict[int, str] = {}
        self.state = UploadState.INITIATED
        self._lock = threading.Lock()
        self._next_part = 0

    @classmethod
    def initiate(
        cls, client: "UFileClient", key: str, headers: Optional[Dict] = None
    ) -> "MultipartUpload":
        body, status = client.init_parts(key, headers)
        if not 200 <= status <= 299:
            raise MultipartError(f"initiate {key} error: {status}")
        answer = _decode(body)
        upload_id = answer.get("UploadId")
        if not upload_id:
            raise MultipartError(f"initiate {key} returned no upload id: {body!r}")
        logger.debug("Initiated upload %s of %s", upload_id, key)
        return cls(
            client, key, upload_id, int(answer.get("BlkSize") or DEFAULT_PART_SIZE)
        )

    def _check_open(self):
        if self.state is not UploadState.INITIATED:
            raise ValueError(f"Upload {self.upload_id} is already {self.state.value}")

    def upload_part(self, data: bytes, part_number: Optional[int] = None) -> int:
        """Send one part, numbered from 0 in call order unless given"""
        self._check_open()
        if part_number is None:
            with self._lock:
                part_number = self._next_part
                self._next_part += 1
        resp = self.client.send_part(self.key, self.upload_id, part_number, data)
        if not 200 <= resp.status_code <= 299:
            raise MultipartError(
                f"part {part_number} of {self.key} error: {resp.status_code}"
            )
        etag = resp.headers.get("ETag", "").strip('"')
        with self._lock:
            self.parts[part_number] = etag
        logger.debug("Uploaded part %s of %s", part_number, self.key)
        return part_number

    def complete(self, new_key: Optional[str] = None) -> bytes:
        """Commit the parts, in part-number order, as ``new_key``"""
        self._check_open()
        etags = ",".join(self.parts[number] for number in sorted(self.parts))
        body, status = self.client.finish_parts(
            self.key, self.upload_id, new_key or self.key, etags
        )
        if not 200 <= status <= 299:
            raise MultipartError(f"finish {self.key} error: {status}")
        self.state = UploadState.FINISHED
        return body

    def abort(self):
        self._check_open()
        _, status = self.client.delete_parts(self.key, self.upload_id)
        if not 200 <= status <= 299:
            raise MultipartError(f"abort {self.key} error: {status}")
        self.state = UploadState.ABORTED
