"""
Request signing for the UFile REST API

Every request carries ``Authorization: UCloud <public_key>:<signature>``
where the signature is the base64 encoded HMAC-SHA1 of::

    METHOD\\n
    Content-MD5\\n
    Content-Type\\n
    Date\\n
    x-ucloud-header:value\\n      (zero or more)
    /bucket/path
"""
import base64
import hashlib
import hmac
import logging
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple, Union
from urllib.parse import urlsplit

from requests.auth import AuthBase
from requests.utils import super_len

logger = logging.getLogger("ufilefs")

UCLOUD_HEADER_PREFIX = "x-ucloud-"
SIGNED_HEADERS = ("Content-MD5", "Content-Type", "Date")
SIZED_METHODS = ("POST", "PUT")

HeaderValue = Union[str, Sequence[str]]
Headers = Union[Mapping[str, HeaderValue], Iterable[Tuple[str, HeaderValue]]]


def _header_items(headers: Headers) -> List[Tuple[str, HeaderValue]]:
    if isinstance(headers, Mapping):
        return list(headers.items())
    return list(headers)


def _join_values(value: HeaderValue) -> str:
    if isinstance(value, (str, bytes)):
        values = [value]
    else:
        values = list(value)
    return ",".join(
        v.decode("latin-1") if isinstance(v, bytes) else str(v) for v in values
    )


def _first_value(headers: Headers, name: str) -> str:
    wanted = name.lower()
    for key, value in _header_items(headers):
        if key.lower() == wanted:
            if isinstance(value, (str, bytes)):
                return _join_values(value)
            return _join_values(value[:1]) if value else ""
    return ""


def canonical_ucloud_headers(headers: Headers) -> str:
    """Lines of the ``x-ucloud-*`` headers, sorted by lower-cased name.

    Headers whose names only differ in case are merged, their values joined
    with commas in the order they were given.
    """
    merged: Dict[str, List[str]] = {}
    for key, value in _header_items(headers):
        name = key.lower()
        if not name.startswith(UCLOUD_HEADER_PREFIX):
            continue
        merged.setdefault(name, []).append(_join_values(value))
    return "".join(
        f"{name}:{','.join(values).strip(' ')}\n"
        for name, values in sorted(merged.items())
    )


def canonical_string(method: str, headers: Headers, bucket: str, path: str) -> str:
    """Build the exact string UFile recomputes server side"""
    lines = [method.upper()]
    lines.extend(_first_value(headers, name) for name in SIGNED_HEADERS)
    return (
        "\n".join(lines)
        + "\n"
        + canonical_ucloud_headers(headers)
        + f"/{bucket}{path}"
    )


def sign(secret_key: str, string_to_sign: str) -> str:
    digest = hmac.new(
        secret_key.encode("utf-8"), string_to_sign.encode("utf-8"), hashlib.sha1
    ).digest()
    return base64.b64encode(digest).decode("utf-8")


def body_length(body) -> int:
    """Number of bytes ``body`` puts on the wire"""
    if body is None:
        return 0
    if isinstance(body, str):
        return len(body.encode("utf-8"))
    return super_len(body)


class UFileAuth(AuthBase):
    """Attach the UFile authorization header to a ``requests`` request.

    Only headers are touched, the body is sent as given.
    """

    def __init__(
        self, bucket: str, public_key: str, secret_key: str, debug: bool = False
    ):
        self._bucket = bucket
        self._public_key = public_key
        self._secret_key = secret_key
        self.debug = debug

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def public_key(self) -> str:
        return self._public_key

    def authorization(self, method: str, headers: Headers, path: str) -> str:
        string_to_sign = canonical_string(method, headers, self._bucket, path)
        if self.debug:
            logger.debug("String to sign: %r", string_to_sign)
        return f"UCloud {self._public_key}:{sign(self._secret_key, string_to_sign)}"

    def __call__(self, r):
        method = r.method.upper()
        path = urlsplit(r.url).path or "/"
        r.headers["Authorization"] = self.authorization(method, r.headers, path)
        if method in SIZED_METHODS:
            r.headers["Content-Length"] = str(body_length(r.body))
            # requests falls back to chunked for streams it cannot size
            r.headers.pop("Transfer-Encoding", None)
        return r

    def __eq__(self, other):
        return (
            isinstance(other, UFileAuth)
            and self._bucket == other._bucket
            and self._public_key == other._public_key
            and self._secret_key == other._secret_key
        )

    def __ne__(self, other):
        return not self == other
