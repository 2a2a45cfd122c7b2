"""utils of ufilefs"""
import re
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional

URL_RE = re.compile(
    r"https?://(?P<bucket>[^./]+)(?P<suffix>\.[^/]*ufile[^/]*)(?P<path>/.*)?$"
)


def parse_ufile_url(url: str) -> Dict[str, str]:
    """parse bucket and key from urls
    Parameters
    ----------
    url : string
        Input url, like
        `http://mybucket.cn-bj.ufileos.com/myobject`
        or a plain path like `/mybucket/myobject`
    Examples
    --------
    >>> parse_ufile_url("http://mybucket.cn-bj.ufileos.com/myobject")
    {'bucket': 'mybucket', 'suffix': '.cn-bj.ufileos.com',
    'object': 'myobject', 'path': '/mybucket/myobject'}
    """
    matcher = URL_RE.match(url)
    if matcher:
        bucket_name = matcher["bucket"]
        obj_name = (matcher["path"] or "").lstrip("/")
        return {
            "bucket": bucket_name,
            "suffix": matcher["suffix"],
            "object": obj_name,
            "path": f"/{bucket_name}/{obj_name}".rstrip("/"),
        }

    stripped = url.lstrip("/")
    if "/" not in stripped:
        bucket_name, obj_name = stripped, ""
    else:
        bucket_name, obj_name = stripped.split("/", 1)
    return {"bucket": bucket_name, "suffix": "", "object": obj_name, "path": url}


def http_date_to_timestamp(value: Optional[str]) -> Optional[int]:
    """``Last-Modified`` header to a unix timestamp"""
    if not value:
        return None
    parsed = datetime.strptime(value, "%a, %d %b %Y %H:%M:%S GMT")
    return int(parsed.replace(tzinfo=timezone.utc).timestamp())


def chunks(data: bytes, size: int) -> Iterator[bytes]:
    for offset in range(0, len(data), size):
        yield data[offset : offset + size]


def read_file_parts(lpath: str, size: int) -> Iterator[bytes]:
    with open(lpath, "rb") as f_rb:
        while True:
            data = f_rb.read(size)
            if not data:
                return
            yield data
