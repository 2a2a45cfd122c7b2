"""
Code of UFileFile
"""

import io
from typing import TYPE_CHECKING, Optional

from fsspec.spec import AbstractBufferedFile

if TYPE_CHECKING:
    from .core import UFileFileSystem
    from .multipart import MultipartUpload


class UFileFile(AbstractBufferedFile):
    """A file living in UFileFileSystem

    Small files are written with one PUT on close, larger ones go through a
    multipart upload started once a full part is buffered.
    """

    fs: "UFileFileSystem"
    mpu: Optional["MultipartUpload"]

    def _initiate_upload(self):
        """Create remote file/upload"""
        self.mpu = None

    def _upload_chunk(self, final: bool = False) -> bool:
        """Write one part of a multi-block file upload
        Parameters
        ==========
        final: bool
            This is the last block, so should complete file, if
            self.autocommit is True.
        """
        data = self.buffer.getvalue()
        if self.mpu is None:
            if final:
                self.fs.pipe_file(self.path, data, block_size=self.blocksize)
                return True
            self.mpu = self.fs.start_multipart(self.path)

        part_size = self.mpu.part_size
        sent = 0
        while len(data) - sent >= part_size:
            self.mpu.upload_part(data[sent : sent + part_size])
            sent += part_size

        if final:
            if sent < len(data):
                self.mpu.upload_part(data[sent:])
            self.mpu.complete()
            return True

        # keep the tail until a full part is buffered
        self.offset += sent
        self.buffer = io.BytesIO()
        self.buffer.write(data[sent:])
        return False

    def _fetch_range(self, start: int, end: int) -> bytes:
        """
        Get the specified set of bytes from remote
        Parameters
        ==========
        start: int
        end: int
        """
        start = max(start, 0)
        end = min(self.size, end)
        if start >= end or start >= self.size:
            return b""
        return self.fs.get_object(self.path, start, end)
