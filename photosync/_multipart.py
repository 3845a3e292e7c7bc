"""Length-known, streaming multipart/form-data body that counts uploaded bytes.

``requests`` streams any object with ``read()`` and ``__len__`` as the request
body, so file contents are read from disk as the socket drains them and the
progress callback sees every block.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
import io
import os
from pathlib import Path
from typing import BinaryIO

from urllib3.fields import RequestField, guess_content_type
from urllib3.filepost import choose_boundary

FileSource = str | os.PathLike | bytes | BinaryIO


@dataclass
class UploadFile:
    """One file submitted to the upload endpoint."""

    name: str
    size: int
    source: FileSource
    content_type: str | None = None

    @classmethod
    def coerce(cls, value: object) -> UploadFile:
        """Accept a path, a ``(name, bytes | file)`` tuple, or an UploadFile."""
        if isinstance(value, UploadFile):
            return value
        if isinstance(value, str | os.PathLike):
            path = Path(value)
            return cls(name=path.name, size=path.stat().st_size, source=str(path))
        if isinstance(value, tuple) and len(value) in (2, 3):
            name, content = value[0], value[1]
            content_type = value[2] if len(value) == 3 else None
            if isinstance(content, bytes | bytearray):
                return cls(name=name, size=len(content), source=bytes(content), content_type=content_type)
            if hasattr(content, "read"):
                return cls(name=name, size=_remaining_size(content), source=content, content_type=content_type)
        raise TypeError(f"Unsupported upload file: {value!r}")


def _remaining_size(fileobj: BinaryIO) -> int:
    position = fileobj.tell()
    end = fileobj.seek(0, io.SEEK_END)
    fileobj.seek(position)
    return end - position


class _BytesPart:
    is_content = False

    def __init__(self, data: bytes):
        self._stream = io.BytesIO(data)
        self.size = len(data)

    def read(self, size: int) -> bytes:
        return self._stream.read(size)

    def close(self) -> None:
        self._stream.close()


class _FilePart:
    is_content = True

    def __init__(self, upload: UploadFile):
        self._upload = upload
        self._stream: BinaryIO | None = None
        self._owned = False
        self._remaining = upload.size
        self.size = upload.size

    def _open(self) -> BinaryIO:
        if self._stream is None:
            source = self._upload.source
            if isinstance(source, bytes):
                self._stream = io.BytesIO(source)
                self._owned = True
            elif isinstance(source, str | os.PathLike):
                self._stream = open(source, "rb")  # noqa: SIM115
                self._owned = True
            else:
                self._stream = source
        return self._stream

    def read(self, size: int) -> bytes:
        if self._remaining <= 0:
            return b""
        chunk = self._open().read(min(size, self._remaining))
        self._remaining -= len(chunk)
        return chunk

    def close(self) -> None:
        if self._owned and self._stream is not None:
            self._stream.close()


class MultipartBody:
    """multipart/form-data body with a ``directory`` field and repeated ``files``.

    ``on_read`` receives the cumulative number of file-content bytes handed to
    the transport so far (multipart framing excluded), so it ends at exactly the
    sum of the file sizes.
    """

    def __init__(
        self,
        files: Sequence[UploadFile],
        *,
        directory: str | None = None,
        boundary: str | None = None,
        on_read: Callable[[int], None] | None = None,
    ):
        self.boundary = boundary or choose_boundary()
        self.on_read = on_read
        self._parts: list[_BytesPart | _FilePart] = []
        self._index = 0
        self._loaded = 0

        if directory:
            field = RequestField(name="directory", data=directory)
            field.make_multipart()
            self._add_field(field, _BytesPart(directory.encode("utf-8")))

        for upload in files:
            field = RequestField(name="files", data=b"", filename=upload.name)
            field.make_multipart(content_type=upload.content_type or guess_content_type(upload.name))
            self._add_field(field, _FilePart(upload))

        self._parts.append(_BytesPart(f"--{self.boundary}--\r\n".encode("latin-1")))
        self._length = sum(part.size for part in self._parts)

    def _add_field(self, field: RequestField, content: _BytesPart | _FilePart) -> None:
        head = f"--{self.boundary}\r\n".encode("latin-1") + field.render_headers().encode("utf-8")
        self._parts.append(_BytesPart(head))
        self._parts.append(content)
        self._parts.append(_BytesPart(b"\r\n"))

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    def __len__(self) -> int:
        return self._length

    def read(self, size: int | None = -1) -> bytes:
        if size is None or size < 0:
            size = self._length
        out = bytearray()
        loaded_before = self._loaded
        while len(out) < size and self._index < len(self._parts):
            part = self._parts[self._index]
            chunk = part.read(size - len(out))
            if not chunk:
                part.close()
                self._index += 1
                continue
            out += chunk
            if part.is_content:
                self._loaded += len(chunk)
        if self.on_read is not None and self._loaded != loaded_before:
            self.on_read(self._loaded)
        return bytes(out)

    def close(self) -> None:
        for part in self._parts[self._index :]:
            part.close()
        self._index = len(self._parts)
