"""Message body: a thin wrapper over a binary stream.

Request bodies are built from the bytes the transport already read;
response bodies start empty and are written at send time. Reading the full
contents is cached, so the underlying stream is consumed at most once.
"""

from __future__ import annotations

import io
from typing import IO, Any

from perch.errors import InvalidStreamResource


class Body:
    """A readable/writable byte stream with cached full-content reads.

    Accepts ``bytes``, ``str`` (UTF-8 encoded) or any binary file-like
    object exposing ``read``/``seek``/``tell``. Anything else raises
    ``InvalidStreamResource``.
    """

    __slots__ = ("_contents", "_stream")

    def __init__(self, stream: IO[bytes] | bytes | str | None = None) -> None:
        if stream is None:
            stream = io.BytesIO()
        elif isinstance(stream, str):
            stream = io.BytesIO(stream.encode("utf-8"))
        elif isinstance(stream, (bytes, bytearray, memoryview)):
            stream = io.BytesIO(bytes(stream))
        elif not all(hasattr(stream, attr) for attr in ("read", "seek", "tell")):
            msg = f"Invalid stream resource provided: {type(stream).__name__}"
            raise InvalidStreamResource(msg)
        self._stream: IO[bytes] | None = stream
        self._contents: bytes | None = None

    def __repr__(self) -> str:
        state = "detached" if self._stream is None else f"size={self.size}"
        return f"Body({state})"

    def __str__(self) -> str:
        return self.contents().decode("utf-8", errors="replace")

    @property
    def stream(self) -> IO[bytes]:
        if self._stream is None:
            msg = "Body stream has been detached"
            raise InvalidStreamResource(msg)
        return self._stream

    # -- Whole-body access --

    def contents(self) -> bytes:
        """Full body bytes. Read from the start once, then cached."""
        if self._contents is None:
            stream = self.stream
            if stream.seekable():
                stream.seek(0)
            self._contents = stream.read()
        return self._contents

    # -- Stream operations --

    def read(self, size: int = -1) -> bytes:
        if not self.readable:
            msg = "Stream is not readable"
            raise OSError(msg)
        return self.stream.read(size)

    def write(self, data: bytes | str) -> int:
        if isinstance(data, str):
            data = data.encode("utf-8")
        if not self.writable:
            msg = "Stream is not writable"
            raise OSError(msg)
        self._contents = None
        return self.stream.write(data)

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        return self.stream.seek(offset, whence)

    def rewind(self) -> None:
        self.seek(0)

    def tell(self) -> int:
        return self.stream.tell()

    @property
    def eof(self) -> bool:
        stream = self.stream
        position = stream.tell()
        at_end = not stream.read(1)
        stream.seek(position)
        return at_end

    @property
    def size(self) -> int | None:
        stream = self.stream
        if not stream.seekable():
            return None
        position = stream.tell()
        size = stream.seek(0, io.SEEK_END)
        stream.seek(position)
        return size

    @property
    def seekable(self) -> bool:
        return self._stream is not None and self._stream.seekable()

    @property
    def readable(self) -> bool:
        return self._stream is not None and self._stream.readable()

    @property
    def writable(self) -> bool:
        return self._stream is not None and self._stream.writable()

    def metadata(self, key: str | None = None) -> Any:
        """Stream metadata, mirroring what the underlying object exposes."""
        meta = {
            "seekable": self.seekable,
            "readable": self.readable,
            "writable": self.writable,
            "mode": getattr(self._stream, "mode", "rb+"),
        }
        if key is None:
            return meta
        return meta.get(key)

    def detach(self) -> IO[bytes] | None:
        """Separate and return the underlying stream; the Body becomes unusable."""
        stream, self._stream = self._stream, None
        return stream

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None
