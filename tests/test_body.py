"""Tests for perch.http.body: the message body stream wrapper."""

import io

import pytest

from perch.errors import InvalidStreamResource
from perch.http.body import Body


class TestBodyConstruction:
    def test_empty_by_default(self) -> None:
        assert Body().contents() == b""

    def test_from_bytes(self) -> None:
        assert Body(b"abc").contents() == b"abc"

    def test_from_str_is_utf8(self) -> None:
        body = Body("héllo")
        assert body.contents() == "héllo".encode()
        assert str(body) == "héllo"

    def test_from_file_like(self) -> None:
        assert Body(io.BytesIO(b"stream")).contents() == b"stream"

    def test_rejects_non_stream(self) -> None:
        with pytest.raises(InvalidStreamResource):
            Body(42)  # type: ignore[arg-type]

    def test_invalid_stream_is_type_error(self) -> None:
        with pytest.raises(TypeError):
            Body(object())  # type: ignore[arg-type]


class TestBodyStream:
    def test_contents_reads_from_start(self) -> None:
        body = Body(b"abc")
        body.read(2)
        assert body.contents() == b"abc"

    def test_contents_cached(self) -> None:
        body = Body(b"abc")
        assert body.contents() is body.contents()

    def test_write_invalidates_cache(self) -> None:
        body = Body(b"ab")
        assert body.contents() == b"ab"
        body.seek(0, io.SEEK_END)
        body.write("c")
        assert body.contents() == b"abc"

    def test_size(self) -> None:
        assert Body(b"abcd").size == 4

    def test_eof(self) -> None:
        body = Body(b"a")
        assert body.eof is False
        body.read()
        assert body.eof is True

    def test_tell_and_rewind(self) -> None:
        body = Body(b"abc")
        body.read(2)
        assert body.tell() == 2
        body.rewind()
        assert body.tell() == 0

    def test_capabilities(self) -> None:
        body = Body()
        assert body.seekable is True
        assert body.readable is True
        assert body.writable is True
        assert body.metadata("seekable") is True
        assert body.metadata()["readable"] is True

    def test_detach(self) -> None:
        body = Body(b"x")
        stream = body.detach()
        assert stream is not None
        assert body.readable is False
        with pytest.raises(InvalidStreamResource):
            body.contents()

    def test_close(self) -> None:
        body = Body(b"x")
        body.close()
        assert body.seekable is False
