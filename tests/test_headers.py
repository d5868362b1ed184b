"""Tests for perch.http.headers: immutable, case-insensitive Headers."""

import pytest

from perch.http.headers import Headers


class TestHeaders:
    def test_getitem_returns_all_values(self) -> None:
        h = Headers({"Accept": ["text/html", "*/*"]})
        assert h["Accept"] == ["text/html", "*/*"]

    def test_case_insensitive(self) -> None:
        h = Headers({"Content-Type": "text/html"})
        assert h["content-type"] == ["text/html"]
        assert h["CONTENT-TYPE"] == ["text/html"]

    def test_enumeration_keeps_original_case(self) -> None:
        h = Headers({"X-Request-Id": "abc"})
        assert list(h) == ["X-Request-Id"]

    def test_missing_key_raises(self) -> None:
        h = Headers({"Accept": "*/*"})
        with pytest.raises(KeyError):
            h["X-Missing"]

    def test_contains(self) -> None:
        h = Headers({"Accept": "*/*"})
        assert "accept" in h
        assert "Accept" in h
        assert "x-missing" not in h

    def test_contains_rejects_non_str(self) -> None:
        h = Headers({"Accept": "*/*"})
        assert 42 not in h  # type: ignore[operator]

    def test_repeated_names_merge(self) -> None:
        h = Headers([("Accept", "a"), ("accept", "b")])
        assert len(h) == 1
        assert h.get_list("ACCEPT") == ["a", "b"]

    def test_from_raw(self) -> None:
        h = Headers.from_raw([(b"host", b"example.com"), (b"cookie", b"a=1")])
        assert h.get_first("Host") == "example.com"
        assert h.get_first("Cookie") == "a=1"

    def test_get_first_default(self) -> None:
        assert Headers().get_first("x-missing", "fallback") == "fallback"

    def test_get_list_missing_is_empty(self) -> None:
        assert Headers().get_list("x-missing") == []

    def test_get_line_comma_joins(self) -> None:
        h = Headers({"Accept": ["a", "b"]})
        assert h.get_line("accept") == "a,b"
        assert h.get_line("x-missing") == ""

    def test_items_flat_one_pair_per_value(self) -> None:
        h = Headers({"Set-Cookie": ["a=1", "b=2"], "X-One": "1"})
        assert list(h.items_flat()) == [
            ("Set-Cookie", "a=1"),
            ("Set-Cookie", "b=2"),
            ("X-One", "1"),
        ]

    def test_as_dict(self) -> None:
        h = Headers({"X-A": ["1", "2"]})
        assert h.as_dict() == {"X-A": ["1", "2"]}

    def test_immutable(self) -> None:
        h = Headers()
        with pytest.raises(AttributeError):
            h.foo = "bar"  # type: ignore[attr-defined]

    def test_equality_ignores_name_case(self) -> None:
        assert Headers({"X-A": "1"}) == Headers({"x-a": "1"})
        assert Headers({"X-A": "1"}) != Headers({"X-A": "2"})

    def test_unhashable(self) -> None:
        with pytest.raises(TypeError):
            hash(Headers())


class TestHeadersCopyOnWrite:
    def test_set_replaces_all_values(self) -> None:
        h = Headers({"Accept": ["a", "b"]})
        updated = h.set("accept", "c")
        assert updated.get_list("Accept") == ["c"]
        assert h.get_list("Accept") == ["a", "b"]

    def test_set_keeps_position(self) -> None:
        h = Headers([("A", "1"), ("B", "2")])
        assert list(h.set("A", "3")) == ["A", "B"]

    def test_add_appends(self) -> None:
        h = Headers({"Accept": "a"})
        updated = h.add("ACCEPT", "b")
        assert updated.get_list("accept") == ["a", "b"]
        assert list(updated) == ["Accept"]
        assert h.get_list("accept") == ["a"]

    def test_add_creates(self) -> None:
        assert Headers().add("X-New", "1").get_list("x-new") == ["1"]

    def test_remove(self) -> None:
        h = Headers({"X-A": "1", "X-B": "2"})
        updated = h.remove("x-a")
        assert "X-A" not in updated
        assert "X-A" in h

    def test_remove_missing_is_noop(self) -> None:
        h = Headers({"X-A": "1"})
        assert h.remove("x-missing") == h

    def test_mutators_never_share_storage(self) -> None:
        h = Headers({"X-A": "1"})
        updated = h.set("X-B", "2")
        assert updated._store is not h._store


class TestHeadersWireSafety:
    def test_non_latin1_value_rejected(self) -> None:
        with pytest.raises(ValueError, match="latin-1"):
            Headers().set("X-Name", "日本")

    def test_crlf_rejected(self) -> None:
        with pytest.raises(ValueError, match="CR or LF"):
            Headers().add("X-Name", "a\r\nInjected: yes")

    def test_constructor_checks_values(self) -> None:
        with pytest.raises(ValueError):
            Headers({"Location": ["/ok", "/café☃"]})

    def test_latin1_accepted(self) -> None:
        assert Headers().set("X-Name", "café")["x-name"] == ["café"]
