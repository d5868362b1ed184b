"""Immutable, case-insensitive, multi-valued HTTP headers.

Implements ``Mapping[str, list[str]]``. Lookups ignore case; enumeration
keeps the case each name was first supplied with. Every mutator returns a
new ``Headers`` built on a fresh dict, so no two instances share storage.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping


def check_header_text(text: str) -> str:
    """Return *text* unchanged if it can go on the wire as one header line.

    Raises ``ValueError`` for CR or LF, or for characters outside latin-1.
    """
    if "\r" in text or "\n" in text:
        msg = f"Header text must not contain CR or LF: {text!r}"
        raise ValueError(msg)
    try:
        text.encode("latin-1")
    except UnicodeEncodeError:
        msg = f"Header text must be latin-1 encodable: {text!r}"
        raise ValueError(msg) from None
    return text


def _values(name: str, value: str | Iterable[str]) -> tuple[str, ...]:
    check_header_text(name)
    values = (value,) if isinstance(value, str) else tuple(value)
    return tuple(check_header_text(v) for v in values)


class Headers(Mapping[str, list[str]]):
    """Immutable header map: name -> ordered list of values.

    ``__getitem__`` returns a copy of all values for a name.
    ``get_line`` comma-joins them for reading; the wire layer never does.
    """

    __slots__ = ("_store",)

    # lowercased name -> (original name, values)
    _store: dict[str, tuple[str, tuple[str, ...]]]

    def __init__(
        self,
        headers: Mapping[str, str | Iterable[str]] | Iterable[tuple[str, str]] | None = None,
    ) -> None:
        store: dict[str, tuple[str, tuple[str, ...]]] = {}
        if headers is not None:
            pairs = headers.items() if isinstance(headers, Mapping) else headers
            for name, value in pairs:
                values = _values(name, value)
                key = name.lower()
                if key in store:
                    original, existing = store[key]
                    store[key] = (original, existing + values)
                else:
                    store[key] = (name, values)
        object.__setattr__(self, "_store", store)

    @classmethod
    def from_raw(cls, raw: Iterable[tuple[bytes, bytes]]) -> Headers:
        """Build from ASGI ``(name, value)`` byte pairs."""
        return cls((name.decode("latin-1"), value.decode("latin-1")) for name, value in raw)

    @classmethod
    def _from_store(cls, store: dict[str, tuple[str, tuple[str, ...]]]) -> Headers:
        new = cls.__new__(cls)
        object.__setattr__(new, "_store", store)
        return new

    def __setattr__(self, name: str, value: object) -> None:
        msg = "Headers is immutable"
        raise AttributeError(msg)

    def __getitem__(self, key: str) -> list[str]:
        return list(self._store[key.lower()][1])

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return key.lower() in self._store

    def __iter__(self) -> Iterator[str]:
        for original, _ in self._store.values():
            yield original

    def __len__(self) -> int:
        return len(self._store)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Headers):
            return NotImplemented
        return {k: v for k, (_, v) in self._store.items()} == {
            k: v for k, (_, v) in other._store.items()
        }

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        items = ", ".join(f"{name!r}: {list(values)!r}" for name, values in self._store.values())
        return f"Headers({{{items}}})"

    # -- Reading --

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key*, or an empty list."""
        entry = self._store.get(key.lower())
        return list(entry[1]) if entry else []

    def get_first(self, key: str, default: str | None = None) -> str | None:
        """Return the first value for *key*, or *default* if missing."""
        entry = self._store.get(key.lower())
        if entry and entry[1]:
            return entry[1][0]
        return default

    def get_line(self, key: str) -> str:
        """Comma-joined values for *key*; empty string when absent."""
        return ",".join(self.get_list(key))

    def as_dict(self) -> dict[str, list[str]]:
        """Plain ``{original name: [values]}`` copy."""
        return {name: list(values) for name, values in self._store.values()}

    def items_flat(self) -> Iterator[tuple[str, str]]:
        """One ``(name, value)`` pair per value, in insertion order."""
        for name, values in self._store.values():
            for value in values:
                yield name, value

    # -- Copy-on-write mutators --

    def set(self, name: str, value: str | Iterable[str]) -> Headers:
        """New Headers with all values for *name* replaced."""
        values = _values(name, value)
        store = dict(self._store)
        store[name.lower()] = (name, values)
        return self._from_store(store)

    def add(self, name: str, value: str | Iterable[str]) -> Headers:
        """New Headers with *value* appended to *name* (created if absent)."""
        values = _values(name, value)
        store = dict(self._store)
        key = name.lower()
        if key in store:
            original, existing = store[key]
            store[key] = (original, existing + values)
        else:
            store[key] = (name, values)
        return self._from_store(store)

    def remove(self, name: str) -> Headers:
        """New Headers without *name*. Missing names are not an error."""
        store = dict(self._store)
        store.pop(name.lower(), None)
        return self._from_store(store)
