"""Format-aware accessors for version fields.

Each accessor parses its document format, locates the version field by key,
path or anchored phrase, and rewrites only that field. A missing field is an
explicit :class:`~lockstep.tracking.models.VersionFieldNotFoundError` rather
than a silent no-op.
"""

from __future__ import annotations

import dataclasses as dc
import json
import re
import typing as typ
from contextlib import suppress
from json.decoder import scanstring

from tomlkit import parse as parse_toml
from tomlkit import string
from tomlkit.exceptions import TOMLKitError
from tomlkit.items import Item, Table

from .models import VersionFieldError, VersionFieldNotFoundError

if typ.TYPE_CHECKING:
    from tomlkit.toml_document import TOMLDocument

VERSION_PLACEHOLDER: typ.Final[str] = "{version}"

_SEMVER: typ.Final[str] = r"[0-9]+\.[0-9]+\.[0-9]+"
_SEMVER_CAPTURE: typ.Final[str] = f"({_SEMVER})"
VERSION_PATTERN: typ.Final[re.Pattern[str]] = re.compile(_SEMVER)

_JSON_DECODER = json.JSONDecoder()
_JSON_WHITESPACE: typ.Final[re.Pattern[str]] = re.compile(r"[ \t\n\r]*")

JsonKey = str | int


@dc.dataclass(frozen=True, slots=True)
class QuotedConstant:
    """A quoted assignment such as ``Version = "0.9.2"`` in source code."""

    name: str

    @property
    def _pattern(self) -> re.Pattern[str]:
        return re.compile(rf'(\b{re.escape(self.name)}\s*=\s*")([^"\n]*)(")')

    def describe(self) -> str:
        """Return a short description of the constant."""
        return f"constant {self.name}"

    def read(self, text: str) -> str:
        """Return the quoted value assigned to the constant."""
        match = self._pattern.search(text)
        if match is None:
            raise VersionFieldNotFoundError(self.describe())
        return match.group(2)

    def write(self, text: str, version: str) -> str:
        """Replace the quoted value of the first matching assignment."""
        updated, count = self._pattern.subn(
            lambda match: f"{match.group(1)}{version}{match.group(3)}",
            text,
            count=1,
        )
        if count == 0:
            raise VersionFieldNotFoundError(self.describe())
        return updated


@dc.dataclass(frozen=True, slots=True)
class JsonField:
    """A string field addressed by a key/index path inside a JSON document."""

    path: tuple[JsonKey, ...]

    def describe(self) -> str:
        """Return the JSON path in ``plugins[0].version`` notation."""
        rendered = ""
        for key in self.path:
            if isinstance(key, int):
                rendered += f"[{key}]"
            else:
                rendered += f".{key}" if rendered else key
        return f"JSON field {rendered}"

    def read(self, text: str) -> str:
        """Return the string stored at :attr:`path`."""
        document = self._load(text)
        container, key = self._locate(document)
        return container[key]

    def write(self, text: str, version: str) -> str:
        """Return ``text`` with only the field's string literal replaced.

        The rest of the document keeps its layout and escapes byte for byte;
        the result must parse to the original document with the field updated.
        """
        document = self._load(text)
        container, key = self._locate(document)
        container[key] = version
        span = _value_span(text, self.path)
        if span is None:
            raise VersionFieldNotFoundError(self.describe())
        start, end = span
        updated = f"{text[:start]}{json.dumps(version)}{text[end:]}"
        if json.loads(updated) != document:
            message = f"rewriting {self.describe()} altered other content"
            raise VersionFieldError(message)
        return updated

    def _load(self, text: str) -> typ.Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            message = f"invalid JSON ({exc.msg} at line {exc.lineno})"
            raise VersionFieldError(message) from exc

    def _locate(self, document: object) -> tuple[typ.Any, JsonKey]:
        """Return the container holding the final key along with that key."""
        if not self.path:
            raise VersionFieldNotFoundError(self.describe())
        current = document
        for key in self.path[:-1]:
            current = _json_child(current, key)
            if current is None:
                raise VersionFieldNotFoundError(self.describe())
        last = self.path[-1]
        if not isinstance(_json_child(current, last), str):
            raise VersionFieldNotFoundError(self.describe())
        return current, last


def _json_child(container: object, key: JsonKey) -> object | None:
    """Return ``container[key]`` when the lookup is valid for its type."""
    if isinstance(key, int):
        if isinstance(container, list) and -len(container) <= key < len(container):
            return container[key]
        return None
    if isinstance(container, dict):
        return container.get(key)
    return None


def _skip_whitespace(text: str, index: int) -> int:
    match = _JSON_WHITESPACE.match(text, index)
    return index if match is None else match.end()


def _members(
    text: str, start: int, closing: str
) -> typ.Iterator[tuple[str | None, int]]:
    """Yield ``(key, value offset)`` for each member of the container at ``start``.

    ``text`` must already be known to be valid JSON. Array members yield
    ``None`` as their key.
    """
    index = _skip_whitespace(text, start + 1)
    if text.startswith(closing, index):
        return
    while True:
        key = None
        if closing == "}":
            key, index = scanstring(text, index + 1)
            index = _skip_whitespace(text, _skip_whitespace(text, index) + 1)
        yield key, index
        _, index = _JSON_DECODER.raw_decode(text, index)
        index = _skip_whitespace(text, index)
        if not text.startswith(",", index):
            return
        index = _skip_whitespace(text, index + 1)


def _value_start(text: str, start: int, key: JsonKey) -> int | None:
    """Return the offset of ``key``'s value in the container at ``start``."""
    if isinstance(key, int):
        if not text.startswith("[", start):
            return None
        offsets = [offset for _, offset in _members(text, start, "]")]
        if -len(offsets) <= key < len(offsets):
            return offsets[key]
        return None
    if not text.startswith("{", start):
        return None
    found = None
    for member, offset in _members(text, start, "}"):
        if member == key:
            # Duplicate keys resolve to the last one, as json.loads does.
            found = offset
    return found


def _value_span(text: str, path: tuple[JsonKey, ...]) -> tuple[int, int] | None:
    """Return the ``[start, end)`` offsets of the value at ``path`` in ``text``."""
    index = _skip_whitespace(text, 0)
    for key in path:
        child = _value_start(text, index, key)
        if child is None:
            return None
        index = child
    _, end = _JSON_DECODER.raw_decode(text, index)
    return index, end


@dc.dataclass(frozen=True, slots=True)
class TomlField:
    """A string value addressed by a table path inside a TOML document."""

    keys: tuple[str, ...]

    def describe(self) -> str:
        """Return the dotted TOML key."""
        return f"TOML key {'.'.join(self.keys)}"

    def read(self, text: str) -> str:
        """Return the string stored at :attr:`keys`."""
        table, key = self._locate(_parse(text))
        return table[key].value

    def write(self, text: str, version: str) -> str:
        """Return ``text`` with the value replaced, preserving formatting."""
        document = _parse(text)
        table, key = self._locate(document)
        current = table[key]
        replacement = string(version)
        with suppress(AttributeError):  # Preserve existing formatting and comments
            replacement._trivia = current._trivia  # type: ignore[attr-defined]
        table[key] = replacement
        return document.as_string()

    def _locate(self, document: TOMLDocument) -> tuple[Table | TOMLDocument, str]:
        if not self.keys:
            raise VersionFieldNotFoundError(self.describe())
        current: object = document
        for key in self.keys[:-1]:
            getter = getattr(current, "get", None)
            next_value = None if getter is None else getter(key)
            if not isinstance(next_value, Table):
                raise VersionFieldNotFoundError(self.describe())
            current = next_value
        last = self.keys[-1]
        value = typ.cast("Table", current).get(last)
        if not isinstance(value, Item) or not isinstance(value.value, str):
            raise VersionFieldNotFoundError(self.describe())
        return typ.cast("Table", current), last


def _parse(text: str) -> TOMLDocument:
    try:
        return parse_toml(text)
    except TOMLKitError as exc:
        message = f"invalid TOML ({exc})"
        raise VersionFieldError(message) from exc


@dc.dataclass(frozen=True, slots=True)
class TextPhrase:
    """A prose phrase that embeds the version, e.g. ``Alpha (v{version})``.

    Every occurrence of the phrase is rewritten. When the template mentions
    the version more than once, all mentions must agree.
    """

    template: str

    def __post_init__(self) -> None:
        if VERSION_PLACEHOLDER not in self.template:
            message = f"phrase template {self.template!r} lacks {VERSION_PLACEHOLDER}"
            raise ValueError(message)

    @property
    def _pattern(self) -> re.Pattern[str]:
        pieces = (re.escape(piece) for piece in self.template.split(VERSION_PLACEHOLDER))
        return re.compile(_SEMVER_CAPTURE.join(pieces))

    def describe(self) -> str:
        """Return the phrase template in quotes."""
        return f"phrase '{self.template}'"

    def read(self, text: str) -> str:
        """Return the single version mentioned by every occurrence of the phrase."""
        found: list[str] = []
        for match in self._pattern.finditer(text):
            found.extend(match.groups())
        if not found:
            raise VersionFieldNotFoundError(self.describe())
        distinct = sorted(set(found))
        if len(distinct) > 1:
            joined = ", ".join(distinct)
            message = f"{self.describe()} records conflicting versions: {joined}"
            raise VersionFieldError(message)
        return distinct[0]

    def write(self, text: str, version: str) -> str:
        """Rewrite every occurrence of the phrase with ``version``."""
        rendered = self.template.replace(VERSION_PLACEHOLDER, version)
        updated, count = self._pattern.subn(lambda _match: rendered, text)
        if count == 0:
            raise VersionFieldNotFoundError(self.describe())
        return updated
