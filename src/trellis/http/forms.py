"""Form parsing: URL-encoded and multipart.

``FormData`` keeps every field in submission order so ``Request.parse_body``
can fold repeated and bracketed keys the way browsers send them. URL-encoded
bodies are parsed with ``urllib.parse``; multipart bodies with
``python-multipart``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import parse_qsl

from python_multipart.multipart import MultipartParser, parse_options_header

FORM_CONTENT_TYPES = frozenset({"application/x-www-form-urlencoded", "multipart/form-data"})


@dataclass(frozen=True, slots=True)
class UploadFile:
    """An uploaded file from a multipart form submission.

    The content is held in memory; read ``request.stream()`` directly for
    large uploads.
    """

    filename: str
    content_type: str
    size: int
    _content: bytes

    async def read(self) -> bytes:
        """Return the file content as bytes."""
        return self._content

    async def save(self, path: Path) -> None:
        """Write the file content to *path*. Parent directories must exist."""
        path.write_bytes(self._content)

    def __repr__(self) -> str:
        return f"UploadFile({self.filename!r}, {self.content_type!r}, {self.size} bytes)"


type FormValue = str | UploadFile


class FormData(Mapping[str, str]):
    """Immutable parsed form data.

    ``__getitem__`` returns the first string value for a key,
    ``get_list`` all of them, ``files`` the first upload per field and
    ``multi_items`` every ``(name, value)`` pair in submission order.

    Usage::

        form = await ctx.req.form()
        email = form["email"]
        avatar = form.files.get("avatar")  # UploadFile or None
    """

    __slots__ = ("_data", "_files", "_items")

    def __init__(self, items: list[tuple[str, FormValue]] | None = None) -> None:
        items = items or []
        data: dict[str, list[str]] = {}
        files: dict[str, UploadFile] = {}
        for name, value in items:
            if isinstance(value, UploadFile):
                files.setdefault(name, value)
            else:
                data.setdefault(name, []).append(value)
        object.__setattr__(self, "_items", tuple(items))
        object.__setattr__(self, "_data", data)
        object.__setattr__(self, "_files", files)

    @property
    def files(self) -> Mapping[str, UploadFile]:
        """Uploaded files by field name."""
        return self._files

    def multi_items(self) -> tuple[tuple[str, FormValue], ...]:
        return self._items

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"FormData({{{items}}})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        """Return the first value for *key*, or *default* if missing."""
        values = self._data.get(key)
        if values:
            return values[0]
        return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key* (checkboxes, multi-selects)."""
        return list(self._data.get(key, []))


def media_type(content_type: str | None) -> str:
    """``"multipart/form-data; boundary=x"`` -> ``"multipart/form-data"``."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def fold_form(form: FormData, *, all: bool = False, dot: bool = False) -> dict[str, Any]:  # noqa: A002
    """Fold form fields into a plain dict.

    Keys ending in ``[]`` always collect a list. Other repeated keys keep
    the last value, or collect a list when *all* is set. With *dot*,
    ``a.b`` keys nest as ``{"a": {"b": ...}}``.
    """
    result: dict[str, Any] = {}
    for key, value in form.multi_items():
        if key.endswith("[]"):
            existing = result.get(key)
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[key] = [value]
        elif all and key in result:
            existing = result[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[key] = [existing, value]
        else:
            result[key] = value

    if dot:
        for key in [k for k in result if "." in k]:
            _nest(result, key, result.pop(key))
    return result


def _nest(target: dict[str, Any], key: str, value: Any) -> None:
    *parents, leaf = key.split(".")
    node = target
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = node[part] = {}
        node = child
    node[leaf] = value


async def parse_form_data(body: bytes, content_type: str) -> FormData:
    """Parse a form body into FormData.

    Raises:
        ValueError: If *content_type* is not a form encoding, or a
            multipart body has no boundary.
    """
    kind = media_type(content_type)

    if kind == "application/x-www-form-urlencoded":
        text = body.decode("utf-8", errors="replace")
        return FormData(parse_qsl(text, keep_blank_values=True))

    if kind == "multipart/form-data":
        return _parse_multipart(body, content_type)

    msg = f"Unsupported form content type: {content_type!r}"
    raise ValueError(msg)


def _parse_multipart(body: bytes, content_type: str) -> FormData:
    _, options = parse_options_header(content_type.encode("latin-1"))
    boundary = options.get(b"boundary")
    if boundary is None:
        msg = "Multipart form data missing boundary parameter"
        raise ValueError(msg)

    items: list[tuple[str, FormValue]] = []

    headers: dict[str, str] = {}
    pending_field = ""
    chunk = bytearray()
    field_name: str | None = None
    filename: str | None = None

    def on_part_begin() -> None:
        nonlocal headers, chunk, field_name, filename
        headers = {}
        chunk = bytearray()
        field_name = None
        filename = None

    def on_part_data(data: bytes, start: int, end: int) -> None:
        chunk.extend(data[start:end])

    def on_part_end() -> None:
        if field_name is None:
            return
        if filename is not None:
            content = bytes(chunk)
            items.append(
                (
                    field_name,
                    UploadFile(
                        filename=filename,
                        content_type=headers.get("content-type", "application/octet-stream"),
                        size=len(content),
                        _content=content,
                    ),
                )
            )
        else:
            items.append((field_name, chunk.decode("utf-8", errors="replace")))

    def on_header_field(data: bytes, start: int, end: int) -> None:
        nonlocal pending_field
        pending_field = data[start:end].decode("latin-1").lower()

    def on_header_value(data: bytes, start: int, end: int) -> None:
        nonlocal field_name, filename
        value = data[start:end].decode("latin-1")
        headers[pending_field] = value
        if pending_field == "content-disposition":
            _, params = parse_options_header(value.encode("latin-1"))
            name = params.get(b"name")
            if name is not None:
                field_name = name.decode("utf-8")
            fname = params.get(b"filename")
            if fname is not None:
                filename = fname.decode("utf-8")

    callbacks: dict[str, Any] = {
        "on_part_begin": on_part_begin,
        "on_part_data": on_part_data,
        "on_part_end": on_part_end,
        "on_header_field": on_header_field,
        "on_header_value": on_header_value,
    }

    parser = MultipartParser(boundary, callbacks)
    parser.write(body)
    parser.finalize()
    return FormData(items)
