"""Multipart/form-data body builder.

A ``Multipart`` value can be used as an ``Env.body``. Codec stages leave it
alone; the adapter renders it with ``to_bytes()`` and sets the content type.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class Part:
    """A single form-data part."""

    name: str
    body: bytes
    headers: tuple[tuple[str, str], ...] = ()
    filename: str | None = None

    def disposition(self) -> str:
        """Return the content-disposition header value for this part."""
        value = f'form-data; name="{_escape(self.name)}"'
        if self.filename is not None:
            value += f'; filename="{_escape(self.filename)}"'
        return value


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _to_bytes(value: bytes | str) -> bytes:
    return value if isinstance(value, bytes) else str(value).encode("utf-8")


@dataclass(slots=True)
class Multipart:
    """Accumulates form fields and file contents for a multipart body."""

    boundary: str = field(default_factory=lambda: uuid4().hex)
    content_type_params: list[str] = field(default_factory=list)
    parts: list[Part] = field(default_factory=list)

    def add_content_type_param(self, param: str) -> Multipart:
        """Add an extra parameter to the multipart content type."""
        self.content_type_params.append(param)
        return self

    def add_field(
        self,
        name: str,
        value: bytes | str,
        headers: Iterable[tuple[str, str]] = (),
    ) -> Multipart:
        """Add a plain form field."""
        self.parts.append(Part(name=name, body=_to_bytes(value), headers=tuple(headers)))
        return self

    def add_file_content(
        self,
        data: bytes | str,
        filename: str,
        name: str = "file",
        headers: Iterable[tuple[str, str]] = (),
    ) -> Multipart:
        """Add in-memory file content under ``name``."""
        part_headers = tuple(headers)
        if not any(k.lower() == "content-type" for k, _ in part_headers):
            part_headers += (("content-type", "application/octet-stream"),)
        self.parts.append(
            Part(name=name, body=_to_bytes(data), headers=part_headers, filename=filename)
        )
        return self

    def content_type(self) -> str:
        """Return the request content-type header value."""
        params = "".join(f"; {p}" for p in self.content_type_params)
        return f"multipart/form-data; boundary={self.boundary}{params}"

    def to_bytes(self) -> bytes:
        """Render the complete multipart body."""
        dash_boundary = f"--{self.boundary}".encode()
        chunks: list[bytes] = []
        for part in self.parts:
            chunks.append(dash_boundary + b"\r\n")
            chunks.append(f"content-disposition: {part.disposition()}\r\n".encode())
            for key, value in part.headers:
                chunks.append(f"{key}: {value}\r\n".encode())
            chunks.append(b"\r\n")
            chunks.append(part.body)
            chunks.append(b"\r\n")
        chunks.append(dash_boundary + b"--\r\n")
        return b"".join(chunks)
