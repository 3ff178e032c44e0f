"""Request bodies and the form/multipart builders."""

import os
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any
from urllib.parse import quote_plus

from fluent_http.constants import MEDIA_TYPE_FORM


if TYPE_CHECKING:
    from fluent_http.request import HttpRequest


def handle_value(value: object | None) -> str:
    """Convert a query/form value to its string form.

    Args:
        value: Any value; None becomes an empty string and booleans are
            rendered as "true"/"false".

    Returns:
        String representation.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Body(ABC):
    """A request body that can be handed to httpx.Request."""

    @property
    @abstractmethod
    def content_type(self) -> str | None:
        """Content-Type to send, or None to let httpx decide."""

    @abstractmethod
    def request_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for httpx.Request carrying this body."""


@dataclass(frozen=True)
class RequestBody(Body):
    """Raw body: bytes with an optional media type."""

    content: bytes = b""
    media_type: str | None = None

    @classmethod
    def empty(cls) -> "RequestBody":
        """Create an explicit zero-length body."""
        return cls(content=b"")

    @classmethod
    def of_text(cls, text: str, media_type: str | None = None) -> "RequestBody":
        """Create a UTF-8 encoded text body."""
        return cls(content=text.encode("utf-8"), media_type=media_type)

    @property
    def content_type(self) -> str | None:
        return self.media_type

    def request_kwargs(self) -> dict[str, Any]:
        return {"content": self.content}


@dataclass(frozen=True)
class FormBody(Body):
    """URL-encoded form body with already-encoded name/value pairs."""

    encoded_pairs: tuple[tuple[str, str], ...] = ()

    @property
    def content_type(self) -> str | None:
        return MEDIA_TYPE_FORM

    def encode(self) -> bytes:
        """Render the form as application/x-www-form-urlencoded bytes."""
        pairs = (f"{name}={value}" for name, value in self.encoded_pairs)
        return "&".join(pairs).encode("utf-8")

    def request_kwargs(self) -> dict[str, Any]:
        return {"content": self.encode()}


class DeferredFile:
    """Binary file object that opens its path only when read.

    httpx streams multipart files through seek() and read(); opening on the
    first read moves a missing or unreadable file into the network stage,
    where it is reported like any other I/O failure. The handle is closed at
    end of file and reopened when a retry rewinds the stream.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._file: IO[bytes] | None = None
        self._offset = 0

    @property
    def path(self) -> Path:
        """Get the file path."""
        return self._path

    def tell(self) -> int:
        return self._offset if self._file is None else self._file.tell()

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        if self._file is not None:
            return self._file.seek(offset, whence)
        if whence == os.SEEK_END:
            return self._path.stat().st_size + offset
        self._offset = offset if whence == os.SEEK_SET else self._offset + offset
        return self._offset

    def read(self, size: int = -1) -> bytes:
        if self._file is None:
            self._file = self._path.open("rb")
            self._file.seek(self._offset)
        chunk = self._file.read(size)
        if not chunk:
            self.close()
        return chunk

    def close(self) -> None:
        if self._file is not None:
            self._offset = self._file.tell()
            self._file.close()
            self._file = None


@dataclass(frozen=True)
class MultipartPart:
    """One multipart/form-data part.

    Text fields carry a str and no filename. File parts carry bytes or a
    Path that is read while the request is sent.
    """

    name: str
    content: str | bytes | Path
    filename: str | None = None
    content_type: str | None = None

    def to_file_tuple(
        self,
    ) -> tuple[str, tuple[str | None, str | bytes | DeferredFile, str | None]]:
        """Render this part in the httpx files= format."""
        content = (
            DeferredFile(self.content)
            if isinstance(self.content, Path)
            else self.content
        )
        return (self.name, (self.filename, content, self.content_type))


@dataclass(frozen=True)
class MultipartBody(Body):
    """multipart/form-data body; httpx generates the boundary."""

    parts: tuple[MultipartPart, ...] = ()

    @property
    def content_type(self) -> str | None:
        return None

    def request_kwargs(self) -> dict[str, Any]:
        return {"files": [part.to_file_tuple() for part in self.parts]}


class FormBuilder:
    """Builds a URL-encoded form body and attaches it to a request."""

    def __init__(self, request: "HttpRequest") -> None:
        self._request = request
        self._pairs: list[tuple[str, str]] = []

    def add(self, name: str, value: object | None) -> "FormBuilder":
        """Add a field, encoding name and value."""
        self._pairs.append((quote_plus(name), quote_plus(handle_value(value))))
        return self

    def add_encoded(self, name: str, value: object | None) -> "FormBuilder":
        """Add a field whose name and value are already encoded."""
        self._pairs.append((name, handle_value(value)))
        return self

    def add_map(self, fields: Mapping[str, object] | None) -> "FormBuilder":
        """Add every field of a mapping, in iteration order."""
        if fields:
            for name, value in fields.items():
                self.add(name, value)
        return self

    def build(self) -> "HttpRequest":
        """Attach the form body and return the request for chaining."""
        return self._request.body(FormBody(encoded_pairs=tuple(self._pairs)))


class MultipartFormBuilder:
    """Builds a multipart/form-data body and attaches it to a request."""

    def __init__(self, request: "HttpRequest") -> None:
        self._request = request
        self._parts: list[MultipartPart] = []

    def add(self, name: str, value: object | None) -> "MultipartFormBuilder":
        """Add a text field."""
        self._parts.append(MultipartPart(name=name, content=handle_value(value)))
        return self

    def add_map(self, fields: Mapping[str, object] | None) -> "MultipartFormBuilder":
        """Add every text field of a mapping, in iteration order."""
        if fields:
            for name, value in fields.items():
                self.add(name, value)
        return self

    def add_file(
        self,
        name: str,
        path: str | Path,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> "MultipartFormBuilder":
        """Add a file part, read from disk while the request is sent.

        Args:
            name: Form field name.
            path: File to upload.
            filename: Filename to send; defaults to the file's name.
            content_type: Media type; guessed from the filename when omitted.
        """
        file_path = Path(path)
        self._parts.append(
            MultipartPart(
                name=name,
                content=file_path,
                filename=filename or file_path.name,
                content_type=content_type,
            )
        )
        return self

    def add_part(
        self,
        name: str,
        content: bytes,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> "MultipartFormBuilder":
        """Add an in-memory part."""
        self._parts.append(
            MultipartPart(
                name=name,
                content=content,
                filename=filename,
                content_type=content_type,
            )
        )
        return self

    def build(self) -> "HttpRequest":
        """Attach the multipart body and return the request for chaining.

        Raises:
            ValueError: If no parts were added.
        """
        if not self._parts:
            msg = "Multipart body must have at least one part"
            raise ValueError(msg)
        return self._request.body(MultipartBody(parts=tuple(self._parts)))
