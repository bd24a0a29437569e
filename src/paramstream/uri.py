"""HTTP/HTTPS URI assembly.

Builds ``scheme://[user-info@]host[:port]/path[?query][#fragment]`` from
parts, encoding each part the way it has to be encoded. The query string
is composed by a ``ParameterBuilder``.

Usage::

    from paramstream import HttpUriBuilder

    uri = (
        HttpUriBuilder.for_host("api.example.com")
        .path("/users/{id}/posts/")
        .query_parameter("page", 2)
        .fragment("top")
        .to_uri(lambda name: {"id": "42"}[name])
    )
    # "https://api.example.com/users/42/posts/?page=2#top"

The builder is mutable; each setter validates its argument and returns
the builder. A rejected argument leaves the builder as it was (for
``path``/``path_segment``, segments before the rejected one stay).
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from typing import Self
from urllib.parse import quote

from paramstream.builder import ParameterBuilder
from paramstream.codec import encode
from paramstream.config import check_encoding
from paramstream.errors import MissingValueError

_SCHEMES = frozenset({"http", "https"})

MIN_PORT = 1
MAX_PORT = 65535

_DOT_SEGMENTS = frozenset({".", ".."})

# {name} placeholders inside a path segment
_PATH_PARAM = re.compile(r"\{([^}]*)\}")

# RFC 3986 sub-delims (+ ":" for user info, + ":@/?" for fragments)
_USER_INFO_SAFE = "!$&'()*+,;=:"
_FRAGMENT_SAFE = "!$&'()*+,;=:@/?"


class HttpUriBuilder:
    """Mutable builder for ``http``/``https`` URIs."""

    __slots__ = (
        "_encoding",
        "_fragment",
        "_host",
        "_path",
        "_port",
        "_query",
        "_scheme",
        "_user_info",
    )

    def __init__(self, host: str) -> None:
        if host is None:
            msg = "host must not be None"
            raise MissingValueError(msg)
        self._host = host
        self._scheme = "https"
        self._port: int | None = None
        self._user_info: str | None = None
        self._path: list[str] = []
        self._query = ParameterBuilder()
        self._fragment: str | None = None
        self._encoding = "utf-8"

    @classmethod
    def for_host(cls, host: str) -> HttpUriBuilder:
        return cls(host)

    def encoding(self, encoding: str) -> Self:
        """Set the encoding for path segments and query parameters."""
        self._encoding = check_encoding(encoding)
        self._query.with_encoding(encoding)
        return self

    def scheme(self, scheme: str) -> Self:
        """Use ``http`` or ``https`` (case-insensitive). Defaults to ``https``."""
        lowered = scheme.lower() if isinstance(scheme, str) else None
        if lowered not in _SCHEMES:
            msg = f"Invalid scheme {scheme!r}: expected 'http' or 'https'"
            raise ValueError(msg)
        self._scheme = lowered
        return self

    def port(self, port: int | None) -> Self:
        """Set the port; ``None`` restores the scheme's default."""
        if port is not None:
            if port < MIN_PORT:
                msg = f"{port} < {MIN_PORT}"
                raise ValueError(msg)
            if port > MAX_PORT:
                msg = f"{port} > {MAX_PORT}"
                raise ValueError(msg)
        self._port = port
        return self

    def user_info(self, user: str | None, password: str | None = None) -> Self:
        """Set the user info as ``user`` or ``user:password``.

        ``None`` (or an empty string) removes it.

        Raises:
            MissingValueError: If *password* is given without *user*.
        """
        if password is None:
            self._user_info = user
        else:
            if user is None:
                msg = "A password requires a user name"
                raise MissingValueError(msg)
            self._user_info = f"{user}:{password}"
        return self

    def path(self, *paths: str) -> Self:
        """Append paths, splitting each on ``/``.

        ``path("/users/", "42")`` adds the segments ``users``, ``42``.
        A trailing ``/`` on the last path is kept.

        Raises:
            ValueError: If a segment is ``.`` or ``..``.
        """
        for path in paths:
            for segment in path.lstrip("/").split("/"):
                self._add_segment(segment)
        self._drop_empty_segments()
        return self

    def path_segment(self, *segments: str) -> Self:
        """Append segments verbatim (a ``/`` inside one is escaped).

        Raises:
            ValueError: If a segment is ``.`` or ``..``.
        """
        for segment in segments:
            self._add_segment(segment)
        self._drop_empty_segments()
        return self

    def clear_path(self) -> Self:
        self._path.clear()
        return self

    def query_parameter(self, name: str, value: object) -> Self:
        self._query.with_parameter(name, value)
        return self

    def query_parameters(self, name: str, values: Iterable[object]) -> Self:
        self._query.with_parameters(name, values)
        return self

    def fragment(self, fragment: str | None) -> Self:
        self._fragment = fragment
        return self

    def to_uri(self, path_param_replacer: Callable[[str], str] | None = None) -> str:
        """Render the URI.

        Args:
            path_param_replacer: Called with the name inside each ``{name}``
                placeholder in the path; its return value replaces the
                placeholder before the segment is encoded.
        """
        parts = [self._scheme, "://", self._authority()]
        if not self._path:
            parts.append("/")
        for segment in self._path:
            if path_param_replacer is not None:
                segment = _PATH_PARAM.sub(lambda m: path_param_replacer(m.group(1)), segment)
            parts.append("/")
            parts.append(encode(segment, self._encoding, errors="replace"))
        if self._query.has_parameters:
            parts.append("?")
            parts.append(str(self._query))
        if self._fragment is not None:
            parts.append("#")
            parts.append(quote(self._fragment, safe=_FRAGMENT_SAFE))
        return "".join(parts)

    def __str__(self) -> str:
        return self.to_uri()

    def __repr__(self) -> str:
        return f"HttpUriBuilder({self.to_uri()!r})"

    def _authority(self) -> str:
        authority = self._host
        if self._user_info:
            authority = f"{quote(self._user_info, safe=_USER_INFO_SAFE)}@{authority}"
        if self._port is not None:
            authority = f"{authority}:{self._port}"
        return authority

    def _add_segment(self, segment: str) -> None:
        if segment is None:
            msg = "Path segment must not be None"
            raise MissingValueError(msg)
        if segment in _DOT_SEGMENTS:
            msg = "Path segments '.' and '..' are not allowed"
            raise ValueError(msg)
        self._path.append(segment)

    def _drop_empty_segments(self) -> None:
        # Only a final empty segment matters: it renders a trailing "/".
        self._path[:-1] = [segment for segment in self._path[:-1] if segment]
