"""Percent/plus codec for ``application/x-www-form-urlencoded`` text.

``decode`` is the strict counterpart of ``urllib.parse.unquote_plus``:
the stdlib leaves a stray ``%`` untouched, while a parameter parser has to
report it. Literal (unescaped) characters pass through unchanged, and each
run of ``%XX`` escapes is decoded with the configured encoding.

``encode`` is ``quote_plus``; ``*`` stays literal so output matches what
HTML form submission produces.
"""

import re
from urllib.parse import quote_plus, unquote

from paramstream.errors import MalformedEncodingError

# A "%" that does not start a two-digit hex escape
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def decode(text: str, encoding: str = "utf-8") -> str:
    """Decode a percent/plus-encoded token.

    ``+`` becomes a space and ``%XX`` runs are decoded as *encoding* bytes.

    Raises:
        MalformedEncodingError: If a ``%`` is not followed by two hex
            digits, or an escaped byte run is invalid in *encoding*.
    """
    if not text:
        return ""
    bad = _BAD_ESCAPE.search(text)
    if bad is not None:
        escape = text[bad.start() : bad.start() + 3]
        msg = f"Incomplete or invalid escape sequence {escape!r} at index {bad.start()}"
        raise MalformedEncodingError(msg)
    if "+" in text:
        text = text.replace("+", " ")
    if "%" not in text:
        return text
    try:
        return unquote(text, encoding=encoding, errors="strict")
    except UnicodeDecodeError as exc:
        msg = f"Escaped bytes are not valid {encoding}: {exc.reason}"
        raise MalformedEncodingError(msg) from exc


def encode(text: str, encoding: str = "utf-8", errors: str = "strict") -> str:
    """Encode *text* for use as a parameter name or value (space → ``+``).

    *errors* is passed to ``str.encode``; ``"replace"`` turns characters
    the encoding cannot represent into ``?`` before escaping.
    """
    return quote_plus(text, safe="*", encoding=encoding, errors=errors)
