"""Escape arbitrary text for embedding inside a JSON string literal."""

from __future__ import annotations

CONFIG_MAX_VALUE = 2048


def sanitize_json_string(value: str | None, max_length: int = CONFIG_MAX_VALUE) -> str:
    """Return *value* truncated to *max_length* characters and JSON-escaped.

    Quotes and backslashes are backslash-escaped. Control characters and
    lone surrogates (undecodable bytes read with ``surrogateescape``) are
    written as ``\\uXXXX``, so the result always encodes to UTF-8 and can
    be placed between double quotes as-is.
    """
    if not value:
        return ""
    if max_length >= 0:
        value = value[:max_length]

    out: list[str] = []
    for ch in value:
        if ch == '"' or ch == "\\":
            out.append("\\" + ch)
        elif ch < " " or "\ud800" <= ch <= "\udfff":
            out.append("\\u%04x" % ord(ch))
        else:
            out.append(ch)
    return "".join(out)
