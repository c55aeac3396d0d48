from __future__ import annotations

import re

# Field names accepted from requests before they are mapped to a column.
_FIELD_RE = re.compile(r"[A-Za-z0-9_]+")

# Database and schema names interpolated into CREATE statements.
_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]{0,62}")


def is_safe_field(name: str) -> bool:
    return bool(name) and bool(_FIELD_RE.fullmatch(name))


def is_safe_identifier(name: str) -> bool:
    return bool(name) and bool(_IDENTIFIER_RE.fullmatch(name))


def snake_string(name: str) -> str:
    """Convert a logical field name to its column name.

    ``createdTime`` -> ``created_time``, ``displayName`` -> ``display_name``.
    Leading underscores are kept and never followed by an extra separator.
    """
    out = []
    seen_word = False
    for i, ch in enumerate(name):
        if i > 0 and ch.isupper() and seen_word:
            out.append("_")
        if ch != "_":
            seen_word = True
        out.append(ch)
    return "".join(out).lower().replace(" ", "")


def table_name(prefix: str, entity: str) -> str:
    return f"{prefix or ''}{snake_string(entity)}"
