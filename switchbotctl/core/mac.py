"""MAC address normalization and comparison."""

from __future__ import annotations

import re

_CANONICAL_RE = re.compile(r"^([0-9a-f]{2}:){5}[0-9a-f]{2}$", re.IGNORECASE)
_NON_HEX_RE = re.compile(r"[^0-9a-f]", re.IGNORECASE)


def hex_digits(value: str | None) -> str:
    """Return only the hex digits of ``value``, lowercased."""
    if not value:
        return ""
    return _NON_HEX_RE.sub("", value).lower()


def normalize(value: str | None) -> str | None:
    """Canonicalize a MAC-like string to ``xx:xx:xx:xx:xx:xx``.

    Never fails: input that does not carry exactly 12 hex digits comes back
    lowercased but otherwise untouched. Empty input yields ``None``.
    """
    if not value:
        return None
    if _CANONICAL_RE.match(value):
        return value.lower()
    digits = hex_digits(value)
    if len(digits) == 12:
        return ":".join(digits[i : i + 2] for i in range(0, 12, 2))
    return value.lower()


def equals(a: str | None, b: str | None) -> bool:
    left = normalize(a)
    right = normalize(b)
    if left is None or right is None:
        return False
    return left == right


def is_full_address(value: str | None) -> bool:
    normalized = normalize(value)
    return normalized is not None and bool(_CANONICAL_RE.match(normalized))
