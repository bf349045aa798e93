from __future__ import annotations

import re
from typing import List, Mapping, Optional


PLACEHOLDER_PATTERN = re.compile(r"\[([^\]]+)\]")


def find_placeholders(text: str) -> List[str]:
    """Unique ``[Name]`` placeholder names, in order of first occurrence."""
    seen: set[str] = set()
    ordered: List[str] = []
    for match in PLACEHOLDER_PATTERN.finditer(text or ""):
        name = match.group(1)
        if name in seen:
            continue
        seen.add(name)
        ordered.append(name)
    return ordered


def apply_placeholders(text: str, values: Optional[Mapping[str, object]] = None) -> str:
    """
    Replace every ``[Name]`` with ``values[Name]`` (empty string when missing).

    Substitution happens in a single pass, so user values are inserted
    verbatim and never rescanned for further placeholders.
    """
    values = values or {}

    def _substitute(match: re.Match[str]) -> str:
        value = values.get(match.group(1))
        return "" if value is None else str(value)

    return PLACEHOLDER_PATTERN.sub(_substitute, text or "")
