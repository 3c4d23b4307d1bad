"""Helpers for turning display names of German regions into lookup keys."""

from __future__ import annotations

import re
from typing import Dict, Optional


# The four German diacritics and their ASCII digraphs. Other characters are kept.
DIACRITIC_FOLDS: Dict[str, str] = {
    "ä": "ae",
    "ö": "oe",
    "ü": "ue",
    "ß": "ss",
}

_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_name(name: Optional[str]) -> str:
    """Map a region display name to the canonical key used by the rent table.

    >>> normalize_name("Prenzlauer Berg")
    'prenzlauer-berg'
    >>> normalize_name("Neukölln")
    'neukoelln'
    """
    if not name:
        return ""
    key = _WHITESPACE_RUN.sub("-", str(name).strip().lower())
    for umlaut, digraph in DIACRITIC_FOLDS.items():
        key = key.replace(umlaut, digraph)
    return key


__all__ = ["DIACRITIC_FOLDS", "normalize_name"]
