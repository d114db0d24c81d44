"""
Name and label normalization utilities.

Lifter names are matched exactly (case-sensitive) against the roster, so
nothing in this module decides a match on its own. It is used to:
- score how different two names are when an id overrides a name, so the
  mismatch can be logged with some context
- compare free-text attributes such as club and WSO names, which the
  source prints inconsistently ("Catalyst Athletics" vs "CATALYST ATHLETICS ")
"""

import unicodedata
from typing import Optional

import jellyfish
from rapidfuzz import fuzz


def _fold(text: str) -> str:
    """Lowercase and strip accents."""
    folded = text.lower().strip()
    # NFD decomposes characters (é → e + combining acute), then drop the marks
    folded = unicodedata.normalize("NFD", folded)
    return "".join(
        char for char in folded
        if unicodedata.category(char) != "Mn"
    )


def normalize_name(name: str) -> str:
    """
    Normalize a lifter name for comparison.

    Normalization steps:
    1. Convert to lowercase
    2. Remove accents (é → e, ñ → n)
    3. Handle "LASTNAME, Firstname" format
    4. Collapse whitespace

    Examples:
        >>> normalize_name("Jane DOE")
        'jane doe'
        >>> normalize_name("DOE, Jane")
        'jane doe'
        >>> normalize_name("José  Núñez")
        'jose nunez'
    """
    if not name:
        return ""

    normalized = _fold(name)

    if "," in normalized:
        last, first = normalized.split(",", 1)
        normalized = f"{first.strip()} {last.strip()}"

    return " ".join(normalized.split())


def compare_names(name1: str, name2: str) -> float:
    """
    Compare two lifter names and return a similarity score.

    Takes the best of Jaro-Winkler (typos) and token sort ratio (word order).

    Returns:
        Similarity score from 0.0 (no match) to 1.0 (same after normalization)
    """
    n1 = normalize_name(name1)
    n2 = normalize_name(name2)

    if not n1 or not n2:
        return 0.0
    if n1 == n2:
        return 1.0

    jw_score = jellyfish.jaro_winkler_similarity(n1, n2)
    token_sort = fuzz.token_sort_ratio(n1, n2) / 100.0

    return max(jw_score, token_sort)


def normalize_label(value: Optional[str]) -> Optional[str]:
    """
    Normalize a free-text attribute (club, WSO, weight class, gender).

    Returns None for blank values so callers can treat them as missing.
    """
    if value is None:
        return None
    normalized = " ".join(_fold(str(value)).split())
    return normalized or None
