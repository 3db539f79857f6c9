"""
Free-text normalization and duplicate detection utilities.

This module provides pure helper functions for canonicalizing user-entered text
(ingredients, tags, cookbook names, categories, effort levels) before it is
compared or written. All functions are stateless and have no side effects
(no I/O, no network calls).

# NOTE: Matching is exact after normalization. There is no edit-distance or
    phonetic matching: "Salt" and " salt " collide, "Salt" and "Salts" do not.
    Case-folding is ASCII-only; "Crème" and "CRÈME" normalize to "crème" and
    "crÈme" respectively.
"""

from typing import Iterable, List, Optional


# Canonical effort levels, in display order
EFFORT_LEVELS = [
    "Quick & Easy (Under 30 mins)",
    "Minimal Effort, Long Time (Set & Forget)",
    "Moderate Effort (30-60 mins)",
    "Active Cooking (1-2 hours)",
    "Project Cooking (2+ hours)",
    "Complex Recipe (Multiple Steps)",
    "Special Occasion (All Day Event)",
]

_ASCII_LOWER = str.maketrans("ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz")


def normalize(text: Optional[str]) -> str:
    """
    Canonicalize free text for comparison.

    Trims leading/trailing whitespace and lower-cases ASCII letters.

    Args:
        text: Text to normalize (None is treated as the empty string)

    Returns:
        Normalized string

    Examples:
        >>> normalize("  Salt ")
        'salt'
        >>> normalize("")
        ''
    """
    if not text:
        return ""
    return text.strip().translate(_ASCII_LOWER)


def find_similar(candidate: Optional[str], existing: Iterable[str]) -> Optional[str]:
    """
    Find the first existing entry that equals the candidate after normalization.

    Args:
        candidate: User-entered value
        existing: Values already present (ingredients, cookbooks, categories, ...)

    Returns:
        The matching element of `existing` as stored, or None if nothing matches

    Examples:
        >>> find_similar("Salt", ["salt", "pepper"])
        'salt'
        >>> find_similar("Cumin", ["salt", "pepper"]) is None
        True
    """
    target = normalize(candidate)
    for value in existing:
        if normalize(value) == target:
            return value
    return None


def find_duplicates(values: Iterable[str]) -> List[str]:
    """
    List entries that repeat an earlier entry after normalization.

    Args:
        values: e.g. the ingredient list of a recipe being submitted

    Returns:
        The later occurrences, in input order

    Examples:
        >>> find_duplicates(["Salt", "pepper", " salt"])
        [' salt']
    """
    seen = set()
    duplicates: List[str] = []
    for value in values:
        key = normalize(value)
        if key in seen:
            duplicates.append(value)
        else:
            seen.add(key)
    return duplicates


def normalize_tags(tags: Iterable[str]) -> List[str]:
    """
    Lower-case and trim tags, dropping blanks and repeats.

    Args:
        tags: Raw tags as entered

    Returns:
        Normalized tags, first occurrence kept
    """
    result: List[str] = []
    for tag in tags:
        key = normalize(tag)
        if key and key not in result:
            result.append(key)
    return result


def normalize_effort_level(effort: Optional[str]) -> str:
    """
    Map an effort label onto its canonical spelling.

    Args:
        effort: Stored effort label (any casing)

    Returns:
        The canonical label from EFFORT_LEVELS when one matches, otherwise the
        input unchanged ("" for None)

    Examples:
        >>> normalize_effort_level("quick & easy (under 30 mins)")
        'Quick & Easy (Under 30 mins)'
        >>> normalize_effort_level("Weeknight")
        'Weeknight'
    """
    if not effort:
        return ""
    return find_similar(effort, EFFORT_LEVELS) or effort


def _effort_rank(effort: str) -> int:
    match = find_similar(effort, EFFORT_LEVELS)
    return EFFORT_LEVELS.index(match) if match is not None else -1


def sort_effort_levels(efforts: Iterable[str]) -> List[str]:
    """
    Sort effort labels: known levels in canonical order, then the rest alphabetically.

    Args:
        efforts: Effort labels as found on recipes

    Returns:
        New sorted list
    """
    known = []
    unknown = []
    for effort in efforts:
        rank = _effort_rank(effort)
        if rank >= 0:
            known.append((rank, effort))
        else:
            unknown.append(effort)

    known.sort(key=lambda item: item[0])
    return [effort for _, effort in known] + sorted(unknown)
