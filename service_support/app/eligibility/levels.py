"""
Academic level ordering.
"""

from typing import Optional, Tuple

ACADEMIC_LEVEL_ORDER: Tuple[str, ...] = (
    "nursery_1", "nursery_2",
    "primary_1", "primary_2", "primary_3", "primary_4", "primary_5", "primary_6",
    "jss_1", "jss_2", "jss_3",
    "sss_1", "sss_2", "sss_3",
    "university_1", "university_2", "university_3", "university_4", "university_5", "university_6",
)

LEVEL_GROUPS: Tuple[str, ...] = ("nursery", "primary", "jss", "sss", "university")

ALL_LEVELS = "all"

_RANKS = {level: rank for rank, level in enumerate(ACADEMIC_LEVEL_ORDER)}


def level_rank(level: Optional[str]) -> Optional[int]:
    """Position of ``level`` in the canonical order, ``None`` when unrecognised."""
    if level is None:
        return None
    return _RANKS.get(level)


def is_known_level(level: Optional[str]) -> bool:
    return level_rank(level) is not None


def level_group(level: str) -> str:
    """Map a specific level to its group, e.g. ``jss_2`` -> ``jss``."""
    for group in LEVEL_GROUPS:
        if level.startswith(group):
            return group
    return ALL_LEVELS


def describe_level(level: str) -> str:
    return level.replace("_", " ")
