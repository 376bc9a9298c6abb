"""Pure query helpers over sequences of rules.

None of these functions mutate their input, and all of them preserve the
input order unless they are explicitly about ordering.
"""

from __future__ import annotations

from typing import AbstractSet, Dict, List, Protocol, Sequence, TypeVar

from . import Rule


class Named(Protocol):
    name: str


R = TypeVar("R", bound=Rule)
N = TypeVar("N", bound=Named)


def filter_by_category(rules: Sequence[R], categories: AbstractSet[str]) -> List[R]:
    """Return rules sharing at least one tag with ``categories``.

    An empty ``categories`` set is a no-op rather than "match nothing".
    """

    if not categories:
        return list(rules)
    return [rule for rule in rules if rule.category & categories]


def filter_by_name(rules: Sequence[R], names: AbstractSet[str]) -> List[R]:
    """Return rules whose name is in ``names`` (exact, case-sensitive)."""

    if not names:
        return list(rules)
    return [rule for rule in rules if rule.name in names]


def group_by_category(rules: Sequence[R]) -> Dict[str, List[R]]:
    """Map each tag to the rules carrying it; a rule lands in every group it is tagged with."""

    groups: Dict[str, List[R]] = {}
    for rule in rules:
        for tag in sorted(rule.category):
            groups.setdefault(tag, []).append(rule)
    return groups


def sort_by_name(rules: Sequence[N]) -> List[N]:
    # sorted() is stable and compares str by code point, independent of locale.
    return sorted(rules, key=lambda rule: rule.name)


def merge_unique(*groups: Sequence[N]) -> List[N]:
    """Concatenate ``groups`` dropping any rule whose name was already seen."""

    seen: set[str] = set()
    merged: List[N] = []
    for group in groups:
        for rule in group:
            if rule.name in seen:
                continue
            seen.add(rule.name)
            merged.append(rule)
    return merged


__all__ = [
    "filter_by_category",
    "filter_by_name",
    "group_by_category",
    "sort_by_name",
    "merge_unique",
]
