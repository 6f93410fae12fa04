"""Comparator helpers shared by bill and workbench views.

Every entry point breaks ties on the item's name with plain (case-sensitive)
string ordering, and that tie-break is always ascending. Items whose sort key
is missing go last regardless of direction.
"""

from typing import Callable, Iterable, Optional, Tuple, TypeVar

T = TypeVar("T")


def sort_missing_last(
    items: Iterable[T],
    key: Callable[[T], Optional[object]],
    name: Callable[[T], str],
    ascending: bool = True,
) -> Tuple[T, ...]:
    by_name = sorted(items, key=name)
    present = [i for i in by_name if key(i) is not None]
    missing = [i for i in by_name if key(i) is None]
    # list.sort is stable with reverse=True too, so names stay ascending on ties
    present.sort(key=key, reverse=not ascending)
    return tuple(present + missing)


def sort_by(
    items: Iterable[T],
    key: Callable[[T], object],
    name: Callable[[T], str],
    ascending: bool = True,
) -> Tuple[T, ...]:
    by_name = sorted(items, key=name)
    by_name.sort(key=key, reverse=not ascending)
    return tuple(by_name)
