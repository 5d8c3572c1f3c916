# app/services/category_filter.py
from typing import Sequence

from app.models.inspiration import ALL_CATEGORIES, Inspiration


def filter_by_category(items: Sequence[Inspiration], category: str) -> list[Inspiration]:
    """
    Items whose category equals `category`, in source order.

    "all" is the identity filter.
    """
    if category == ALL_CATEGORIES:
        return list(items)
    return [item for item in items if item.category == category]


def categories_in_use(items: Sequence[Inspiration]) -> list[str]:
    """Distinct non-empty categories, in first-seen order."""
    seen: dict[str, None] = {}
    for item in items:
        if item.category:
            seen.setdefault(item.category, None)
    return list(seen)


class CategoryFilter:
    """
    View-model deriving the visible list from (loaded list, selection).

    Recomputes synchronously whenever either input changes and keeps
    only the last output.
    """

    def __init__(self, items: Sequence[Inspiration] = (), selected: str = ALL_CATEGORIES):
        self._items: list[Inspiration] = list(items)
        self._selected = selected
        self.visible: list[Inspiration] = []
        self._recompute()

    @property
    def items(self) -> list[Inspiration]:
        return self._items

    @property
    def selected(self) -> str:
        return self._selected

    @property
    def available_categories(self) -> list[str]:
        return categories_in_use(self._items)

    def set_items(self, items: Sequence[Inspiration]) -> None:
        self._items = list(items)
        self._recompute()

    def select(self, category: str) -> None:
        self._selected = category or ALL_CATEGORIES
        self._recompute()

    def _recompute(self) -> None:
        self.visible = filter_by_category(self._items, self._selected)
