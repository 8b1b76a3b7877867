"""Page slicing for filtered and sorted listings."""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    items: List[T] = field(default_factory=list)
    total_items: int = 0
    total_pages: int = 0
    page: int = 1
    page_size: int = 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    def to_dict(self, serialize: Optional[Callable[[T], Any]] = None) -> Dict[str, Any]:
        return {
            "items": [serialize(item) for item in self.items] if serialize else list(self.items),
            "total_items": self.total_items,
            "total_pages": self.total_pages,
            "page": self.page,
            "page_size": self.page_size,
        }


def total_pages(total_items: int, page_size: int) -> int:
    if page_size <= 0 or total_items <= 0:
        return 0
    return math.ceil(total_items / page_size)


def paginate(items: Sequence[T], page_size: int, page: int = 1) -> Page[T]:
    """Slice one 1-indexed page out of items.

    Out-of-range pages are clamped: anything below 1 reads page 1 and
    anything past the end reads the last page. With no items, or a page
    size of zero or less, the page is empty and there are 0 pages.
    """
    items = list(items) if items is not None else []
    pages = total_pages(len(items), page_size)
    if pages == 0:
        return Page(items=[], total_items=len(items), total_pages=0, page=1, page_size=max(page_size, 0))

    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    page = min(max(page, 1), pages)

    start = (page - 1) * page_size
    return Page(
        items=items[start:start + page_size],
        total_items=len(items),
        total_pages=pages,
        page=page,
        page_size=page_size,
    )
