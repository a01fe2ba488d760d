"""
Offset pagination shared by every list operation.

Feeds here are filterable and sortable by popularity, so cursor pagination
on created_at does not apply; page/limit offsets with a total computed from
the same predicate are used instead.
"""
import math

from django.conf import settings


class Page:
    """One page of results plus the numbers a client needs to navigate."""
    def __init__(self, items: list, page: int, limit: int, total: int):
        self.items = items
        self.page = page
        self.limit = limit
        self.total = total

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def meta(self) -> dict:
        return {
            'page': self.page,
            'limit': self.limit,
            'total': self.total,
            'total_pages': self.total_pages,
            'has_next': self.has_next,
            'has_prev': self.has_prev,
        }


def normalize(page, limit, default_limit: int) -> tuple[int, int]:
    """Clamp page to >= 1 and limit to 1..MAX_PAGE_SIZE."""
    max_limit = settings.CLOSETFEED['MAX_PAGE_SIZE']
    page = max(int(page or 1), 1)
    limit = int(limit or default_limit)
    limit = min(max(limit, 1), max_limit)
    return page, limit


def paginate(queryset, page, limit, default_limit: int) -> Page:
    """
    Slice a queryset into a Page.

    Queries: 2 (COUNT with the same predicate, then LIMIT/OFFSET)
    """
    page, limit = normalize(page, limit, default_limit)
    total = queryset.count()
    offset = (page - 1) * limit
    items = list(queryset[offset:offset + limit]) if total else []
    return Page(items, page, limit, total)
