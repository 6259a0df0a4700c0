import logging
import math
from dataclasses import dataclass

from petpromise.data_access.filters import Filter

logger = logging.getLogger(__name__)

DEFAULT_SORT_KEY = "createdAt"

PET_LISTING_LIMIT = 10
MY_PETS_LIMIT = 8
ADMIN_PETS_LIMIT = 5
ADOPTION_REQUESTS_LIMIT = 5
ALL_USERS_LIMIT = 10
CAMPAIGN_DATA_LIMIT = 6
DONATION_HISTORY_LIMIT = 6
PUBLIC_CAMPAIGNS_LIMIT = 12


@dataclass
class Page:
    items: list[dict]
    total_count: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit)

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total_count


def parse_positive_int(value, default: int) -> int:
    """Query-string integers; anything non-numeric or below 1 falls back to ``default``."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def paginate(store, filter: Filter | None, page, limit, default_limit: int,
             sort_key: str = DEFAULT_SORT_KEY) -> Page:
    """
    Filter, sort newest first, then skip/limit.

    The count and the page are computed from the same scan, so they always
    agree with each other. Documents inserted while the scan is running may
    or may not be included.
    """
    page = parse_positive_int(page, 1)
    limit = parse_positive_int(limit, default_limit)

    matching = store.scan(filter)
    matching.sort(key=lambda item: str(item.get(sort_key) or ""), reverse=True)

    skip = (page - 1) * limit
    logger.debug(f"Paginating {len(matching)} items from {store.name}: skip={skip} limit={limit}")
    return Page(
        items=matching[skip:skip + limit],
        total_count=len(matching),
        page=page,
        limit=limit,
    )
