"""Public issue listing: boosted issues pinned to page 1, regular issues paginated.

Page 1 shows every boosted issue that matches the filters, then fills the
remaining ``limit - boosted`` slots with regular issues. Later pages continue
the regular sequence where page 1 stopped, so no regular issue is skipped or
shown twice. When there are more boosted issues than ``limit``, page 1 is
simply longer than ``limit`` and page 2 starts at the first regular issue.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import or_

from civix.models import Issue, PRIORITY_ORDER

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass
class FeedFilters:
    search: str = ""
    status: str = ""
    priority: str = ""
    category: str = ""


@dataclass
class FeedPage:
    issues: list = field(default_factory=list)
    current_page: int = DEFAULT_PAGE
    total_pages: int = 0
    total_issues: int = 0
    boosted_count: int = 0

    def to_dict(self) -> dict:
        return {
            "issues": [i.to_dict() for i in self.issues],
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
            "totalIssues": self.total_issues,
            "boostedCount": self.boosted_count,
        }


def positive_int(raw: Optional[str], default: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def filtered_query(filters: FeedFilters):
    q = Issue.query
    if filters.search:
        pattern = f"%{escape_like(filters.search)}%"
        q = q.filter(or_(
            Issue.title.ilike(pattern, escape="\\"),
            Issue.location.ilike(pattern, escape="\\"),
            Issue.category.ilike(pattern, escape="\\"),
        ))
    if filters.status:
        q = q.filter(Issue.status == filters.status)
    if filters.priority:
        q = q.filter(Issue.priority == filters.priority)
    if filters.category:
        q = q.filter(Issue.category == filters.category)
    return q


def regular_offset(page: int, limit: int, boosted_count: int) -> int:
    """Offset into the regular sequence for pages >= 2."""
    return max(0, (limit - boosted_count) + (page - 2) * limit)


def list_issues(filters: FeedFilters, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> FeedPage:
    base = filtered_query(filters)

    boosted = (
        base.filter(Issue.boosted_at.isnot(None))
        .order_by(PRIORITY_ORDER.desc(), Issue.boosted_at.desc(), Issue.created_at.desc(), Issue.id.desc())
        .all()
    )
    boosted_count = len(boosted)

    regular_q = base.filter(Issue.boosted_at.is_(None))
    regular_total = regular_q.count()
    regular_q = regular_q.order_by(PRIORITY_ORDER.desc(), Issue.created_at.desc(), Issue.id.desc())

    if page == 1:
        remaining = max(0, limit - boosted_count)
        regular = regular_q.limit(remaining).all() if remaining > 0 else []
        issues = boosted + regular
    else:
        issues = regular_q.offset(regular_offset(page, limit, boosted_count)).limit(limit).all()

    total = boosted_count + regular_total
    return FeedPage(
        issues=issues,
        current_page=page,
        total_pages=math.ceil(total / limit),
        total_issues=total,
        boosted_count=boosted_count,
    )


def by_priority(query):
    """Order any issue query the way staff and admin queues are ordered."""
    return query.order_by(PRIORITY_ORDER.desc(), Issue.created_at.desc(), Issue.id.desc())
