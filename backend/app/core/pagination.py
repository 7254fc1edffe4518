"""
Offset pagination with the {data, pagination} list envelope
"""
import math
from typing import Any, Dict, List, Sequence, Tuple

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession


def pagination_meta(total: int, page: int, per_page: int, count: int) -> Dict[str, Any]:
    """Pagination block: total, per_page, current_page, last_page, from, to."""
    offset = (page - 1) * per_page
    return {
        "total": total,
        "per_page": per_page,
        "current_page": page,
        "last_page": max(1, math.ceil(total / per_page)) if per_page else 1,
        "from": offset + 1 if count else None,
        "to": offset + count if count else None,
    }


async def paginate(
    db: AsyncSession,
    stmt: Select,
    page: int,
    per_page: int,
) -> Tuple[Sequence[Any], Dict[str, Any]]:
    """Run stmt for one page; returns (rows, pagination meta)."""
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar() or 0
    result = await db.execute(stmt.offset((page - 1) * per_page).limit(per_page))
    items = result.scalars().unique().all()
    return items, pagination_meta(total, page, per_page, len(items))


def paginated(items: List[Any], meta: Dict[str, Any]) -> Dict[str, Any]:
    return {"data": items, "pagination": meta}
