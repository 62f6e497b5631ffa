# app/repositories/pagination.py
from typing import Any

from sqlalchemy import func
from sqlmodel import Session, SQLModel, select


def order_by_sort_key(model: type[SQLModel], sort: str) -> Any:
    """
    Map a sort key from a closed allow-list ("name", "-price", ...)
    to an ORDER BY clause. A leading '-' means descending.
    """
    column = getattr(model, sort.lstrip("-"))
    return column.desc() if sort.startswith("-") else column.asc()


def fetch_page(session: Session, stmt, skip: int, limit: int) -> tuple[list, int]:
    """
    Run `stmt` for one page and count all matching rows.

    Returns:
        (rows, total)
    """
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = session.exec(count_stmt).one()
    rows = session.exec(stmt.offset(skip).limit(limit)).all()
    return list(rows), int(total or 0)
