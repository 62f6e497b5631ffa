# app/core/slug.py
import re
import uuid

from sqlmodel import Session, SQLModel, select


def slugify(raw: str, fallback: str = "item") -> str:
    """
    Basic slugification:
      - lowercase
      - drop everything except letters, digits, whitespace and '-'
      - whitespace runs -> '-'
      - collapse multiple '-'
      - strip leading/trailing '-'
    """
    value = raw.strip().lower()
    value = re.sub(r"[^a-z0-9\s-]", "", value)
    value = re.sub(r"\s+", "-", value)
    value = re.sub(r"-+", "-", value)
    value = value.strip("-")
    return value or fallback


def unique_slug(
    session: Session,
    model: type[SQLModel],
    raw: str,
    *,
    fallback: str = "item",
    exclude_id: uuid.UUID | None = None,
) -> str:
    """
    Slugify `raw` and make it unique among rows of `model`
    by appending -1, -2, ... if needed.

    `exclude_id` is the row being renamed, so it never collides with itself.
    """
    base_slug = slugify(raw, fallback)
    slug = base_slug
    i = 1
    while True:
        stmt = select(model.id).where(model.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(model.id != exclude_id)
        if session.exec(stmt).first() is None:
            return slug
        slug = f"{base_slug}-{i}"
        i += 1
