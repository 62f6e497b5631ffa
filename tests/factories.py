from datetime import date, timedelta

from sqlmodel import Session

from app.core.auth import create_access_token, hash_password
from app.models.category import Category
from app.models.group import Group, GroupMember
from app.models.product import Product
from app.models.service import Service
from app.models.user import User

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def make_user(
    session: Session,
    username: str,
    *,
    role: str = "user",
    is_active: bool = True,
    password: str = "secret123",
) -> User:
    index = abs(hash(username)) % 10**10
    user = User(
        full_name=username.title(),
        username=username,
        email=f"{username}@example.com",
        phone=f"+25{index:010d}",
        password_hash=hash_password(password),
        role=role,
        is_active=is_active,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


def make_service(session: Session, title: str = "Default Service", **kwargs) -> Service:
    service = Service(
        title=title,
        subtitle="Subtitle",
        description="Service description",
        slug=kwargs.pop("slug", title.lower().replace(" ", "-")),
        **kwargs,
    )
    session.add(service)
    session.commit()
    session.refresh(service)
    return service


def make_category(session: Session, name: str = "Food", **kwargs) -> Category:
    category = Category(
        name=name,
        slug=name.lower().replace(" ", "-"),
        description="A category description",
        **kwargs,
    )
    session.add(category)
    session.commit()
    session.refresh(category)
    return category


def make_group(
    session: Session,
    service: Service,
    admin: User,
    name: str = "Farmers",
    *,
    approved: bool = True,
    is_private: bool = False,
) -> Group:
    group = Group(
        name=name,
        description="A group description",
        service_id=service.id,
        created_by=admin.id,
        group_admin=admin.id,
        approval_status="approved" if approved else "pending",
        is_active=approved,
        is_private=is_private,
        slug=name.lower().replace(" ", "-"),
    )
    session.add(group)
    session.commit()
    session.refresh(group)
    return group


def add_member(session: Session, group: Group, user: User, status: str = "pending") -> GroupMember:
    record = GroupMember(group_id=group.id, user_id=user.id, status=status)
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def make_product(
    session: Session,
    category: Category,
    group: Group,
    name: str = "Honey",
    *,
    price: float = 10.0,
    quantity: int = 5,
    is_active: bool = True,
    expiration_date: date | None = None,
) -> Product:
    product = Product(
        name=name,
        slug=name.lower().replace(" ", "-"),
        category_id=category.id,
        group_id=group.id,
        color="golden",
        price=price,
        quantity=quantity,
        is_active=is_active,
        expiration_date=expiration_date or date.today() + timedelta(days=30),
    )
    session.add(product)
    session.commit()
    session.refresh(product)
    return product
