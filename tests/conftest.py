import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ENVIRONMENT"] = "test"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from app.core.media import MediaError, UploadedAsset, get_media_store
from app.database import engine, get_session
from app.main import app
from app.services.notification_service import get_notifier
from tests.factories import make_category, make_group, make_service, make_user


class FakeMediaStore:
    """In-memory stand-in for the Supabase-backed MediaStore."""

    def __init__(self):
        self.uploaded: list[str] = []
        self.deleted: list[str] = []
        self.fail_after: int | None = None

    def upload(self, file_bytes: bytes, folder: str, content_type: str) -> UploadedAsset:
        if self.fail_after is not None and len(self.uploaded) >= self.fail_after:
            raise MediaError("Image upload failed")
        public_id = f"{folder}/asset-{len(self.uploaded) + 1}"
        self.uploaded.append(public_id)
        return UploadedAsset(public_id=public_id, url=f"https://cdn.test/{public_id}")

    def delete(self, public_id: str) -> None:
        self.deleted.append(public_id)


class FakeNotifier:
    def __init__(self):
        self.sent: list[tuple] = []

    def send_welcome(self, name, email):
        self.sent.append(("welcome", email))

    def send_group_approval(self, name, email, group_name, link=None):
        self.sent.append(("group_approval", email, group_name))

    def send_group_rejection(self, name, email, group_name):
        self.sent.append(("group_rejection", email, group_name))


@pytest.fixture
def media():
    return FakeMediaStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def session():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s


@pytest.fixture
def client(session, media, notifier):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_media_store] = lambda: media
    app.dependency_overrides[get_notifier] = lambda: notifier

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def user(session):
    return make_user(session, "alice")


@pytest.fixture
def admin(session):
    return make_user(session, "admin_one", role="admin")


@pytest.fixture
def catalog(session, admin):
    """A visible group with a category, ready for products."""
    service = make_service(session)
    category = make_category(session)
    group = make_group(session, service, admin)
    return {"service": service, "category": category, "group": group}
