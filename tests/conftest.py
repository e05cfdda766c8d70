import os
import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import app.models  # noqa: F401
from app.core import roles
from app.core.config import settings
from app.core.deps import get_db
from app.core.id_utils import OrderType, get_order_id_generator
from app.core.security import create_access_token
from app.db.base import Base
from app.main import app
from app.models.access_permission import AccessPermission
from app.models.campaign import Campaign
from app.models.company import Company
from app.models.pending_order import PendingOrder
from app.models.privacy_rule import PrivacyRule
from app.models.user import User
from app.routers.auth import login_rate_limiter
from app.services.pubsub_provider import get_pubsub_provider

SHIPPING_ADDRESS = {
    "firstName": "Ada",
    "lastName": "Lovelace",
    "street": "Main Street 1",
    "zipCode": "10115",
    "place": "Berlin",
    "country": "DE",
    "email": "ada@example.com",
}


@pytest.fixture()
def test_context():
    original_secret = settings.secret_key
    settings.secret_key = "test-secret-key"

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    get_pubsub_provider("stub").clear()

    with TestClient(app) as client:
        yield client, session_local

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)
    settings.secret_key = original_secret
    login_rate_limiter.reset()
    get_pubsub_provider("stub").clear()


@pytest.fixture()
def published():
    return get_pubsub_provider("stub").published


class Seeder:
    """Writes fixtures straight to the database, bypassing the API."""

    def __init__(self, session_local):
        self.session_local = session_local

    def _add(self, row):
        with self.session_local() as db:
            db.add(row)
            db.commit()
        return row

    def user(self, *, role: str = roles.USER, company_id: str | None = None) -> User:
        suffix = uuid.uuid4().hex[:8]
        return self._add(
            User(
                id=str(uuid.uuid4()),
                email=f"user-{suffix}@example.com",
                username=f"user_{suffix}",
                first_name="Test",
                last_name=suffix,
                hashed_password="not-used",
                role=role,
                company_id=company_id,
            )
        )

    def company(self, *, owner_id: str | None = None, customer_id: int | None = None) -> Company:
        suffix = uuid.uuid4().hex[:8]
        return self._add(
            Company(
                id=str(uuid.uuid4()),
                owner_id=owner_id,
                name=f"Company {suffix}",
                email=f"office-{suffix}@example.com",
                customer_id=customer_id,
            )
        )

    def campaign(self, company_id: str, **overrides) -> Campaign:
        values = {"name": "Welcome Pack", "type": "onboarding", "quota": 10}
        values.update(overrides)
        return self._add(Campaign(id=str(uuid.uuid4()), company_id=company_id, **values))

    def pending_order(
        self,
        user: User,
        *,
        company_id: str | None = None,
        campaign_id: str | None = None,
        **overrides,
    ) -> PendingOrder:
        order_type = OrderType.CAMPAIGN if campaign_id else OrderType.CATALOGUE
        values = {
            "posted_order_id": get_order_id_generator(order_type, settings.order_id_epoch).generate(),
            "order_line_requests": [{"itemName": "Gift Box", "articleNumber": "1498", "quantity": 1}],
            "shipping_address_requests": [dict(SHIPPING_ADDRESS)],
            "created": datetime.now(timezone.utc),
            "created_by": user.email,
            "updated_by": user.email,
            "created_by_full_name": user.full_name,
        }
        values.update(overrides)
        return self._add(
            PendingOrder(
                id=str(uuid.uuid4()),
                user_id=user.id,
                company_id=company_id,
                campaign_id=campaign_id,
                **values,
            )
        )

    def privacy_rule(self, company_id: str, *, role: str, module: str) -> PrivacyRule:
        return self._add(PrivacyRule(id=str(uuid.uuid4()), company_id=company_id, role=role, module=module))

    def access_permission(self, company_id: str, *, role: str, module: str, permission: str) -> AccessPermission:
        return self._add(
            AccessPermission(
                id=str(uuid.uuid4()),
                company_id=company_id,
                name=f"{role} {module}",
                role=role,
                module=module,
                permission=permission,
            )
        )


@pytest.fixture()
def seed(test_context):
    _, session_local = test_context
    return Seeder(session_local)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def headers_for():
    return auth_headers
