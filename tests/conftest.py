import os
import shutil
import tempfile
from datetime import date
from decimal import Decimal

# Set environment variables BEFORE any imports that might use settings
_test_db_dir = tempfile.mkdtemp()
_test_db_path = os.path.join(_test_db_dir, "test_rentals.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_test_db_path}"
os.environ["SECRET_KEY"] = "test-secret-key-min-32-characters-long-for-testing"
os.environ["ALGORITHM"] = "HS256"
os.environ["ACCESS_TOKEN_EXPIRE_MINUTES"] = "30"
os.environ["NOTIFICATION_WEBHOOK_URL"] = ""

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_notifier
from app.core.security import create_access_token
from app.db import Database
from app.db.models.contract import Contract as ContractModel
from app.db.models.listing import Listing as ListingModel
from app.db.models.user import User as UserModel
from app.main import app
from app.repositories.contract import get_active_contract_for_listing
from app.services.contract import create_contract
from app.services.rental_request import create_rental_request, transition_rental_request


class RecordingNotifier:
    """Collects notifications instead of delivering them."""

    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def notify(self, event: str, payload: dict) -> None:
        self.events.append((event, payload))

    def names(self) -> list[str]:
        return [event for event, _ in self.events]


@pytest.fixture(scope="function")
def database():
    """Create a fresh database for each test and run migrations."""
    temp_db_dir = tempfile.mkdtemp()
    test_db_path = os.path.join(temp_db_dir, "test.db")
    test_db_url = f"sqlite:///{test_db_path}"

    # Run Alembic migrations to set up the database schema
    alembic_cfg = Config("alembic.ini")
    alembic_cfg.set_main_option("sqlalchemy.url", test_db_url)
    command.upgrade(alembic_cfg, "head")

    database = Database(test_db_url)
    try:
        yield database
    finally:
        database.dispose()
        shutil.rmtree(temp_db_dir, ignore_errors=True)


@pytest.fixture(scope="function")
def db(database: Database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture(scope="function")
def client(db: Session, notifier: RecordingNotifier):
    """Create a test client with database and notifier dependency overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    yield TestClient(app)

    app.dependency_overrides.clear()


def _create_user(db: Session, email: str, full_name: str, role: str, status: str = "active") -> UserModel:
    user = UserModel(email=email, full_name=full_name, role=role, status=status)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _auth_headers(user: UserModel) -> dict:
    token = create_access_token(data={"sub": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def auth_headers():
    """Build a bearer header for a user."""
    return _auth_headers


@pytest.fixture(scope="function")
def landlord(db: Session) -> UserModel:
    return _create_user(db, "landlord@example.com", "Lena Landlord", "landlord")


@pytest.fixture(scope="function")
def tenant(db: Session) -> UserModel:
    return _create_user(db, "tenant@example.com", "Tom Tenant", "tenant")


@pytest.fixture(scope="function")
def other_tenant(db: Session) -> UserModel:
    return _create_user(db, "tenant2@example.com", "Tia Tenant", "tenant")


@pytest.fixture(scope="function")
def admin(db: Session) -> UserModel:
    return _create_user(db, "admin@example.com", "Ada Admin", "admin")


@pytest.fixture(scope="function")
def outsider(db: Session) -> UserModel:
    """A tenant with no relation to any listing or contract."""
    return _create_user(db, "outsider@example.com", "Otto Outsider", "tenant")


@pytest.fixture(scope="function")
def listing(db: Session, landlord: UserModel) -> ListingModel:
    db_listing = ListingModel(
        owner_user_id=landlord.id,
        title="Sunny room near the park",
        status="verified",
        price=Decimal("850.00"),
        deposit=Decimal("1700.00"),
    )
    db.add(db_listing)
    db.commit()
    db.refresh(db_listing)
    return db_listing


@pytest.fixture(scope="function")
def make_user(db: Session):
    """Factory for additional users."""
    counter = {"n": 0}

    def _make(role: str = "tenant", status: str = "active") -> UserModel:
        counter["n"] += 1
        n = counter["n"]
        return _create_user(db, f"user{n}@example.com", f"User {n}", role, status)

    return _make


@pytest.fixture(scope="function")
def rental_request(db: Session, listing: ListingModel, tenant: UserModel):
    """A pending request by `tenant` on `listing`."""
    return create_rental_request(
        db,
        tenant,
        listing_id=listing.id,
        desired_move_in=date(2025, 3, 1),
        message="I would love to rent this room",
    )


@pytest.fixture(scope="function")
def contract(db: Session, rental_request, landlord: UserModel) -> ContractModel:
    """Draft contract between `landlord` and `tenant`, created by accepting the request."""
    transition_rental_request(db, rental_request.id, "accepted", landlord)
    return get_active_contract_for_listing(db, rental_request.listing_id, landlord.id)


@pytest.fixture(scope="function")
def accepted_request(db: Session, rental_request, contract: ContractModel):
    """The accepted request behind `contract`, with that draft cancelled so a new one may be drafted."""
    contract.status = "cancelled"
    db.commit()
    db.refresh(rental_request)
    return rental_request


@pytest.fixture(scope="function")
def group_contract(
    db: Session, accepted_request, landlord: UserModel, other_tenant: UserModel
) -> ContractModel:
    """Draft contract with two tenant members: `tenant` and `other_tenant`."""
    view = create_contract(
        db,
        landlord,
        rental_request_id=accepted_request.id,
        start_date=date(2025, 3, 1),
        rent=Decimal("850.00"),
        deposit=Decimal("1700.00"),
        tenant_ids=[other_tenant.id],
    )
    return db.get(ContractModel, view.id)
