import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient


def _configure_path() -> None:
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


_configure_path()

from app.core.permissions import get_current_principal  # noqa: E402
from app.main import create_app  # noqa: E402
from app.repositories.profile import ProfileRepository  # noqa: E402
from app.services import actions, ledger  # noqa: E402
from app.services.identity import Principal  # noqa: E402
from tests.fakes import FakeIdentityGateway, FakeSupabase  # noqa: E402


@pytest.fixture
def db(monkeypatch):
    fake = FakeSupabase()
    monkeypatch.setattr("database.supabase_client.get_supabase_client", lambda: fake)
    return fake


@pytest.fixture
def identity(monkeypatch):
    gateway = FakeIdentityGateway()
    monkeypatch.setattr(actions, "get_identity_gateway", lambda: gateway)
    return gateway


@pytest.fixture
def make_user(db):
    """Create a profile and credit its starting balance through the ledger."""
    counter = {"n": 0}

    def _make_user(points: int = 0, is_admin: bool = False, email: str | None = None) -> Principal:
        counter["n"] += 1
        email = email or f"user{counter['n']}@example.com"
        user_id = f"00000000-0000-0000-0000-{counter['n']:012d}"
        ProfileRepository.create(user_id, email, f"User {counter['n']}", is_admin=is_admin)
        if points:
            ledger.add_points(user_id, points, "Welcome bonus")
        return Principal(id=user_id, email=email, name=f"User {counter['n']}")

    return _make_user


@pytest.fixture
def app(db):
    application = create_app()
    try:
        yield application
    finally:
        application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def login(app):
    """Authenticate subsequent requests as the given principal."""
    def _login(principal: Principal) -> None:
        app.dependency_overrides[get_current_principal] = lambda: principal

    return _login

