"""
Shared fixtures: in-memory stores, an assembled container, signed tokens
and a TestClient over an app built around that container.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from petpromise.api.main import create_app
from petpromise.core.config import Settings, get_settings
from petpromise.core.dependencies import assemble
from petpromise.core.security import issue_token

from fakes import InMemoryStore

TOKEN_SECRET = "test-secret"
OWNER = "owner@example.com"
REQUESTOR = "requestor@example.com"
OTHER = "other@example.com"
ADMIN = "admin@example.com"


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )


@pytest.fixture(autouse=True)
def no_env_file(monkeypatch):
    """Settings built during a test read the process environment only."""
    monkeypatch.setitem(Settings.model_config, "env_file", None)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _settings():
    return SimpleNamespace(
        ACCESS_TOKEN_SECRET=TOKEN_SECRET,
        TOKEN_TTL_HOURS=3,
        PAYMENT_CURRENCY="usd",
        MINIMUM_DONATION_CENTS=50,
    )


def iso(days: int = 0) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def make_pet(pet_id: str, owner: str = OWNER, **overrides) -> dict:
    pet = {
        "id": pet_id,
        "ownerEmail": owner,
        "category": "dog",
        "name": f"Pet {pet_id}",
        "adopted": False,
        "isRequested": False,
        "createdAt": iso(),
    }
    pet.update(overrides)
    return pet


def make_campaign(campaign_id: str, owner: str = OWNER, **overrides) -> dict:
    campaign = {
        "id": campaign_id,
        "ownerEmail": owner,
        "petName": "Rex",
        "lastDate": iso(days=30),
        "isPaused": False,
        "totalDonatedAmount": 0,
        "campaignAddedDate": iso(),
    }
    campaign.update(overrides)
    return campaign


@pytest.fixture
def stores():
    return SimpleNamespace(
        users=InMemoryStore("users", key="email"),
        pets=InMemoryStore("pets"),
        requests=InMemoryStore("requests"),
        campaigns=InMemoryStore("campaigns"),
        donations=InMemoryStore("donations"),
    )


@pytest.fixture
def container(stores):
    stores.users.seed(
        {"email": OWNER, "role": "User", "createdAt": iso(-3)},
        {"email": REQUESTOR, "role": "User", "createdAt": iso(-2)},
        {"email": OTHER, "role": "User", "createdAt": iso(-1)},
        {"email": ADMIN, "role": "Admin", "createdAt": iso(-4)},
    )
    return assemble(
        _settings(),
        users=stores.users,
        pets=stores.pets,
        requests=stores.requests,
        campaigns=stores.campaigns,
        donations=stores.donations,
    )


@pytest.fixture
def client(container):
    return TestClient(create_app(container))


@pytest.fixture
def auth_header():
    def _header(email: str) -> dict:
        return {"Authorization": f"Bearer {issue_token({'email': email}, TOKEN_SECRET)}"}
    return _header
