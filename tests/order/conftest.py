import pytest
import pytest_asyncio
from order_service.auth import Claims, TokenVerifier
from order_service.db import create_session_factory, init_db
from order_service.event_bus import EventBus
from order_service.service import OrderService

from tests.helpers import ADMIN_ID, JWT_SECRET, OTHER_USER_ID, OWNER_ID


@pytest.fixture()
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}"


@pytest_asyncio.fixture()
async def async_session(database_url):
    engine, async_session = create_session_factory(database_url)
    await init_db(engine)
    yield async_session
    await engine.dispose()


@pytest.fixture()
def event_bus():
    return EventBus()


@pytest.fixture()
def service(async_session, event_bus):
    return OrderService(async_session, event_bus)


@pytest.fixture()
def verifier():
    return TokenVerifier(JWT_SECRET)


@pytest.fixture()
def owner():
    return Claims(user_id=OWNER_ID, roles=frozenset({"user"}))


@pytest.fixture()
def other_user():
    return Claims(user_id=OTHER_USER_ID, roles=frozenset({"user"}))


@pytest.fixture()
def admin():
    return Claims(user_id=ADMIN_ID, roles=frozenset({"admin"}))
