import pytest

from arena.messaging.router import MessageRouter
from arena.server.app import create_app
from arena.server.settings import ArenaServerSettings
from arena.session.manager import SessionManager
from arena.tests.helpers.session import TEST_RESPAWN_DELAY
from arena.tests.mocks import MockConnection


@pytest.fixture
def settings():
    return ArenaServerSettings(respawn_delay_seconds=TEST_RESPAWN_DELAY, instance_id="srv_test")


@pytest.fixture
def session_manager():
    return SessionManager(respawn_delay_seconds=TEST_RESPAWN_DELAY, instance_id="srv_test")


@pytest.fixture
def message_router(session_manager):
    return MessageRouter(session_manager)


@pytest.fixture
def mock_connection():
    return MockConnection()


@pytest.fixture
def app(settings, session_manager, message_router):
    return create_app(settings=settings, session_manager=session_manager, message_router=message_router)
