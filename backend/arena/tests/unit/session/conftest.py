import pytest

from arena.session.manager import SessionManager
from arena.tests.helpers.session import TEST_RESPAWN_DELAY


@pytest.fixture
def manager():
    return SessionManager(respawn_delay_seconds=TEST_RESPAWN_DELAY, instance_id="srv_test")
