import fakeredis
import pytest

from shared.storage.cold_store import ColdStore
from shared.storage.hybrid import HybridStore
from shared.utils.redis_client import RedisClient


@pytest.fixture
def fake_redis():
    server = fakeredis.FakeServer()
    return fakeredis.FakeRedis(server=server, decode_responses=True)


@pytest.fixture
def redis_client(fake_redis):
    return RedisClient("test", connection=fake_redis)


@pytest.fixture
def cold_store(tmp_path):
    cold = ColdStore(str(tmp_path / "cold"))
    yield cold
    cold.close()


@pytest.fixture
def store(redis_client, cold_store):
    """Hot + cold store, as run by the archiver service."""
    return HybridStore(redis_client, cold_store)


@pytest.fixture
def client_only_store(redis_client):
    """Redis only, as run by a producer without the content database."""
    return HybridStore(redis_client, None)
