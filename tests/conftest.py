import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from streamsite.crud import DbStorage
from streamsite.database import make_engine
from streamsite.main import create_app
from streamsite.routes import limiter
from streamsite.seed import seed_storage
from streamsite.storage import MemStorage


async def make_db_storage(**kwargs):
    engine = make_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    storage = DbStorage(engine, **kwargs)
    await storage.create_tables()
    return storage


@pytest.fixture(params=["memory", "database"])
async def storage(request):
    """A seeded store, once per backend."""
    if request.param == "memory":
        yield MemStorage(webhook_url="")
        return
    db_storage = await make_db_storage(webhook_url="")
    await seed_storage(db_storage)
    yield db_storage
    await db_storage.close()


@pytest.fixture
def mem_storage():
    return MemStorage(webhook_url="")


@pytest.fixture
def client(mem_storage):
    limiter.reset()
    return TestClient(create_app(storage=mem_storage))


@pytest.fixture
def admin_headers():
    return {"Authorization": "Bearer admin"}
