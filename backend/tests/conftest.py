"""Test configuration and fixtures."""
import pytest
from fastapi.testclient import TestClient

from corpus_admin.config import Settings
from corpus_admin.database import Base, create_tables, make_engine
from corpus_admin.errors import GatewayError
from corpus_admin.main import create_app
from corpus_admin.services.chunk_manager import ChunkManager
from corpus_admin.services.gateway import Gateway
from corpus_admin.services.local_storage import LocalObjectStorage
from corpus_admin.services.notifier import Notifier
from corpus_admin.services.source_manager import SourceManager
from corpus_admin.services.sql_gateway import SqlGateway

STORAGE_BASE_URL = "http://testserver/storage"


class FlakyGateway(Gateway):
    """Wraps a real gateway; calls named in ``failures`` raise ``GatewayError``.

    A failure key is either the method name (``"insert"``) or the method and
    table (``"select:sources"``). Every call is recorded in ``calls``.
    """

    def __init__(self, inner: Gateway):
        self.inner = inner
        self.failures: dict[str, str] = {}
        self.calls: list[str] = []
        self.before_select = None

    def fail(self, key: str, message: str = "boom") -> None:
        self.failures[key] = message

    def heal(self) -> None:
        self.failures.clear()

    def _check(self, method: str, table: str | None = None) -> None:
        self.calls.append(f"{method}:{table}" if table else method)
        for key in (f"{method}:{table}", method):
            if key in self.failures:
                raise GatewayError(self.failures[key])

    async def select(self, table, columns="*", embed=(), filters=None, order=None):
        if self.before_select is not None:
            await self.before_select()
        self._check("select", table)
        return await self.inner.select(table, columns=columns, embed=embed, filters=filters, order=order)

    async def insert(self, table, row):
        self._check("insert", table)
        return await self.inner.insert(table, row)

    async def update(self, table, row, match_id):
        self._check("update", table)
        await self.inner.update(table, row, match_id)

    async def delete(self, table, match_id, column="id"):
        self._check("delete", table)
        await self.inner.delete(table, match_id, column=column)

    async def upload_object(self, bucket, path, data, content_type="application/octet-stream"):
        self._check("upload_object")
        return await self.inner.upload_object(bucket, path, data, content_type)

    def get_public_url(self, bucket, path):
        return self.inner.get_public_url(bucket, path)

    async def remove_object(self, bucket, path):
        self._check("remove_object")
        await self.inner.remove_object(bucket, path)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        GATEWAY_BACKEND="local",
        DATABASE_URL="sqlite://",
        STORAGE_DIR=str(tmp_path / "storage"),
        PUBLIC_BASE_URL="http://testserver",
        SOURCE_DELETE_POLICY="orphan",
        MAX_UPLOAD_SIZE_MB=1,
    )


@pytest.fixture
def engine():
    """In-memory SQLite database with the sources and chunks tables."""
    engine = make_engine("sqlite://")
    create_tables(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def storage_root(tmp_path):
    return tmp_path / "storage"


@pytest.fixture
def gateway(engine, storage_root):
    return SqlGateway(engine, LocalObjectStorage(storage_root, STORAGE_BASE_URL))


@pytest.fixture
def flaky(gateway):
    return FlakyGateway(gateway)


@pytest.fixture
def notifier():
    return Notifier(limit=20)


@pytest.fixture
def source_manager(flaky, notifier, settings):
    return SourceManager(flaky, notifier, settings)


@pytest.fixture
def chunk_manager(flaky, notifier, settings):
    return ChunkManager(flaky, notifier, settings)


@pytest.fixture
def client(settings, flaky):
    """API client over the local gateway, with the lifespan running."""
    with TestClient(create_app(settings=settings, gateway=flaky)) as test_client:
        yield test_client
