from types import SimpleNamespace

import pytest

from walnut import database


class _FakeConn:
    def __init__(self):
        self.created = False

    async def run_sync(self, _fn) -> None:
        self.created = True


class _FakeBeginFactory:
    def __init__(self, fail_times: int) -> None:
        self.fail_times = fail_times
        self.calls = 0
        self.conn = _FakeConn()

    def __call__(self):
        self.calls += 1
        call_number = self.calls
        factory = self

        class _Ctx:
            async def __aenter__(self_nonlocal):
                if call_number <= factory.fail_times:
                    raise ConnectionError("db not ready")
                return factory.conn

            async def __aexit__(self_nonlocal, exc_type, exc, tb):
                return False

        return _Ctx()


@pytest.fixture()
def fast_retries(monkeypatch):
    async def _noop_sleep(_seconds: float) -> None:
        return None

    monkeypatch.setattr(database.asyncio, "sleep", _noop_sleep)
    monkeypatch.setattr(database.settings, "database_init_retry_delay_seconds", 0.01)


@pytest.mark.anyio
async def test_init_db_retries_until_success(monkeypatch, fast_retries):
    begin_factory = _FakeBeginFactory(fail_times=2)
    monkeypatch.setattr(database, "engine", SimpleNamespace(begin=begin_factory))
    monkeypatch.setattr(database.settings, "debug", True)
    monkeypatch.setattr(database.settings, "database_init_retries", 3)

    await database.init_db()

    assert begin_factory.calls == 3
    assert begin_factory.conn.created is True


@pytest.mark.anyio
async def test_init_db_raises_after_retries_exhausted(monkeypatch, fast_retries):
    begin_factory = _FakeBeginFactory(fail_times=10)
    monkeypatch.setattr(database, "engine", SimpleNamespace(begin=begin_factory))
    monkeypatch.setattr(database.settings, "database_init_retries", 1)

    with pytest.raises(ConnectionError, match="db not ready"):
        await database.init_db()

    assert begin_factory.calls == 2
