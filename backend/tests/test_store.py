import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from lora_connector.errors import StateNotFoundError
from lora_connector.store import Store, _lock_key

EUI = bytes.fromhex("a840414d6182e088")


class DummyResult:
    def __init__(self, value=None):
        self.value = value

    def scalar_one_or_none(self):
        return self.value


class DummySession:
    def __init__(self, results=(), fail_execute=False):
        self.results = list(results)
        self.fail_execute = fail_execute
        self.queries = []
        self.committed = False
        self.rolled_back = False

    async def execute(self, query):
        if self.fail_execute:
            raise OperationalError("stmt", {}, Exception("connection lost"))
        self.queries.append(query)
        return DummyResult(self.results.pop(0) if self.results else None)

    async def commit(self):
        self.committed = True

    async def rollback(self):
        self.rolled_back = True


def test_lock_key_is_stable_signed_64_bit():
    key = _lock_key("inst-1", EUI)

    assert key == _lock_key("inst-1", EUI)
    assert key != _lock_key("inst-2", EUI)
    assert -(1 << 63) <= key < (1 << 63)


def test_missing_state_raises_not_found():
    store = Store(DummySession())

    with pytest.raises(StateNotFoundError) as excinfo:
        asyncio.run(store.get_state("thing-1", "mountingHeight"))

    assert isinstance(excinfo.value, KeyError)
    assert excinfo.value.key == "mountingHeight"


def test_init_state_returns_stored_value():
    session = DummySession(results=[None, b"\x04"])
    store = Store(session)

    value = asyncio.run(store.init_state("thing-1", "waterLevelOffset", b"\x00"))

    assert value == b"\x04"
    assert session.committed is True


def test_failed_write_rolls_back():
    session = DummySession(fail_execute=True)
    store = Store(session)

    with pytest.raises(OperationalError):
        asyncio.run(store.set_state("thing-1", "waterLevelOffset", b"\x00"))

    assert session.rolled_back is True
    assert session.committed is False


def test_device_lock_commits_on_success_and_rolls_back_on_error():
    session = DummySession()
    store = Store(session)

    async def ok():
        async with store.device_lock("inst-1", EUI):
            pass

    asyncio.run(ok())
    assert session.committed is True
    assert len(session.queries) == 1

    session = DummySession()
    store = Store(session)

    async def boom():
        async with store.device_lock("inst-1", EUI):
            raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        asyncio.run(boom())
    assert session.rolled_back is True
    assert session.committed is False
