import sys
from contextlib import asynccontextmanager
from pathlib import Path
from types import SimpleNamespace

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from lora_connector.errors import PlatformError, StateNotFoundError  # noqa: E402


class FakeStore:
    """In-memory stand-in for :class:`lora_connector.store.Store`."""

    def __init__(self):
        self.state: dict[tuple[str, str], bytes] = {}
        self.state_writes: list[tuple[str, str, bytes]] = []
        self.mappings: dict[tuple[str, bytes], str] = {}
        self.mapping_writes = 0
        self.bindings: dict[tuple[str, int], str] = {}
        self.instances: dict[str, SimpleNamespace] = {}
        self.installations: dict[str, str] = {}
        self.staged = []
        self.committed = False
        self.rolled_back = False
        self.locks = 0

    async def get_state(self, thing_id, key):
        try:
            return self.state[(thing_id, key)]
        except KeyError:
            raise StateNotFoundError(thing_id, key) from None

    async def set_state(self, thing_id, key, value):
        self.state_writes.append((thing_id, key, value))
        self.state[(thing_id, key)] = value

    async def init_state(self, thing_id, key, value):
        if (thing_id, key) not in self.state:
            self.state_writes.append((thing_id, key, value))
            self.state[(thing_id, key)] = value
        return self.state[(thing_id, key)]

    async def thing_id_for_eui(self, instance_id, dev_eui):
        return self.mappings.get((instance_id, dev_eui))

    async def store_eui_mapping(self, instance_id, dev_eui, thing_id):
        self.mapping_writes += 1
        self.mappings[(instance_id, dev_eui)] = thing_id

    async def thing_is_mapped(self, thing_id):
        return thing_id in self.mappings.values()

    @asynccontextmanager
    async def device_lock(self, instance_id, dev_eui):
        self.locks += 1
        yield

    async def decoder_name_for_app(self, instance_id, application_id):
        return self.bindings.get((instance_id, application_id))

    async def add_decoder_binding(self, instance_id, application_id, decoder_name):
        self.bindings[(instance_id, application_id)] = decoder_name

    async def get_instance(self, instance_id):
        return self.instances.get(instance_id)

    async def instance_for_config_thing(self, thing_id):
        for instance in self.instances.values():
            if instance.config_thing_id == thing_id:
                return instance
        return None

    async def add_installation(self, installation_id, token):
        self.installations[installation_id] = token

    async def add_instance(self, instance):
        self.staged.append(instance)

    async def commit(self):
        self.committed = True
        for instance in self.staged:
            self.instances[instance.id] = instance
        self.staged = []

    async def rollback(self):
        self.rolled_back = True
        self.staged = []


class FakeClient:
    """Records platform calls; property ids in ``fail_properties`` are rejected."""

    def __init__(self, fail_create: bool = False, fail_properties=()):
        self.created = []
        self.updates = []
        self.fail_create = fail_create
        self.fail_properties = set(fail_properties)

    async def create_thing(self, token, thing):
        if self.fail_create:
            raise PlatformError("thing rejected")
        self.created.append((token, thing))
        return f"thing-{len(self.created)}"

    async def update_property_value(self, token, thing_id, component_id, property_id, value, last_update):
        if property_id in self.fail_properties:
            raise PlatformError(f"{property_id} rejected")
        self.updates.append((thing_id, component_id, property_id, value))


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def client():
    return FakeClient()
