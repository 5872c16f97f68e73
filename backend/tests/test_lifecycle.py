import asyncio

import pytest

from conftest import FakeClient
from lora_connector.decoders.registry import default_registry
from lora_connector.lifecycle import ConnectorService, InstanceSetupError, build_config_thing
from lora_connector.schemas import InstallationRequest, InstantiationRequest

REQUEST = InstantiationRequest.model_validate({"id": "inst-1", "installationId": "inst-a", "token": "tok"})


def test_add_installation_persists_token(store, client):
    service = ConnectorService(store, client, default_registry(), "lora.example.com")

    asyncio.run(service.add_installation(InstallationRequest(id="inst-a", token="secret")))

    assert store.installations == {"inst-a": "secret"}


def test_add_instance_publishes_callback_url(store, client):
    service = ConnectorService(store, client, default_registry(), "lora.example.com")

    instance = asyncio.run(service.add_instance(REQUEST))

    assert instance.config_thing_id == "thing-1"
    assert store.committed is True
    assert store.instances["inst-1"].installation_id == "inst-a"
    assert client.updates == [
        ("thing-1", "lora", "url", "https://lora.example.com/lorawan/inst-a/inst-1"),
    ]


def test_failed_url_publish_rolls_back_instance(store):
    client = FakeClient(fail_properties={"url"})
    service = ConnectorService(store, client, default_registry(), "lora.example.com")

    with pytest.raises(InstanceSetupError):
        asyncio.run(service.add_instance(REQUEST))

    assert store.rolled_back is True
    assert store.committed is False
    assert store.instances == {}


def test_failed_config_thing_creates_no_instance(store):
    service = ConnectorService(store, FakeClient(fail_create=True), default_registry(), "lora.example.com")

    with pytest.raises(InstanceSetupError):
        asyncio.run(service.add_instance(REQUEST))
    assert store.staged == []


def test_missing_host_is_rejected(store, client):
    service = ConnectorService(store, client, default_registry(), "")

    with pytest.raises(InstanceSetupError):
        asyncio.run(service.add_instance(REQUEST))
    assert client.created == []


def test_config_thing_lists_decoders():
    thing = build_config_thing(["dcl571", "ldds75"])

    component = thing.components[0]
    assert component.id == "lora"
    assert {p.id: p.value for p in component.properties}["decoders"] == "dcl571,ldds75"
    assert [p.name for p in component.actions[0].parameters] == ["ApplicationId", "PayloadDecoder"]
