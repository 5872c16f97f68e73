"""Installation and instance bookkeeping for the connector protocol."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from .actions import ADD_MAPPING_ACTION, CONFIG_COMPONENT
from .decoders.registry import DecoderRegistry
from .errors import ConnectorError, PlatformError
from .models import Instance
from .schemas import (
    Action,
    ActionParameter,
    Component,
    InstallationRequest,
    InstantiationRequest,
    Property,
    Thing,
    ValueType,
)

logger = logging.getLogger(__name__)

CALLBACK_URL_PROPERTY = "url"
DECODERS_PROPERTY = "decoders"


class InstanceSetupError(ConnectorError):
    """Raised when an instance cannot be provisioned; nothing is persisted."""


def build_config_thing(decoder_names: list[str]) -> Thing:
    """The per-instance Thing operators use to bind applications to decoders."""

    return Thing(
        name="configuration Thing",
        manufacturer="IoT connctd GmbH",
        display_type="loranetwork",
        main_component_id=CONFIG_COMPONENT,
        components=[
            Component(
                id=CONFIG_COMPONENT,
                name="LoRaWAN config",
                component_type="config",
                capabilities=["loraconfig"],
                properties=[
                    Property(
                        id=CALLBACK_URL_PROPERTY,
                        name="HTTP Callback URL",
                        type=ValueType.STRING,
                        property_type="URL",
                    ),
                    Property(
                        id=DECODERS_PROPERTY,
                        name="Decoders",
                        value=",".join(decoder_names),
                        type=ValueType.STRING,
                    ),
                ],
                actions=[
                    Action(
                        id=ADD_MAPPING_ACTION,
                        name="AddMapping",
                        parameters=[
                            ActionParameter(name="ApplicationId", type=ValueType.NUMBER),
                            ActionParameter(name="PayloadDecoder", type=ValueType.STRING),
                        ],
                    )
                ],
            )
        ],
    )


def callback_url(host: str, installation_id: str, instance_id: str) -> str:
    return f"https://{host}/lorawan/{installation_id}/{instance_id}"


class ConnectorService:
    def __init__(self, store, client, registry: DecoderRegistry, host: str):
        self.store = store
        self.client = client
        self.registry = registry
        self.host = host

    async def add_installation(self, req: InstallationRequest) -> None:
        await self.store.add_installation(req.id, req.token)
        logger.info("Added installation %s", req.id)

    async def add_instance(self, req: InstantiationRequest) -> Instance:
        """Create the config Thing, persist the instance and publish its callback URL.

        The instance row is only committed after the callback URL reached the
        platform; any failure before that rolls the row back.
        """
        if not self.host:
            raise InstanceSetupError("callback host is not configured")

        try:
            config_thing_id = await self.client.create_thing(req.token, build_config_thing(self.registry.names()))
        except PlatformError as exc:
            raise InstanceSetupError(f"failed to create config thing: {exc}") from exc

        instance = Instance(
            id=req.id,
            token=req.token,
            installation_id=req.installation_id,
            config_thing_id=config_thing_id,
        )
        url = callback_url(self.host, req.installation_id, req.id)
        try:
            await self.store.add_instance(instance)
            await self.client.update_property_value(
                req.token,
                config_thing_id,
                CONFIG_COMPONENT,
                CALLBACK_URL_PROPERTY,
                url,
                datetime.now(timezone.utc),
            )
            await self.store.commit()
        except PlatformError as exc:
            await self.store.rollback()
            raise InstanceSetupError(f"failed to publish callback url: {exc}") from exc
        except Exception:
            await self.store.rollback()
            raise

        logger.info(
            "Added instance %s for installation %s with config thing %s, callback %s",
            req.id, req.installation_id, config_thing_id, url,
        )
        return instance
