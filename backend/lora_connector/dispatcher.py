"""Routes network server callbacks through decoding to the platform."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from .decoders.registry import DecoderRegistry
from .envelope import EnvelopeCodec
from .errors import PlatformError, UnknownEventError
from .identity import IdentityResolver
from .state import ThingState
from .utils import safe_format_eui

logger = logging.getLogger(__name__)

EVENT_UP = "up"
EVENT_ERROR = "error"


@dataclass
class DispatchOutcome:
    status: str
    thing_id: str | None = None
    updates: int = 0
    failed: int = 0


class UplinkDispatcher:
    def __init__(
        self,
        store,
        client,
        registry: DecoderRegistry,
        codec: EnvelopeCodec,
        timeout: float | None = None,
    ):
        self.store = store
        self.client = client
        self.registry = registry
        self.codec = codec
        self.timeout = timeout
        self.resolver = IdentityResolver(store, client)

    async def handle(self, instance_id: str, token: str, event: str, body: bytes) -> DispatchOutcome:
        """Handle one callback.

        Raises :class:`UnknownEventError` or :class:`EnvelopeError` for client
        errors before anything is touched. Missing configuration is logged
        and reported as a no-op outcome.
        """
        if event == EVENT_UP:
            up = self.codec.parse_uplink(body)
            return await asyncio.wait_for(self._handle_uplink(instance_id, token, up), timeout=self.timeout)
        if event == EVENT_ERROR:
            return self._handle_error(instance_id, self.codec.parse_error(body))
        logger.warning("Handler for event type %r not implemented (instance %s)", event, instance_id)
        raise UnknownEventError(f"unknown event type {event!r}")

    def _handle_error(self, instance_id: str, error_event) -> DispatchOutcome:
        logger.error(
            "Network server error for device %s: type=%s application=%s (%s) instance=%s: %s",
            safe_format_eui(error_event.dev_eui),
            error_event.type,
            error_event.application_name,
            error_event.application_id,
            instance_id,
            error_event.error,
        )
        return DispatchOutcome(status="error_logged")

    async def _handle_uplink(self, instance_id: str, token: str, up) -> DispatchOutcome:
        eui = safe_format_eui(up.dev_eui)

        decoder_name = await self.store.decoder_name_for_app(instance_id, up.application_id)
        if not decoder_name:
            logger.error(
                "No payload decoder configured for application %s in instance %s, dropping uplink from %s",
                up.application_id, instance_id, eui,
            )
            return DispatchOutcome(status="unbound")

        decoder = self.registry.lookup(decoder_name)
        if decoder is None:
            logger.error("No payload decoder implementation registered under %r (device %s)", decoder_name, eui)
            return DispatchOutcome(status="no_decoder")

        thing_id = await self.resolver.resolve(instance_id, token, up.dev_eui, decoder)

        updates = await decoder.decode(ThingState(self.store, thing_id), up.f_port, up.data, thing_id)
        logger.debug("Decoded %d updates for thing %s (device %s, fport %s)", len(updates), thing_id, eui, up.f_port)

        failed = 0
        for update in updates:
            update_time = update.update_time or datetime.now(timezone.utc)
            try:
                await self.client.update_property_value(
                    token,
                    update.thing_id,
                    update.component_id,
                    update.property_id,
                    update.value,
                    update_time,
                )
            except PlatformError as exc:
                failed += 1
                logger.error(
                    "Failed to update thing property thing=%s component=%s property=%s: %s",
                    update.thing_id, update.component_id, update.property_id, exc,
                )
        return DispatchOutcome(status="processed", thing_id=thing_id, updates=len(updates) - failed, failed=failed)
