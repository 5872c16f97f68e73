"""Maps device EUIs to platform Things, provisioning unknown devices."""

from __future__ import annotations

import logging
from contextlib import AbstractAsyncContextManager
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from .decoders.base import PayloadDecoder
from .errors import IdentityResolutionError, PlatformError
from .schemas import ThingAttribute
from .utils import format_eui

logger = logging.getLogger(__name__)

EUI_ATTRIBUTE = "lora.deveui"


class IdentityStore(Protocol):
    async def thing_id_for_eui(self, instance_id: str, dev_eui: bytes) -> str | None: ...

    async def store_eui_mapping(self, instance_id: str, dev_eui: bytes, thing_id: str) -> None: ...

    def device_lock(self, instance_id: str, dev_eui: bytes) -> AbstractAsyncContextManager[None]: ...


class IdentityResolver:
    def __init__(self, store: IdentityStore, client):
        self.store = store
        self.client = client

    async def resolve(self, instance_id: str, token: str, dev_eui: bytes, decoder: PayloadDecoder) -> str:
        """Return the Thing id for *dev_eui*, creating the Thing on first sight.

        If the platform accepts the Thing but the mapping cannot be stored,
        the Thing is orphaned and a retry would create a duplicate; the
        orphan id is logged so it can be reconciled by hand.
        """
        try:
            formatted = format_eui(dev_eui)
        except ValueError as exc:
            raise IdentityResolutionError(str(exc)) from exc

        created = None
        try:
            async with self.store.device_lock(instance_id, dev_eui):
                thing_id = await self.store.thing_id_for_eui(instance_id, dev_eui)
                if thing_id:
                    return thing_id

                thing = decoder.describe([ThingAttribute(name=EUI_ATTRIBUTE, value=formatted)])
                try:
                    created = await self.client.create_thing(token, thing)
                except PlatformError as exc:
                    raise IdentityResolutionError(f"failed to create thing for {formatted}: {exc}") from exc
                logger.info("Created thing %s for device %s in instance %s", created, formatted, instance_id)

                await self.store.store_eui_mapping(instance_id, dev_eui, created)
            return created
        except SQLAlchemyError as exc:
            if created is None:
                raise IdentityResolutionError(f"failed to look up thing for {formatted}") from exc
            # the mapping write or the commit on lock release failed
            logger.error(
                "Thing %s was created for device %s in instance %s but the mapping could not be stored; "
                "manual reconciliation required",
                created, formatted, instance_id,
            )
            raise IdentityResolutionError(f"failed to store mapping for {formatted}") from exc
