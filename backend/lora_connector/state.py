"""Per-Thing calibration state as seen by decoders."""

from __future__ import annotations

import logging
from typing import Protocol

from .codec import decode_fixed_point, encode_varint
from .errors import StateNotFoundError

logger = logging.getLogger(__name__)

ZERO = encode_varint(0)


class StateStore(Protocol):
    async def get_state(self, thing_id: str, key: str) -> bytes:
        """Return the stored value or raise :class:`StateNotFoundError`."""

    async def set_state(self, thing_id: str, key: str, value: bytes) -> None:
        ...

    async def init_state(self, thing_id: str, key: str, value: bytes) -> bytes:
        """Insert *value* unless an entry exists; return what is stored."""


class ThingState:
    """State accessor bound to a single Thing id."""

    def __init__(self, store: StateStore, thing_id: str):
        self.store = store
        self.thing_id = thing_id

    async def get(self, key: str) -> bytes:
        return await self.store.get_state(self.thing_id, key)

    async def set(self, key: str, value: bytes) -> None:
        await self.store.set_state(self.thing_id, key, value)

    async def init(self, key: str, value: bytes) -> bytes:
        return await self.store.init_state(self.thing_id, key, value)


async def read_calibration(state: ThingState, key: str) -> float:
    """Return the calibration value for *key*, storing zero on first use."""

    try:
        raw = await state.get(key)
    except StateNotFoundError:
        logger.info("No calibration %s for thing %s yet, storing default 0", key, state.thing_id)
        raw = await state.init(key, ZERO)
    return decode_fixed_point(raw)
