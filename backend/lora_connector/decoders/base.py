from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, Sequence

from ..schemas import Thing, ThingAttribute
from ..state import ThingState


@dataclass(frozen=True)
class PropertyUpdate:
    """A single property value produced by a decoder."""

    thing_id: str
    component_id: str
    property_id: str
    value: str
    update_time: datetime | None = None


class PayloadDecoder(Protocol):
    def describe(self, attributes: Sequence[ThingAttribute]) -> Thing:
        """Return the Thing template used to provision a new device."""

    async def decode(
        self,
        state: ThingState,
        fport: int,
        payload: bytes,
        thing_id: str,
    ) -> list[PropertyUpdate]:
        """Turn a raw uplink payload into property updates."""
