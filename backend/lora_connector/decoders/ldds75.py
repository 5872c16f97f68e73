"""Dragino LDDS75 ultrasonic distance sensor.

Uplink layout (big-endian, device only transmits on fport 2)::

    [0:2]  battery, lower 14 bits in mV
    [2:4]  distance to the water surface in mm
    [4]    interrupt flag (ignored)
"""

from __future__ import annotations

import logging
import struct
from datetime import datetime, timezone
from typing import Sequence

from ..errors import DecodeError
from ..schemas import Action, ActionParameter, Component, Property, Thing, ThingAttribute, ValueType
from ..state import ThingState, read_calibration
from ..utils import format_value
from .base import PropertyUpdate

logger = logging.getLogger(__name__)

MOUNTING_HEIGHT_KEY = "mountingHeight"
BATTERY_MASK = 0x3FFF
# distances at or below this are reported when no echo was received
MIN_VALID_DISTANCE_MM = 20


class LDDS75Decoder:
    name = "ldds75"

    def describe(self, attributes: Sequence[ThingAttribute]) -> Thing:
        return Thing(
            name="LDDS75",
            manufacturer="Dragino",
            display_type="SENSOR",
            main_component_id="waterlevel",
            attributes=list(attributes),
            components=[
                Component(
                    id="waterlevel",
                    name="Messstelle",
                    component_type="core.SENSOR",
                    capabilities=["core.MEASURE"],
                    properties=[
                        Property(id="waterlevel", name="Waterlevel", unit="CENTIMETER",
                                 type=ValueType.NUMBER, property_type="core.NUMBER"),
                    ],
                ),
                Component(
                    id="configuration",
                    name="Configuration",
                    component_type="dragino.CONFIGURATION",
                    properties=[
                        Property(id=MOUNTING_HEIGHT_KEY, name="Mounting Height", value="0", unit="CENTIMETER",
                                 type=ValueType.NUMBER, property_type="core.NUMBER"),
                    ],
                    actions=[
                        Action(
                            id="setMountingHeight",
                            name="SetMountingHeight",
                            parameters=[ActionParameter(name="mountingHeight", type=ValueType.NUMBER)],
                        ),
                    ],
                ),
                Component(
                    id="battery",
                    name="Battery",
                    component_type="core.BATTERY",
                    capabilities=["core.MEASURE"],
                    properties=[
                        Property(id="voltage", name="Voltage", unit="VOLT",
                                 type=ValueType.NUMBER, property_type="core.VOLTAGE"),
                        Property(id="chemistry", name="Battery chemistry", value="Li-SoCl2",
                                 type=ValueType.STRING, property_type="core.STRING"),
                    ],
                ),
            ],
        )

    async def decode(self, state: ThingState, fport: int, payload: bytes, thing_id: str) -> list[PropertyUpdate]:
        if len(payload) < 2:
            raise DecodeError(f"message shorter than 2 bytes ({len(payload)})")

        now = datetime.now(timezone.utc)
        (battery_raw,) = struct.unpack_from(">H", payload, 0)
        battery_v = (battery_raw & BATTERY_MASK) / 1000.0
        updates = [PropertyUpdate(thing_id, "battery", "voltage", format_value(battery_v), now)]

        # shorter frames mean the distance probe is not connected
        if len(payload) >= 5:
            (distance_mm,) = struct.unpack_from(">H", payload, 2)
            if distance_mm > MIN_VALID_DISTANCE_MM:
                mounting_height_cm = await read_calibration(state, MOUNTING_HEIGHT_KEY)
                level_cm = mounting_height_cm - distance_mm / 10.0
                updates.append(PropertyUpdate(thing_id, "waterlevel", "waterlevel", format_value(level_cm), now))
            else:
                logger.debug("Ignoring invalid distance %d mm from thing %s", distance_mm, thing_id)

        return updates
