"""BD Sensors DCL 571 submersible pressure / level probe.

The device forwards its Modbus register dump: a 6 byte header followed by
6 byte records ``83 04 <reg> 00 <hi> <lo>``. A float spans two consecutive
registers, so an 8 byte window starting at the first register's value holds
the single precision value in bytes ``6, 7, 0, 1`` (little-endian).
"""

from __future__ import annotations

import logging
import math
import struct
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from ..errors import DecodeError
from ..schemas import Action, ActionParameter, Component, Property, Thing, ThingAttribute, ValueType
from ..state import ThingState, read_calibration
from ..utils import format_value
from .base import PropertyUpdate

logger = logging.getLogger(__name__)

WINDOW_SIZE = 8
WATER_LEVEL_OFFSET_KEY = "waterLevelOffset"
METERS_PER_BAR = 10.1972


@dataclass(frozen=True)
class Reading:
    offset: int
    component_id: str
    property_id: str


# frame-offset order; the first window is mandatory
READINGS = (
    Reading(28, "pressure", "maxPressure"),
    Reading(40, "pressure", "minPressure"),
    Reading(52, "pressure", "pressure"),
    Reading(64, "pressure", "pressureUpperLimit"),
    Reading(76, "pressure", "pressureLowerLimit"),
)
CURRENT_PRESSURE = "pressure"


@dataclass(frozen=True)
class LevelFormula:
    """Converts a pressure reading plus calibrated offset into a water level."""

    version: int
    meters_per_bar: float

    def level_cm(self, pressure_bar: float, offset_cm: float) -> float:
        return offset_cm + pressure_bar * self.meters_per_bar * 100.0


LEVEL_FORMULA_V2 = LevelFormula(version=2, meters_per_bar=METERS_PER_BAR)


def decode_float_window(frame: bytes, offset: int) -> float:
    window = frame[offset:offset + WINDOW_SIZE]
    if len(window) < WINDOW_SIZE:
        raise DecodeError(f"frame too short for window at offset {offset}")
    (value,) = struct.unpack("<f", bytes((window[6], window[7], window[0], window[1])))
    return value


def _pressure_property(property_id: str) -> Property:
    return Property(id=property_id, name=property_id, unit="Bar", type=ValueType.NUMBER, property_type="NUMBER")


class DCL571Decoder:
    name = "dcl571"
    formula = LEVEL_FORMULA_V2

    def describe(self, attributes: Sequence[ThingAttribute]) -> Thing:
        attrs = list(attributes)
        attrs.append(ThingAttribute(name="dcl571.levelFormula", value=str(self.formula.version)))
        return Thing(
            name="DCL571",
            manufacturer="Bode",
            display_type="SENSOR",
            main_component_id="waterlevel",
            attributes=attrs,
            components=[
                Component(
                    id="waterlevel",
                    name="Messstelle",
                    component_type="core.SENSOR",
                    capabilities=["core.MEASURE"],
                    properties=[
                        Property(id="waterlevel", name="Waterlevel", unit="CENTIMETER",
                                 type=ValueType.NUMBER, property_type="NUMBER"),
                    ],
                ),
                Component(
                    id="pressure",
                    name="Druck",
                    component_type="core.SENSOR",
                    capabilities=["core.MEASURE"],
                    properties=[
                        _pressure_property("pressure"),
                        _pressure_property("maxPressure"),
                        _pressure_property("minPressure"),
                        _pressure_property("pressureUpperLimit"),
                        _pressure_property("pressureLowerLimit"),
                    ],
                ),
                Component(
                    id="configuration",
                    name="Configuration",
                    component_type="bode.CONFIGURATION",
                    properties=[
                        Property(id=WATER_LEVEL_OFFSET_KEY, name="water level offset", value="0",
                                 unit="CENTIMETER", type=ValueType.NUMBER, property_type="NUMBER"),
                    ],
                    actions=[
                        Action(
                            id="setWaterLevelOffset",
                            name="setWaterLevelOffset",
                            parameters=[ActionParameter(name="offset", type=ValueType.NUMBER)],
                        ),
                    ],
                ),
            ],
        )

    async def decode(self, state: ThingState, fport: int, payload: bytes, thing_id: str) -> list[PropertyUpdate]:
        first = READINGS[0]
        if len(payload) < first.offset + WINDOW_SIZE:
            raise DecodeError(
                f"frame of {len(payload)} bytes cannot hold {first.property_id} at offset {first.offset}"
            )

        now = datetime.now(timezone.utc)
        updates: list[PropertyUpdate] = []
        for reading in READINGS:
            if len(payload) < reading.offset + WINDOW_SIZE:
                break
            value = decode_float_window(payload, reading.offset)
            if not math.isfinite(value):
                logger.warning(
                    "Skipping non-finite %s from thing %s (fport %s, frame %s)",
                    reading.property_id, thing_id, fport, payload.hex(),
                )
                continue
            updates.append(PropertyUpdate(thing_id, reading.component_id, reading.property_id, format_value(value), now))

            if reading.property_id == CURRENT_PRESSURE:
                offset_cm = await read_calibration(state, WATER_LEVEL_OFFSET_KEY)
                level = self.formula.level_cm(value, offset_cm)
                updates.append(PropertyUpdate(thing_id, "waterlevel", "waterlevel", format_value(level), now))

        return updates
