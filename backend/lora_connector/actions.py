"""Operator actions forwarded by the platform."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from .codec import encode_fixed_point
from .decoders.dcl571 import WATER_LEVEL_OFFSET_KEY
from .decoders.ldds75 import MOUNTING_HEIGHT_KEY
from .decoders.registry import DecoderRegistry
from .schemas import ActionRequest, ActionRequestStatus, ActionResponse

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal Error"
CONFIG_COMPONENT = "lora"
ADD_MAPPING_ACTION = "addmapping"
UINT64_MAX = (1 << 64) - 1


@dataclass(frozen=True)
class CalibrationAction:
    state_key: str
    parameter: str
    description: str


CALIBRATION_ACTIONS: dict[str, CalibrationAction] = {
    "setMountingHeight": CalibrationAction(MOUNTING_HEIGHT_KEY, "mountingHeight", "mounting height in centimeters"),
    "setWaterLevelOffset": CalibrationAction(WATER_LEVEL_OFFSET_KEY, "offset", "offset in centimeters"),
}


def completed(req: ActionRequest) -> ActionResponse:
    return ActionResponse(id=req.id, status=ActionRequestStatus.COMPLETED)


def failed(req: ActionRequest, reason: str) -> ActionResponse:
    return ActionResponse(id=req.id, status=ActionRequestStatus.FAILED, error=reason)


class ActionHandler:
    def __init__(self, store, registry: DecoderRegistry):
        self.store = store
        self.registry = registry

    async def handle(self, req: ActionRequest) -> ActionResponse:
        try:
            instance = await self.store.instance_for_config_thing(req.thing_id)
            if instance is not None:
                logger.info("Thing %s is a config thing, performing config action %s", req.thing_id, req.action_id)
                return await self._config_action(instance.id, req)
            if not await self.store.thing_is_mapped(req.thing_id):
                logger.error("Action %s targets unknown thing %s", req.id, req.thing_id)
                return failed(req, "thing does not exist")
        except SQLAlchemyError:
            logger.exception("Querying database for action thing %s failed", req.thing_id)
            return failed(req, INTERNAL_ERROR)
        return await self._calibration_action(req)

    async def _calibration_action(self, req: ActionRequest) -> ActionResponse:
        action = CALIBRATION_ACTIONS.get(req.action_id)
        if action is None:
            logger.error("Unknown action %s for thing %s", req.action_id, req.thing_id)
            return failed(req, f"Unknown action {req.action_id!r}")

        raw = req.parameters.get(action.parameter, "")
        try:
            value = encode_fixed_point(raw.strip())
        except ValueError:
            return failed(
                req,
                f"Invalid parameter '{action.parameter}'. Needs to be {action.description} as float number",
            )

        try:
            await self.store.set_state(req.thing_id, action.state_key, value)
        except SQLAlchemyError:
            logger.exception("Failed to store %s for thing %s", action.state_key, req.thing_id)
            return failed(req, INTERNAL_ERROR)

        logger.info("Stored %s=%s for thing %s", action.state_key, raw, req.thing_id)
        return completed(req)

    async def _config_action(self, instance_id: str, req: ActionRequest) -> ActionResponse:
        if req.action_id != ADD_MAPPING_ACTION or req.component_id != CONFIG_COMPONENT:
            logger.error(
                "Invalid action %r on component %r, expected %r on %r",
                req.action_id, req.component_id, ADD_MAPPING_ACTION, CONFIG_COMPONENT,
            )
            return failed(req, "Invalid action or component ID")

        app_id_param = req.parameters.get("ApplicationId", "").strip()
        if not (app_id_param.isascii() and app_id_param.isdecimal()) or int(app_id_param) > UINT64_MAX:
            logger.error("Failed to parse application id %r", app_id_param)
            return failed(req, "Invalid LoRaWAN application id")
        application_id = int(app_id_param)

        decoder_name = req.parameters.get("PayloadDecoder", "").strip()
        if decoder_name not in self.registry:
            logger.error("Decoder %r not found, known decoders: %s", decoder_name, ", ".join(self.registry.names()))
            return failed(req, "Invalid decoder name")

        try:
            existing = await self.store.decoder_name_for_app(instance_id, application_id)
            if existing is not None:
                logger.error(
                    "Application %s in instance %s is already bound to decoder %s",
                    application_id, instance_id, existing,
                )
                return failed(req, f"Application {application_id} is already mapped to {existing}")
            await self.store.add_decoder_binding(instance_id, application_id, decoder_name)
        except SQLAlchemyError:
            logger.exception("Failed to create decoder config for application %s", application_id)
            return failed(req, INTERNAL_ERROR)

        logger.info("Bound application %s to decoder %s in instance %s", application_id, decoder_name, instance_id)
        return completed(req)
