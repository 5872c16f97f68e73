import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..actions import ActionHandler
from ..deps import get_action_handler, get_connector_service
from ..lifecycle import ConnectorService, InstanceSetupError
from ..schemas import ActionRequest, ActionResponse, InstallationRequest, InstantiationRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/connector", tags=["connector"])


@router.post("/installations", status_code=status.HTTP_201_CREATED)
async def add_installation(req: InstallationRequest, service: ConnectorService = Depends(get_connector_service)):
    try:
        await service.add_installation(req)
    except IntegrityError:
        logger.error("Installation %s already exists", req.id)
        raise HTTPException(status_code=409, detail="installation already exists")
    except SQLAlchemyError:
        logger.exception("Failed to add installation %s", req.id)
        raise HTTPException(status_code=500, detail="failed to add installation")
    return {"ok": True}


@router.post("/instances", status_code=status.HTTP_201_CREATED)
async def add_instance(req: InstantiationRequest, service: ConnectorService = Depends(get_connector_service)):
    try:
        instance = await service.add_instance(req)
    except InstanceSetupError as exc:
        logger.error("Failed to add instance %s: %s", req.id, exc)
        raise HTTPException(status_code=500, detail=str(exc))
    except SQLAlchemyError:
        logger.exception("Failed to add instance %s", req.id)
        raise HTTPException(status_code=500, detail="failed to add instance")
    return {"ok": True, "config_thing_id": instance.config_thing_id}


@router.post("/actions", response_model=ActionResponse)
async def perform_action(req: ActionRequest, handler: ActionHandler = Depends(get_action_handler)):
    resp = await handler.handle(req)
    resp.id = req.id
    return resp
