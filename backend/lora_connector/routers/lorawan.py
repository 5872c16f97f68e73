import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.exc import SQLAlchemyError

from ..deps import get_dispatcher, get_store
from ..dispatcher import UplinkDispatcher
from ..errors import DecodeError, EnvelopeError, IdentityResolutionError, UnknownEventError
from ..store import Store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lorawan", tags=["lorawan"])

MAX_BODY_SIZE = 1024 * 1024


async def _read_body(request: Request) -> bytes:
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > MAX_BODY_SIZE:
            raise HTTPException(status_code=400, detail="request body too large")
    return bytes(body)


@router.post("/{installation_id}/{instance_id}")
async def callback(
    installation_id: str,
    instance_id: str,
    request: Request,
    event: str = Query(""),
    store: Store = Depends(get_store),
    dispatcher: UplinkDispatcher = Depends(get_dispatcher),
):
    try:
        instance = await store.get_instance(instance_id)
    except SQLAlchemyError:
        logger.exception("Failed to look up instance %s", instance_id)
        raise HTTPException(status_code=500, detail="internal failure")
    if instance is None:
        logger.error("Callback for unknown instance %s (installation %s)", instance_id, installation_id)
        raise HTTPException(status_code=400, detail="invalid request")
    if instance.installation_id != installation_id:
        logger.error(
            "Installation id %s does not match stored installation %s for instance %s",
            installation_id, instance.installation_id, instance_id,
        )
        raise HTTPException(status_code=400, detail="invalid request")

    body = await _read_body(request)

    try:
        outcome = await dispatcher.handle(instance_id, instance.token, event, body)
    except (UnknownEventError, EnvelopeError) as exc:
        logger.error("Rejected %r callback for instance %s: %s", event, instance_id, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except asyncio.TimeoutError:
        logger.error("Handling %r callback for instance %s timed out", event, instance_id)
        raise HTTPException(status_code=504, detail="processing timed out")
    except (IdentityResolutionError, DecodeError) as exc:
        logger.error("Failed to process %r callback for instance %s: %s", event, instance_id, exc)
        raise HTTPException(status_code=500, detail=str(exc))
    except SQLAlchemyError:
        logger.exception("Database failure while processing callback for instance %s", instance_id)
        raise HTTPException(status_code=500, detail="internal failure")

    return {
        "ok": True,
        "status": outcome.status,
        "thing_id": outcome.thing_id,
        "updates": outcome.updates,
        "failed": outcome.failed,
    }
