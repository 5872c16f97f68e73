from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from .actions import ActionHandler
from .config import Settings
from .connctd import ConnctdClient
from .db import get_db
from .decoders.registry import DecoderRegistry
from .dispatcher import UplinkDispatcher
from .envelope import EnvelopeCodec
from .lifecycle import ConnectorService
from .store import Store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> DecoderRegistry:
    return request.app.state.registry


def get_platform_client(request: Request) -> ConnctdClient:
    return request.app.state.client


def get_store(db: AsyncSession = Depends(get_db)) -> Store:
    return Store(db)


def get_dispatcher(
    settings: Settings = Depends(get_settings),
    store: Store = Depends(get_store),
    client: ConnctdClient = Depends(get_platform_client),
    registry: DecoderRegistry = Depends(get_registry),
) -> UplinkDispatcher:
    return UplinkDispatcher(
        store,
        client,
        registry,
        EnvelopeCodec(use_json=settings.lorawan_json),
        timeout=settings.request_timeout,
    )


def get_action_handler(
    store: Store = Depends(get_store),
    registry: DecoderRegistry = Depends(get_registry),
) -> ActionHandler:
    return ActionHandler(store, registry)


def get_connector_service(
    settings: Settings = Depends(get_settings),
    store: Store = Depends(get_store),
    client: ConnctdClient = Depends(get_platform_client),
    registry: DecoderRegistry = Depends(get_registry),
) -> ConnectorService:
    return ConnectorService(store, client, registry, settings.http_host)
