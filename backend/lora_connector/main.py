import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from lora_connector.config import Settings, configure_logging, load_settings
from lora_connector.connctd import ConnctdClient
from lora_connector.decoders.registry import default_registry
from lora_connector.routers import connector, lorawan

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        # a DuplicateDecoderError here aborts startup
        app.state.registry = default_registry()
        app.state.settings = settings
        app.state.client = ConnctdClient(settings.connctd_base_url, timeout=settings.platform_timeout)
        if not settings.http_host:
            logger.warning("LORACONN_HTTP_HOST is not set, new instances cannot be provisioned")
        logger.info("Registered payload decoders: %s", ", ".join(app.state.registry.names()))
        try:
            yield
        finally:
            await app.state.client.aclose()

    app = FastAPI(title="LoRaWAN connector", lifespan=lifespan)

    # 路由注册
    app.include_router(lorawan.router)
    app.include_router(connector.router)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("lora_connector.main:app", host="0.0.0.0", port=8000, reload=True)
