"""FastAPI приложение (роутеры + логирование)."""

from fastapi import FastAPI

from lexi_gateway import __version__
from lexi_gateway.api.v1 import router as v1_router
from lexi_gateway.api.well_known import router as well_known_router
from lexi_gateway.infrastructure.logging import configure_logging


def create_app() -> FastAPI:
    """Собирает FastAPI приложение."""
    configure_logging()

    app = FastAPI(title="Lexi Gateway", version=__version__)

    app.include_router(well_known_router)
    app.include_router(v1_router, prefix="/v1")
    return app


app = create_app()
