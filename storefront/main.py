# storefront/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import uvicorn

from storefront.data.database import Base, engine
from storefront.api.routers import admin, cart, health, orders
from storefront.utils.logging import get_logger

# import modeli przed create_all, zeby byly w Base.metadata
import storefront.data.models  # noqa: F401

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Models registered in Base.metadata: {list(Base.metadata.tables.keys())}")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")
    yield


async def validation_error_handler(request: Request, exc: RequestValidationError):
    # bledy walidacji body jak reszta bledow walidacji: 400
    return JSONResponse(status_code=400, content={"errors": jsonable_encoder(exc.errors())})


def create_app(init_db: bool = True) -> FastAPI:
    app = FastAPI(
        title="Storefront Service",
        version="1.0.0",
        lifespan=lifespan if init_db else None,
    )

    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(cart.router)
    app.include_router(orders.router)
    app.include_router(admin.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
