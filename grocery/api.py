import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .account import addresses_router, payment_methods_router
from .cart import router as cart_router
from .cart import wishlist_router
from .config import Settings
from .coupons import router as coupons_router
from .database import build_engine, build_session_factory, init_db
from .errors import GroceryError
from .main import router as auth_router
from .order import items_router as order_items_router
from .order import router as orders_router
from .store import banners_router, categories_router, products_router, reviews_router

logger = logging.getLogger(__name__)


async def grocery_error_handler(request: Request, exc: GroceryError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"kind": exc.kind, "detail": exc.detail},
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={"kind": "validation", "detail": jsonable_encoder(exc.errors())},
    )


def create_app(settings: Settings | None = None, engine=None) -> FastAPI:
    """
    Build the API.
    The engine and session factory are created here and live on app.state
    for the lifetime of the process.
    """
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = engine or build_engine(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        engine.dispose()

    app = FastAPI(title="Grocery Store", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    # Create database tables if they don't exist
    init_db(engine)

    app.add_exception_handler(GroceryError, grocery_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    for router in (
        auth_router,
        categories_router,
        products_router,
        cart_router,
        wishlist_router,
        addresses_router,
        payment_methods_router,
        orders_router,
        order_items_router,
        reviews_router,
        coupons_router,
        banners_router,
    ):
        app.include_router(router)

    logger.info("Grocery API ready")
    return app
