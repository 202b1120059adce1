# concession/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from concession.api.deps import memory_store
from concession.api.errors import engine_error_handler
from concession.api.routers import accounts, carts, catalog, health, orders, staff, wizard
from concession.data.database import SessionLocal, init_db
from concession.data.seed import seed_catalog
from concession.domain.errors import OrderEngineError
from concession.repos.factory import MEMORY_BACKEND, SQL_BACKEND, build_repositories
from concession.utils.logging import get_logger
from concession.utils.settings import STORAGE_BACKEND

logger = get_logger(__name__)


def prepare_storage(backend: str = STORAGE_BACKEND) -> None:
    """Creates the schema (sql only) and seeds an empty catalog."""
    if backend == MEMORY_BACKEND:
        seed_catalog(build_repositories(MEMORY_BACKEND, store=memory_store).products)
        return

    init_db()
    logger.info("Database tables ready")

    db = SessionLocal()
    try:
        seed_catalog(build_repositories(SQL_BACKEND, db=db).products)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    prepare_storage()
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Concession Ordering Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(OrderEngineError, engine_error_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(accounts.router)
    app.include_router(catalog.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(staff.router)
    app.include_router(wizard.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
