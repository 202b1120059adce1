# concession/api/deps.py
from functools import lru_cache

from fastapi import Depends

from concession.data.database import SessionLocal
from concession.repos.base import Repositories
from concession.repos.factory import MEMORY_BACKEND, SQL_BACKEND, build_repositories
from concession.repos.memory import MemoryStore
from concession.services.account_service import AccountService
from concession.services.catalog_service import CatalogCache, CatalogService
from concession.services.delivery_wizard import DeliveryWizard
from concession.services.fulfillment_router import FulfillmentRouter
from concession.services.notification_service import NotificationService
from concession.services.order_engine import OrderEngine
from concession.services.product_client import ProductClient
from concession.services.wizard_store import WizardStore, build_wizard_store
from concession.utils.settings import CATALOG_SOURCE, STORAGE_BACKEND

# process-wide state; everything else is built per request
memory_store = MemoryStore()
catalog_cache = CatalogCache()


def get_repositories():
    if STORAGE_BACKEND == MEMORY_BACKEND:
        yield build_repositories(MEMORY_BACKEND, store=memory_store)
        return

    db = SessionLocal()
    try:
        yield build_repositories(SQL_BACKEND, db=db)
    finally:
        db.close()


def get_notifier() -> NotificationService:
    return NotificationService()


@lru_cache(maxsize=1)
def get_wizard_store() -> WizardStore:
    return build_wizard_store()


def get_engine(
    repos: Repositories = Depends(get_repositories),
    notifier=Depends(get_notifier),
) -> OrderEngine:
    return OrderEngine(repos, notifier=notifier)


def get_fulfillment(repos: Repositories = Depends(get_repositories)) -> FulfillmentRouter:
    return FulfillmentRouter(repos.orders)


def get_account_service(repos: Repositories = Depends(get_repositories)) -> AccountService:
    return AccountService(repos.accounts)


def get_catalog(repos: Repositories = Depends(get_repositories)) -> CatalogService:
    source = ProductClient() if CATALOG_SOURCE == "http" else repos.products
    return CatalogService(source, catalog_cache)


def get_wizard(
    store: WizardStore = Depends(get_wizard_store),
    engine: OrderEngine = Depends(get_engine),
) -> DeliveryWizard:
    return DeliveryWizard(store, engine)
