# concession/repos/factory.py
from sqlalchemy.orm import Session

from concession.repos.account_repo import SqlAccountRepo
from concession.repos.base import Repositories
from concession.repos.memory import MemoryAccountRepo, MemoryOrderRepo, MemoryProductRepo, MemoryStore
from concession.repos.order_repo import SqlOrderRepo
from concession.repos.product_repo import SqlProductRepo
from concession.utils.settings import STORAGE_BACKEND

SQL_BACKEND = "sql"
MEMORY_BACKEND = "memory"


def build_repositories(
    backend: str = STORAGE_BACKEND,
    db: Session | None = None,
    store: MemoryStore | None = None,
) -> Repositories:
    """
    Wires the repositories of the configured storage backend.
    SQL needs a Session, memory needs the (process-wide) MemoryStore.
    """
    if backend == SQL_BACKEND:
        if db is None:
            raise ValueError("The sql storage backend needs a database session")
        return Repositories(
            accounts=SqlAccountRepo(db),
            products=SqlProductRepo(db),
            orders=SqlOrderRepo(db),
        )

    if backend == MEMORY_BACKEND:
        if store is None:
            raise ValueError("The memory storage backend needs a MemoryStore")
        return Repositories(
            accounts=MemoryAccountRepo(store),
            products=MemoryProductRepo(store),
            orders=MemoryOrderRepo(store),
        )

    raise ValueError(f"Unknown storage backend: {backend!r}")
