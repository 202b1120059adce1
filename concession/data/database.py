# concession/data/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from concession.utils.settings import DATABASE_URL

Base = declarative_base()


def make_engine(url: str = DATABASE_URL, **kwargs):
    if url.startswith("sqlite"):
        # sessions are handed across FastAPI threadpool workers
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True, **kwargs)


engine = make_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(bind=None):
    # models must be registered on Base.metadata before create_all
    import concession.data.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
