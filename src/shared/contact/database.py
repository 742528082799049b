"""Database models for shared contact form rate limiting."""

from functools import lru_cache

from sqlalchemy import Column, Float, Integer, String, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from src.shared.config.settings import get_database_url

Base = declarative_base()


class ContactRateLimit(Base):
    """Fixed-window hit counter for one rate limit key."""
    __tablename__ = "contact_rate_limits"

    key = Column(String, primary_key=True)  # "<limiter>:<ip>" or "<limiter>:<ip>-<email>"
    hits = Column(Integer, nullable=False, default=0)
    window_expires_at = Column(Float, nullable=False, index=True)  # epoch seconds


@lru_cache(maxsize=None)
def get_engine():
    database_url = get_database_url()
    engine_kwargs = {}
    if database_url.startswith("sqlite"):
        # Requests are handled on threadpool workers
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs["pool_pre_ping"] = True  # Verify connections before using
        engine_kwargs["pool_recycle"] = 3600  # Recycle connections after 1 hour
    return create_engine(database_url, **engine_kwargs)


def get_session_factory():
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def init_db(engine=None):
    """Create the rate limit table if it does not exist."""
    Base.metadata.create_all(bind=engine or get_engine(), checkfirst=True)
