from __future__ import annotations

import ssl

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from ledger_mirror.core.config import DatabaseSettings


class Base(DeclarativeBase):
    pass


def build_engine(settings: DatabaseSettings) -> AsyncEngine:
    url = make_url(settings.sqlalchemy_url())
    if url.get_backend_name() != "postgresql":
        return create_async_engine(url, pool_pre_ping=True)

    connect_args: dict[str, object] = {"timeout": settings.connection_timeout_secs}
    if settings.ca_cert:
        connect_args["ssl"] = ssl.create_default_context(cafile=settings.ca_cert)
    return create_async_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.max_connections,
        max_overflow=0,
        pool_timeout=settings.connection_timeout_secs,
        connect_args=connect_args,
    )
