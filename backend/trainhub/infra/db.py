import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator

from sqlalchemy import DateTime, event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError, TimeoutError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator

from trainhub.domain.errors import ConflictError, StoreError

Base = declarative_base()

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime that always comes back as UTC, SQLite included."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):  # noqa: ANN001
        return ensure_utc(value)

    def process_result_value(self, value, dialect):  # noqa: ANN001
        return ensure_utc(value)


def _is_shared_memory(database_url: str) -> bool:
    url = make_url(database_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def _engine_kwargs(database_url: str, echo: bool) -> dict[str, Any]:
    url = make_url(database_url)
    engine_kwargs: dict[str, Any] = {"echo": echo}
    if url.get_backend_name() == "sqlite":
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if _is_shared_memory(database_url):
            # One shared connection, otherwise every checkout sees an empty database.
            engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs["pool_pre_ping"] = True
    return engine_kwargs


class TrainingStore:
    """Owns the engine and session factory for the training database.

    The store is constructed explicitly and passed to whatever needs it. Reads use
    ``session()``; every write unit goes through ``transaction()``, which holds a
    store-wide lock so two writes never interleave on the same rows.

    An in-memory SQLite store runs every session on one shared connection. Closing
    any session resets that connection, so there reads take the same lock as
    writes.
    """

    def __init__(self, database_url: str, *, echo: bool = False) -> None:
        self.database_url = database_url
        self.echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._write_lock = asyncio.Lock()
        self.serializes_reads = _is_shared_memory(database_url)

    @property
    def is_open(self) -> bool:
        return self._session_factory is not None

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise StoreError(detail="store_not_open")
        return self._session_factory

    async def open(self) -> None:
        if self._engine is not None:
            return
        self._engine = create_async_engine(
            self.database_url, **_engine_kwargs(self.database_url, self.echo)
        )
        _configure_logging(self._engine)
        self._session_factory = async_sessionmaker(
            self._engine,
            expire_on_commit=False,
            class_=AsyncSession,
        )
        logger.info("store_opened", extra={"extra": {"backend": self._engine.dialect.name}})

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("store_closed")

    async def create_all(self) -> None:
        # Registers every mapped table on Base.metadata.
        import trainhub.infra.models  # noqa: F401

        if self._engine is None:
            raise StoreError(detail="store_not_open")
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        async with self.session() as session:
            await session.execute(text("SELECT 1"))
        return True

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        factory = self.session_factory
        try:
            if self.serializes_reads:
                async with self._write_lock:
                    async with factory() as session:
                        yield session
            else:
                async with factory() as session:
                    yield session
        except SQLAlchemyError as exc:
            logger.warning("store_read_failed", extra={"extra": {"error_type": type(exc).__name__}})
            raise StoreError(detail="store_failure") from exc

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        factory = self.session_factory
        try:
            async with self._write_lock:
                async with factory() as session:
                    async with session.begin():
                        yield session
        except IntegrityError as exc:
            logger.warning("store_constraint_violation", extra={"extra": {"error": str(exc.orig)}})
            raise ConflictError(detail="constraint_violation") from exc
        except SQLAlchemyError as exc:
            logger.warning("store_write_failed", extra={"extra": {"error_type": type(exc).__name__}})
            raise StoreError(detail="store_failure") from exc


def _configure_logging(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "handle_error")
    def receive_error(context):  # noqa: ANN001
        exc = context.original_exception or context.sqlalchemy_exception
        if isinstance(exc, TimeoutError):
            logger.warning(
                "db_pool_timeout",
                extra={"extra": {"operation": str(context.statement) if context.statement else None}},
            )
