# ─────────────────────────────────────────────────────────────────────────────
# Listing Store — append-only persistence of successful generations
# ─────────────────────────────────────────────────────────────────────────────
# Two backends behind one protocol:
#   - SQLListingStore: SQLAlchemy 2.0 async (sqlite+aiosqlite by default)
#   - InMemoryListingStore: list-backed, for tests and DB-less runs
# Neither exposes update or delete.
# ─────────────────────────────────────────────────────────────────────────────


import json
from datetime import datetime, timezone
from typing import Optional, Protocol

import structlog
from sqlalchemy import DateTime, Integer, String, Text, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from listing_service.exceptions import StorageError
from listing_service.schemas import GenerationRecord

logger = structlog.get_logger(__name__)

MAX_HISTORY_LIMIT = 50


def bounded_limit(limit: int) -> int:
    """Cap a recency query at ``MAX_HISTORY_LIMIT``; non-positive asks for nothing."""
    return max(0, min(MAX_HISTORY_LIMIT, int(limit)))


class ListingStore(Protocol):
    """Persistence contract used by the orchestrator."""

    @property
    def is_connected(self) -> bool: ...

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    async def append(self, record: GenerationRecord) -> GenerationRecord: ...

    async def list_recent(self, limit: int) -> list[GenerationRecord]: ...


# ── SQLAlchemy backend ───────────────────────────────────────────────────────


def _as_utc(value: datetime) -> datetime:
    """SQLite keeps no offset, so rows hold naive UTC wall time."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    pass


class GenerationRow(Base):
    """One row per successful generation; ``id`` orders recency."""

    __tablename__ = "generations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(), nullable=False)
    ip: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    locale: Mapped[str] = mapped_column(String(16), nullable=False)
    model: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    node: Mapped[str] = mapped_column(Text, default="")
    color: Mapped[str] = mapped_column(Text, default="")
    size_volume: Mapped[str] = mapped_column(Text, default="")
    capacity: Mapped[str] = mapped_column(Text, default="")
    weight: Mapped[str] = mapped_column(Text, default="")
    material: Mapped[str] = mapped_column(Text, default="")
    brand: Mapped[str] = mapped_column(Text, default="")
    title: Mapped[str] = mapped_column(Text, default="")
    bullets_json: Mapped[str] = mapped_column(Text, default="[]")

    @classmethod
    def from_record(cls, record: GenerationRecord) -> "GenerationRow":
        return cls(
            created_at=_as_utc(record.created_at).replace(tzinfo=None),
            ip=record.ip,
            locale=record.locale.value,
            model=record.model.value,
            name=record.name,
            node=record.node,
            color=record.color,
            size_volume=record.size_or_volume,
            capacity=record.capacity,
            weight=record.weight,
            material=record.material,
            brand=record.brand,
            title=record.title,
            bullets_json=json.dumps(record.bullets, ensure_ascii=False),
        )

    def to_record(self) -> GenerationRecord:
        return GenerationRecord(
            id=self.id,
            created_at=_as_utc(self.created_at),
            ip=self.ip,
            locale=self.locale,
            model=self.model,
            name=self.name,
            node=self.node or "",
            color=self.color or "",
            size_or_volume=self.size_volume or "",
            capacity=self.capacity or "",
            weight=self.weight or "",
            material=self.material or "",
            brand=self.brand or "",
            title=self.title or "",
            bullets=json.loads(self.bullets_json or "[]"),
        )


class SQLListingStore:
    """Append-only store on an async SQLAlchemy engine."""

    def __init__(self, database_url: str):
        self._database_url = database_url
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker | None = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    async def connect(self) -> None:
        """Create the engine and the ``generations`` table if missing."""
        self._engine = create_async_engine(self._database_url)
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("store_connected", backend="sql")

    async def disconnect(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessions = None

    def _session_factory(self) -> async_sessionmaker:
        if self._sessions is None:
            raise StorageError("access", "store is not connected")
        return self._sessions

    async def append(self, record: GenerationRecord) -> GenerationRecord:
        row = GenerationRow.from_record(record)
        try:
            async with self._session_factory()() as session:
                async with session.begin():
                    session.add(row)
                return record.model_copy(update={"id": row.id})
        except SQLAlchemyError as e:
            raise StorageError("append", str(e)) from e

    async def list_recent(self, limit: int) -> list[GenerationRecord]:
        limit = bounded_limit(limit)
        if limit == 0:
            return []
        stmt = select(GenerationRow).order_by(GenerationRow.id.desc()).limit(limit)
        try:
            async with self._session_factory()() as session:
                rows = (await session.scalars(stmt)).all()
        except SQLAlchemyError as e:
            raise StorageError("read", str(e)) from e
        return [row.to_record() for row in rows]


# ── In-memory backend ────────────────────────────────────────────────────────


class InMemoryListingStore:
    """List-backed store with the same contract as SQLListingStore."""

    def __init__(self) -> None:
        self._records: list[GenerationRecord] = []

    @property
    def is_connected(self) -> bool:
        return True

    async def connect(self) -> None:
        logger.info("store_connected", backend="memory")

    async def disconnect(self) -> None:
        return None

    async def append(self, record: GenerationRecord) -> GenerationRecord:
        stored = record.model_copy(update={"id": len(self._records) + 1})
        self._records.append(stored)
        return stored

    async def list_recent(self, limit: int) -> list[GenerationRecord]:
        limit = bounded_limit(limit)
        if limit == 0:
            return []
        return list(reversed(self._records[-limit:]))

    def __len__(self) -> int:
        return len(self._records)


def create_store(database_url: str, use_memory: bool = False) -> ListingStore:
    """Pick a backend from settings."""
    if use_memory:
        return InMemoryListingStore()
    return SQLListingStore(database_url)
