"""Two-tier persistence: a synchronous key-value mirror and a durable SQL record.

The key-value tier holds the whole snapshot under ``STORAGE_KEY`` and is
written through on every mutation. The durable tier keeps one record
(``RECORD_ID``) in the ``numbers`` table and is read last on startup, so it
wins on conflict. Failures on either tier are logged and never propagate.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Set

from sqlalchemy import JSON, Column, Integer, String
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from .models import GameSnapshot

logger = logging.getLogger(__name__)

STORAGE_KEY = "bingo-storage"
STORE_NAME = "numbers"
RECORD_ID = "gameState"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[Dict[str, Any]]: ...

    def set(self, key: str, value: Dict[str, Any]) -> None: ...


class DurableStore(Protocol):
    async def get(self, record_id: str) -> Optional[Dict[str, Any]]: ...

    async def put(self, record: Dict[str, Any]) -> None: ...

    async def close(self) -> None: ...


def _copy(data: Any) -> Any:
    return json.loads(json.dumps(data))  # deep copy via JSON


class MemoryKeyValueStore:
    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Any]] = {}

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        value = self._data.get(key)
        return _copy(value) if value is not None else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        self._data[key] = _copy(value)


class JsonFileKeyValueStore:
    """Key-value mapping kept as one JSON document, rewritten on every set."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"Top-level key-value document must be a mapping: {self.path}")
        return data

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        return self._read_all().get(key)

    def set(self, key: str, value: Dict[str, Any]) -> None:
        data = self._read_all()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        text = json.dumps(data, ensure_ascii=True, sort_keys=True, indent=2)
        # write beside the target, then swap it in so readers never see a partial file
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text + "\n")
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class MemoryDurableStore:
    def __init__(self) -> None:
        self.records: Dict[str, Dict[str, Any]] = {}

    async def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        record = self.records.get(record_id)
        return _copy(record) if record is not None else None

    async def put(self, record: Dict[str, Any]) -> None:
        self.records[record["id"]] = _copy(record)

    async def close(self) -> None:
        return None


class Base(DeclarativeBase):
    pass


class GameStateRecord(Base):
    __tablename__ = STORE_NAME
    id = Column(String, primary_key=True)
    drawn_numbers = Column(JSON, nullable=False)
    current_number = Column(Integer, nullable=True)
    max_number = Column(Integer, nullable=False)
    bingo_cards = Column(JSON, nullable=False)
    card_count = Column(Integer, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "drawnNumbers": self.drawn_numbers,
            "currentNumber": self.current_number,
            "maxNumber": self.max_number,
            "bingoCards": self.bingo_cards,
            "cardCount": self.card_count,
        }


class SqlDurableStore:
    """Durable tier on an async SQLAlchemy engine (``sqlite+aiosqlite`` by default)."""

    def __init__(self, url: str):
        self.url = url
        # connections are not reused, so the store survives separate event loops
        self._engine = create_async_engine(url=url, echo=False, poolclass=NullPool)
        self._session = async_sessionmaker(
            bind=self._engine, class_=AsyncSession, expire_on_commit=False
        )
        self._schema_ready = False

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self._schema_ready = True

    async def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        await self._ensure_schema()
        async with self._session() as session:
            row = await session.get(GameStateRecord, record_id)
            return row.to_dict() if row is not None else None

    async def put(self, record: Dict[str, Any]) -> None:
        await self._ensure_schema()
        async with self._session() as session:
            await session.merge(
                GameStateRecord(
                    id=record["id"],
                    drawn_numbers=list(record["drawnNumbers"]),
                    current_number=record.get("currentNumber"),
                    max_number=record["maxNumber"],
                    bingo_cards=list(record["bingoCards"]),
                    card_count=record["cardCount"],
                )
            )
            await session.commit()

    async def close(self) -> None:
        await self._engine.dispose()


class PersistenceGateway:
    def __init__(self, local: KeyValueStore, durable: DurableStore):
        self.local = local
        self.durable = durable
        self._pending: Set[asyncio.Task] = set()
        self._last_write: Optional[asyncio.Task] = None
        # set when a tier could not be read, as opposed to holding no record
        self.load_failed = False

    # --- reads ---

    def load_local(self) -> Optional[GameSnapshot]:
        try:
            raw = self.local.get(STORAGE_KEY)
            return GameSnapshot.from_dict(raw) if raw else None
        except Exception as exc:
            logger.error("Failed to load from key-value store: %s", exc)
            self.load_failed = True
            return None

    async def load_durable(self) -> Optional[GameSnapshot]:
        try:
            raw = await self.durable.get(RECORD_ID)
            return GameSnapshot.from_dict(raw) if raw else None
        except Exception as exc:
            logger.error("Failed to load from durable store: %s", exc)
            self.load_failed = True
            return None

    # --- writes ---

    def save_local(self, snapshot: GameSnapshot) -> None:
        try:
            self.local.set(STORAGE_KEY, snapshot.to_dict())
        except Exception as exc:
            logger.error("Failed to save to key-value store: %s", exc)

    async def save_durable(self, snapshot: GameSnapshot) -> None:
        record = {"id": RECORD_ID, **snapshot.to_dict()}
        try:
            await self.durable.put(record)
        except Exception as exc:
            logger.error("Failed to save to durable store: %s", exc)

    async def _write_after(self, previous: Optional[asyncio.Task], snapshot: GameSnapshot) -> None:
        # durable writes land in the order they were issued
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        await self.save_durable(snapshot)

    def _schedule_durable(self, snapshot: GameSnapshot) -> asyncio.Task:
        loop = asyncio.get_running_loop()
        previous = self._last_write
        if previous is not None and previous.get_loop() is not loop:
            previous = None
        task = loop.create_task(self._write_after(previous, snapshot))
        self._last_write = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def save(self, snapshot: GameSnapshot) -> None:
        """Write both tiers and wait for the durable write to finish."""
        self.save_local(snapshot)
        await self._schedule_durable(snapshot)

    def save_in_background(self, snapshot: GameSnapshot) -> None:
        """Write the key-value tier now; the durable write is fire-and-forget.

        Without a running event loop the durable write runs to completion here.
        """
        self.save_local(snapshot)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self.save_durable(snapshot))
            return
        self._schedule_durable(snapshot)
        logger.debug("Scheduled durable write (%d pending)", len(self._pending))

    async def flush(self) -> None:
        while self._pending:
            await asyncio.wait(list(self._pending))

    async def close(self) -> None:
        await self.flush()
        await self.durable.close()


def sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{Path(path)}"


def create_gateway(kv_path: Path, db_url: str) -> PersistenceGateway:
    """File-backed gateway; the key-value file's directory is created up front."""
    kv_path = Path(kv_path)
    kv_path.parent.mkdir(parents=True, exist_ok=True)
    return PersistenceGateway(JsonFileKeyValueStore(kv_path), SqlDurableStore(db_url))
