"""Local key-value cache.

JSON-serializable values stored under string keys in a single SQLite
table. Writes replace the previous value for a key (last writer wins).

A file that is not a usable database is replaced with an empty cache, or
with an in-memory one if it cannot be replaced. Failed reads count as
"nothing stored"; failed writes raise ``CacheUnavailableError``.
"""

import json
from pathlib import Path
from typing import Any, Optional

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from repolens.exceptions import CacheDecodeError, CacheUnavailableError
from repolens.models import CacheEntry, utcnow


logger = structlog.get_logger(__name__)


def get_engine(path: Path) -> Engine:
    """Create an engine for the cache database at ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(f"sqlite:///{path}", echo=False)


class KeyValueCache:
    """JSON blobs keyed by string, backed by SQLModel."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        SQLModel.metadata.create_all(engine, tables=[CacheEntry.__table__])

    @classmethod
    def from_path(cls, path: Path) -> "KeyValueCache":
        """Open the cache at ``path``, starting over if the file is unusable."""
        try:
            return cls._open(path)
        except SQLAlchemyError as e:
            logger.warning("cache_unavailable", path=str(path), error=str(e), action="recreate")

        try:
            path.unlink(missing_ok=True)
            return cls._open(path)
        except (OSError, SQLAlchemyError) as e:
            logger.warning("cache_unavailable", path=str(path), error=str(e), action="memory")
        return cls.in_memory()

    @classmethod
    def _open(cls, path: Path) -> "KeyValueCache":
        engine = get_engine(path)
        try:
            return cls(engine)
        except SQLAlchemyError:
            engine.dispose()
            raise

    @classmethod
    def in_memory(cls) -> "KeyValueCache":
        """Create a throwaway cache sharing one in-memory connection."""
        engine = create_engine(
            "sqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        return cls(engine)

    def get_raw(self, key: str) -> Optional[str]:
        """Return the stored text for ``key`` without decoding it."""
        try:
            with Session(self.engine) as session:
                entry = session.get(CacheEntry, key)
                return entry.value if entry else None
        except SQLAlchemyError as e:
            logger.warning("cache_unavailable", key=key, error=str(e), action="read")
            return None

    def load(self, key: str) -> Any:
        """Decode the value stored under ``key``.

        Returns:
            The decoded value, or None when nothing is stored.

        Raises:
            CacheDecodeError: If the stored text is not valid JSON.
        """
        raw = self.get_raw(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise CacheDecodeError(key, str(e)) from e

    def get(self, key: str, default: Any = None) -> Any:
        """Like ``load`` but an unreadable value counts as absent."""
        try:
            value = self.load(key)
        except CacheDecodeError as e:
            logger.warning("cache_decode_failed", key=key, error=str(e))
            return default
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        """Serialize ``value`` to JSON and store it under ``key``."""
        self.set_raw(key, json.dumps(value))

    def set_raw(self, key: str, text: str) -> None:
        try:
            with Session(self.engine) as session:
                entry = session.get(CacheEntry, key)
                if entry is None:
                    entry = CacheEntry(key=key, value=text)
                else:
                    entry.value = text
                    entry.updated_at = utcnow()
                session.add(entry)
                session.commit()
        except SQLAlchemyError as e:
            raise CacheUnavailableError("write", str(e)) from e
        logger.debug("cache_written", key=key, size=len(text))

    def delete(self, key: str) -> bool:
        """Remove ``key``; returns whether anything was stored."""
        try:
            with Session(self.engine) as session:
                entry = session.get(CacheEntry, key)
                if entry is None:
                    return False
                session.delete(entry)
                session.commit()
        except SQLAlchemyError as e:
            raise CacheUnavailableError("delete", str(e)) from e
        return True

    def clear(self) -> None:
        """Remove every key."""
        try:
            with Session(self.engine) as session:
                for entry in session.exec(select(CacheEntry)).all():
                    session.delete(entry)
                session.commit()
        except SQLAlchemyError as e:
            raise CacheUnavailableError("clear", str(e)) from e

    def keys(self) -> list[str]:
        try:
            with Session(self.engine) as session:
                return list(session.exec(select(CacheEntry.key).order_by(CacheEntry.key)).all())
        except SQLAlchemyError as e:
            logger.warning("cache_unavailable", error=str(e), action="read")
            return []

    def close(self) -> None:
        self.engine.dispose()
