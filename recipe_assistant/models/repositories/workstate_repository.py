"""
Workstate Repository - persistence for cooking sessions.

A workstate is stored as one JSON blob per member, the same way user
preferences are kept: the table knows nothing about the workstate's
shape, so the model can grow without migrations.

Both implementations raise PersistenceError for any storage failure,
including a stored payload that no longer parses. Callers decide whether
that blocks the session (it doesn't - see CookingService).
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Protocol

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from recipe_assistant.database import SessionLocal
from recipe_assistant.exceptions import PersistenceError
from recipe_assistant.models.entities import CookingWorkstateRecord
from recipe_assistant.models.workstate import CookingWorkstate

logger = logging.getLogger(__name__)


class WorkstateStore(Protocol):
    """Key-value store for workstates, keyed by member id."""

    def load(self, key: str) -> Optional[CookingWorkstate]:
        ...

    def save(self, key: str, workstate: CookingWorkstate) -> None:
        ...

    def clear(self, key: str) -> bool:
        ...


def _parse(key: str, payload: str) -> CookingWorkstate:
    try:
        return CookingWorkstate.from_json(payload)
    except ValidationError as e:
        logger.error(f"Stored workstate for {key} is corrupt: {e}")
        raise PersistenceError(f"Stored workstate for {key} could not be read") from e


class WorkstateRepository:
    """SQL-backed workstate store. Opens a short-lived session per call."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory or SessionLocal

    def load(self, key: str) -> Optional[CookingWorkstate]:
        """
        Get the saved workstate for a member.

        Returns:
            The workstate, or None when nothing is saved
        """
        db = self.session_factory()
        try:
            record = db.get(CookingWorkstateRecord, key)
            payload = record.Payload if record else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to load workstate for {key}: {e}")
            raise PersistenceError(f"Could not load workstate for {key}") from e
        finally:
            db.close()

        return _parse(key, payload) if payload is not None else None

    def save(self, key: str, workstate: CookingWorkstate) -> None:
        """Upsert the workstate for a member."""
        db = self.session_factory()
        try:
            record = db.get(CookingWorkstateRecord, key)
            if record:
                record.Payload = workstate.to_json()
                record.UpdatedAt = datetime.now(timezone.utc)
            else:
                record = CookingWorkstateRecord(
                    SessionKey=key,
                    Payload=workstate.to_json(),
                    UpdatedAt=datetime.now(timezone.utc),
                )
                db.add(record)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to save workstate for {key}: {e}")
            raise PersistenceError(f"Could not save workstate for {key}") from e
        finally:
            db.close()

    def clear(self, key: str) -> bool:
        """
        Delete the saved workstate.

        Returns:
            True if deleted, False if nothing was saved
        """
        db = self.session_factory()
        try:
            result = db.query(CookingWorkstateRecord).filter(
                CookingWorkstateRecord.SessionKey == key
            ).delete()
            db.commit()
            return result > 0
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to clear workstate for {key}: {e}")
            raise PersistenceError(f"Could not clear workstate for {key}") from e
        finally:
            db.close()


class InMemoryWorkstateRepository:
    """Process-local store. Keeps serialized copies so callers can't alias them."""

    def __init__(self):
        self._payloads: dict[str, str] = {}

    def load(self, key: str) -> Optional[CookingWorkstate]:
        payload = self._payloads.get(key)
        return _parse(key, payload) if payload is not None else None

    def save(self, key: str, workstate: CookingWorkstate) -> None:
        self._payloads[key] = workstate.to_json()

    def clear(self, key: str) -> bool:
        return self._payloads.pop(key, None) is not None

    def __contains__(self, key: str) -> bool:
        return key in self._payloads
