"""
MAMACARE Storage Manager

Local file storage for finalized exercise session records (fallback for the
external session store). One JSON document per session, grouped by user.
"""

import json
import logging
from pathlib import Path
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from dataclasses import dataclass

from core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class StoredRecord:
    """Represents a stored session record with metadata."""
    session_id: str
    user_id: str
    path: str
    size_bytes: int
    created_at: datetime


class LocalSessionStorage:
    """
    Local exercise-session storage.

    Stores records under <base_path>/exercise_sessions/<user_id>/.
    Any object exposing ``save_exercise_session`` can stand in for it.
    """

    CATEGORY = "exercise_sessions"

    def __init__(self, base_path: Optional[str] = None):
        """
        Initialize local storage.

        Args:
            base_path: Base directory for storage. Defaults to settings.LOCAL_MEDIA_PATH
        """
        self.base_path = Path(base_path or settings.LOCAL_MEDIA_PATH)
        self.sessions_path = self.base_path / self.CATEGORY
        self.sessions_path.mkdir(parents=True, exist_ok=True)

        logger.info(f"📁 LocalSessionStorage initialized at: {self.sessions_path}")

    @staticmethod
    def _path_segment(value: str, label: str) -> str:
        # ids come from the caller and must stay a single path segment
        segment = str(value).replace("/", "_").replace("\\", "_")
        if segment in ("", ".", ".."):
            raise ValueError(f"Invalid {label}: {value!r}")
        return segment

    def _user_dir(self, user_id: str) -> Path:
        return self.sessions_path / self._path_segment(user_id, "user_id")

    def _session_file(self, user_id: str, session_id: str) -> Path:
        return self._user_dir(user_id) / f"{self._path_segment(session_id, 'session_id')}.json"

    def save_exercise_session(
        self,
        user_id: str,
        session_id: str,
        record: Dict[str, Any]
    ) -> StoredRecord:
        """
        Persist a finalized session record.

        Args:
            user_id: Owner of the session
            session_id: Session identifier, used as the file name
            record: Storage-shaped record (exerciseType, duration, reps, ...)

        Returns:
            StoredRecord describing the written document
        """
        file_path = self._session_file(user_id, session_id)
        created_at = datetime.now(timezone.utc)
        document = {
            "sessionId": session_id,
            "userId": user_id,
            "createdAt": created_at.isoformat(),
            **record,
        }

        file_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            payload = json.dumps(document, indent=2)
            file_path.write_text(payload, encoding="utf-8")
        except OSError as e:
            logger.error(f"❌ Failed to save session {session_id}: {e}")
            raise

        stored = StoredRecord(
            session_id=session_id,
            user_id=user_id,
            path=str(file_path),
            size_bytes=len(payload.encode("utf-8")),
            created_at=created_at,
        )
        logger.info(f"✅ Saved exercise session {session_id} for user {user_id} -> {file_path}")
        return stored

    def list_exercise_sessions(self, user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Return a user's stored sessions, newest first."""
        user_dir = self._user_dir(user_id)
        if not user_dir.exists():
            return []

        documents = []
        for file_path in user_dir.glob("*.json"):
            with open(file_path, "r", encoding="utf-8") as f:
                documents.append(json.load(f))

        documents.sort(key=lambda d: d.get("createdAt", ""), reverse=True)
        return documents[:limit]

    def get_exercise_session(self, user_id: str, session_id: str) -> Optional[Dict[str, Any]]:
        """Load one stored session, or None if it was never saved."""
        file_path = self._session_file(user_id, session_id)
        if not file_path.exists():
            return None
        with open(file_path, "r", encoding="utf-8") as f:
            return json.load(f)


# Global storage instance
_storage_manager: Optional[LocalSessionStorage] = None


def get_storage() -> LocalSessionStorage:
    """Get the global session storage instance."""
    global _storage_manager

    if _storage_manager is None:
        _storage_manager = LocalSessionStorage()

    return _storage_manager
