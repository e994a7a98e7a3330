"""File-per-session JSON persistence layer."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from .models import AgentSession

logger = logging.getLogger(__name__)

_FILE_PREFIX = "session-"
_FILE_SUFFIX = ".json"


class SessionStore:
    """Persist each :class:`AgentSession` as one JSON document in a data directory.

    Writes are synchronous whole-file overwrites. I/O failures are logged and
    reported through the boolean return value; they never raise, so callers
    can keep their in-memory state even when the filesystem misbehaves.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def path_for(self, session_id: str) -> Path:
        safe_id = session_id.replace("/", "_").replace("\\", "_")
        return self._path / f"{_FILE_PREFIX}{safe_id}{_FILE_SUFFIX}"

    def load_all(self) -> dict[str, AgentSession]:
        """Deserialize every session file in the data directory.

        Files that cannot be read or validated are skipped with a warning.
        """

        sessions: dict[str, AgentSession] = {}
        if not self._path.is_dir():
            return sessions

        for path in sorted(self._path.glob(f"{_FILE_PREFIX}*{_FILE_SUFFIX}")):
            try:
                session = AgentSession.model_validate_json(path.read_bytes())
            except (OSError, UnicodeDecodeError, ValidationError) as exc:
                logger.warning(
                    "Skipping unreadable session file",
                    extra={"path": str(path), "error": str(exc)},
                )
                continue
            sessions[session.session_id] = session

        logger.debug("Loaded sessions", extra={"path": str(self._path), "count": len(sessions)})
        return sessions

    def save(self, session: AgentSession) -> bool:
        path = self.path_for(session.session_id)
        payload = session.model_dump(mode="json", by_alias=True)
        try:
            self._path.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.error(
                "Failed to persist session",
                extra={"session_id": session.session_id, "path": str(path), "error": str(exc)},
            )
            return False
        return True

    def delete(self, session_id: str) -> bool:
        path = self.path_for(session_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning(
                "Failed to delete session file",
                extra={"session_id": session_id, "path": str(path), "error": str(exc)},
            )
            return False
        return True


__all__ = ["SessionStore"]
