"""Actor session with durable local storage.

The logged-in actor is stored as one JSON object under a fixed key, in the
same layout browser local storage used: `{id, name, email, role, branchId,
branchIds}`. A missing or malformed entry means "logged out".
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Final, Optional, Protocol

from pydantic import ValidationError

from authz.core.config import DEFAULT_LOGIN_TIMEOUT
from authz.core.logs import log_event
from authz.repositories.employee_repo import EmployeeRecord
from authz.schemas.authz import Actor
from authz.security.errors import AuthError, AuthFailure
from authz.services.sources import EmployeeDirectory


logger = logging.getLogger(__name__)

SESSION_STORAGE_KEY: Final[str] = "user"


class SessionStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class FileSessionStorage:
    """Key/value storage in a single JSON file.

    Writes go to a temporary file in the same directory followed by
    `os.replace`, so a reader sees either the previous complete file or the
    new one.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        try:
            content = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            log_event(logger, "session_storage_unreadable", level=logging.WARNING, error=e.__class__.__name__)
            return {}
        try:
            data = json.loads(content)
        except ValueError:
            log_event(logger, "session_storage_corrupt", level=logging.WARNING, path=str(self._path))
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(k, str) and isinstance(v, str)}

    def _write_all(self, data: dict[str, str]) -> None:
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=directory, prefix=".session-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self._path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if key not in data:
                return
            del data[key]
            self._write_all(data)


class ActorSession:
    def __init__(
        self,
        directory: EmployeeDirectory,
        storage: SessionStorage,
        *,
        login_timeout: float = DEFAULT_LOGIN_TIMEOUT,
        storage_key: str = SESSION_STORAGE_KEY,
    ) -> None:
        self._directory = directory
        self._storage = storage
        self._login_timeout = login_timeout
        self._key = storage_key
        self._actor: Optional[Actor] = None

    def current(self) -> Optional[Actor]:
        return self._actor

    def rehydrate(self) -> Optional[Actor]:
        """Restore the actor persisted by a previous process, if any."""
        try:
            raw = self._storage.get_item(self._key)
        except OSError as e:
            log_event(logger, "session_rehydrate_failed", level=logging.WARNING, error=e.__class__.__name__)
            raw = None
        if raw is None:
            self._actor = None
            return None
        try:
            actor = Actor.model_validate_json(raw)
        except ValidationError:
            log_event(logger, "session_entry_discarded", level=logging.WARNING, reason="malformed")
            self._actor = None
            self._forget()
            return None
        self._actor = actor
        log_event(logger, "session_rehydrated", actor_id=actor.id, role=actor.role)
        return actor

    @property
    def directory(self) -> EmployeeDirectory:
        return self._directory

    async def login(self, identifier: str, secret: str) -> Actor:
        """Authenticate and start a session. Raises AuthError on failure."""
        actor = await self.authenticate(identifier, secret)
        self._actor = actor
        self._persist(actor)
        return actor

    async def authenticate(self, identifier: str, secret: str) -> Actor:
        """Verify credentials and build the Actor without starting a session.

        Used by the HTTP surface, where each request carries its own token.
        Raises AuthError on failure.
        """
        if not identifier or not identifier.strip() or not secret:
            raise AuthError(AuthFailure.INVALID_CREDENTIALS)

        try:
            record = await asyncio.wait_for(self._authenticate(identifier, secret), timeout=self._login_timeout)
        except asyncio.TimeoutError as e:
            log_event(logger, "login_failed", level=logging.WARNING, reason=AuthFailure.TIMEOUT.value)
            raise AuthError(AuthFailure.TIMEOUT) from e
        except Exception as e:  # noqa: BLE001
            log_event(
                logger,
                "login_failed",
                level=logging.WARNING,
                reason=AuthFailure.UNAVAILABLE.value,
                error=e.__class__.__name__,
            )
            raise AuthError(AuthFailure.UNAVAILABLE) from e

        if record is None:
            log_event(logger, "login_failed", level=logging.INFO, reason=AuthFailure.INVALID_CREDENTIALS.value)
            raise AuthError(AuthFailure.INVALID_CREDENTIALS)
        if not record.is_active:
            log_event(
                logger,
                "login_failed",
                level=logging.INFO,
                reason=AuthFailure.INACTIVE_ACCOUNT.value,
                actor_id=record.id,
            )
            raise AuthError(AuthFailure.INACTIVE_ACCOUNT)

        actor = Actor(
            id=record.id,
            name=record.name,
            email=record.email,
            role=record.role,
            branch_id=record.branch_id,
            branch_ids=record.branch_ids,
        )
        log_event(logger, "login_succeeded", actor_id=actor.id, role=actor.role, branches=len(actor.branch_ids))
        return actor

    async def _authenticate(self, identifier: str, secret: str) -> Optional[EmployeeRecord]:
        record = await self._directory.authenticate(identifier.strip(), secret)
        if record is None or not record.is_active:
            return record
        branch_ids = await self._directory.get_branch_ids(record.id)
        return dataclasses.replace(record, branch_ids=tuple(branch_ids))

    def logout(self) -> None:
        previous = self._actor
        self._actor = None
        self._forget()
        log_event(logger, "logout", actor_id=previous.id if previous else None)

    def _persist(self, actor: Actor) -> None:
        try:
            self._storage.set_item(self._key, json.dumps(actor.to_storage()))
        except OSError as e:
            # The in-memory session stays valid; it just will not survive a restart.
            log_event(logger, "session_persist_failed", level=logging.ERROR, error=e.__class__.__name__)

    def _forget(self) -> None:
        try:
            self._storage.remove_item(self._key)
        except OSError as e:
            log_event(logger, "session_clear_failed", level=logging.ERROR, error=e.__class__.__name__)
