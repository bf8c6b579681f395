"""Structured security events.

Token material never reaches a log record. Only the fixed public prefix of a
PAT is logged.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Final

from reqtrack.auth._tokens import PAT_PREFIX

if TYPE_CHECKING:
    from uuid import UUID

    from structlog.typing import FilteringBoundLogger

__all__ = ["SecurityEvent", "SecurityLogger"]


class SecurityEvent(StrEnum):
    AUTH_ATTEMPT = "auth_attempt"
    AUTH_SUCCESS = "auth_success"
    AUTH_FAILURE = "auth_failure"
    PAT_CREATED = "pat_created"
    PAT_REVOKED = "pat_revoked"
    PAT_AUTH_SUCCESS = "pat_auth_success"
    PAT_AUTH_FAILURE = "pat_auth_failure"
    PAT_EXPIRED = "pat_expired"
    PAT_CLEANUP_EXPIRED = "pat_cleanup_expired"
    REFRESH_ROTATED = "refresh_rotated"


class SecurityLogger:
    """Thin wrapper that fixes the event vocabulary of the security log."""

    __slots__: Final = ("_logger",)

    _logger: FilteringBoundLogger | None

    def __init__(self, logger: FilteringBoundLogger | None = None) -> None:
        self._logger = logger

    def _emit(self, event: SecurityEvent, *, warning: bool = False, **fields: object) -> None:
        if self._logger is None:
            return
        if warning:
            self._logger.warning(event.value, **fields)
        else:
            self._logger.info(event.value, **fields)

    def auth_attempt(self, username: str) -> None:
        self._emit(SecurityEvent.AUTH_ATTEMPT, username=username)

    def auth_success(self, user_id: UUID, username: str) -> None:
        self._emit(SecurityEvent.AUTH_SUCCESS, user_id=str(user_id), username=username)

    def auth_failure(self, reason: str, *, username: str | None = None) -> None:
        self._emit(
            SecurityEvent.AUTH_FAILURE, warning=True, reason=reason, username=username
        )

    def pat_created(self, user_id: UUID, pat_id: UUID, name: str) -> None:
        self._emit(
            SecurityEvent.PAT_CREATED,
            user_id=str(user_id),
            pat_id=str(pat_id),
            name=name,
            prefix=PAT_PREFIX,
        )

    def pat_revoked(self, user_id: UUID, pat_id: UUID) -> None:
        self._emit(SecurityEvent.PAT_REVOKED, user_id=str(user_id), pat_id=str(pat_id))

    def pat_auth_success(self, user_id: UUID, pat_id: UUID) -> None:
        self._emit(
            SecurityEvent.PAT_AUTH_SUCCESS,
            user_id=str(user_id),
            pat_id=str(pat_id),
            prefix=PAT_PREFIX,
        )

    def pat_auth_failure(self, reason: str) -> None:
        self._emit(
            SecurityEvent.PAT_AUTH_FAILURE, warning=True, reason=reason, prefix=PAT_PREFIX
        )

    def pat_expired(self, user_id: UUID, pat_id: UUID) -> None:
        self._emit(
            SecurityEvent.PAT_EXPIRED,
            warning=True,
            user_id=str(user_id),
            pat_id=str(pat_id),
            prefix=PAT_PREFIX,
        )

    def pat_cleanup_expired(self, count: int) -> None:
        self._emit(SecurityEvent.PAT_CLEANUP_EXPIRED, count=count)

    def refresh_rotated(self, user_id: UUID) -> None:
        self._emit(SecurityEvent.REFRESH_ROTATED, user_id=str(user_id))
