"""reqtrack exceptions.

Every error raised by the service layer belongs to a closed taxonomy of
``ErrorKind`` values. Boundary handlers translate the kind into a transport
code (HTTP status or JSON-RPC error code) and render ``code`` verbatim.
"""

from enum import StrEnum
from typing import ClassVar


class ErrorKind(StrEnum):
    """Closed set of error kinds surfaced to clients."""

    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    CONFLICT_DUPLICATE = "conflict_duplicate"
    CONFLICT_IN_USE = "conflict_in_use"
    INTERNAL = "internal"


class ReqtrackError(Exception):
    """Base exception for reqtrack errors.

    Attributes:
        kind: The taxonomy kind, which determines the transport status.
        code: Stable machine-readable code rendered in error envelopes.
        details: Optional supplementary text for clients.
    """

    kind: ClassVar[ErrorKind] = ErrorKind.INTERNAL
    default_code: ClassVar[str | None] = None

    def __init__(
        self, message: str, *, details: str | None = None, code: str | None = None
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.details: str | None = details
        self.code: str = code or self.default_code or self.kind.value


# =============================================================================
# Not Found
# =============================================================================


class NotFoundError(ReqtrackError, KeyError):
    """Raised when an entity lookup by id or reference returns nothing.

    Attributes:
        entity_type: The kind of entity that was looked up.
        identifier: The identifier that was not found.
    """

    kind: ClassVar[ErrorKind] = ErrorKind.NOT_FOUND

    def __init__(
        self,
        message: str,
        *,
        entity_type: str | None = None,
        identifier: str | None = None,
    ) -> None:
        super().__init__(message)
        self.entity_type: str | None = entity_type
        self.identifier: str | None = identifier

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.message


# =============================================================================
# Validation
# =============================================================================


class ValidationError(ReqtrackError, ValueError):
    """Raised when input is malformed or violates a field constraint.

    Attributes:
        field: The offending field, when known.
    """

    kind: ClassVar[ErrorKind] = ErrorKind.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: str | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message, details=details, code=code)
        self.field: str | None = field


class TemplateValidationError(ValidationError):
    """Raised when a user story description does not follow the template."""


class TextFragmentValidationError(ValidationError):
    """Raised when an inline comment anchor does not match its description."""

    default_code: ClassVar[str | None] = "text_fragment_validation_failed"


class InvalidStatusError(ValidationError):
    """Raised when a status name is not part of the entity's status model.

    Attributes:
        status: The rejected status name.
    """

    default_code: ClassVar[str | None] = "invalid_status"

    def __init__(self, message: str, *, status: str) -> None:
        super().__init__(message, field="status")
        self.status: str = status


# =============================================================================
# Authentication / Authorization
# =============================================================================


class AuthenticationError(ReqtrackError):
    """Raised when a request carries missing, invalid or expired credentials."""

    kind: ClassVar[ErrorKind] = ErrorKind.UNAUTHENTICATED


class InvalidCredentialsError(AuthenticationError):
    """Raised on a failed login. Never says which half was wrong."""

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class TokenExpiredError(AuthenticationError):
    """Raised when a bearer token or PAT is past its expiry."""

    default_code: ClassVar[str | None] = "TOKEN_EXPIRED"


class InvalidTokenError(AuthenticationError):
    """Raised when a bearer token or PAT cannot be verified."""

    default_code: ClassVar[str | None] = "INVALID_TOKEN"


class InvalidRefreshTokenError(AuthenticationError):
    """Raised when a refresh token is unknown, rotated away or expired."""

    default_code: ClassVar[str | None] = "INVALID_REFRESH_TOKEN"

    def __init__(self, message: str = "Invalid or expired refresh token") -> None:
        super().__init__(message)


class ForbiddenError(ReqtrackError):
    """Raised when the principal's role rank is insufficient."""

    kind: ClassVar[ErrorKind] = ErrorKind.FORBIDDEN


class InvalidTransitionError(ForbiddenError):
    """Raised when a status transition is not allowed by the workflow.

    Attributes:
        entity_type: The entity type whose workflow rejected the change.
        from_status: The current status.
        to_status: The requested status.
    """

    default_code: ClassVar[str | None] = "forbidden_invalid_transition"

    def __init__(
        self, message: str, *, entity_type: str, from_status: str, to_status: str
    ) -> None:
        super().__init__(message)
        self.entity_type: str = entity_type
        self.from_status: str = from_status
        self.to_status: str = to_status


# =============================================================================
# Conflicts
# =============================================================================


class DuplicateError(ReqtrackError):
    """Raised on a unique-key collision."""

    kind: ClassVar[ErrorKind] = ErrorKind.CONFLICT_DUPLICATE


class InUseError(ReqtrackError):
    """Raised when a deletion is blocked by references or an invariant."""

    kind: ClassVar[ErrorKind] = ErrorKind.CONFLICT_IN_USE


class LastAcceptanceCriteriaError(InUseError):
    """Raised when an operation would leave a user story without any AC."""

    def __init__(
        self, message: str = "User story must have at least one acceptance criteria"
    ) -> None:
        super().__init__(message, details="conflict_last_acceptance_criteria")


# =============================================================================
# Internal
# =============================================================================


class StoreError(ReqtrackError):
    """Raised for unexpected persistence failures. Never carries driver text."""


class ConfigError(ReqtrackError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed.

    Attributes:
        path: The offending file, when known.
        line: Line number of a parse error.
        column: Column number of a parse error.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        super().__init__(message)
        self.path: str | None = path
        self.line: int | None = line
        self.column: int | None = column
