"""Custom exceptions for the Raid Ledger backend.

Every exception carries an HTTP status and a stable error code so the API
layer can render it without knowing where it came from.
"""

from typing import Any


class LedgerException(Exception):
    """Base exception class for the Raid Ledger backend."""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# Generic Exceptions
class NotFoundError(LedgerException):
    """Generic exception for when a resource is not found."""

    def __init__(self, message: str, error_code: str = "NOT_FOUND", details: dict[str, Any] | None = None):
        super().__init__(message=message, error_code=error_code, status_code=404, details=details)


class ConflictError(LedgerException):
    """Operation is invalid in the resource's current state."""

    def __init__(
        self,
        message: str,
        error_code: str = "CONFLICT",
        status_code: int = 409,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, error_code=error_code, status_code=status_code, details=details)


class ValidationError(LedgerException):
    """Generic exception for malformed input."""

    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR", details: dict[str, Any] | None = None):
        super().__init__(message=message, error_code=error_code, status_code=400, details=details)


class AuthorizationError(LedgerException):
    """Raised when the caller is authenticated but not allowed."""

    def __init__(self, message: str = "Access denied", error_code: str = "AUTHORIZATION_ERROR", details: dict[str, Any] | None = None):
        super().__init__(message=message, error_code=error_code, status_code=403, details=details)


# Database Exceptions
class DatabaseConnectionError(LedgerException):
    """Raised when there's a database connection error (network, auth, etc.)."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"Database connection error: {reason}",
            error_code="DATABASE_CONNECTION_ERROR",
            status_code=503,
            details=details or {"reason": reason},
        )


class DatabaseSessionError(LedgerException):
    """Raised when there's an error with database session management."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=f"Database session error: {reason}",
            error_code="DATABASE_SESSION_ERROR",
            status_code=500,
            details=details or {"reason": reason},
        )


# Plugin lifecycle exceptions. State conflicts surface as 400 at the admin boundary.
class PluginManifestNotFoundError(NotFoundError):
    """No manifest with this slug is registered in the catalog."""

    def __init__(self, slug: str):
        super().__init__(
            message=f'Plugin manifest "{slug}" not found',
            error_code="PLUGIN_MANIFEST_NOT_FOUND",
            details={"slug": slug},
        )


class PluginNotInstalledError(NotFoundError):
    """No install record exists for this slug."""

    def __init__(self, slug: str):
        super().__init__(
            message=f'Plugin "{slug}" is not installed',
            error_code="PLUGIN_NOT_INSTALLED",
            details={"slug": slug},
        )


class PluginAlreadyInstalledError(ConflictError):
    def __init__(self, slug: str):
        super().__init__(
            message=f'Plugin "{slug}" is already installed',
            error_code="PLUGIN_ALREADY_INSTALLED",
            status_code=400,
            details={"slug": slug},
        )


class PluginStillActiveError(ConflictError):
    def __init__(self, slug: str):
        super().__init__(
            message=f'Plugin "{slug}" must be deactivated before uninstalling',
            error_code="PLUGIN_STILL_ACTIVE",
            status_code=400,
            details={"slug": slug},
        )


class PluginDependencyMissingError(ConflictError):
    def __init__(self, slug: str, missing: list[str]):
        self.missing = list(missing)
        super().__init__(
            message=f'Dependency "{missing[0]}" must be installed before "{slug}"',
            error_code="PLUGIN_DEPENDENCY_MISSING",
            status_code=400,
            details={"slug": slug, "missing_dependencies": self.missing},
        )


class PluginSlugValidationError(ValidationError):
    def __init__(self, slug: str, reason: str):
        super().__init__(
            message=f"Invalid plugin slug: {reason}",
            error_code="INVALID_PLUGIN_SLUG",
            details={"slug": slug, "reason": reason},
        )


class PluginInactiveError(AuthorizationError):
    """Raised by the active guard when a capability's owning plugin is not active."""

    def __init__(self, slug: str):
        super().__init__(
            message=f'Plugin "{slug}" is not active',
            error_code="PLUGIN_NOT_ACTIVE",
            details={"slug": slug},
        )


class AdapterFailureError(LedgerException):
    """A plugin-supplied adapter raised during registration or teardown.

    Never surfaced by lifecycle endpoints; the host logs it and carries on.
    """

    def __init__(self, slug: str, extension_point: str, reason: str):
        super().__init__(
            message=f'Adapter for plugin "{slug}" failed at {extension_point}: {reason}',
            error_code="PLUGIN_ADAPTER_FAILURE",
            status_code=500,
            details={"slug": slug, "extension_point": extension_point, "reason": reason},
        )


# Scheduler Exceptions
class CronJobAlreadyExistsError(ConflictError):
    def __init__(self, name: str):
        super().__init__(
            message=f'Cron job "{name}" is already scheduled',
            error_code="CRON_JOB_ALREADY_EXISTS",
            details={"name": name},
        )


class CronJobNotFoundError(NotFoundError):
    def __init__(self, name: str):
        super().__init__(
            message=f'No cron job was found with the given name ({name})',
            error_code="CRON_JOB_NOT_FOUND",
            details={"name": name},
        )


class InvalidCronExpressionError(ValidationError):
    def __init__(self, name: str, expression: str):
        super().__init__(
            message=f'Invalid cron expression for job "{name}": {expression}',
            error_code="INVALID_CRON_EXPRESSION",
            details={"name": name, "expression": expression},
        )
