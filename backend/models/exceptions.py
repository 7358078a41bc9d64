"""Custom exceptions for model, repository and service layers."""


class ModelError(Exception):
    """Base class for model-related failures."""


class ModelValidationError(ModelError):
    """Raised when model data fails custom business validation."""


class ModelNotFoundError(ModelError):
    """Raised when a requested record does not exist."""


class VersionConflictError(ModelError):
    """Raised when optimistic concurrency version checks fail."""


class IntegrityViolationError(ModelValidationError):
    """Raised when an admin mutation is malformed (missing reason, unknown decision, disallowed field)."""


class InvalidTransitionError(ModelError):
    """Raised when a workflow stage change is not in the transition table."""


class OverrideLimitError(VersionConflictError):
    """Raised when an application was already superseded by its permitted overrides."""


class CollaboratorError(Exception):
    """Raised by OCR or explanation clients when the external call fails."""
