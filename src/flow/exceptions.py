"""
Flow graph exception hierarchy.

Everything raised by the container store, the synchronizer and the editing
session derives from FlowGraphError. Store-level lookups that fail are
programming errors and raise; user-facing problems (unparseable documents,
blocking validation errors, collaborator I/O failures) carry enough detail to
be shown to the user as-is.
"""

from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from src.models.schemas.flow_validation import ValidationResult


class FlowGraphError(Exception):
    """Base exception for all flow graph errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"{self.error_code}: {self.message}"


# ============================================================================
# GRAPH STORE ERRORS
# ============================================================================

class UnknownContainerError(FlowGraphError):
    """Raised when a container id is not part of the store."""

    def __init__(self, container_id: str):
        super().__init__(
            message=f"Unknown container: {container_id}",
            error_code="UNKNOWN_CONTAINER",
            details={"container_id": container_id},
        )
        self.container_id = container_id


class UnknownStepError(FlowGraphError):
    """Raised when a step id is not owned by the expected container."""

    def __init__(self, step_id: str, container_key: Optional[str] = None):
        where = f" in container {container_key}" if container_key else ""
        super().__init__(
            message=f"Unknown step: {step_id}{where}",
            error_code="UNKNOWN_STEP",
            details={"step_id": step_id, "container_key": container_key},
        )
        self.step_id = step_id


class DuplicateContainerKeyError(FlowGraphError):
    """Raised when two live containers would share a full key."""

    def __init__(self, full_key: str):
        super().__init__(
            message=f"A container with key {full_key} already exists",
            error_code="DUPLICATE_CONTAINER_KEY",
            details={"full_key": full_key},
        )
        self.full_key = full_key


class InvalidStepIndexError(FlowGraphError):
    """Raised when a reorder index falls outside a container's step list."""

    def __init__(self, index: int, size: int, container_key: str):
        super().__init__(
            message=f"Index {index} out of range for {size} steps in {container_key}",
            error_code="INVALID_STEP_INDEX",
            details={"index": index, "size": size, "container_key": container_key},
        )


class NextFieldAssignmentError(FlowGraphError):
    """Raised when a caller tries to set a step's `next` by hand."""

    def __init__(self, step_id: str):
        super().__init__(
            message="The next field is derived from step order and cannot be set directly",
            error_code="NEXT_FIELD_ASSIGNMENT",
            details={"step_id": step_id},
        )


# ============================================================================
# DOCUMENT ERRORS
# ============================================================================

class FlowDocumentParseError(FlowGraphError):
    """Raised when non-trivial content is not a JSON object."""

    def __init__(self, message: str, content_preview: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="FLOW_DOCUMENT_PARSE_ERROR",
            details={"content_preview": content_preview},
        )


class FlowValidationError(FlowGraphError):
    """Raised when structural validation finds blocking errors.

    Carries the whole result so every error can be shown at once.
    """

    def __init__(self, result: "ValidationResult"):
        messages = [issue.message for issue in result.errors]
        super().__init__(
            message=f"Flow has {len(messages)} validation error(s)",
            error_code="FLOW_VALIDATION_ERROR",
            details={"errors": messages},
        )
        self.result = result


# ============================================================================
# COLLABORATOR ERRORS
# ============================================================================

class CollaboratorError(FlowGraphError):
    """Raised when a catalog or persistence request fails."""

    def __init__(self, operation: str, message: str, cause: Optional[Exception] = None):
        super().__init__(
            message=f"{operation} failed: {message}",
            error_code="COLLABORATOR_ERROR",
            details={"operation": operation, "cause": str(cause) if cause else None},
        )
        self.operation = operation
        self.__cause__ = cause
