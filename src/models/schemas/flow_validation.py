"""
Flow Validation Models

Result shapes produced by the structural GraphValidator.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single finding. Location fields are set when they apply."""

    type: Literal["error", "warning", "info"]
    message: str
    field: Optional[str] = None
    step: Optional[str] = None
    container: Optional[str] = None


class ValidationSummary(BaseModel):
    total_containers: int = 0
    total_steps: int = 0
    total_controls: int = 0
    missing_connections: int = 0
    duplicate_names: int = 0


class ValidationResult(BaseModel):
    """Outcome of validating one document.

    `is_valid` is true iff there are no errors; warnings never block.
    """

    is_valid: bool = True
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationIssue] = Field(default_factory=list)
    info: List[ValidationIssue] = Field(default_factory=list)
    summary: ValidationSummary = Field(default_factory=ValidationSummary)

    def add_error(self, message: str, **location) -> None:
        self.errors.append(ValidationIssue(type="error", message=message, **location))

    def add_warning(self, message: str, **location) -> None:
        self.warnings.append(ValidationIssue(type="warning", message=message, **location))

    def add_info(self, message: str, **location) -> None:
        self.info.append(ValidationIssue(type="info", message=message, **location))
