from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from src.models.schemas.flow_validation import ValidationResult


class BaseResponse(BaseModel):
    """Base response model for all API responses"""

    success: bool


class ErrorResponse(BaseModel):
    """Error response model for 4xx and 5xx responses"""

    success: bool = False
    errorMessage: str
    details: Optional[Dict[str, Any]] = None


class NormalizeResponse(BaseResponse):
    """A document after hydrate -> relink -> project, with its validation."""

    document: Dict[str, Any]
    validation: ValidationResult


class StepPlacement(BaseModel):
    step_key: str
    x: float
    y: float


class ContainerPlacement(BaseModel):
    full_key: str
    x: float
    y: float
    width: float
    height: float
    steps: List[StepPlacement]


class LayoutResponse(BaseResponse):
    containers: List[ContainerPlacement]


class CatalogTargetsResponse(BaseResponse):
    targets: List[str]
    errors: List[str]
