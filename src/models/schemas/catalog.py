"""
Catalog Collaborator Models

Shapes exchanged with the remote catalog/persistence service.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CatalogFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    path: str
    is_directory: bool = Field(False, alias="isDirectory")


class CatalogListResponse(BaseModel):
    status: bool
    files: List[CatalogFile] = Field(default_factory=list)
    message: Optional[str] = None


class CatalogFileResponse(BaseModel):
    status: bool
    content: Optional[str] = None
    message: Optional[str] = None


class TargetControl(BaseModel):
    """A control descriptor from a catalog file's `TargetControls` arrays."""

    model_config = ConfigDict(extra="allow")

    Id: str
    FriendlyName: str = ""
    FriendlyGroup: str = ""
    ControlType: str = ""


class TargetCatalogFile(BaseModel):
    """Top-level shape of one catalog file."""

    model_config = ConfigDict(extra="allow")

    Tcode: Optional[str] = None
    TargetControls: Dict[str, List[TargetControl]] = Field(default_factory=dict)


class FlowFile(BaseModel):
    """A flow handed to the persistence collaborator."""

    name: str
    path: str
    content: str
