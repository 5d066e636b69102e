"""
Flow Document Models

Pydantic schemas for the persisted step-graph JSON. They are only used at the
hydration boundary: once a document is parsed, targetContext values are
turned into the closed StringContext | ObjectContext variant and the untyped
union does not travel further.
"""

from typing import Any, Dict, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class FlowMeta(BaseModel):
    """The `$meta` section of a flow."""

    model_config = ConfigDict(extra="allow")

    tcode: Any = None
    description: Any = None


class ObjectContextModel(BaseModel):
    """A targetContext value given as an object."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    friendly_name: Optional[str] = Field(None, alias="friendlyName")
    deep_aliases: Dict[str, str] = Field(default_factory=dict, alias="deepAliases")


class StepRecord(BaseModel):
    """One step entry inside a container's step map.

    Unknown fields (condition branches and the like) are kept as extras so
    they survive a load/save cycle.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    action: Optional[str] = None
    target: Optional[str] = None
    param_key: Optional[str] = Field(None, alias="paramKey")
    operator: Optional[str] = None
    value: Any = None
    timeout: Any = None
    default: Any = None
    target_map: Any = Field(None, alias="targetMap")
    next: Optional[str] = None


class FlowDocument(BaseModel):
    """A whole persisted flow. Dict fields keep the document's key order."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    meta: Optional[FlowMeta] = Field(
        None,
        validation_alias=AliasChoices("$meta", "meta"),
    )
    target_context: Dict[str, Union[str, ObjectContextModel]] = Field(
        default_factory=dict, alias="targetContext"
    )
    steps: Dict[str, Dict[str, StepRecord]] = Field(default_factory=dict)


def blank_document(tcode: str = "", description: str = "New flow") -> dict:
    """The skeleton a new, empty flow starts from."""
    return {
        "$meta": {"tcode": tcode, "description": description},
        "targetContext": {},
        "steps": {},
    }
