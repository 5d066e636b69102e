"""Control type inference from opaque locator paths.

Locators look like ``wnd[0]/usr/ctxtKOSTL-LOW`` or ``wnd[0]/tbar[1]/btn[8]``:
the last path component starts with a short type prefix.
"""

import re

from src.flow.flow_types import StepAction

# Longest prefixes first so "ctxt" is not read as "txt".
_PREFIX_TYPES: tuple[tuple[str, str], ...] = (
    ("ctxt", "GuiCTextField"),
    ("pwd", "GuiPasswordField"),
    ("txt", "GuiTextField"),
    ("btn", "GuiButton"),
    ("chk", "GuiCheckBox"),
    ("rad", "GuiRadioButton"),
    ("cmb", "GuiComboBox"),
    ("tbl", "GuiTableControl"),
    ("lbl", "GuiLabel"),
    ("tabs", "GuiTabStrip"),
    ("tabp", "GuiTab"),
    ("mbar", "GuiMenubar"),
    ("menu", "GuiMenu"),
    ("shell", "GuiShell"),
    ("cntl", "GuiCustomControl"),
    ("wnd", "GuiMainWindow"),
)

BUTTON_CONTROL_TYPES: frozenset[str] = frozenset({"GuiButton", "GuiMenu", "GuiMenuItem"})

_COMPONENT_PATTERN = re.compile(r"^([a-z]+)")


def infer_control_type(locator_path: str | None) -> str | None:
    if not locator_path:
        return None
    component = locator_path.rstrip("/").rsplit("/", 1)[-1]
    match = _COMPONENT_PATTERN.match(component)
    if not match:
        return None
    prefix = match.group(1)
    for known, control_type in _PREFIX_TYPES:
        if prefix.startswith(known):
            return control_type
    return None


def is_button_kind(control_type: str | None) -> bool:
    if not control_type:
        return False
    return control_type in BUTTON_CONTROL_TYPES or control_type.lower() == "button"


def resolve_action(action: str | None, control_type: str | None) -> str:
    """
    Button-kind controls always click, overriding any explicit action.
    Otherwise the explicit action wins, defaulting to set.
    """
    if is_button_kind(control_type):
        return StepAction.click.value
    if action:
        return action
    return StepAction.set.value
