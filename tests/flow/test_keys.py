"""
Tests for key derivation and locator helpers.
"""

import pytest

from src.flow.flow_types import Container
from src.flow.helpers.keys import (
    allocate_base_key,
    instance_number_for,
    parse_full_key,
    short_key_for,
    step_key_for,
)
from src.flow.helpers.locators import infer_control_type, is_button_kind, resolve_action


# ============================================================================
# SHORT KEYS
# ============================================================================

class TestShortKeyFor:
    """Test suite for short_key_for."""

    @pytest.mark.parametrize(
        "friendly_name, expected",
        [
            ("Select Further Settings", "SFS"),
            ("CJI3", "CJI3"),
            ("cji3", "CJI3"),
            ("Set to Zero", "STOZ"),
            ("Display Cost Line Items For Projects", "DCLI"),
            ("Averyverylongword", "AVER"),
        ],
    )
    def test_derives_expected_key(self, friendly_name, expected):
        assert short_key_for(friendly_name) == expected

    def test_empty_name_gives_empty_key(self):
        assert short_key_for("") == ""
        assert short_key_for("   ") == ""

    def test_is_deterministic(self):
        assert short_key_for("Select Further Settings") == short_key_for("Select Further Settings")

    def test_key_never_contains_separators(self):
        key = short_key_for("a. b: c")
        assert "." not in key
        assert ":" not in key

    def test_last_resort_keeps_only_word_characters(self):
        assert short_key_for("a.b.c.d.e.f.g") == "ABCDEFG"
        assert short_key_for("a. b: c") == "ABC"


# ============================================================================
# INSTANCE KEYS
# ============================================================================

class TestInstanceKeys:
    """Test suite for full keys and instance numbering."""

    def test_next_instance_is_max_plus_one(self):
        containers = [
            Container(base_key="SCAREA", instance_number=1),
            Container(base_key="SCAREA", instance_number=2),
            Container(base_key="OTHER", instance_number=5),
        ]

        assert instance_number_for("SCAREA", containers) == 3

    def test_first_instance_is_one(self):
        assert instance_number_for("SCAREA", []) == 1

    def test_instance_one_uses_bare_key(self):
        assert Container(base_key="SCAREA").full_key == "SCAREA"

    def test_later_instances_are_suffixed(self):
        assert Container(base_key="SCAREA", instance_number=2).full_key == "SCAREA::2"

    @pytest.mark.parametrize(
        "full_key, expected",
        [
            ("SCAREA", ("SCAREA", 1)),
            ("SCAREA::2", ("SCAREA", 2)),
            ("SCAREA::1", ("SCAREA", 1)),
            ("A::B", ("A::B", 1)),
        ],
    )
    def test_parse_full_key(self, full_key, expected):
        assert parse_full_key(full_key) == expected

    def test_instance_number_must_be_positive(self):
        with pytest.raises(ValueError):
            Container(base_key="SCAREA", instance_number=0)

    def test_friendly_name_defaults_to_base_key(self):
        assert Container(base_key="SCAREA").friendly_name == "SCAREA"


# ============================================================================
# KEY ALLOCATION
# ============================================================================

class TestAllocateBaseKey:
    """Test suite for allocate_base_key."""

    def test_free_short_key_is_used(self):
        assert allocate_base_key("Select Further Settings", "SELFURSET", {}) == "SFS"

    def test_same_target_reuses_short_key(self):
        existing = {"SFS": "Select Further Settings"}
        assert allocate_base_key("Select Further Settings", "SELFURSET", existing) == "SFS"

    def test_collision_falls_back_to_original_key(self):
        existing = {"SFS": "Some Field Selection"}
        assert allocate_base_key("Select Further Settings", "SELFURSET", existing) == "SELFURSET"


class TestStepKeyFor:
    def test_slugs_control_names(self):
        assert step_key_for("Company Code") == "Company_Code"

    def test_falls_back_to_step(self):
        assert step_key_for(None) == "step"
        assert step_key_for("...") == "step"


# ============================================================================
# LOCATORS
# ============================================================================

class TestLocators:
    """Test suite for control type inference and action resolution."""

    @pytest.mark.parametrize(
        "locator, expected",
        [
            ("wnd[0]/tbar[1]/btn[8]", "GuiButton"),
            ("wnd[0]/usr/ctxtKOSTL-LOW", "GuiCTextField"),
            ("wnd[0]/usr/txtRF05A-NEWKO", "GuiTextField"),
            ("wnd[0]/usr", None),
            (None, None),
        ],
    )
    def test_infer_control_type(self, locator, expected):
        assert infer_control_type(locator) == expected

    def test_button_kinds(self):
        assert is_button_kind("GuiButton")
        assert not is_button_kind("GuiTextField")
        assert not is_button_kind(None)

    def test_button_forces_click(self):
        assert resolve_action(None, "GuiButton") == "click"
        assert resolve_action("set", "GuiButton") == "click"

    def test_explicit_action_wins_for_other_controls(self):
        assert resolve_action("waitFor", "GuiTextField") == "waitFor"

    def test_defaults_to_set(self):
        assert resolve_action(None, None) == "set"
        assert resolve_action(None, "GuiTextField") == "set"
