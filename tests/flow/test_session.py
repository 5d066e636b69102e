"""
Tests for EditorSession

Loading, editing, document re-sync and the save guard.
"""

import json
from unittest.mock import AsyncMock

import pytest

from src.flow.exceptions import (
    CollaboratorError,
    FlowDocumentParseError,
    FlowValidationError,
    NextFieldAssignmentError,
)
from src.models.schemas.catalog import FlowFile


class RecordingPersistence:
    """Persistence double that reports an external change while saving."""

    def __init__(self, session, result=True):
        self.session = session
        self.result = result
        self.files: list[FlowFile] = []
        self.reload_accepted = None

    async def persist(self, file: FlowFile) -> bool:
        self.files.append(file)
        self.reload_accepted = self.session.on_external_change("{}")
        return self.result


@pytest.fixture
def editable_session(session, project_field_control, execute_button_control):
    """A session with one CJI3 container holding a field and a button."""
    session.new_flow(tcode="CJI3", description="Line items")
    base_key = session.register_target("CJI3")
    session.place_control(base_key, project_field_control, param_key="projectId")
    session.place_control(base_key, execute_button_control, action="set")
    return session


# ============================================================================
# LOADING
# ============================================================================

class TestLoading:
    """Test suite for the parse-failure policy."""

    def test_new_session_is_blank(self, session):
        assert session.document == {
            "$meta": {"tcode": "", "description": "New flow"},
            "targetContext": {},
            "steps": {},
        }
        assert len(session.store) == 0

    @pytest.mark.parametrize("content", [None, "", "  ", "{}", "null"])
    def test_trivial_content_starts_blank(self, session, content):
        document = session.load_json(content)

        assert document["targetContext"] == {}
        assert len(session.store) == 0

    def test_load_sample(self, session, sample_document):
        document = session.load_json(json.dumps(sample_document))

        assert list(document["targetContext"]) == ["CJI3", "SFS", "CJI3::2"]
        assert document["steps"]["CJI3"]["project"]["next"] == "execute"
        assert session.meta["tcode"] == "CJI3"
        assert set(session.targets) == {"CJI3", "SFS"}

    def test_unparseable_content_keeps_current_flow(self, session, sample_document):
        session.load_json(json.dumps(sample_document))
        before = session.document

        with pytest.raises(FlowDocumentParseError):
            session.load_json("{ not json")

        assert session.document == before
        assert len(session.store) == 3

    def test_non_object_content_raises(self, session):
        with pytest.raises(FlowDocumentParseError):
            session.load_json("[1, 2]")

    def test_invalid_shape_keeps_current_flow(self, session, sample_document):
        session.load_json(json.dumps(sample_document))

        with pytest.raises(FlowDocumentParseError):
            session.load_json('{"$meta": {}, "targetContext": {"A": 5}}')

        assert len(session.store) == 3


# ============================================================================
# EDITING
# ============================================================================

class TestEditing:
    """Test suite for store mutations flowing into the document."""

    def test_place_control_creates_first_instance(self, editable_session):
        document = editable_session.document

        assert list(document["targetContext"]) == ["CJI3"]
        assert document["targetContext"]["CJI3"]["deepAliases"] == {
            "Project": "wnd[0]/usr/ctxtCN_PROJN-LOW",
            "Execute": "wnd[0]/tbar[1]/btn[8]",
        }
        assert document["steps"]["CJI3"]["Project"] == {
            "action": "set",
            "target": "Project",
            "paramKey": "projectId",
            "next": "Execute",
        }

    def test_button_forces_click(self, editable_session):
        assert editable_session.document["steps"]["CJI3"]["Execute"]["action"] == "click"

    def test_add_instance(self, editable_session):
        container = editable_session.add_instance("CJI3")

        assert container.full_key == "CJI3::2"
        assert editable_session.document["steps"]["CJI3::2"] == {}
        assert editable_session.document["targetContext"]["CJI3::2"] == {"friendlyName": "CJI3"}

    def test_register_same_target_twice(self, session):
        assert session.register_target("Select Further Settings") == "SFS"
        assert session.register_target("Select Further Settings") == "SFS"

    def test_short_key_collision_uses_original_key_as_string_entry(self, session):
        session.register_target("Select Further Settings")
        base_key = session.register_target("Some Field Selection", original_key="SOMEFIELDSEL")

        session.place_control(base_key, target_name="Layout", action="set")

        assert base_key == "SOMEFIELDSEL"
        assert session.document["targetContext"]["SOMEFIELDSEL"] == "Some Field Selection"

    def test_place_into_explicit_container(self, editable_session):
        second = editable_session.add_instance("CJI3")

        editable_session.place_control("CJI3", target_name="Layout", container_id=second.id)

        assert list(editable_session.document["steps"]["CJI3::2"]) == ["Layout"]
        assert editable_session.document["steps"]["CJI3"]["Execute"]["next"] == "CJI3::2.Layout"

    def test_next_cannot_be_assigned(self, editable_session):
        step = editable_session.store.containers[0].steps[0]

        with pytest.raises(NextFieldAssignmentError):
            editable_session.update_step(step.id, next="elsewhere")
        with pytest.raises(NextFieldAssignmentError):
            editable_session.place_control("CJI3", target_name="X", next="elsewhere")

    def test_update_step_fields(self, editable_session):
        step = editable_session.store.containers[0].steps[0]

        editable_session.update_step(step.id, value="P-1000", step_key="project")

        record = editable_session.document["steps"]["CJI3"]["project"]
        assert record["value"] == "P-1000"
        assert "Project" not in editable_session.document["steps"]["CJI3"]

    def test_update_step_to_condition_drops_next(self, editable_session):
        step = editable_session.store.containers[0].steps[0]

        editable_session.update_step(step.id, action="condition")

        assert "next" not in editable_session.document["steps"]["CJI3"]["Project"]

    def test_unknown_field_is_rejected(self, editable_session):
        step = editable_session.store.containers[0].steps[0]

        with pytest.raises(TypeError):
            editable_session.update_step(step.id, colour="red")

    def test_remove_and_reorder_steps(self, editable_session):
        container = editable_session.store.containers[0]

        editable_session.reorder_step(container.id, 1, 0)
        assert list(editable_session.document["steps"]["CJI3"]) == ["Execute", "Project"]

        editable_session.remove_step(container.steps[0].id)
        assert list(editable_session.document["steps"]["CJI3"]) == ["Project"]
        assert "next" not in editable_session.document["steps"]["CJI3"]["Project"]

    def test_move_container_rewrites_document_order(self, session, sample_document):
        session.load_json(json.dumps(sample_document))
        last = session.store.containers[-1]

        session.move_container(last.id, 0)

        assert list(session.document["targetContext"]) == ["CJI3::2", "CJI3", "SFS"]
        assert list(session.document["steps"]) == ["CJI3::2", "CJI3", "SFS"]
        assert session.synchronizer.order_matches(session.store, session.document)

    def test_delete_container_removes_both_entries(self, session, sample_document):
        session.load_json(json.dumps(sample_document))
        sfs = session.store.find_container("SFS")

        assert session.delete_container(sfs.id)

        assert "SFS" not in session.document["targetContext"]
        assert "SFS" not in session.document["steps"]
        assert "next" not in session.document["steps"]["CJI3"]["execute"]

    def test_delete_unknown_container(self, session, sample_document):
        session.load_json(json.dumps(sample_document))
        before = json.dumps(session.document)

        assert not session.delete_container("missing")
        assert json.dumps(session.document) == before

    def test_reconcile_order(self, session, sample_document):
        session.load_json(json.dumps(sample_document))
        session.synchronizer.rewrite_order(session.document, ["SFS", "CJI3", "CJI3::2"])

        assert session.reconcile_order()

        assert [c.full_key for c in session.store.containers] == ["SFS", "CJI3", "CJI3::2"]
        assert not session.reconcile_order()

    def test_to_json(self, editable_session):
        assert json.loads(editable_session.to_json()) == editable_session.document


# ============================================================================
# SAVING
# ============================================================================

class TestSave:
    """Test suite for validation-gated saving."""

    async def test_save_persists_document(self, editable_session):
        persistence = AsyncMock()
        persistence.persist.return_value = True

        result = await editable_session.save(persistence)

        assert result.is_valid
        saved = persistence.persist.await_args.args[0]
        assert saved.name == "CJI3_flow.json"
        assert saved.path == "/flows/CJI3_flow.json"
        assert json.loads(saved.content) == editable_session.document

    async def test_external_change_ignored_while_saving(self, editable_session):
        persistence = RecordingPersistence(editable_session)

        await editable_session.save(persistence)

        assert persistence.reload_accepted is False
        assert not editable_session.save_in_flight
        assert "CJI3" in editable_session.document["steps"]

    async def test_external_change_applies_after_save(self, editable_session):
        await editable_session.save(RecordingPersistence(editable_session))

        assert editable_session.on_external_change("{}")
        assert editable_session.document["steps"] == {}

    async def test_invalid_flow_is_not_saved(self, session):
        persistence = AsyncMock()

        with pytest.raises(FlowValidationError) as exc_info:
            await session.save(persistence)

        assert any(e.field == "$meta.tcode" for e in exc_info.value.result.errors)
        persistence.persist.assert_not_called()

    async def test_rejected_save_keeps_state(self, editable_session):
        before = json.dumps(editable_session.document)

        with pytest.raises(CollaboratorError):
            await editable_session.save(RecordingPersistence(editable_session, result=False))

        assert json.dumps(editable_session.document) == before
        assert not editable_session.save_in_flight

    async def test_collaborator_failure_releases_guard(self, editable_session):
        persistence = AsyncMock()
        persistence.persist.side_effect = CollaboratorError("persist", "connection refused")

        with pytest.raises(CollaboratorError):
            await editable_session.save(persistence)

        assert not editable_session.save_in_flight
