import copy

import pytest

from aurora_builder.core.exceptions import InvalidMoveError
from aurora_builder.core.models import BREAKPOINTS, ElementKind, collect_ids, find_node, new_node
from aurora_builder.core.services.structure_editing_service import (
    OperationResult,
    StructureEditingService,
    insert_node,
    move_node,
    remove_node,
    set_node_field,
    set_prop,
    set_style,
    update_node,
)


@pytest.fixture
def service():
    return StructureEditingService()


# ---------------------------
# insert_node
# ---------------------------

class TestInsert:

    def test_insert_top_level_at_index(self, forest_acb, fresh_button, shape):
        result = insert_node(forest_acb, None, fresh_button, 1)
        assert [n.id for n in result] == ["a", fresh_button.id, "b"]

    def test_oversized_index_is_clamped_to_end(self, forest_acb, fresh_button):
        result = insert_node(forest_acb, None, fresh_button, 10_000)
        assert result[2] is fresh_button
        assert len(result) == 3

    def test_negative_index_is_clamped_to_front(self, forest_acb, fresh_button):
        result = insert_node(forest_acb, "a", fresh_button, -5)
        assert [n.id for n in result[0].children] == [fresh_button.id, "c"]

    def test_none_index_appends(self, forest_acb, fresh_button):
        result = insert_node(forest_acb, "a", fresh_button)
        assert [n.id for n in result[0].children] == ["c", fresh_button.id]

    def test_insert_into_nested_parent(self, deep_forest, fresh_button, shape):
        result = insert_node(deep_forest, "mid", fresh_button, 0)
        assert shape(result) == [
            ("root", [("mid", [(fresh_button.id, []), ("leaf", [])])]),
            ("other", []),
        ]

    def test_missing_parent_returns_forest_unchanged(self, forest_acb, fresh_button, shape):
        before = shape(forest_acb)
        result = insert_node(forest_acb, "ghost", fresh_button, 0)
        assert shape(result) == before
        assert find_node(result, fresh_button.id) is None
        assert shape(forest_acb) == before

    def test_input_forest_is_not_mutated(self, forest_acb, fresh_button):
        snapshot = copy.deepcopy(forest_acb)
        result = insert_node(forest_acb, "a", fresh_button, 0)
        assert forest_acb == snapshot
        assert result is not forest_acb
        # Untouched sibling subtree is reused
        assert result[1] is forest_acb[1]


# ---------------------------
# remove_node
# ---------------------------

class TestRemove:

    def test_remove_subtree(self, deep_forest):
        result = remove_node(deep_forest, "mid")
        assert collect_ids(result) == ["root", "other"]
        assert collect_ids(deep_forest) == ["root", "mid", "leaf", "other"]

    def test_remove_top_level(self, forest_acb):
        assert [n.id for n in remove_node(forest_acb, "a")] == ["b"]

    def test_remove_missing_is_noop(self, forest_acb):
        assert remove_node(forest_acb, "ghost") == forest_acb


# ---------------------------
# move_node
# ---------------------------

class TestMove:

    def test_scenario_move_b_into_a(self, forest_acb, shape):
        result = move_node(forest_acb, "b", "a", 0)
        assert shape(result) == [("a", [("b", []), ("c", [])])]

    def test_move_preserves_subtree_ids_and_content(self, deep_forest, shape):
        result = move_node(deep_forest, "mid", "other", 0)
        assert shape(result) == [("root", []), ("other", [("mid", [("leaf", [])])])]
        moved = find_node(result, "mid")
        assert moved == find_node(deep_forest, "mid")
        # relocated subtree is not aliased with the old forest
        assert moved is not find_node(deep_forest, "mid")

    def test_move_to_top_level(self, forest_acb, shape):
        result = move_node(forest_acb, "c", None, 0)
        assert shape(result) == [("c", []), ("a", []), ("b", [])]

    def test_self_move_is_refused(self, forest_acb):
        with pytest.raises(InvalidMoveError) as excinfo:
            move_node(forest_acb, "a", "a", 0)
        assert excinfo.value.target_parent_id == "a"

    def test_move_into_descendant_is_refused(self, deep_forest):
        with pytest.raises(InvalidMoveError):
            move_node(deep_forest, "root", "leaf", 0)

    def test_move_to_missing_parent_does_not_drop_node(self, forest_acb, shape):
        result = move_node(forest_acb, "b", "ghost", 0)
        assert shape(result) == [("a", [("c", [])]), ("b", [])]

    def test_move_missing_node_is_noop(self, forest_acb):
        assert move_node(forest_acb, "ghost", "a", 0) == forest_acb

    def test_move_to_current_position_is_equivalent(self, forest_acb):
        assert move_node(forest_acb, "b", None, 1) == forest_acb
        assert move_node(forest_acb, "c", "a", 0) == forest_acb

    def test_index_applies_after_removal(self, make_node, shape):
        parent = make_node("p", children=[make_node("x"), make_node("y"), make_node("z")])
        result = move_node([parent], "x", "p", 2)
        assert shape(result) == [("p", [("y", []), ("z", []), ("x", [])])]

    def test_ids_stay_unique_after_many_moves(self, deep_forest, make_node):
        forest = insert_node(deep_forest, None, make_node("extra"), None)
        for node_id, target, index in [
            ("leaf", "other", 0), ("extra", "mid", 5), ("mid", None, 0), ("other", "extra", 0),
        ]:
            forest = move_node(forest, node_id, target, index)
        ids = collect_ids(forest)
        assert len(ids) == len(set(ids)) == 5


# ---------------------------
# update_node and transforms
# ---------------------------

class TestUpdate:

    def test_update_only_touches_target(self, forest_acb):
        result = update_node(forest_acb, "c", set_prop("text", "Bye"))
        assert find_node(result, "c").props["text"] == "Bye"
        assert find_node(forest_acb, "c").props["text"] == "Hello"
        assert result[1] is forest_acb[1]

    def test_in_place_transform_returning_none(self, forest_acb):
        def shout(node):
            node.label = node.label + "!"
        result = update_node(forest_acb, "b", shout)
        assert find_node(result, "b").label == "B!"
        assert find_node(forest_acb, "b").label == "B"

    def test_transform_cannot_change_id_or_drop_breakpoints(self, forest_acb):
        def evil(node):
            node.id = "hijacked"
            node.responsive_style = {"desktop": {"color": "red"}}
            return node
        result = update_node(forest_acb, "b", evil)
        updated = find_node(result, "b")
        assert updated is not None
        assert find_node(result, "hijacked") is None
        assert set(updated.responsive_style) == set(BREAKPOINTS)
        assert updated.responsive_style["desktop"] == {"color": "red"}

    def test_update_missing_is_noop(self, forest_acb):
        assert update_node(forest_acb, "ghost", set_prop("x", 1)) == forest_acb

    def test_set_style_sets_and_clears(self, forest_acb):
        styled = update_node(forest_acb, "a", set_style("tablet", "padding", "8px"))
        assert find_node(styled, "a").responsive_style["tablet"] == {"padding": "8px"}
        assert find_node(forest_acb, "a").responsive_style["tablet"] == {}
        cleared = update_node(styled, "a", set_style("tablet", "padding", None))
        assert find_node(cleared, "a").responsive_style["tablet"] == {}

    def test_set_style_rejects_unknown_breakpoint(self):
        with pytest.raises(ValueError):
            set_style("watch", "padding", "1px")

    def test_set_node_field(self, forest_acb):
        result = update_node(forest_acb, "b", set_node_field("aria_label", "Primary action"))
        assert find_node(result, "b").aria_label == "Primary action"
        with pytest.raises(ValueError):
            set_node_field("kind", "hero")

    def test_nested_prop_edit_does_not_leak(self, make_node):
        nav = make_node("nav", ElementKind.NAVBAR, links=["Home"])
        forest = [nav]

        def add_link(node):
            node.props["links"].append("About")
        result = update_node(forest, "nav", add_link)
        assert find_node(result, "nav").props["links"] == ["Home", "About"]
        assert nav.props["links"] == ["Home"]

    def test_in_place_child_edit_does_not_leak(self, forest_acb):
        def edit_child(node):
            node.children[0].props["text"] = "Changed"
            node.children[0].responsive_style["mobile"]["gap"] = "2px"
        result = update_node(forest_acb, "a", edit_child)
        assert find_node(result, "c").props["text"] == "Changed"
        assert find_node(result, "c").id == "c"
        original = find_node(forest_acb, "c")
        assert original.props["text"] == "Hello"
        assert original.responsive_style["mobile"] == {}


# ---------------------------
# StructureEditingService
# ---------------------------

class TestService:

    def test_insert_reports_result(self, service, forest_acb, fresh_button):
        res = service.insert_element(forest_acb, "a", fresh_button, 99)
        assert isinstance(res, OperationResult)
        assert res.success is True
        assert res.details["node_id"] == fresh_button.id
        assert [n.id for n in res.elements[0].children] == ["c", fresh_button.id]

    def test_insert_missing_parent_is_not_raised(self, service, forest_acb, fresh_button):
        res = service.insert_element(forest_acb, "ghost", fresh_button)
        assert res.success is False
        assert res.details["reason"] == "not_found"
        assert res.elements == forest_acb

    def test_remove_missing_reports_not_found(self, service, forest_acb):
        res = service.remove_element(forest_acb, "ghost")
        assert res.success is False
        assert res.details["reason"] == "not_found"

    def test_invalid_move_reports_reason(self, service, forest_acb):
        res = service.move_element(forest_acb, "a", "c", 0)
        assert res.success is False
        assert res.details["reason"] == "invalid_move"
        assert res.elements == forest_acb

    def test_move_to_missing_target(self, service, forest_acb):
        res = service.move_element(forest_acb, "b", "ghost", 0)
        assert res.success is False
        assert res.details == {"reason": "not_found", "node_id": "ghost"}

    def test_idempotent_move_still_succeeds(self, service, forest_acb):
        res = service.move_element(forest_acb, "b", None, 1)
        assert res.success is True
        assert res.elements == forest_acb

    def test_set_element_style_rejects_bad_breakpoint(self, service, forest_acb):
        res = service.set_element_style(forest_acb, "a", "watch", "gap", "1px")
        assert res.success is False
        assert res.details["reason"] == "invalid_breakpoint"

    def test_set_element_field_rejects_bad_field(self, service, forest_acb):
        res = service.set_element_field(forest_acb, "a", "id", "x")
        assert res.success is False
        assert res.details["reason"] == "invalid_field"

    def test_set_element_prop(self, service, forest_acb):
        res = service.set_element_prop(forest_acb, "b", "variant", "ghost")
        assert res.success is True
        assert find_node(res.elements, "b").props == {"text": "Click", "variant": "ghost"}

    def test_duplicate_places_copy_after_original(self, service, forest_acb, shape):
        res = service.duplicate_element(forest_acb, "a")
        assert res.success is True
        copy_id = res.details["node_id"]
        assert copy_id != "a"
        assert [n.id for n in res.elements][0::2] == ["a", "b"]
        duplicate = res.elements[1]
        assert duplicate.id == copy_id
        assert duplicate.children[0].id != "c"
        assert duplicate.children[0].props == {"text": "Hello"}
        ids = collect_ids(res.elements)
        assert len(ids) == len(set(ids))

    def test_duplicate_nested(self, service, forest_acb):
        res = service.duplicate_element(forest_acb, "c")
        assert [n.label for n in res.elements[0].children] == ["C", "C"]
        assert res.details["parent_id"] == "a"

    def test_duplicate_missing(self, service, forest_acb):
        assert service.duplicate_element(forest_acb, "ghost").success is False

    def test_update_element_with_new_node(self, service, forest_acb):
        res = service.update_element(
            forest_acb, "b", lambda node: new_node("button", "Replaced", {"text": "New"})
        )
        replaced = find_node(res.elements, "b")
        assert replaced.label == "Replaced"
        assert replaced.id == "b"
