"""Tests for ModelBuilder: mutations, commits, atomicity and cascading delete."""

import pytest

from eventmodel import (
    CompositionError,
    CycleError,
    DisconnectedElementError,
    DuplicateIdError,
    FieldValidationError,
    InvalidTransitionError,
    ModelBuilder,
    ReferencedElementError,
    RulesConfig,
    SchemaViolationError,
    SequencingError,
    TypeMismatchError,
    UnknownReferenceError,
)
from eventmodel.core.models import DependencyType, ElementType


def _element(element_id, element_type, title=None, dependencies=(), fields=None):
    return {
        "id": element_id,
        "title": title or element_id,
        "type": element_type,
        "fields": fields if fields is not None else [],
        "dependencies": list(dependencies),
    }


def _dep(target_id, direction, element_type, title=None):
    return {
        "id": target_id,
        "type": direction,
        "title": title or target_id,
        "elementType": element_type,
    }


def _add_automation_slice(builder):
    """Processor fed by the cart read model, issuing notify-cmd."""
    builder.add_slice("notify", "Notify Customer", "AUTOMATION", index=3)
    builder.add_element(
        "notify",
        _element(
            "notify-proc",
            "AUTOMATION",
            dependencies=[_dep("cart-items-rm", "INBOUND", "READMODEL")],
        ),
    )
    builder.add_element(
        "notify",
        _element(
            "notify-cmd",
            "COMMAND",
            dependencies=[_dep("notify-proc", "INBOUND", "AUTOMATION")],
        ),
    )
    builder.add_element(
        "notify",
        _element(
            "customer-notified",
            "EVENT",
            dependencies=[_dep("notify-cmd", "INBOUND", "COMMAND")],
        ),
    )


class TestScenarios:
    """The cart walkthrough from command to read model and its failure cases."""

    def test_state_change_commit_without_warnings(self):
        builder = ModelBuilder()
        builder.add_slice("add-item", "Add Item", "STATE_CHANGE", index=1)
        builder.add_element("add-item", _element("cmd", "COMMAND", "Add Item to Cart"))
        builder.add_element(
            "add-item",
            _element(
                "evt",
                "EVENT",
                "Item Added to Cart",
                [_dep("cmd", "INBOUND", "COMMAND")],
            ),
        )

        result = builder.commit_slice("add-item")

        assert result.slice_id == "add-item"
        assert result.warnings == []
        assert builder.is_committed("add-item")
        cmd = builder.get_element("cmd")
        assert cmd.find_dependency("evt", DependencyType.OUTBOUND) is not None

    def test_state_view_fed_by_event(self, cart_builder):
        assert cart_builder.committed_slices() == ["add-item", "cart-items"]
        rm = cart_builder.get_element("cart-items-rm")
        assert [d.id for d in rm.inbound()] == ["item-added"]
        event = cart_builder.get_element("item-added")
        assert event.find_dependency("cart-items-rm", DependencyType.OUTBOUND)

    def test_closing_cycle_raises_and_leaves_model_unchanged(self, cart_builder):
        before = cart_builder.to_json()
        assert cart_builder.has_path("add-item-cmd", "cart-items-rm")

        with pytest.raises(CycleError):
            cart_builder.add_dependency(
                "cart-items-rm", _dep("add-item-cmd", "OUTBOUND", "COMMAND")
            )

        assert cart_builder.to_json() == before

    def test_event_fed_processor_is_invalid_transition(self, cart_builder):
        cart_builder.add_slice("notify", "Notify", "AUTOMATION", index=3)
        before = cart_builder.to_json()

        with pytest.raises(InvalidTransitionError) as exc_info:
            cart_builder.add_element(
                "notify",
                _element(
                    "notify-proc",
                    "AUTOMATION",
                    dependencies=[_dep("item-added", "INBOUND", "EVENT")],
                ),
            )

        assert "EVENT -> AUTOMATION" in exc_info.value.message
        assert cart_builder.get_element("notify-proc") is None
        assert cart_builder.to_json() == before

    def test_remove_referenced_event_requires_cascade(self, cart_builder):
        before = cart_builder.to_json()

        with pytest.raises(ReferencedElementError) as exc_info:
            cart_builder.remove_element("item-added")

        assert "cart-items-rm" in exc_info.value.message
        assert cart_builder.to_json() == before

    def test_cascade_remove_cleans_edges(self, cart_builder):
        result = cart_builder.remove_element("item-added", cascade=True)

        assert cart_builder.get_element("item-added") is None
        assert cart_builder.get_element("cart-items-rm").dependencies == []
        assert cart_builder.get_element("add-item-cmd").dependencies == []
        assert ("cart-items-rm", "item-added", "INBOUND") in result.removed_edges
        assert ("add-item-cmd", "item-added", "OUTBOUND") in result.removed_edges
        assert sorted(result.reopened_slices) == ["add-item", "cart-items"]
        assert cart_builder.committed_slices() == []
        assert cart_builder.validate().valid


class TestAddSlice:
    def test_duplicate_slice_id(self, cart_builder):
        with pytest.raises(DuplicateIdError):
            cart_builder.add_slice("add-item", "Again", "STATE_CHANGE", index=9)

    def test_duplicate_index(self, cart_builder):
        with pytest.raises(DuplicateIdError):
            cart_builder.add_slice("other", "Other", "STATE_VIEW", index=1)

    def test_unknown_slice_type(self):
        builder = ModelBuilder()
        with pytest.raises(SchemaViolationError):
            builder.add_slice("s", "S", "STATE_SOMETHING", index=1)
        assert builder.slices() == []

    def test_rejects_element_arrays(self):
        builder = ModelBuilder()
        with pytest.raises(SchemaViolationError):
            builder.add_slice("s", "S", "STATE_VIEW", index=1, readmodels=[])

    @pytest.mark.parametrize(
        "extra", [{"id": "other"}, {"sliceType": "STATE_CHANGE"}]
    )
    def test_rejects_repeated_identity(self, extra):
        builder = ModelBuilder()
        with pytest.raises(SchemaViolationError):
            builder.add_slice("s", "S", "STATE_VIEW", index=1, **extra)
        assert builder.slices() == []

    def test_rejects_unknown_attribute(self):
        builder = ModelBuilder()
        with pytest.raises(SchemaViolationError):
            builder.add_slice("s", "S", "STATE_VIEW", index=1, colour="red")

    def test_optional_attributes(self):
        builder = ModelBuilder()
        s = builder.add_slice(
            "s", "S", "STATE_VIEW", index=1, status="InProgress", aggregates=["Cart"]
        )
        assert s.status.value == "InProgress"
        assert builder.serialize()["slices"][0]["status"] == "InProgress"

    def test_slices_in_index_order(self):
        builder = ModelBuilder()
        builder.add_slice("b", "B", "STATE_VIEW", index=5)
        builder.add_slice("a", "A", "STATE_CHANGE", index=2)
        assert [s.id for s in builder.slices()] == ["a", "b"]


class TestAddElement:
    def test_duplicate_id_across_slices(self, cart_builder):
        with pytest.raises(DuplicateIdError):
            cart_builder.add_element("cart-items", _element("add-item-cmd", "COMMAND"))

    def test_unknown_slice(self):
        builder = ModelBuilder()
        with pytest.raises(UnknownReferenceError):
            builder.add_element("missing", _element("x", "COMMAND"))

    def test_placed_by_type(self):
        builder = ModelBuilder()
        builder.add_slice("s", "S", "AUTOMATION", index=1)
        builder.add_element("s", _element("p", "AUTOMATION"))
        assert [e.id for e in builder.get_slice("s").processors] == ["p"]

    def test_missing_required_key(self):
        builder = ModelBuilder()
        builder.add_slice("s", "S", "STATE_VIEW", index=1)
        payload = _element("rm", "READMODEL")
        del payload["dependencies"]
        with pytest.raises(SchemaViolationError):
            builder.add_element("s", payload)

    def test_empty_field_name(self):
        builder = ModelBuilder()
        builder.add_slice("s", "S", "STATE_VIEW", index=1)
        with pytest.raises(FieldValidationError):
            builder.add_element(
                "s", _element("rm", "READMODEL", fields=[{"name": "", "type": "String"}])
            )
        assert builder.get_element("rm") is None

    def test_duplicate_field_name(self):
        builder = ModelBuilder()
        builder.add_slice("s", "S", "STATE_VIEW", index=1)
        fields = [
            {"name": "cartId", "type": "UUID"},
            {"name": "cartId", "type": "String"},
        ]
        with pytest.raises(FieldValidationError):
            builder.add_element("s", _element("rm", "READMODEL", fields=fields))

    def test_subfields_require_custom_type(self):
        builder = ModelBuilder()
        builder.add_slice("s", "S", "STATE_VIEW", index=1)
        fields = [
            {
                "name": "items",
                "type": "String",
                "subfields": [{"name": "sku", "type": "String"}],
            }
        ]
        with pytest.raises(FieldValidationError):
            builder.add_element("s", _element("rm", "READMODEL", fields=fields))

    def test_nested_custom_fields(self):
        builder = ModelBuilder()
        builder.add_slice("s", "S", "STATE_VIEW", index=1)
        fields = [
            {
                "name": "items",
                "type": "Custom",
                "cardinality": "List",
                "subfields": [
                    {"name": "sku", "type": "String"},
                    {"name": "price", "type": "Decimal", "example": "9.99"},
                ],
            }
        ]
        rm = builder.add_element("s", _element("rm", "READMODEL", fields=fields))
        assert [f.name for f in rm.fields[0].subfields] == ["sku", "price"]

    def test_adding_to_committed_slice_reopens_it(self, cart_builder):
        cart_builder.add_element("add-item", _element("extra", "SCREEN"))
        assert not cart_builder.is_committed("add-item")
        assert cart_builder.is_committed("cart-items")


class TestAddDependency:
    def test_mirror_is_inserted(self):
        builder = ModelBuilder()
        builder.add_slice("s", "S", "STATE_CHANGE", index=1)
        builder.add_element("s", _element("cmd", "COMMAND", "Add Item"))
        builder.add_element("s", _element("evt", "EVENT", "Item Added"))

        builder.add_dependency("cmd", _dep("evt", "OUTBOUND", "EVENT"))

        mirror = builder.get_element("evt").find_dependency("cmd", DependencyType.INBOUND)
        assert mirror is not None
        assert mirror.element_type == ElementType.COMMAND
        assert mirror.title == "Add Item"
        assert builder.dependency_graph() == {"cmd": ["evt"], "evt": []}

    def test_unknown_target(self, cart_builder):
        with pytest.raises(UnknownReferenceError):
            cart_builder.add_dependency(
                "cart-items-rm", _dep("ghost", "OUTBOUND", "SCREEN")
            )

    def test_unknown_source(self, cart_builder):
        with pytest.raises(UnknownReferenceError):
            cart_builder.add_dependency("ghost", _dep("item-added", "INBOUND", "EVENT"))

    def test_declared_type_mismatch(self, cart_builder):
        with pytest.raises(TypeMismatchError):
            cart_builder.add_dependency(
                "cart-items-rm", _dep("add-item-cmd", "INBOUND", "EVENT")
            )

    def test_duplicate_edge(self, cart_builder):
        with pytest.raises(DuplicateIdError):
            cart_builder.add_dependency(
                "add-item-cmd", _dep("item-added", "OUTBOUND", "EVENT")
            )

    def test_self_loop_is_cycle(self):
        builder = ModelBuilder()
        builder.add_slice("s", "S", "STATE_CHANGE", index=1)
        builder.add_element("s", _element("cmd", "COMMAND"))
        with pytest.raises(CycleError):
            builder.add_dependency("cmd", _dep("cmd", "OUTBOUND", "COMMAND"))

    def test_transition_outside_table(self, cart_builder):
        # EVENT -> COMMAND is not an allowed pair
        cart_builder.add_slice("next", "Next", "STATE_CHANGE", index=3)
        cart_builder.add_element("next", _element("next-cmd", "COMMAND"))
        with pytest.raises(InvalidTransitionError):
            cart_builder.add_dependency(
                "item-added", _dep("next-cmd", "OUTBOUND", "COMMAND")
            )

    def test_event_fed_automation_opt_in(self, cart_builder):
        rules = RulesConfig(allow_event_fed_automation=True)
        builder = ModelBuilder(cart_builder.snapshot(), rules=rules)
        builder.add_slice("notify", "Notify", "AUTOMATION", index=3)
        builder.add_element(
            "notify",
            _element(
                "notify-proc",
                "AUTOMATION",
                dependencies=[_dep("item-added", "INBOUND", "EVENT")],
            ),
        )
        assert builder.has_path("item-added", "notify-proc")

    def test_does_not_reopen_committed_slice(self, cart_builder):
        _add_automation_slice(cart_builder)
        assert cart_builder.is_committed("cart-items")


class TestCommitSlice:
    def test_automation_slice(self, cart_builder):
        _add_automation_slice(cart_builder)
        result = cart_builder.commit_slice("notify")
        assert result.warnings == []
        assert cart_builder.validate().valid

    def test_wrong_counts(self):
        builder = ModelBuilder()
        builder.add_slice("s", "S", "STATE_CHANGE", index=1)
        builder.add_element("s", _element("cmd", "COMMAND"))
        with pytest.raises(CompositionError) as exc_info:
            builder.commit_slice("s")
        assert "0 events" in exc_info.value.message
        assert not builder.is_committed("s")

    def test_disconnected_element(self):
        builder = ModelBuilder()
        builder.add_slice("s", "S", "STATE_VIEW", index=1)
        builder.add_element("s", _element("rm", "READMODEL"))
        with pytest.raises(DisconnectedElementError):
            builder.commit_slice("s")

    def test_disconnected_allowed_when_disabled(self):
        builder = ModelBuilder(rules=RulesConfig(require_connected_elements=False))
        builder.add_slice("s", "S", "STATE_VIEW", index=1)
        builder.add_element("s", _element("rm", "READMODEL"))
        assert builder.commit_slice("s").warnings == []

    def test_processor_without_read_model_feed(self):
        builder = ModelBuilder()
        builder.add_slice("auto", "Auto", "AUTOMATION", index=1)
        builder.add_element("auto", _element("proc", "AUTOMATION"))
        builder.add_element(
            "auto",
            _element("cmd", "COMMAND", dependencies=[_dep("proc", "INBOUND", "AUTOMATION")]),
        )
        builder.add_element(
            "auto",
            _element("evt", "EVENT", dependencies=[_dep("cmd", "INBOUND", "COMMAND")]),
        )
        with pytest.raises(CompositionError) as exc_info:
            builder.commit_slice("auto")
        assert "proc" in exc_info.value.message

    def test_screen_after_state_view_has_no_warning(self, cart_builder):
        cart_builder.add_slice("checkout", "Checkout", "STATE_CHANGE", index=3)
        cart_builder.add_element(
            "checkout",
            _element(
                "cart-screen",
                "SCREEN",
                dependencies=[_dep("cart-items-rm", "INBOUND", "READMODEL")],
            ),
        )
        cart_builder.add_element(
            "checkout",
            _element(
                "checkout-cmd",
                "COMMAND",
                dependencies=[_dep("cart-screen", "INBOUND", "SCREEN")],
            ),
        )
        cart_builder.add_element(
            "checkout",
            _element(
                "checked-out",
                "EVENT",
                dependencies=[_dep("checkout-cmd", "INBOUND", "COMMAND")],
            ),
        )
        assert cart_builder.commit_slice("checkout").warnings == []

    def test_screen_without_predecessor_warns(self):
        builder = ModelBuilder()
        builder.add_slice("s", "S", "STATE_CHANGE", index=1)
        builder.add_element("s", _element("screen", "SCREEN"))
        builder.add_element(
            "s", _element("cmd", "COMMAND", dependencies=[_dep("screen", "INBOUND", "SCREEN")])
        )
        builder.add_element(
            "s", _element("evt", "EVENT", dependencies=[_dep("cmd", "INBOUND", "COMMAND")])
        )

        result = builder.commit_slice("s")

        assert len(result.warnings) == 1
        assert isinstance(result.warnings[0], SequencingError)
        assert builder.is_committed("s")

    def test_sequencing_warnings_can_be_disabled(self):
        builder = ModelBuilder(rules=RulesConfig(sequencing_warnings=False))
        builder.add_slice("s", "S", "STATE_CHANGE", index=1)
        builder.add_element("s", _element("screen", "SCREEN"))
        builder.add_element(
            "s", _element("cmd", "COMMAND", dependencies=[_dep("screen", "INBOUND", "SCREEN")])
        )
        builder.add_element(
            "s", _element("evt", "EVENT", dependencies=[_dep("cmd", "INBOUND", "COMMAND")])
        )
        assert builder.commit_slice("s").warnings == []

    def test_unknown_slice(self):
        with pytest.raises(UnknownReferenceError):
            ModelBuilder().commit_slice("missing")


def _spec(spec_id, linked_id, given=(), when=(), then=()):
    return {
        "id": spec_id,
        "title": spec_id,
        "given": list(given),
        "when": list(when),
        "then": list(then),
        "linkedId": linked_id,
    }


def _step(step_id, step_type, linked_id=None):
    step = {"id": step_id, "title": step_id, "type": step_type, "fields": []}
    if linked_id is not None:
        step["linkedId"] = linked_id
    return step


class TestSpecifications:
    def test_add_specification(self, cart_builder):
        cart_builder.add_specification(
            "add-item",
            _spec(
                "spec-add",
                "add-item-cmd",
                when=[_step("w1", "SPEC_COMMAND", "add-item-cmd")],
                then=[_step("t1", "SPEC_EVENT", "item-added")],
            ),
        )
        assert not cart_builder.is_committed("add-item")
        assert cart_builder.serialize()["slices"][0]["specifications"][0]["id"] == "spec-add"

    def test_unknown_linked_id(self, cart_builder):
        with pytest.raises(UnknownReferenceError):
            cart_builder.add_specification("add-item", _spec("s1", "ghost"))
        assert cart_builder.is_committed("add-item")

    def test_step_type_mismatch(self, cart_builder):
        with pytest.raises(TypeMismatchError):
            cart_builder.add_specification(
                "add-item",
                _spec("s1", "add-item-cmd", then=[_step("t1", "SPEC_EVENT", "add-item-cmd")]),
            )

    def test_error_step_cannot_link(self, cart_builder):
        with pytest.raises(TypeMismatchError):
            cart_builder.add_specification(
                "add-item",
                _spec("s1", "add-item-cmd", then=[_step("t1", "SPEC_ERROR", "item-added")]),
            )

    def test_state_view_spec_has_no_when(self, cart_builder):
        with pytest.raises(CompositionError):
            cart_builder.add_specification(
                "cart-items",
                _spec(
                    "s1",
                    "cart-items-rm",
                    when=[_step("w1", "SPEC_COMMAND", "add-item-cmd")],
                ),
            )

    def test_duplicate_step_id(self, cart_builder):
        with pytest.raises(DuplicateIdError):
            cart_builder.add_specification(
                "add-item",
                _spec(
                    "s1",
                    "add-item-cmd",
                    given=[_step("x", "SPEC_EVENT")],
                    then=[_step("x", "SPEC_EVENT")],
                ),
            )

    def test_cascade_removes_linked_steps(self, cart_builder):
        cart_builder.add_specification(
            "add-item",
            _spec(
                "spec-add",
                "add-item-cmd",
                when=[_step("w1", "SPEC_COMMAND", "add-item-cmd")],
                then=[_step("t1", "SPEC_EVENT", "item-added")],
            ),
        )

        result = cart_builder.remove_element("item-added", cascade=True)

        assert result.removed_steps == ["t1"]
        assert result.removed_specifications == []
        spec = cart_builder.get_slice("add-item").specifications[0]
        assert spec.then == []
        assert [s.id for s in spec.when] == ["w1"]

    def test_cascade_removes_linked_specification(self, cart_builder):
        cart_builder.add_specification("add-item", _spec("spec-add", "add-item-cmd"))

        result = cart_builder.remove_element("add-item-cmd", cascade=True)

        assert result.removed_specifications == ["spec-add"]
        assert cart_builder.get_slice("add-item").specifications == []

    def test_specification_blocks_plain_remove(self):
        builder = ModelBuilder()
        builder.add_slice("s", "S", "STATE_VIEW", index=1)
        builder.add_element("s", _element("rm", "READMODEL"))
        builder.add_specification("s", _spec("spec", "rm"))
        with pytest.raises(ReferencedElementError):
            builder.remove_element("rm")


class TestRemoveElement:
    def test_unreferenced_element(self):
        builder = ModelBuilder()
        builder.add_slice("s", "S", "STATE_VIEW", index=1)
        builder.add_element("s", _element("rm", "READMODEL"))

        result = builder.remove_element("rm")

        assert result.removed_edges == []
        assert builder.get_element("rm") is None

    def test_unknown_element(self):
        with pytest.raises(UnknownReferenceError):
            ModelBuilder().remove_element("ghost", cascade=True)


class TestTablesAndQueries:
    def test_add_table(self, cart_builder):
        table = cart_builder.add_table(
            "cart-items",
            {"id": "cart-table", "title": "Cart", "fields": [{"name": "cartId", "type": "UUID"}]},
        )
        assert table.id == "cart-table"
        assert not cart_builder.is_committed("cart-items")

    def test_duplicate_table(self, cart_builder):
        payload = {"id": "t", "title": "T", "fields": []}
        cart_builder.add_table("cart-items", payload)
        with pytest.raises(DuplicateIdError):
            cart_builder.add_table("add-item", payload)

    def test_queries_return_copies(self, cart_builder):
        element = cart_builder.get_element("cart-items-rm")
        element.dependencies.clear()
        cart_builder.snapshot().slices.clear()
        assert cart_builder.get_element("cart-items-rm").dependencies
        assert len(cart_builder.slices()) == 2

    def test_from_serialized_commits_every_slice(self, cart_model_data):
        builder = ModelBuilder.from_serialized(cart_model_data)
        assert builder.committed_slices() == ["add-item", "cart-items"]
        assert builder.serialize() == cart_model_data

    def test_failed_calls_are_atomic(self, cart_builder):
        before = cart_builder.to_json()
        failing = [
            lambda: cart_builder.add_slice("add-item", "X", "STATE_VIEW", index=7),
            lambda: cart_builder.add_element("cart-items", _element("item-added", "EVENT")),
            lambda: cart_builder.add_dependency(
                "item-added", _dep("add-item-cmd", "OUTBOUND", "COMMAND")
            ),
            lambda: cart_builder.remove_element("add-item-cmd"),
            lambda: cart_builder.add_specification("cart-items", _spec("s", "ghost")),
        ]
        for call in failing:
            with pytest.raises(Exception):
                call()
            assert cart_builder.to_json() == before
        assert cart_builder.committed_slices() == ["add-item", "cart-items"]
