"""
Unit tests for triple operations and range checks.

Tests cover:
- Term rendering per operation kind
- Owning item per operation kind
- Batch rendering
- Type, action and item range checks
- Name helpers
"""

import pytest

from hpce_sdk.terms import (
    ItemRange,
    OpKind,
    TripleOp,
    action_check,
    no_spaces,
    prologify,
    render_batch,
    type_check,
)


class TestTripleOp:
    """Tests for TripleOp rendering and ownership."""

    def test_add_subject_term(self):
        op = TripleOp.add_subject(1, 10, 5, 2, 20)
        assert op.kind is OpKind.ADD_SUBJECT
        assert op.to_term() == "triple(subject(1,10),5,object(2,20))"

    def test_add_object_term(self):
        op = TripleOp.add_object(1, 10, 5, 2, 20)
        assert op.kind is OpKind.ADD_OBJECT
        assert op.to_term() == "triple(object(2,20),5,subject(1,10))"

    def test_delete_subject_term_has_no_action(self):
        op = TripleOp.delete_subject(1, 10, 2, 20)
        assert op.action is None
        assert op.to_term() == "triple(subject(1,10),object(2,20))"

    def test_delete_object_term(self):
        op = TripleOp.delete_object(1, 10, 2, 20)
        assert op.to_term() == "triple(object(2,20),subject(1,10))"

    def test_subject_records_owned_by_object_item(self):
        """Subject-keyed records live with the object item."""
        assert TripleOp.add_subject(1, 10, 5, 2, 21).owner_item == 21
        assert TripleOp.delete_subject(1, 10, 2, 21).owner_item == 21

    def test_object_records_owned_by_subject_item(self):
        """Object-keyed records live with the subject item."""
        assert TripleOp.add_object(1, 10, 5, 2, 21).owner_item == 10
        assert TripleOp.delete_object(1, 10, 2, 21).owner_item == 10

    def test_ops_are_immutable(self):
        op = TripleOp.add_subject(1, 10, 5, 2, 20)
        with pytest.raises(AttributeError):
            op.action = 6  # type: ignore[misc]


class TestRenderBatch:
    """Tests for bulk body rendering."""

    def test_empty_batch(self):
        assert render_batch([]) == "[]"

    def test_batch_preserves_order(self):
        ops = [
            TripleOp.add_subject(1, 10, 5, 2, 20),
            TripleOp.delete_object(1, 11, 2, 21),
        ]
        assert render_batch(ops) == (
            "[triple(subject(1,10),5,object(2,20)),"
            "triple(object(2,21),subject(1,11))]"
        )


class TestRangeChecks:
    """Tests for type, action and item bounds."""

    @pytest.mark.parametrize("value", [1, 0x7FFF, 300])
    def test_valid_types(self, value):
        assert type_check(value)

    @pytest.mark.parametrize("value", [0, -1, 0x8000, "1", 1.0, True, None])
    def test_invalid_types(self, value):
        assert not type_check(value)

    @pytest.mark.parametrize("value", [1, 0x7F])
    def test_valid_actions(self, value):
        assert action_check(value)

    @pytest.mark.parametrize("value", [0, 0x80, "likes", None])
    def test_invalid_actions(self, value):
        assert not action_check(value)

    def test_default_item_range(self):
        rng = ItemRange()
        assert rng.contains(0)
        assert rng.contains(0xFFFFFFFF)
        assert not rng.contains(0x100000000)
        assert not rng.contains(-1)

    def test_custom_item_range(self):
        rng = ItemRange(min_item=100, max_item=200)
        assert rng.contains(100)
        assert rng.contains(200)
        assert not rng.contains(99)
        assert not rng.contains(150.0)


class TestNameHelpers:
    """Tests for prologify and no_spaces."""

    def test_prologify_quotes_string(self):
        assert prologify("Alice") == "'Alice'"

    def test_prologify_escapes_quotes(self):
        assert prologify("O'Brien") == "'O\\'Brien'"

    def test_prologify_passes_numbers(self):
        assert prologify(42) == 42

    def test_no_spaces(self):
        assert no_spaces("The Matrix Reloaded") == "The_Matrix_Reloaded"
        assert no_spaces(7) == 7
