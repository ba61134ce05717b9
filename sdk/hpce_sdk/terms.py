"""
Triple operations and value ranges for the HPCE SDK.

A triple is stored twice: once on the segment that owns the object item
(the subject record) and once on the segment that owns the subject item
(the object record). Each half is a TripleOp, rendered to the engine's
term syntax only when a segment buffer is flushed.

Invariants:
    - Types are integers in (0, 0x7FFF]
    - Actions are integers in (0, 0x7F]
    - Items are integers within the store's ItemRange
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

MAX_TYPE = 0x7FFF
MAX_ACTION = 0x7F
DEFAULT_MIN_ITEM = 0
DEFAULT_MAX_ITEM = 0xFFFFFFFF


class Role(Enum):
    """Which side of a triple a symbol belongs to."""

    SUBJECT = "subject"
    OBJECT = "object"


class OpKind(Enum):
    """Kinds of buffered segment operations."""

    ADD_SUBJECT = "add-as-subject-record"
    ADD_OBJECT = "add-as-object-record"
    DELETE_SUBJECT = "delete-subject-record"
    DELETE_OBJECT = "delete-object-record"


@dataclass(frozen=True)
class TripleOp:
    """One half of a triple, as held by the owning segment.

    The fields always carry the logical subject and object of the triple;
    the kind decides which side leads in the rendered term. Delete kinds
    carry no action.

    Attributes:
        kind: Operation kind
        subject_type: Subject type id
        subject_item: Subject item id
        action: Action id (None for deletes)
        object_type: Object type id
        object_item: Object item id
    """

    kind: OpKind
    subject_type: int
    subject_item: int
    action: Optional[int]
    object_type: int
    object_item: int

    @classmethod
    def add_subject(cls, st: int, si: int, a: int, ot: int, oi: int) -> TripleOp:
        return cls(OpKind.ADD_SUBJECT, st, si, a, ot, oi)

    @classmethod
    def add_object(cls, st: int, si: int, a: int, ot: int, oi: int) -> TripleOp:
        return cls(OpKind.ADD_OBJECT, st, si, a, ot, oi)

    @classmethod
    def delete_subject(cls, st: int, si: int, ot: int, oi: int) -> TripleOp:
        return cls(OpKind.DELETE_SUBJECT, st, si, None, ot, oi)

    @classmethod
    def delete_object(cls, st: int, si: int, ot: int, oi: int) -> TripleOp:
        return cls(OpKind.DELETE_OBJECT, st, si, None, ot, oi)

    @property
    def owner_item(self) -> int:
        """Item id whose segment receives this operation."""
        if self.kind in (OpKind.ADD_SUBJECT, OpKind.DELETE_SUBJECT):
            return self.object_item
        return self.subject_item

    def to_term(self) -> str:
        """Render the operation in the engine's bulk-load term syntax."""
        subj = f"subject({self.subject_type},{self.subject_item})"
        obj = f"object({self.object_type},{self.object_item})"
        if self.kind is OpKind.ADD_SUBJECT:
            return f"triple({subj},{self.action},{obj})"
        if self.kind is OpKind.ADD_OBJECT:
            return f"triple({obj},{self.action},{subj})"
        if self.kind is OpKind.DELETE_SUBJECT:
            return f"triple({subj},{obj})"
        return f"triple({obj},{subj})"


def render_batch(ops: list[TripleOp]) -> str:
    """Render a batch of operations as one bulk-load list."""
    return "[" + ",".join(op.to_term() for op in ops) + "]"


@dataclass(frozen=True)
class ItemRange:
    """Inclusive bounds on item ids, as reported by the store."""

    min_item: int = DEFAULT_MIN_ITEM
    max_item: int = DEFAULT_MAX_ITEM

    def contains(self, item: Any) -> bool:
        return _is_int(item) and self.min_item <= item <= self.max_item


def type_check(value: Any) -> bool:
    """Whether value is a valid subject or object type id."""
    return _is_int(value) and 0 < value <= MAX_TYPE


def action_check(value: Any) -> bool:
    """Whether value is a valid action id."""
    return _is_int(value) and 0 < value <= MAX_ACTION


def prologify(value: Any) -> Any:
    """Quote a string as an atom, escaping embedded single quotes."""
    if isinstance(value, str):
        escaped = value.replace("'", "\\'")
        return f"'{escaped}'"
    return value


def no_spaces(value: Any) -> Any:
    """Replace spaces in a symbol name with underscores."""
    if isinstance(value, str):
        return value.replace(" ", "_")
    return value


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
