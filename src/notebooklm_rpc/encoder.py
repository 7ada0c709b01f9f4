"""Positional argument encoding.

batchexecute arguments are positional, nested JSON arrays: the server reads
slot N of the array, not a named field, so a slot at the wrong index or a
collection one bracket too shallow is silently rejected. Each operation
therefore declares a SlotTemplate and a single generic encoder realises it.

Example - act on sources, as captured from the browser:

    [[[["src1"]]],null,null,null,null,["do_it",[["[CONTEXT]",""]],""],null,[2,null,[1]]]

    SlotTemplate(
        Nested("source_ids", depth=3),           # [0] [[[id, ...]]]
        NULL, NULL, NULL, NULL,                  # [1..4]
        Group(Field("action"),
              Const([["[CONTEXT]", ""]]),
              Const("")),                        # [5] action descriptor
        NULL,                                    # [6]
        Const([2, None, [1]]),                   # [7] client metadata
    )
"""

import copy
import json
from dataclasses import dataclass
from typing import Any, Mapping

from .errors import EncodeError

_MISSING = object()


class Slot:
    """One position of an argument array."""

    def realise(self, request: Any, operation_id: str) -> Any:
        raise NotImplementedError


class _Null(Slot):
    def realise(self, request: Any, operation_id: str) -> None:
        return None

    def __repr__(self) -> str:
        return "NULL"


# Constant null placeholder
NULL = _Null()


@dataclass(frozen=True)
class Const(Slot):
    """A fixed literal, copied on every call so templates stay immutable."""

    value: Any

    def realise(self, request: Any, operation_id: str) -> Any:
        return copy.deepcopy(self.value)


def _lookup(request: Any, name: str, operation_id: str, default: Any = _MISSING) -> Any:
    """Read a request field from a mapping or an attribute."""
    if isinstance(request, Mapping):
        value = request.get(name, default)
    else:
        value = getattr(request, name, default)
    if value is _MISSING:
        raise EncodeError(f"missing request field '{name}'", operation_id)
    return value


@dataclass(frozen=True)
class Field(Slot):
    """A scalar taken from the request."""

    name: str
    default: Any = _MISSING

    def realise(self, request: Any, operation_id: str) -> Any:
        return _lookup(request, self.name, operation_id, self.default)


@dataclass(frozen=True)
class Nested(Slot):
    """A collection field realised at an exact nesting depth.

    ``depth`` counts every list level of the slot value:
    1 -> [a, b], 2 -> [[a, b]], 3 -> [[[a, b]]].

    With ``per_item`` each element is wrapped on its own under a single outer
    list: depth 3 -> [[[a]], [[b]]].

    A missing (None) or empty collection keeps its brackets: depth 2 -> [[]],
    never [null].
    """

    name: str
    depth: int
    per_item: bool = False

    def __post_init__(self):
        if self.depth < 1:
            raise ValueError(f"Nested depth must be >= 1, got {self.depth}")

    def realise(self, request: Any, operation_id: str) -> list:
        value = _lookup(request, self.name, operation_id)
        if value is None:
            items = []
        elif isinstance(value, (list, tuple)):
            items = list(value)
        else:
            # A single id stands for a one-element collection
            items = [value]

        if self.per_item:
            return [_wrap(item, self.depth - 1) for item in items]
        return _wrap(items, self.depth - 1)


def _wrap(value: Any, times: int) -> Any:
    for _ in range(times):
        value = [value]
    return value


class Group(Slot):
    """A fixed sub-array made of further slots."""

    def __init__(self, *slots: Slot):
        self.slots = slots

    def realise(self, request: Any, operation_id: str) -> list:
        return [slot.realise(request, operation_id) for slot in self.slots]

    def __repr__(self) -> str:
        return f"Group{self.slots!r}"


class SlotTemplate:
    """The positional layout of one operation's argument array."""

    def __init__(self, *slots: Slot, version: str = "2025-11"):
        self.slots = slots
        self.version = version

    def __len__(self) -> int:
        return len(self.slots)

    def __repr__(self) -> str:
        return f"SlotTemplate({len(self.slots)} slots, version={self.version!r})"


class ArgumentEncoder:
    """Realises slot templates and serializes them to compact JSON."""

    def encode(self, template: SlotTemplate, request: Any, operation_id: str = "") -> list:
        """Build the positional argument array for ``request``."""
        return [slot.realise(request, operation_id) for slot in template.slots]

    def serialize(self, value: Any, operation_id: str = "") -> str:
        """JSON-encode ``value`` in Chrome's compact format (no spaces)."""
        try:
            return json.dumps(value, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as e:
            raise EncodeError(f"cannot serialize arguments: {e}", operation_id) from e

    def encode_json(self, template: SlotTemplate, request: Any, operation_id: str = "") -> str:
        return self.serialize(self.encode(template, request, operation_id), operation_id)
