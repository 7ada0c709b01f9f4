"""Operation registry.

Each remote operation is declared once: its RPC id, the route it is posted
to, how its arguments are wrapped into ``f.req`` and the slot template of
its argument array. Adding an operation means adding an entry here.
"""

import enum
from dataclasses import dataclass
from typing import Any

from . import constants
from .encoder import (
    NULL,
    ArgumentEncoder,
    Const,
    Field,
    Group,
    Nested,
    SlotTemplate,
)


class Envelope(enum.Enum):
    """How serialized arguments are placed into the ``f.req`` form field."""

    RAW = "raw"                    # args JSON verbatim
    BATCHEXECUTE = "batchexecute"  # [[[rpc_id, "<args>", null, "generic"]]]
    STREAMED = "streamed"          # [null, "<args>"]


@dataclass(frozen=True)
class Operation:
    """A logical remote operation."""

    name: str
    rpc_id: str | None
    template: SlotTemplate | None
    envelope: Envelope = Envelope.BATCHEXECUTE
    route: str = constants.BATCHEXECUTE_ROUTE

    @property
    def id(self) -> str:
        """Identifier used in logs and errors."""
        return self.rpc_id or self.name

    @classmethod
    def adhoc(cls, rpc_id: str) -> "Operation":
        """A batchexecute operation without a template (positional args given directly)."""
        return cls(name=constants.RPC_NAMES.get(rpc_id, rpc_id), rpc_id=rpc_id, template=None)

    def query_params(self) -> dict[str, str]:
        """Query parameters specific to this operation."""
        if self.envelope is Envelope.BATCHEXECUTE and self.rpc_id:
            return {"rpcids": self.rpc_id}
        return {}

    def build_f_req(self, encoder: ArgumentEncoder, args: list) -> str:
        """Serialize ``args`` and wrap them into the ``f.req`` value."""
        args_json = encoder.serialize(args, self.id)
        if self.envelope is Envelope.RAW:
            return args_json
        if self.envelope is Envelope.STREAMED:
            return encoder.serialize([None, args_json], self.id)
        return encoder.serialize([[[self.rpc_id, args_json, None, "generic"]]], self.id)


# =============================================================================
# Request types
# =============================================================================
@dataclass
class ActOnSourcesRequest:
    """Run an action (e.g. "interactive_mindmap") over a set of sources."""

    source_ids: list[str]
    action: str


@dataclass
class GenerateFreeFormStreamedRequest:
    """Ask a free-form question grounded in a set of sources."""

    source_ids: list[str]
    prompt: str


# =============================================================================
# Templates
# =============================================================================
ACT_ON_SOURCES = Operation(
    name="act_on_sources",
    rpc_id=constants.RPC_ACT_ON_SOURCES,
    template=SlotTemplate(
        Nested("source_ids", depth=3),
        NULL,
        NULL,
        NULL,
        NULL,
        Group(Field("action"), Const([[constants.CONTEXT_MARKER, ""]]), Const("")),
        NULL,
        Const(constants.CLIENT_METADATA),
    ),
)

GENERATE_FREE_FORM_STREAMED = Operation(
    name="generate_free_form_streamed",
    rpc_id=None,
    template=SlotTemplate(
        Nested("source_ids", depth=2),
        Field("prompt"),
        NULL,
        NULL,
        NULL,
        NULL,
        NULL,
        Const(constants.CLIENT_METADATA),
    ),
    envelope=Envelope.STREAMED,
    route=constants.GENERATE_FREE_FORM_STREAMED_ROUTE,
)

LIST_RECENTLY_VIEWED_PROJECTS = Operation(
    name="list_recently_viewed_projects",
    rpc_id=constants.RPC_LIST_RECENTLY_VIEWED_PROJECTS,
    template=SlotTemplate(NULL, Const(1), NULL, Const([2])),
)

GET_PROJECT = Operation(
    name="get_project",
    rpc_id=constants.RPC_GET_PROJECT,
    template=SlotTemplate(Field("project_id"), NULL, Const([2]), NULL, Const(0)),
)

CREATE_PROJECT = Operation(
    name="create_project",
    rpc_id=constants.RPC_CREATE_PROJECT,
    template=SlotTemplate(
        Field("title", default=""),
        NULL,
        NULL,
        Const([2]),
        Const([1, None, None, None, None, None, None, None, None, None, [1]]),
    ),
)

# Rename: [project_id, [[null, null, null, [null, title]]]]
MUTATE_PROJECT = Operation(
    name="mutate_project",
    rpc_id=constants.RPC_MUTATE_PROJECT,
    template=SlotTemplate(
        Field("project_id"),
        Group(Group(NULL, NULL, NULL, Group(NULL, Field("title")))),
    ),
)

DELETE_PROJECTS = Operation(
    name="delete_projects",
    rpc_id=constants.RPC_DELETE_PROJECTS,
    template=SlotTemplate(Nested("project_ids", depth=1), Const([2])),
)

LOAD_SOURCE = Operation(
    name="load_source",
    rpc_id=constants.RPC_LOAD_SOURCE,
    template=SlotTemplate(Nested("source_id", depth=1), Const([2]), Const([2])),
)

CHECK_SOURCE_FRESHNESS = Operation(
    name="check_source_freshness",
    rpc_id=constants.RPC_CHECK_SOURCE_FRESHNESS,
    template=SlotTemplate(NULL, Nested("source_id", depth=1), Const([2])),
)

REFRESH_SOURCE = Operation(
    name="refresh_source",
    rpc_id=constants.RPC_REFRESH_SOURCE,
    template=SlotTemplate(NULL, Nested("source_id", depth=1), Const([2])),
)

# Note the extra nesting compared to delete_projects: [[[id]], [2]]
DELETE_SOURCES = Operation(
    name="delete_sources",
    rpc_id=constants.RPC_DELETE_SOURCES,
    template=SlotTemplate(Nested("source_ids", depth=2, per_item=True), Const([2])),
)

GENERATE_NOTEBOOK_GUIDE = Operation(
    name="generate_notebook_guide",
    rpc_id=constants.RPC_GENERATE_NOTEBOOK_GUIDE,
    template=SlotTemplate(Field("project_id"), Const([2])),
)

GENERATE_DOCUMENT_GUIDES = Operation(
    name="generate_document_guides",
    rpc_id=constants.RPC_GENERATE_DOCUMENT_GUIDES,
    template=SlotTemplate(Nested("source_ids", depth=3, per_item=True)),
)

GET_NOTES = Operation(
    name="get_notes",
    rpc_id=constants.RPC_GET_NOTES,
    template=SlotTemplate(Field("project_id")),
)

OPERATIONS: dict[str, Operation] = {
    op.name: op
    for op in (
        ACT_ON_SOURCES,
        GENERATE_FREE_FORM_STREAMED,
        LIST_RECENTLY_VIEWED_PROJECTS,
        GET_PROJECT,
        CREATE_PROJECT,
        MUTATE_PROJECT,
        DELETE_PROJECTS,
        LOAD_SOURCE,
        CHECK_SOURCE_FRESHNESS,
        REFRESH_SOURCE,
        DELETE_SOURCES,
        GENERATE_NOTEBOOK_GUIDE,
        GENERATE_DOCUMENT_GUIDES,
        GET_NOTES,
    )
}

_BY_RPC_ID: dict[str, Operation] = {op.rpc_id: op for op in OPERATIONS.values() if op.rpc_id}


def get_operation(key: Any) -> Operation:
    """Look up an operation by name or RPC id.

    Unknown RPC ids yield an ad hoc batchexecute operation that only accepts
    pre-built positional arguments.
    """
    if isinstance(key, Operation):
        return key
    if key in OPERATIONS:
        return OPERATIONS[key]
    if key in _BY_RPC_ID:
        return _BY_RPC_ID[key]
    return Operation.adhoc(key)
