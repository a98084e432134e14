"""Pydantic schemas for caller-supplied payloads.

Records themselves are dataclasses (see :mod:`nexus.graph.models`); these
models only describe what a caller may *send*: creation payloads, partial
updates and query options.  :func:`parse` is the single entry point and
turns pydantic's errors into :class:`nexus.errors.ValidationError`.
"""

from __future__ import annotations

from typing import Any, Literal, Mapping, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from nexus.config import settings
from nexus.errors import ValidationError
from nexus.graph.models import PROTECTED_FIELDS

SearchField = Literal["title", "content", "categories", "tags", "url"]
Direction = Literal["both", "in", "out"]

ALL_SEARCH_FIELDS: list[SearchField] = ["title", "content", "categories", "tags", "url"]

M = TypeVar("M", bound=BaseModel)


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------

class NodeCreate(BaseModel):
    id: Optional[str] = None
    title: Optional[str] = None
    content: dict[str, Any] = Field(default_factory=dict)
    url: Optional[str] = None
    timestamp: Optional[int] = None
    source: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    categories: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    auto_connect: list[str] = Field(default_factory=list)


class NodeUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    content: Optional[dict[str, Any]] = None
    url: Optional[str] = None
    timestamp: Optional[int] = None
    source: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    categories: Optional[list[str]] = None
    tags: Optional[list[str]] = None


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------

class EdgeCreate(BaseModel):
    id: Optional[str] = None
    source: str = Field(min_length=1)
    target: str = Field(min_length=1)
    type: Optional[str] = None
    label: str = ""
    weight: float = 1.0
    bidirectional: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: Optional[int] = None


class EdgeUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Optional[str] = None
    label: Optional[str] = None
    weight: Optional[float] = None
    bidirectional: Optional[bool] = None
    metadata: Optional[dict[str, Any]] = None


# ---------------------------------------------------------------------------
# Query options
# ---------------------------------------------------------------------------

class SearchOptions(BaseModel):
    limit: int = Field(default_factory=lambda: settings.search_default_limit, ge=0)
    offset: int = Field(default=0, ge=0)
    sort_by: str = "relevance"
    order: Literal["asc", "desc"] = "desc"
    search_in: list[SearchField] = Field(default_factory=lambda: list(ALL_SEARCH_FIELDS))


class TraversalOptions(BaseModel):
    depth: int = Field(default=1, ge=1)
    limit: int = Field(default_factory=lambda: settings.traversal_default_limit, ge=1)
    edge_types: Optional[list[str]] = None
    direction: Direction = "both"
    include_self: bool = False


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------

class InsightCreate(BaseModel):
    title: Optional[str] = None
    content: dict[str, Any]
    categories: Optional[list[str]] = None
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    insight_type: str = "general"
    generated_from: list[str] = Field(default_factory=list)
    related_nodes: list[str] = Field(default_factory=list)


class InsightQuery(BaseModel):
    node_ids: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    time_range: Optional[int] = Field(default=None, ge=0)
    limit: int = Field(default=20, ge=0)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def parse(model: type[M], data: Any = None, **overrides: Any) -> M:
    """Validate *data* against *model*.

    Args:
        model: The schema class.
        data: A *model* instance, a mapping, or ``None`` for all defaults.
        **overrides: Keyword fields layered over *data* (handy for options).

    Raises:
        ValidationError: If *data* is not a mapping or fails validation.
    """
    if isinstance(data, model) and not overrides:
        return data
    if isinstance(data, BaseModel):
        payload = data.model_dump(exclude_unset=True)
    elif data is None:
        payload = {}
    elif isinstance(data, Mapping):
        payload = dict(data)
    else:
        raise ValidationError(
            f"Invalid {model.__name__}: expected a mapping, got {type(data).__name__}"
        )
    payload.update(overrides)

    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {model.__name__}: {_describe(exc)}", cause=exc) from exc


def parse_update(model: type[M], updates: Any) -> dict[str, Any]:
    """Validate a partial update and return only the fields the caller set.

    Protected fields (``id``, ``preview``, ``created_at``, ``updated_at``) are
    dropped rather than rejected, so a full record can be passed back as an
    update without tripping validation.
    """
    if isinstance(updates, Mapping):
        updates = {k: v for k, v in updates.items() if k not in PROTECTED_FIELDS}
    parsed = parse(model, updates)
    return parsed.model_dump(exclude_unset=True)
