"""Dataclass models for graph records.

These are plain, frozen Python objects, not ORM models.  The store hands
the same instances to every reader, so nothing here is mutated in place:
updates go through :func:`merge_node` / :func:`merge_edge`, which return
new instances.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from nexus.config import settings
from nexus.errors import ValidationError


DEFAULT_TITLE = "Untitled"
DEFAULT_SOURCE = "manual"
DEFAULT_EDGE_TYPE = "related"
NO_PREVIEW = "No preview available"

# Fields an update may carry.  Everything else on a record is either
# immutable (``id``) or derived/stamped by the store.
NODE_MERGEABLE_FIELDS = frozenset(
    {"title", "content", "url", "timestamp", "source", "metadata", "categories", "tags"}
)
EDGE_MERGEABLE_FIELDS = frozenset(
    {"type", "label", "weight", "bidirectional", "metadata"}
)
PROTECTED_FIELDS = frozenset({"id", "preview", "created_at", "updated_at"})


@dataclass(frozen=True)
class Preview:
    title: str
    summary: str
    keywords: list[str] = field(default_factory=list)
    source: str = DEFAULT_SOURCE
    date: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Preview":
        return cls(
            title=data.get("title") or DEFAULT_TITLE,
            summary=data.get("summary") or NO_PREVIEW,
            keywords=list(data.get("keywords") or []),
            source=data.get("source") or DEFAULT_SOURCE,
            date=data.get("date"),
        )


@dataclass(frozen=True)
class Node:
    id: str
    title: str = DEFAULT_TITLE
    content: dict[str, Any] = field(default_factory=dict)
    url: Optional[str] = None
    timestamp: int = 0
    source: str = DEFAULT_SOURCE
    metadata: dict[str, Any] = field(default_factory=dict)
    categories: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    preview: Optional[Preview] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    # ------------------------------------------------------------------
    # Convenience helpers
    # ------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        """Plain-dict form used by the SQL collaborator and exports."""
        data = dataclasses.asdict(self)
        data["preview"] = self.preview.to_dict() if self.preview else None
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Node":
        preview = data.get("preview")
        return cls(
            id=data["id"],
            title=data.get("title") or DEFAULT_TITLE,
            content=dict(data.get("content") or {}),
            url=data.get("url"),
            timestamp=int(data.get("timestamp") or 0),
            source=data.get("source") or DEFAULT_SOURCE,
            metadata=dict(data.get("metadata") or {}),
            categories=unique(data.get("categories") or []),
            tags=unique(data.get("tags") or []),
            preview=Preview.from_dict(preview) if preview else None,
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


@dataclass(frozen=True)
class Edge:
    id: str
    source: str
    target: str
    type: str = DEFAULT_EDGE_TYPE
    label: str = ""
    weight: float = 1.0
    bidirectional: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: int = 0
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Edge":
        weight = data.get("weight")
        return cls(
            id=data["id"],
            source=data["source"],
            target=data["target"],
            type=data.get("type") or DEFAULT_EDGE_TYPE,
            label=data.get("label") or "",
            weight=1.0 if weight is None else float(weight),
            bidirectional=bool(data.get("bidirectional", False)),
            metadata=dict(data.get("metadata") or {}),
            timestamp=int(data.get("timestamp") or 0),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id


@dataclass
class CapturedContent:
    """A page (or selection) as handed over by the extraction pipeline."""

    title: str
    text: str
    url: Optional[str] = None
    summary: Optional[str] = None
    entities: list[dict[str, Any]] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)

    def to_node_data(self, source: str = "webpage", **extra: Any) -> dict[str, Any]:
        """Build an ``add_node`` payload from the captured record."""
        content: dict[str, Any] = {
            "text": self.text,
            "entities": list(self.entities),
            "categories": list(self.categories),
            "keywords": list(self.keywords),
        }
        if self.summary:
            content["summary"] = self.summary
        data: dict[str, Any] = {
            "title": self.title,
            "content": content,
            "url": self.url,
            "source": source,
            "categories": list(self.categories),
        }
        data.update(extra)
        return data


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def unique(values: Iterable[str]) -> list[str]:
    """De-duplicate while preserving first-seen order."""
    return list(dict.fromkeys(values))


def entity_names(content: Mapping[str, Any]) -> list[str]:
    names = []
    for entity in content.get("entities") or []:
        if isinstance(entity, Mapping):
            name = entity.get("name")
        else:
            name = entity
        if isinstance(name, str) and name:
            names.append(name)
    return names


def generate_preview(
    title: str,
    content: Mapping[str, Any],
    source: str,
    timestamp: int,
) -> Preview:
    """Derive the display preview for a node.

    ``content.summary`` wins when present; otherwise the first
    ``preview_summary_chars`` characters of ``content.text`` are used, with
    ``"..."`` appended when the text was cut.
    """
    limit = settings.preview_summary_chars
    summary = content.get("summary")
    text = content.get("text")
    if isinstance(summary, str) and summary:
        preview_summary = summary
    elif isinstance(text, str):
        preview_summary = text[:limit] + ("..." if len(text) > limit else "")
    else:
        preview_summary = NO_PREVIEW

    return Preview(
        title=title or DEFAULT_TITLE,
        summary=preview_summary,
        keywords=entity_names(content)[: settings.preview_keyword_count],
        source=source or DEFAULT_SOURCE,
        date=timestamp,
    )


def _check_fields(updates: Mapping[str, Any], allowed: frozenset[str], kind: str) -> None:
    for key in updates:
        if key not in allowed:
            raise ValidationError(f"Cannot update {kind} field {key!r}")


def merge_node(node: Node, updates: Mapping[str, Any]) -> Node:
    """Return *node* with *updates* applied field by field.

    Only :data:`NODE_MERGEABLE_FIELDS` may be updated.  ``None`` resets a
    field to its default.  The preview is regenerated when ``title`` or
    ``content`` is part of the update.

    Raises:
        ValidationError: If *updates* names a field that is not mergeable.
    """
    _check_fields(updates, NODE_MERGEABLE_FIELDS, "node")

    changes: dict[str, Any] = {}
    for key, value in updates.items():
        if key == "title":
            changes[key] = value or DEFAULT_TITLE
        elif key == "source":
            changes[key] = value or DEFAULT_SOURCE
        elif key in ("content", "metadata"):
            changes[key] = dict(value or {})
        elif key in ("categories", "tags"):
            changes[key] = unique(value or [])
        elif key == "timestamp":
            changes[key] = node.timestamp if value is None else int(value)
        else:
            changes[key] = value

    merged = dataclasses.replace(node, **changes)
    if "title" in updates or "content" in updates:
        merged = dataclasses.replace(
            merged,
            preview=generate_preview(
                merged.title, merged.content, merged.source, merged.timestamp
            ),
        )
    return merged


def merge_edge(edge: Edge, updates: Mapping[str, Any]) -> Edge:
    """Return *edge* with *updates* applied; endpoints never change."""
    _check_fields(updates, EDGE_MERGEABLE_FIELDS, "edge")

    changes: dict[str, Any] = {}
    for key, value in updates.items():
        if key == "type":
            changes[key] = value or DEFAULT_EDGE_TYPE
        elif key == "label":
            changes[key] = value or ""
        elif key == "weight":
            changes[key] = 1.0 if value is None else float(value)
        elif key == "bidirectional":
            changes[key] = bool(value)
        else:
            changes[key] = dict(value or {})
    return dataclasses.replace(edge, **changes)
