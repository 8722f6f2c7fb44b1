"""
In-memory tag graph with invariant-preserving mutations.

The graph owns three pools: tags, raw text items and relationships. Every
mutation validates first and only then swaps in the new state, so a rejected
operation leaves the graph untouched. A re-entrant lock serializes mutations.
"""

import math
import threading
from functools import wraps
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import networkx as nx
from pydantic import ValidationError as PydanticValidationError

from ...shared.exceptions import ConsistencyError, ValidationError
from ...shared.infrastructure.monitoring.logger import get_logger
from ...shared.models.tags import (
    BASE_CATEGORIES, ITEM_CATEGORIES, BoundingBox, Category, RawTextItem, Relationship,
    RelationshipKind, Tag,
)


TAG_POOL = "tag"
RAW_TEXT_POOL = "raw_text_item"


def synchronized(method):
    """Run a TagGraph method while holding the graph lock."""
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


class TagGraph:
    """
    The tag graph of one document.

    Tags are kept in creation order; operations that iterate over tags
    (auto-linking in particular) follow that order.
    """

    def __init__(self, tags: Optional[Iterable[Tag]] = None,
                 raw_text_items: Optional[Iterable[RawTextItem]] = None,
                 relationships: Optional[Iterable[Relationship]] = None):
        self.logger = get_logger(__name__)
        self._lock = threading.RLock()
        self.tags: List[Tag] = list(tags or [])
        self.raw_text_items: List[RawTextItem] = list(raw_text_items or [])
        self.relationships: List[Relationship] = list(relationships or [])

    @classmethod
    def from_extraction(cls, extraction) -> "TagGraph":
        """Seed a graph from a page or document extraction result."""
        return cls(tags=extraction.tags, raw_text_items=extraction.raw_text_items)

    # === Lookups ===

    def get_tag(self, tag_id: str) -> Optional[Tag]:
        return next((tag for tag in self.tags if tag.id == tag_id), None)

    def get_raw_text_item(self, item_id: str) -> Optional[RawTextItem]:
        return next((item for item in self.raw_text_items if item.id == item_id), None)

    def pool_of(self, entity_id: str) -> Optional[str]:
        """Which pool an id currently belongs to (ids move between pools on delete)."""
        if self.get_tag(entity_id) is not None:
            return TAG_POOL
        if self.get_raw_text_item(entity_id) is not None:
            return RAW_TEXT_POOL
        return None

    def tags_by_category(self, category: Category) -> List[Tag]:
        category = Category(category)
        return [tag for tag in self.tags if tag.category is category]

    def relationships_for(self, entity_id: str, kind: Optional[RelationshipKind] = None) -> List[Relationship]:
        """All relationships touching an entity, optionally of one kind."""
        return [
            rel for rel in self.relationships
            if (rel.source_id == entity_id or rel.target_id == entity_id)
            and (kind is None or rel.type is RelationshipKind(kind))
        ]

    def resolve_tag_text(self, tag_id: str) -> str:
        """Text of a tag, or '' when the id is not a tag."""
        tag = self.get_tag(tag_id)
        return tag.text if tag else ''

    def descriptions_for(self, tag_id: str) -> List[str]:
        """Texts attached to a tag: Annotation raw texts first, then Note tag texts."""
        annotations = [
            item.text
            for item in (self.get_raw_text_item(rel.target_id) for rel in self.relationships
                         if rel.source_id == tag_id and rel.type is RelationshipKind.ANNOTATION)
            if item is not None
        ]
        return annotations + self.notes_for(tag_id)

    def notes_for(self, tag_id: str) -> List[str]:
        """Texts of the NotesAndHolds tags a tag references."""
        return [
            text for text in (self.resolve_tag_text(rel.target_id) for rel in self.relationships
                              if rel.source_id == tag_id and rel.type is RelationshipKind.NOTE)
            if text
        ]

    def drawing_number_for_page(self, page: int) -> str:
        """Text of the first DrawingNumber tag on a page, or ''."""
        tag = next((t for t in self.tags if t.page == page and t.category is Category.DRAWING_NUMBER), None)
        return tag.text if tag else ''

    def to_networkx(self) -> nx.MultiDiGraph:
        """
        Directed multigraph view: one node per tag/raw item, one edge per relationship.

        Nodes carry ``pool``, ``text``, ``page`` and (for tags) ``category``;
        edges are keyed by relationship id and carry ``type``.
        """
        graph = nx.MultiDiGraph()
        for tag in self.tags:
            graph.add_node(tag.id, pool=TAG_POOL, text=tag.text, page=tag.page, category=tag.category)
        for item in self.raw_text_items:
            graph.add_node(item.id, pool=RAW_TEXT_POOL, text=item.text, page=item.page, category=None)
        for rel in self.relationships:
            graph.add_edge(rel.source_id, rel.target_id, key=rel.id, type=rel.type)
        return graph

    # === Tag mutations ===

    @synchronized
    def merge_into_tag(self, item_ids: Sequence[str], category: Category) -> Tag:
        """
        Combine raw text items into one tag.

        Text is joined with '-' in the order given; the box is the union of
        the items' boxes and the items are kept as ``source_items``.

        Raises:
            ValidationError: no items, unknown ids, or items on different pages
        """
        if not item_ids:
            self._reject("Select at least one text item to create a tag.")
        if len(set(item_ids)) != len(item_ids):
            self._reject("The same text item was selected more than once.")

        items = []
        for item_id in item_ids:
            item = self.get_raw_text_item(item_id)
            if item is None:
                self._reject(f"Text item {item_id} does not exist.")
            items.append(item)

        page = items[0].page
        if any(item.page != page for item in items):
            self._reject("Cannot combine items from different pages.")

        tag = Tag(
            text='-'.join(item.text for item in items),
            page=page,
            bbox=BoundingBox.union_all(item.bbox for item in items),
            category=Category(category),
            source_items=[item.model_copy(deep=True) for item in items],
        )

        consumed = set(item_ids)
        self.tags = self.tags + [tag]
        self.raw_text_items = [item for item in self.raw_text_items if item.id not in consumed]
        self.relationships = [
            rel for rel in self.relationships
            if not (rel.type is RelationshipKind.ANNOTATION and rel.target_id in consumed)
        ]
        self.logger.info(f"Created {tag.category.value} tag '{tag.text}' from {len(items)} text item(s)")
        return tag

    @synchronized
    def create_manual_tag(self, text: str, bbox: Any, page: int, category: Category) -> Tag:
        """
        Create a tag over a hand-drawn region (no source items).

        Raises:
            ValidationError: a field is missing or invalid
        """
        if not text or bbox is None or not page or category is None:
            self._reject("Missing data for manual tag creation.")
        try:
            tag = Tag(
                text=text,
                page=page,
                bbox=bbox if isinstance(bbox, BoundingBox) else BoundingBox.model_validate(bbox),
                category=Category(category),
            )
        except (PydanticValidationError, ValueError) as e:
            self._reject(f"Invalid manual tag: {e}")

        self.tags = self.tags + [tag]
        self.logger.info(f"Created manual {tag.category.value} tag '{tag.text}' on page {tag.page}")
        return tag

    @synchronized
    def delete_tags(self, tag_ids: Iterable[str]) -> List[RawTextItem]:
        """
        Delete tags, restoring their text to the raw pool.

        Tags with source items restore those items under their original ids;
        other tags become one raw item that reuses the tag's id. Every
        relationship touching a deleted tag is removed.

        Returns:
            The raw text items put back into the pool
        """
        ids_to_delete = set(tag_ids)
        deleted = [tag for tag in self.tags if tag.id in ids_to_delete]
        if not deleted:
            return []
        deleted_ids = {tag.id for tag in deleted}

        existing_raw_ids = {item.id for item in self.raw_text_items}
        restored: List[RawTextItem] = []
        for tag in deleted:
            if tag.source_items:
                candidates = [item.model_copy(deep=True) for item in tag.source_items]
            else:
                candidates = [RawTextItem(id=tag.id, text=tag.text, page=tag.page, bbox=tag.bbox.model_copy())]
            for item in candidates:
                if item.id in existing_raw_ids:
                    continue
                existing_raw_ids.add(item.id)
                restored.append(item)

        self.tags = [tag for tag in self.tags if tag.id not in deleted_ids]
        self.raw_text_items = self.raw_text_items + restored
        removed = [rel for rel in self.relationships if rel.source_id in deleted_ids or rel.target_id in deleted_ids]
        self.relationships = [
            rel for rel in self.relationships
            if rel.source_id not in deleted_ids and rel.target_id not in deleted_ids
        ]
        self.logger.info(
            f"Deleted {len(deleted)} tag(s), restored {len(restored)} text item(s), "
            f"removed {len(removed)} relationship(s)"
        )
        return restored

    @synchronized
    def delete_raw_text_items(self, item_ids: Iterable[str]) -> int:
        """
        Delete raw text items and the Annotation relationships pointing at them.

        Returns:
            Number of items removed
        """
        ids_to_delete = set(item_ids)
        before = len(self.raw_text_items)
        self.raw_text_items = [item for item in self.raw_text_items if item.id not in ids_to_delete]
        self.relationships = [
            rel for rel in self.relationships
            if not (rel.type is RelationshipKind.ANNOTATION and rel.target_id in ids_to_delete)
        ]
        return before - len(self.raw_text_items)

    @synchronized
    def update_tag_text(self, tag_id: str, new_text: str) -> Tag:
        """Replace a tag's text; box, category and relationships are unchanged."""
        tag = self.get_tag(tag_id)
        if tag is None:
            self._reject(f"Tag {tag_id} does not exist.")
        tag.text = new_text
        return tag

    @synchronized
    def update_raw_text_item_text(self, item_id: str, new_text: str) -> RawTextItem:
        """Replace a raw text item's text in place."""
        item = self.get_raw_text_item(item_id)
        if item is None:
            self._reject(f"Text item {item_id} does not exist.")
        item.text = new_text
        return item

    # === Relationship mutations ===

    @synchronized
    def auto_link_descriptions(self, max_distance: float) -> int:
        """
        Link raw text near each instrument to it as an Annotation.

        For every Instrument tag (creation order) and every unclaimed raw
        item on the same page, an Annotation is created when the distance
        between box centers is at most ``max_distance``. An item is claimed by
        the first instrument that links it.

        Returns:
            Number of relationships created (0 is a normal outcome)
        """
        if max_distance is None or not isinstance(max_distance, (int, float)) or max_distance < 0:
            self._reject("Auto-link distance is not configured. Please check your settings.")

        claimed = {rel.target_id for rel in self.relationships if rel.type is RelationshipKind.ANNOTATION}
        candidates = [item for item in self.raw_text_items if item.id not in claimed]
        new_relationships: List[Relationship] = []

        for tag in self.tags:
            if tag.category is not Category.INSTRUMENT:
                continue
            tag_x, tag_y = tag.bbox.center
            for item in candidates:
                if item.page != tag.page or item.id in claimed:
                    continue
                item_x, item_y = item.bbox.center
                if math.hypot(tag_x - item_x, tag_y - item_y) <= max_distance:
                    new_relationships.append(Relationship(
                        source_id=tag.id, target_id=item.id, type=RelationshipKind.ANNOTATION
                    ))
                    claimed.add(item.id)

        created = self._commit_unique(new_relationships)
        self.logger.info(f"Auto-link created {len(created)} description link(s) within {max_distance}")
        return len(created)

    @synchronized
    def create_installation(self, instrument_tag_ids: Sequence[str], base_tag_id: str) -> List[Relationship]:
        """
        Mark instruments as installed on an Equipment or Line tag.

        Existing (from, to, Installation) triples are skipped.

        Raises:
            ValidationError: the base is not one Equipment/Line tag, or no
                Instrument tags were given
        """
        base = self.get_tag(base_tag_id)
        if base is None or base.category not in BASE_CATEGORIES:
            self._reject("To create an installation, select exactly one Equipment or Line tag.")
        if not instrument_tag_ids:
            self._reject("To create an installation, select one or more Instrument tags.")

        instruments = []
        for tag_id in instrument_tag_ids:
            tag = self.get_tag(tag_id)
            if tag is None or tag.category is not Category.INSTRUMENT:
                self._reject(f"Tag {tag_id} is not an Instrument tag.")
            instruments.append(tag)

        created = self._commit_unique([
            Relationship(source_id=tag.id, target_id=base.id, type=RelationshipKind.INSTALLATION)
            for tag in instruments
        ])
        self.logger.info(f"Created {len(created)} new installation relationship(s) on '{base.text}'")
        return created

    @synchronized
    def create_installation_from_selection(self, tag_ids: Sequence[str]) -> List[Relationship]:
        """
        Create installations from a mixed selection of tags.

        The selection must hold exactly one Equipment/Line tag and at least
        one Instrument tag; other categories are ignored.
        """
        selected = [tag for tag in (self.get_tag(tag_id) for tag_id in tag_ids) if tag is not None]
        bases = [tag for tag in selected if tag.category in BASE_CATEGORIES]
        instruments = [tag for tag in selected if tag.category is Category.INSTRUMENT]
        if len(bases) != 1 or not instruments:
            self._reject(
                "To create an installation, please select exactly one Equipment or Line, "
                "and one or more Instruments."
            )
        return self.create_installation([tag.id for tag in instruments], bases[0].id)

    @synchronized
    def create_connection(self, from_tag_id: str, to_tag_id: str) -> Relationship:
        """
        Connect two tags. A->B and B->A are distinct edges.

        Raises:
            ValidationError: either endpoint is not a tag
        """
        for tag_id in (from_tag_id, to_tag_id):
            if self.get_tag(tag_id) is None:
                self._reject(f"Tag {tag_id} does not exist.")

        relationship = Relationship(source_id=from_tag_id, target_id=to_tag_id, type=RelationshipKind.CONNECTION)
        self.relationships = self.relationships + [relationship]
        return relationship

    @synchronized
    def link_selection(self, item_tag_id: str, note_tag_ids: Sequence[str] = (),
                       raw_item_ids: Sequence[str] = ()) -> List[Relationship]:
        """
        Attach notes and descriptions to one Equipment, Line or Instrument tag.

        Creates a Note edge to each NotesAndHolds tag and an Annotation edge
        to each raw text item, skipping existing triples.
        """
        item_tag = self.get_tag(item_tag_id)
        if item_tag is None or item_tag.category not in ITEM_CATEGORIES:
            self._reject("Please select one Equipment, Line, or Instrument tag to create relationships.")

        new_relationships = []
        for note_id in note_tag_ids:
            note = self.get_tag(note_id)
            if note is None or note.category is not Category.NOTES_AND_HOLDS:
                self._reject(f"Tag {note_id} is not a Notes & Holds tag.")
            new_relationships.append(Relationship(source_id=item_tag.id, target_id=note.id, type=RelationshipKind.NOTE))
        for raw_id in raw_item_ids:
            if self.get_raw_text_item(raw_id) is None:
                self._reject(f"Text item {raw_id} does not exist.")
            new_relationships.append(Relationship(
                source_id=item_tag.id, target_id=raw_id, type=RelationshipKind.ANNOTATION
            ))

        created = self._commit_unique(new_relationships)
        self.logger.info(f"Created {len(created)} new relationship(s) for '{item_tag.text}'")
        return created

    @synchronized
    def delete_relationships(self, relationship_ids: Iterable[str]) -> int:
        """Remove relationships by id. Returns how many were removed."""
        ids_to_delete = set(relationship_ids)
        before = len(self.relationships)
        self.relationships = [rel for rel in self.relationships if rel.id not in ids_to_delete]
        return before - len(self.relationships)

    # === Integrity and persistence ===

    def verify_integrity(self) -> None:
        """
        Check that every relationship endpoint exists in the right pool.

        Raises:
            ConsistencyError: on the first dangling or mistyped relationship
        """
        tags = {tag.id: tag for tag in self.tags}
        raw_ids = {item.id for item in self.raw_text_items}
        for rel in self.relationships:
            source = tags.get(rel.source_id)
            if source is None:
                raise ConsistencyError(f"Relationship {rel.id} ({rel.type.value}) has no source tag {rel.source_id}")
            if rel.type is RelationshipKind.ANNOTATION:
                if rel.target_id not in raw_ids:
                    raise ConsistencyError(f"Annotation {rel.id} points at missing text item {rel.target_id}")
                continue
            target = tags.get(rel.target_id)
            if target is None:
                raise ConsistencyError(f"Relationship {rel.id} ({rel.type.value}) has no target tag {rel.target_id}")
            if rel.type is RelationshipKind.INSTALLATION and (
                source.category is not Category.INSTRUMENT or target.category not in BASE_CATEGORIES
            ):
                raise ConsistencyError(f"Installation {rel.id} must link an Instrument to Equipment or Line")
            if rel.type is RelationshipKind.NOTE and target.category is not Category.NOTES_AND_HOLDS:
                raise ConsistencyError(f"Note {rel.id} must point at a Notes & Holds tag")

    def to_document(self) -> Dict[str, Any]:
        """Serialize the three pools using project-file keys."""
        with self._lock:
            return {
                "tags": [tag.model_dump(mode="json", by_alias=True) for tag in self.tags],
                "relationships": [rel.model_dump(mode="json", by_alias=True) for rel in self.relationships],
                "rawTextItems": [item.model_dump(mode="json", by_alias=True) for item in self.raw_text_items],
            }

    @synchronized
    def load_document(self, data: Mapping[str, Any]) -> None:
        """
        Replace the graph's state with a serialized document.

        Raises:
            ValidationError: a pool is missing, malformed or inconsistent;
                the current state is kept
        """
        if not isinstance(data, Mapping):
            self._reject("Project data must be an object.")
        for key in ("tags", "relationships", "rawTextItems"):
            if not isinstance(data.get(key), list):
                self._reject(f"Invalid project file format: '{key}' must be a list.")

        try:
            candidate = TagGraph(
                tags=[Tag.model_validate(tag) for tag in data["tags"]],
                raw_text_items=[RawTextItem.model_validate(item) for item in data["rawTextItems"]],
                relationships=[Relationship.model_validate(rel) for rel in data["relationships"]],
            )
            candidate.verify_integrity()
        except (PydanticValidationError, ConsistencyError) as e:
            self._reject(f"Invalid project file: {e}")

        self.tags = candidate.tags
        self.raw_text_items = candidate.raw_text_items
        self.relationships = candidate.relationships
        self.logger.info(
            f"Loaded project with {len(self.tags)} tags, {len(self.relationships)} relationships "
            f"and {len(self.raw_text_items)} text items"
        )

    # === Helpers ===

    def _commit_unique(self, new_relationships: List[Relationship]) -> List[Relationship]:
        """Append relationships whose (from, to, type) triple is not present yet."""
        existing = {rel.key for rel in self.relationships}
        unique = []
        for rel in new_relationships:
            if rel.key in existing:
                continue
            existing.add(rel.key)
            unique.append(rel)
        if unique:
            self.relationships = self.relationships + unique
        return unique

    def _reject(self, message: str) -> None:
        self.logger.warning(message)
        raise ValidationError(message)
