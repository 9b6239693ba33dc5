"""
Knowledge Graph Manager - CRUD and search over the memory file.

Every operation follows the same flow:
1. Load the full graph from the store
2. Apply an in-memory transformation
3. Save the full graph (mutating operations only)
4. Return the delta

The whole flow runs while holding the store's lock, so operations from
threads or an event loop in this process never interleave. Validation
(e.g. missing entities for an update) completes before anything is
changed, so a failing call never persists a partial batch.
"""

from pathlib import Path

from kgmem.core.config import get_logger
from kgmem.core.types import (
    AddedObservations,
    Entity,
    EntityNotFoundError,
    EntityUpdate,
    KnowledgeGraph,
    ObservationAddition,
    ObservationDeletion,
    Relation,
    RelationKey,
    RelationNotFoundError,
    unique,
    utc_now,
)
from kgmem.graph.search import SearchEngine
from kgmem.storage.graph import GraphStore

logger = get_logger("graph.manager")


class KnowledgeGraphManager:
    """
    Graph operations on top of a GraphStore.

    Entities are keyed by name, relations by (from, to, relationType).
    Creates drop duplicates silently, updates require the key to exist,
    deletes are idempotent.
    """

    def __init__(
        self,
        store: GraphStore | None = None,
        memory_path: str | Path | None = None,
        search_engine: SearchEngine | None = None,
    ):
        """Initialize the manager with a store, or a store built for ``memory_path``."""
        self.store = store or GraphStore(memory_path)
        self.search_engine = search_engine or SearchEngine()

    # ===================
    # Create
    # ===================

    def create_entities(self, entities: list[Entity]) -> list[Entity]:
        """Add entities whose name is not taken. Returns only the ones added."""
        with self.store.locked():
            graph = self.store.load()
            names = {e.name for e in graph.entities}
            now = utc_now()

            added = []
            for entity in entities:
                if entity.name in names:
                    continue
                names.add(entity.name)
                added.append(entity.model_copy(update={
                    "observations": unique(entity.observations),
                    "created_at": now,
                    "version": entity.version or 1,
                }))

            graph.entities.extend(added)
            self.store.save(graph)

        logger.info(f"Created {len(added)} of {len(entities)} entities")
        return added

    def create_relations(self, relations: list[Relation]) -> list[Relation]:
        """Add relations whose (from, to, relationType) is not taken. Returns only the ones added."""
        with self.store.locked():
            graph = self.store.load()
            keys = {r.key for r in graph.relations}
            now = utc_now()

            added = []
            for relation in relations:
                if relation.key in keys:
                    continue
                keys.add(relation.key)
                added.append(relation.model_copy(update={
                    "created_at": now,
                    "version": relation.version or 1,
                }))

            graph.relations.extend(added)
            self.store.save(graph)

        logger.info(f"Created {len(added)} of {len(relations)} relations")
        return added

    def add_observations(self, additions: list[ObservationAddition]) -> list[AddedObservations]:
        """
        Append observations to existing entities, skipping ones already present.

        Raises:
            EntityNotFoundError: if any named entity is missing; nothing is saved
        """
        with self.store.locked():
            graph = self.store.load()
            by_name = {e.name: e for e in graph.entities}
            for addition in additions:
                if addition.entity_name not in by_name:
                    raise EntityNotFoundError(addition.entity_name)

            results = []
            for addition in additions:
                entity = by_name[addition.entity_name]
                present = set(entity.observations)
                new_observations = [c for c in unique(addition.contents) if c not in present]
                entity.observations.extend(new_observations)
                results.append(AddedObservations(
                    entity_name=addition.entity_name,
                    added_observations=new_observations,
                ))

            self.store.save(graph)

        logger.info(f"Added {sum(len(r.added_observations) for r in results)} observations")
        return results

    # ===================
    # Delete
    # ===================

    def delete_entities(self, entity_names: list[str]) -> None:
        """Remove entities and every relation touching them. Unknown names are ignored."""
        doomed = set(entity_names)
        with self.store.locked():
            graph = self.store.load()
            before = (len(graph.entities), len(graph.relations))
            graph.entities = [e for e in graph.entities if e.name not in doomed]
            graph.relations = [
                r for r in graph.relations if r.from_ not in doomed and r.to not in doomed
            ]
            self.store.save(graph)

        logger.info(
            f"Deleted {before[0] - len(graph.entities)} entities "
            f"and {before[1] - len(graph.relations)} relations"
        )

    def delete_observations(self, deletions: list[ObservationDeletion]) -> None:
        """Remove exact observation strings. Unknown entities are skipped."""
        with self.store.locked():
            graph = self.store.load()
            by_name = {e.name: e for e in graph.entities}
            for deletion in deletions:
                entity = by_name.get(deletion.entity_name)
                if entity is None:
                    logger.debug(f"Skipping observation delete for unknown entity {deletion.entity_name}")
                    continue
                doomed = set(deletion.observations)
                entity.observations = [o for o in entity.observations if o not in doomed]
            self.store.save(graph)

    def delete_relations(self, relations: list[RelationKey]) -> None:
        """Remove relations matching any given (from, to, relationType)."""
        doomed = {r.key for r in relations}
        with self.store.locked():
            graph = self.store.load()
            before = len(graph.relations)
            graph.relations = [r for r in graph.relations if r.key not in doomed]
            self.store.save(graph)

        logger.info(f"Deleted {before - len(graph.relations)} relations")

    # ===================
    # Update
    # ===================

    def update_entities(self, updates: list[EntityUpdate]) -> list[Entity]:
        """
        Merge the given fields over existing entities, bumping version and createdAt.

        Raises:
            EntityNotFoundError: if any entity is missing; nothing is saved
        """
        with self.store.locked():
            graph = self.store.load()
            positions = {e.name: i for i, e in enumerate(graph.entities)}
            pending: dict[str, Entity] = {}
            now = utc_now()

            # Pass 1: compute every updated record
            for update in updates:
                if update.name not in positions:
                    raise EntityNotFoundError(update.name)
                current = pending.get(update.name) or graph.entities[positions[update.name]]
                fields = update.model_dump(exclude={"name"}, exclude_none=True)
                if "observations" in fields:
                    fields["observations"] = unique(fields["observations"])
                pending[update.name] = current.model_copy(update={
                    **fields,
                    "version": current.version + 1,
                    "created_at": now,
                })

            # Pass 2: apply
            for name, entity in pending.items():
                graph.entities[positions[name]] = entity
            self.store.save(graph)

        logger.info(f"Updated {len(pending)} entities")
        return [pending[u.name] for u in updates]

    def update_relations(self, updates: list[RelationKey]) -> list[Relation]:
        """
        Bump version and createdAt of existing relations.

        Raises:
            RelationNotFoundError: if any relation is missing; nothing is saved
        """
        with self.store.locked():
            graph = self.store.load()
            positions = {r.key: i for i, r in enumerate(graph.relations)}
            pending: dict[tuple[str, str, str], Relation] = {}
            now = utc_now()

            for update in updates:
                if update.key not in positions:
                    raise RelationNotFoundError(update.key)
                current = pending.get(update.key) or graph.relations[positions[update.key]]
                pending[update.key] = current.model_copy(update={
                    "version": current.version + 1,
                    "created_at": now,
                })

            for key, relation in pending.items():
                graph.relations[positions[key]] = relation
            self.store.save(graph)

        logger.info(f"Updated {len(pending)} relations")
        return [pending[u.key] for u in updates]

    # ===================
    # Read
    # ===================

    def read_graph(self) -> KnowledgeGraph:
        """The full graph, unfiltered."""
        with self.store.locked():
            return self.store.load()

    def search_nodes(self, query: str) -> KnowledgeGraph:
        """Ranked search; see SearchEngine."""
        with self.store.locked():
            graph = self.store.load()
        logger.debug(
            f"Searching {len(graph.entities)} entities and {len(graph.relations)} relations for {query!r}"
        )
        return self.search_engine.search(graph, query)

    def open_nodes(self, names: list[str]) -> KnowledgeGraph:
        """The named entities and only the relations with both endpoints among them."""
        wanted = set(names)
        with self.store.locked():
            graph = self.store.load()

        entities = [e for e in graph.entities if e.name in wanted]
        found = {e.name for e in entities}
        relations = [r for r in graph.relations if r.from_ in found and r.to in found]
        return KnowledgeGraph(entities=entities, relations=relations)
