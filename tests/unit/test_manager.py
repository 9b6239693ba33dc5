"""Tests for KnowledgeGraphManager."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from kgmem.core.types import (
    Entity,
    EntityNotFoundError,
    EntityUpdate,
    ObservationAddition,
    ObservationDeletion,
    Relation,
    RelationKey,
    RelationNotFoundError,
)
from kgmem.graph.manager import KnowledgeGraphManager


def names(graph):
    return [e.name for e in graph.entities]


def names_of(entities):
    return [e.name for e in entities]


class TestCreate:
    """Tests for create_entities and create_relations."""

    def test_create_entities_stamps_metadata(self, manager):
        """Test created entities get a timestamp and version 1."""
        added = manager.create_entities([Entity(name="Alice", entity_type="Person", observations=["a"])])

        assert len(added) == 1
        assert added[0].created_at is not None
        assert added[0].version == 1
        assert manager.read_graph().entities == added

    def test_create_entities_is_idempotent(self, manager):
        manager.create_entities([Entity(name="Alice", entity_type="Person")])

        added = manager.create_entities([
            Entity(name="Alice", entity_type="Robot", observations=["changed"]),
            Entity(name="Bob", entity_type="Person"),
        ])

        assert names_of(added) == ["Bob"]
        graph = manager.read_graph()
        assert names(graph) == ["Alice", "Bob"]
        assert graph.entities[0].entity_type == "Person"

    def test_duplicates_within_batch(self, manager):
        """Test the first occurrence of a repeated name wins."""
        added = manager.create_entities([
            Entity(name="Alice", entity_type="Person"),
            Entity(name="Alice", entity_type="Robot"),
        ])

        assert len(added) == 1
        assert manager.read_graph().entities[0].entity_type == "Person"

    def test_names_are_case_sensitive(self, manager):
        added = manager.create_entities([
            Entity(name="alice", entity_type="Person"),
            Entity(name="Alice", entity_type="Person"),
        ])
        assert len(added) == 2

    def test_create_dedupes_observations(self, manager):
        added = manager.create_entities([Entity(name="A", entity_type="T", observations=["x", "y", "x"])])
        assert added[0].observations == ["x", "y"]

    def test_create_keeps_given_version(self, manager):
        added = manager.create_entities([
            Entity(name="A", entity_type="T", version=3),
            Entity(name="B", entity_type="T", version=0),
        ])
        assert [e.version for e in added] == [3, 1]

    def test_create_empty_batch_writes_file(self, manager):
        assert manager.create_entities([]) == []
        assert manager.store.exists()

    def test_create_relations_is_idempotent(self, manager):
        first = manager.create_relations([Relation(from_="A", to="B", relation_type="knows")])
        second = manager.create_relations([
            Relation(from_="A", to="B", relation_type="knows"),
            Relation(from_="A", to="B", relation_type="likes"),
            Relation(from_="A", to="B", relation_type="likes"),
        ])

        assert len(first) == 1
        assert first[0].version == 1
        assert first[0].created_at is not None
        assert [r.relation_type for r in second] == ["likes"]
        assert len(manager.read_graph().relations) == 2

    def test_relations_may_dangle(self, manager):
        """Test relation endpoints are not checked against entities."""
        added = manager.create_relations([Relation(from_="Ghost", to="Phantom", relation_type="haunts")])

        assert len(added) == 1
        assert manager.read_graph().entities == []


class TestObservations:
    """Tests for add_observations and delete_observations."""

    def test_add_observations_returns_only_new(self, populated_manager):
        results = populated_manager.add_observations([
            ObservationAddition(entity_name="Plan", contents=["Project plan document", "Due in May", "Due in May"]),
        ])

        assert results[0].entity_name == "Plan"
        assert results[0].added_observations == ["Due in May"]
        plan = populated_manager.open_nodes(["Plan"]).entities[0]
        assert plan.observations == ["Project plan document", "Due in May"]

    def test_add_observations_keeps_version(self, populated_manager):
        populated_manager.add_observations([ObservationAddition(entity_name="Plan", contents=["new"])])

        assert populated_manager.open_nodes(["Plan"]).entities[0].version == 1

    def test_add_observations_missing_entity_changes_nothing(self, populated_manager):
        """Test a missing entity anywhere in the batch aborts the whole call."""
        with pytest.raises(EntityNotFoundError, match="Entity with name Ghost not found"):
            populated_manager.add_observations([
                ObservationAddition(entity_name="Plan", contents=["should not be saved"]),
                ObservationAddition(entity_name="Ghost", contents=["boo"]),
            ])

        plan = populated_manager.open_nodes(["Plan"]).entities[0]
        assert "should not be saved" not in plan.observations

    def test_delete_observations(self, populated_manager):
        populated_manager.add_observations([ObservationAddition(entity_name="Plan", contents=["a", "b"])])

        populated_manager.delete_observations([
            ObservationDeletion(entity_name="Plan", observations=["a", "not there"]),
            ObservationDeletion(entity_name="Ghost", observations=["b"]),
        ])

        plan = populated_manager.open_nodes(["Plan"]).entities[0]
        assert plan.observations == ["Project plan document", "b"]


class TestDelete:
    """Tests for delete_entities and delete_relations."""

    def test_delete_entities_cascades(self, populated_manager):
        populated_manager.delete_entities(["modern_widget.dart"])

        graph = populated_manager.read_graph()
        assert names(graph) == ["legacy_widget.dart", "Plan"]
        assert graph.relations == []

    def test_delete_unknown_entity_is_noop(self, populated_manager):
        before = populated_manager.read_graph()

        populated_manager.delete_entities(["Ghost"])

        assert populated_manager.read_graph() == before

    def test_delete_on_missing_file_creates_it(self, manager):
        manager.delete_entities(["Ghost"])
        assert manager.store.exists()

    def test_delete_relations_matches_full_key(self, populated_manager):
        populated_manager.delete_relations([
            RelationKey(from_="Plan", to="modern_widget.dart", relation_type="references"),
            RelationKey(from_="legacy_widget.dart", to="modern_widget.dart", relation_type="references"),
        ])

        relations = populated_manager.read_graph().relations
        assert [r.key for r in relations] == [("legacy_widget.dart", "modern_widget.dart", "replaced_by")]


class TestUpdate:
    """Tests for update_entities and update_relations."""

    def test_update_entity_merges_fields(self, populated_manager):
        before = populated_manager.open_nodes(["Plan"]).entities[0]

        updated = populated_manager.update_entities([EntityUpdate(name="Plan", entity_type="Spec")])

        assert updated[0].entity_type == "Spec"
        assert updated[0].observations == before.observations
        assert updated[0].version == 2
        assert updated[0].created_at >= before.created_at
        assert populated_manager.open_nodes(["Plan"]).entities[0] == updated[0]

    def test_update_replaces_observations(self, populated_manager):
        updated = populated_manager.update_entities([
            EntityUpdate(name="Plan", observations=["rewritten", "rewritten"]),
        ])

        assert updated[0].observations == ["rewritten"]
        assert updated[0].entity_type == "Document"

    def test_update_keeps_position(self, populated_manager):
        populated_manager.update_entities([EntityUpdate(name="modern_widget.dart", entity_type="Source")])
        assert names(populated_manager.read_graph()) == ["modern_widget.dart", "legacy_widget.dart", "Plan"]

    def test_repeated_name_in_batch_stacks(self, populated_manager):
        updated = populated_manager.update_entities([
            EntityUpdate(name="Plan", entity_type="Spec"),
            EntityUpdate(name="Plan", observations=["final"]),
        ])

        plan = populated_manager.open_nodes(["Plan"]).entities[0]
        assert plan.version == 3
        assert plan.entity_type == "Spec"
        assert plan.observations == ["final"]
        assert len(updated) == 2

    def test_update_missing_entity_changes_nothing(self, populated_manager):
        with pytest.raises(EntityNotFoundError):
            populated_manager.update_entities([
                EntityUpdate(name="Plan", entity_type="Spec"),
                EntityUpdate(name="Ghost", entity_type="Spec"),
            ])

        plan = populated_manager.open_nodes(["Plan"]).entities[0]
        assert plan.version == 1
        assert plan.entity_type == "Document"

    def test_update_relations_bumps_version(self, populated_manager):
        key = RelationKey(from_="Plan", to="modern_widget.dart", relation_type="references")

        updated = populated_manager.update_relations([key])

        assert updated[0].version == 2
        versions = {r.key: r.version for r in populated_manager.read_graph().relations}
        assert versions[key.key] == 2
        assert versions[("legacy_widget.dart", "modern_widget.dart", "replaced_by")] == 1

    def test_update_missing_relation_changes_nothing(self, populated_manager):
        with pytest.raises(RelationNotFoundError):
            populated_manager.update_relations([
                RelationKey(from_="Plan", to="modern_widget.dart", relation_type="references"),
                RelationKey(from_="Plan", to="legacy_widget.dart", relation_type="references"),
            ])

        assert all(r.version == 1 for r in populated_manager.read_graph().relations)


class TestRead:
    """Tests for read_graph, open_nodes and search_nodes."""

    def test_read_empty(self, manager):
        graph = manager.read_graph()
        assert graph.entities == [] and graph.relations == []

    def test_open_nodes_requires_both_endpoints(self, populated_manager):
        graph = populated_manager.open_nodes(["Plan", "modern_widget.dart", "Ghost"])

        assert names(graph) == ["modern_widget.dart", "Plan"]
        assert [r.key for r in graph.relations] == [("Plan", "modern_widget.dart", "references")]

    def test_open_single_node_has_no_relations(self, populated_manager):
        graph = populated_manager.open_nodes(["modern_widget.dart"])

        assert names(graph) == ["modern_widget.dart"]
        assert graph.relations == []

    def test_search_includes_relations_to_unmatched_entities(self, manager):
        """Test search keeps relations with one matched endpoint, unlike open_nodes."""
        manager.create_entities([
            Entity(name="A", entity_type="Node"),
            Entity(name="B", entity_type="Node"),
            Entity(name="C", entity_type="Node"),
        ])
        manager.create_relations([Relation(from_="A", to="B", relation_type="links")])

        searched = manager.search_nodes("A")
        opened = manager.open_nodes(["A", "C"])

        assert names(searched) == ["A"]
        assert [r.key for r in searched.relations] == [("A", "B", "links")]
        assert opened.relations == []

    def test_managers_share_memory_file(self, memory_path):
        KnowledgeGraphManager(memory_path=memory_path).create_entities([Entity(name="A", entity_type="T")])

        graph = KnowledgeGraphManager(memory_path=str(memory_path)).read_graph()

        assert names(graph) == ["A"]


class TestConcurrency:
    """Tests for managers sharing one memory file across threads."""

    def test_concurrent_add_observations(self, populated_manager, memory_path):
        """Test every thread's observation survives the load-modify-save cycle."""

        def add(i):
            KnowledgeGraphManager(memory_path=memory_path).add_observations([
                ObservationAddition(entity_name="Plan", contents=[f"note {i}"]),
            ])

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(add, range(30)))

        plan = populated_manager.open_nodes(["Plan"]).entities[0]
        assert set(plan.observations) == {"Project plan document"} | {f"note {i}" for i in range(30)}

    def test_concurrent_creates_and_updates(self, manager, memory_path):
        manager.create_entities([Entity(name="Counter", entity_type="T")])

        def work(i):
            m = KnowledgeGraphManager(memory_path=memory_path)
            m.create_entities([Entity(name=f"e{i}", entity_type="T")])
            m.update_entities([EntityUpdate(name="Counter", observations=[f"set by {i}"])])

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(work, range(20)))

        graph = manager.read_graph()
        assert set(names(graph)) == {"Counter"} | {f"e{i}" for i in range(20)}
        assert graph.entities[0].version == 21
