"""
Tests for the relationship diff
"""
import unittest

from rolodex.models import RelationshipEdge
from rolodex.relationships.diff import diff_relationships, normalize_edges


def edges(*pairs):
    return [RelationshipEdge(counterpart_id=cid, role=role) for cid, role in pairs]


class TestNormalizeEdges(unittest.TestCase):

    def test_accepts_edges_dicts_and_mappings(self):
        from_edges = normalize_edges(edges(("a", "CEO")))
        from_dicts = normalize_edges([{"counterpart_id": "a", "role": "CEO"}])
        from_roles = normalize_edges({"a": "CEO"})
        from_nested = normalize_edges({"a": {"role": "CEO"}})

        for normalized in (from_edges, from_dicts, from_roles, from_nested):
            self.assertEqual(list(normalized), ["a"])
            self.assertEqual(normalized["a"].role, "CEO")

    def test_mapping_of_edges_keeps_roles(self):
        normalized = normalize_edges({"a": RelationshipEdge("a", "Ada", "CEO")})

        self.assertEqual(normalized["a"], RelationshipEdge("a", "Ada", "CEO"))

        diff = diff_relationships(edges(("a", "CEO")), {"a": RelationshipEdge("a", "Ada", "CEO")})
        self.assertTrue(diff.is_empty)
        self.assertEqual(diff.requested["a"].role, "CEO")

    def test_duplicate_id_last_occurrence_wins(self):
        normalized = normalize_edges(edges(("a", "Engineer"), ("b", "CTO"), ("a", "Manager")))
        self.assertEqual(list(normalized), ["a", "b"])
        self.assertEqual(normalized["a"].role, "Manager")

    def test_missing_counterpart_id_is_rejected(self):
        with self.assertRaises(ValueError):
            normalize_edges([{"role": "CEO"}])

    def test_none_is_empty(self):
        self.assertEqual(normalize_edges(None), {})


class TestDiffRelationships(unittest.TestCase):

    def test_add_update_remove_and_unchanged(self):
        existing = edges(("p1", "Engineer"), ("p2", "Engineer"), ("p4", "Advisor"))
        requested = edges(("p2", "Lead"), ("p3", "Intern"), ("p4", "Advisor"))

        diff = diff_relationships(existing, requested)

        self.assertEqual(diff.to_add, ("p3",))
        self.assertEqual(diff.to_update, ("p2",))
        self.assertEqual(diff.to_remove, ("p1",))
        self.assertEqual(diff.unchanged, ("p4",))
        self.assertFalse(diff.is_empty)

    def test_sets_are_disjoint_and_cover_requested(self):
        existing = edges(("a", "x"), ("b", "y"), ("c", "z"))
        requested = edges(("b", "y"), ("c", "changed"), ("d", "new"), ("e", None))

        diff = diff_relationships(existing, requested)

        covered = diff.to_add + diff.to_update + diff.unchanged
        self.assertCountEqual(covered, ["b", "c", "d", "e"])
        self.assertEqual(len(covered), len(set(covered)))
        self.assertEqual(set(diff.to_remove), {"a"})
        self.assertFalse(set(diff.to_remove) & set(covered))

    def test_empty_request_removes_everything(self):
        diff = diff_relationships(edges(("a", "x"), ("b", "y")), [])

        self.assertEqual(diff.to_add, ())
        self.assertEqual(diff.to_update, ())
        self.assertEqual(diff.to_remove, ("a", "b"))

    def test_identical_snapshots_produce_empty_diff(self):
        snapshot = edges(("a", "x"))
        diff = diff_relationships(snapshot, snapshot)

        self.assertTrue(diff.is_empty)
        self.assertEqual(diff.unchanged, ("a",))

    def test_cached_name_alone_is_not_an_update(self):
        existing = [RelationshipEdge("a", "Old Name", "x")]
        requested = [RelationshipEdge("a", "New Name", "x")]

        self.assertTrue(diff_relationships(existing, requested).is_empty)

    def test_deterministic(self):
        existing = edges(("a", "x"), ("b", "y"))
        requested = {"c": "z", "a": "w"}

        self.assertEqual(diff_relationships(existing, requested), diff_relationships(existing, requested))

    def test_inputs_are_not_mutated(self):
        existing = edges(("a", "x"))
        requested = edges(("a", "y"))

        diff = diff_relationships(existing, requested)
        diff.requested["a"].role = "mutated"

        self.assertEqual(requested[0].role, "y")
        self.assertEqual(existing[0].role, "x")
