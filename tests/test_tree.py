#!/usr/bin/env python3
"""
Tests for genome admission, deaths, step advances and tree queries.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from phylogeny import (
    PTreeConfig, PhylogeneticTree, VectorGenome, RecordingCallbacks, LoggingCallbacks,
    HybridGenomeError, validate_tree
)
from table_genome import ScoreTable, TableGenome


class TestAdmission:

    def setup_method(self):
        self.table = ScoreTable()
        self.callbacks = RecordingCallbacks()
        self.tree = PhylogeneticTree(
            PTreeConfig(compatibility_threshold=0.5, similarity_threshold=0.5,
                        enveloppe_size=3, outperformance_threshold=0.5),
            callbacks=self.callbacks,
        )

    def genome(self, gid, mother=None, father=None):
        return TableGenome(gid, self.table, mother, father)

    def test_first_parentless_genome_creates_child_of_root(self):
        self.tree.advance_step(4, [])

        sid = self.tree.add_genome(7, VectorGenome(1, [0.0, 0.0]))

        assert sid != self.tree.root.id
        assert self.tree.root.children == [sid]
        node = self.tree.node(sid)
        assert node.data.first_appearance == 4
        assert node.data.xmin == node.data.xmax == 7
        assert node.enveloppe_ids() == [1]
        assert self.tree.root.enveloppe == []
        assert self.tree.species_id(1) == sid
        assert self.callbacks.events == [("enters", sid, 1), ("new_species", sid)]

    def test_compatible_parentless_genomes_share_a_species(self):
        self.table.set(1, 2, 0.9)
        s1 = self.tree.add_genome(0, self.genome(1))
        s2 = self.tree.add_genome(0, self.genome(2))
        assert s1 == s2
        assert self.tree.node(s1).data.count == 2

    def test_incompatible_parentless_genomes_are_siblings(self):
        s1 = self.tree.add_genome(0, self.genome(1))
        s2 = self.tree.add_genome(0, self.genome(2))
        assert s1 != s2
        assert self.tree.root.children == [s1, s2]

    def test_offspring_starts_from_parent_species(self):
        s1 = self.tree.add_genome(0, self.genome(1))
        self.table.set(1, 2, 0.9)
        assert self.tree.add_genome(0, self.genome(2, mother=1, father=1)) == s1

    def test_single_parent_starts_from_that_parent_species(self):
        s1 = self.tree.add_genome(0, self.genome(1))
        self.table.set(1, 2, 0.9)
        assert self.tree.add_genome(0, self.genome(2, mother=1)) == s1
        self.table.set(1, 3, 0.9).set(2, 3, 0.9)
        assert self.tree.add_genome(0, self.genome(3, father=2)) == s1

    def test_unknown_parents_fall_back_to_root(self):
        sid = self.tree.add_genome(0, self.genome(5, mother=98, father=99))
        assert self.tree.node(sid).parent_id == self.tree.root.id
        assert self.tree.hybrids == 0

    def test_incompatible_offspring_creates_subspecies_of_parent_species(self):
        s1 = self.tree.add_genome(0, self.genome(1))

        s2 = self.tree.add_genome(3, self.genome(2, mother=1, father=1))

        assert s2 != s1
        assert self.tree.node(s2).parent_id == s1
        assert self.tree.node(s1).children == [s2]
        assert self.tree.depth(s2) == 2
        assert self.tree.parent_of(s2) is self.tree.node(s1)

    def test_matching_child_is_used_without_descending_further(self):
        s1 = self.tree.add_genome(0, self.genome(1))
        s2 = self.tree.add_genome(0, self.genome(2, mother=1, father=1))
        s3 = self.tree.add_genome(0, self.genome(3, mother=1, father=1))
        s4 = self.tree.add_genome(0, self.genome(4, mother=2, father=2))
        assert self.tree.node(s1).children == [s2, s3]
        assert self.tree.node(s2).children == [s4]

        # Matches both children of s1 and the grandchild s4: first child wins
        self.table.set(5, 2, 0.9).set(5, 3, 0.9).set(5, 4, 0.9)
        assert self.tree.add_genome(0, self.genome(5, mother=1, father=1)) == s2

        # Matches only the grandchild: no deeper search, new child of s1
        self.table.set(6, 4, 0.9)
        s6 = self.tree.add_genome(0, self.genome(6, mother=1, father=1))
        assert s6 not in (s2, s3, s4)
        assert self.tree.node(s6).parent_id == s1

    def test_spatial_extent_and_count(self):
        self.table.set(1, 2, 0.9).set(1, 3, 0.9).set(2, 3, 0.9)
        sid = self.tree.add_genome(5, self.genome(1))
        self.tree.add_genome(-4, self.genome(2, mother=1, father=1))
        self.tree.add_genome(12, self.genome(3, mother=2, father=1))

        data = self.tree.node(sid).data
        assert (data.xmin, data.xmax, data.count) == (-4, 12, 3)

    def test_enveloppe_fills_with_mutually_incompatible_genomes(self):
        config = PTreeConfig(compatibility_threshold=0.5, similarity_threshold=0.0, enveloppe_size=3)
        tree = PhylogeneticTree(config, callbacks=self.callbacks)
        self.table.set(1, 2, 0.1).set(1, 3, 0.2).set(2, 3, 0.3)

        sid = tree.add_genome(0, self.genome(1))
        tree.add_genome(0, self.genome(2, mother=1, father=1))
        tree.add_genome(0, self.genome(3, mother=1, father=1))

        assert tree.node(sid).enveloppe_ids() == [1, 2, 3]
        assert [e for e in self.callbacks.events if e[0] == "leaves"] == []

    def test_full_enveloppe_evicts_most_compatible_point(self):
        config = PTreeConfig(compatibility_threshold=0.5, similarity_threshold=0.0,
                             enveloppe_size=3, outperformance_threshold=0.5)
        tree = PhylogeneticTree(config, callbacks=self.callbacks)
        self.table.set(1, 2, 0.6).set(1, 3, 0.7).set(2, 3, 0.8)
        sid = tree.add_genome(0, self.genome(1))
        tree.add_genome(0, self.genome(2, mother=1, father=1))
        tree.add_genome(0, self.genome(3, mother=1, father=1))
        self.callbacks.clear()

        self.table.set(4, 1, 0.9).set(4, 2, 0.1).set(4, 3, 0.2)
        assert tree.add_genome(0, self.genome(4, mother=2, father=3)) == sid

        assert tree.node(sid).enveloppe_ids() == [4, 2, 3]
        assert self.callbacks.events == [("leaves", sid, 1), ("enters", sid, 4)]
        # The evicted genome keeps its species
        assert tree.species_id(1) == sid

    def test_hybrid_is_folded_into_mother_species(self):
        s1 = self.tree.add_genome(0, self.genome(1))
        s2 = self.tree.add_genome(0, self.genome(2))
        assert s1 != s2
        self.table.set(3, 1, 0.9)

        sid = self.tree.add_genome(0, self.genome(3, mother=1, father=2))

        assert self.tree.hybrids == 1
        assert sid == s1

    def test_hybrid_guard_when_folding_is_disabled(self):
        self.tree.add_genome(0, self.genome(1))
        self.tree.add_genome(0, self.genome(2))
        # Bypass the constructor check to exercise the admission guard
        object.__setattr__(self.tree.config, "ignore_hybrids", False)

        with pytest.raises(HybridGenomeError):
            self.tree.add_genome(0, self.genome(3, mother=1, father=2))

    def test_ids_are_unique_and_sequential(self):
        sids = [self.tree.add_genome(0, self.genome(i)) for i in range(1, 6)]
        assert sids == [1, 2, 3, 4, 5]
        assert len(self.tree) == 6
        assert 5 in self.tree and 6 not in self.tree

    def test_new_species_callback_reports_created_id(self):
        sid = self.tree.add_genome(0, self.genome(1))
        assert ("new_species", sid) in self.callbacks.events

    def test_works_without_callbacks(self):
        tree = PhylogeneticTree(PTreeConfig(enveloppe_size=2))
        tree.set_callbacks(None)
        assert tree.add_genome(0, VectorGenome(1, [1.0])) == 1

    def test_logging_callbacks(self):
        tree = PhylogeneticTree(PTreeConfig(enveloppe_size=2), callbacks=LoggingCallbacks())
        assert tree.add_genome(0, VectorGenome(1, [1.0])) == 1


class TestTemporalBookkeeping:

    def setup_method(self):
        self.table = ScoreTable()
        self.tree = PhylogeneticTree(PTreeConfig(compatibility_threshold=0.5, enveloppe_size=3))
        self.s1 = self.tree.add_genome(0, TableGenome(1, self.table))
        self.s2 = self.tree.add_genome(0, TableGenome(2, self.table))

    def test_advance_step_touches_only_alive_species(self):
        self.tree.advance_step(5, {1})

        assert self.tree.step == 5
        assert self.tree.node(self.s1).data.last_appearance == 5
        assert self.tree.node(self.s2).data.last_appearance == 0

    def test_advance_step_skips_unknown_genomes(self):
        self.tree.advance_step(2, [1, 42])
        assert self.tree.node(self.s1).data.last_appearance == 2

    def test_new_species_appear_at_current_step(self):
        self.tree.advance_step(8, [1, 2])
        sid = self.tree.add_genome(3, TableGenome(3, self.table))
        assert self.tree.node(sid).data.first_appearance == 8
        assert self.tree.node(sid).data.last_appearance == 8

    def test_death_updates_last_appearance_and_keeps_index(self):
        self.tree.advance_step(3, [1, 2])

        self.tree.del_genome(4, 2)

        assert self.tree.node(self.s2).data.last_appearance == 4
        assert self.tree.node(self.s1).data.last_appearance == 3
        assert self.tree.species_id(2) == self.s2

    def test_death_of_unknown_genome_is_ignored(self):
        self.tree.del_genome(4, 77)
        assert self.tree.node(self.s1).data.last_appearance == 0

    def test_last_appearance_is_monotonic(self):
        history = []
        for step in range(1, 6):
            self.tree.advance_step(step, [1])
            history.append(self.tree.node(self.s1).data.last_appearance)
        self.tree.del_genome(6, 1)
        history.append(self.tree.node(self.s1).data.last_appearance)
        assert history == sorted(history)

    def test_species_lookup(self):
        assert self.tree.species_id(1) == self.s1
        assert self.tree.species_id(1) == self.tree.species_id(1)
        assert self.tree.species_id(1000) is None


class TestTreeInvariants:

    def test_random_population_keeps_tree_consistent(self):
        rng = np.random.default_rng(42)
        config = PTreeConfig(compatibility_threshold=0.4, similarity_threshold=0.5,
                             enveloppe_size=4, outperformance_threshold=0.5)
        tree = PhylogeneticTree(config)
        alive = []
        next_id = 0

        for step in range(30):
            for _ in range(10):
                if len(alive) >= 2 and rng.random() < 0.8:
                    mother, father = rng.choice(len(alive), size=2)
                    m, f = alive[mother], alive[father]
                    traits = (m.traits + f.traits) / 2 + rng.normal(0, 0.3, size=3)
                    genome = VectorGenome(next_id, traits, m.id, f.id)
                else:
                    genome = VectorGenome(next_id, rng.normal(0, 2, size=3))
                next_id += 1
                tree.add_genome(float(rng.uniform(-10, 10)), genome)
                alive.append(genome)

            while len(alive) > 40:
                dead = alive.pop(int(rng.integers(len(alive))))
                tree.del_genome(step, dead.id)
            tree.advance_step(step + 1, [g.id for g in alive])

        is_valid, errors = validate_tree(tree)
        assert is_valid, errors
        assert sum(n.data.count for n in tree) == next_id
        for node in tree:
            assert len(node.enveloppe) <= config.enveloppe_size
            if not node.is_root:
                assert tree.nodes[node.parent_id].children.count(node.id) == 1

    def test_iteration_is_depth_first_preorder(self):
        table = ScoreTable()
        tree = PhylogeneticTree(PTreeConfig(compatibility_threshold=0.5))
        s1 = tree.add_genome(0, TableGenome(1, table))
        s2 = tree.add_genome(0, TableGenome(2, table))
        s3 = tree.add_genome(0, TableGenome(3, table, 1, 1))

        assert [n.id for n in tree] == [0, s1, s3, s2]

    def test_text_dump(self):
        table = ScoreTable()
        tree = PhylogeneticTree(PTreeConfig(compatibility_threshold=0.5))
        tree.add_genome(0, TableGenome(1, table))
        tree.add_genome(0, TableGenome(2, table, 1, 1))

        assert str(tree) == "0 Hybrids;\n> [0] ( )\n>   [1] ( 1 )\n>     [2] ( 2 )\n"
