"""
tree.py

Phylogenetic tree: routes genome births to species, creates new species and
keeps per-species temporal bookkeeping up to date.

Usage:
    >>> tree = PhylogeneticTree(PTreeConfig(enveloppe_size=3))
    >>> sid = tree.add_genome(x, genome)
    >>> tree.del_genome(step, genome.id)
    >>> tree.advance_step(step, alive_ids)
"""

from typing import Dict, Iterable, Iterator, List, Optional

from .config import PTreeConfig, DEFAULT_CONFIG
from .errors import HybridGenomeError, UnsupportedPolicyError
from .genome import Genome, Parent
from .node import SpeciesNode
from .callbacks import PTreeCallbacks
from .compatibility import matches_species, insert_into

from utils import get_custom_logging
get_logger, _, _ = get_custom_logging()


class PhylogeneticTree:
    """
    Online species classifier.

    The root is a pure container: it never holds genomes itself, parentless
    genomes are classified among its children. Every other node is created
    by ``add_genome`` and lives as long as the tree.

    Attributes:
        config: Read-only thresholds and policies
        root: The root node (id 0 for freshly built trees)
        nodes: Registry of every node, by id
        genome_to_species: Species each admitted genome was assigned to.
                           Entries are never removed, even after death.
        step: Current simulation step
        hybrids: Number of genomes whose parents belonged to different species
    """

    def __init__(self, config: Optional[PTreeConfig] = None,
                 callbacks: Optional[PTreeCallbacks] = None, logger=None):
        self.config = config or DEFAULT_CONFIG
        self.logger = logger or get_logger("PhylogeneticTree")

        if not self.config.ignore_hybrids:
            raise UnsupportedPolicyError("Hybrid placement is not implemented: ignore_hybrids must be enabled")
        if not self.config.simple_new_species:
            raise UnsupportedPolicyError("Only singleton species creation is implemented: "
                                         "simple_new_species must be enabled")

        self.callbacks = callbacks
        self.nodes: Dict[int, SpeciesNode] = {}
        self.genome_to_species: Dict[int, int] = {}
        self.step = 0
        self.hybrids = 0
        self._next_node_id = 0
        self.root = self._make_node(None)

    def set_callbacks(self, callbacks: Optional[PTreeCallbacks]) -> None:
        self.callbacks = callbacks

    def _make_node(self, parent: Optional[SpeciesNode]) -> SpeciesNode:
        node = SpeciesNode(id=self._next_node_id, parent_id=parent.id if parent else None)
        self._next_node_id += 1
        self.nodes[node.id] = node
        if parent is not None:
            parent.children.append(node.id)
        return node

    # =========================================================================
    # Events
    # =========================================================================

    def add_genome(self, x: float, genome: Genome) -> int:
        """
        Classify a newborn genome.

        Args:
            x: Spatial coordinate of the genome at birth
            genome: The newborn genome

        Returns:
            Identifier of the species the genome was assigned to

        Raises:
            HybridGenomeError: if the parents belong to different species and
                               hybrid folding is disabled
        """
        return self._add_to(x, genome, self._starting_node(genome))

    def _starting_node(self, genome: Genome) -> SpeciesNode:
        has_mother = genome.has_parent(Parent.MOTHER)
        has_father = genome.has_parent(Parent.FATHER)

        if not has_mother and not has_father:
            return self.root

        if has_mother != has_father:
            role = Parent.MOTHER if has_mother else Parent.FATHER
            sid = self.genome_to_species.get(genome.parent(role))
            if sid is None:
                self.logger.debug(f"Parent of genome {genome.id} is unknown, starting from root")
                return self.root
            return self.nodes[sid]

        mid = self.genome_to_species.get(genome.parent(Parent.MOTHER))
        pid = self.genome_to_species.get(genome.parent(Parent.FATHER))
        if mid is None or pid is None:
            self.logger.debug(f"Parents of genome {genome.id} are unknown, starting from root")
            return self.root

        if mid == pid:
            return self.nodes[mid]

        self.hybrids += 1
        if not self.config.ignore_hybrids:
            raise HybridGenomeError(f"Genome {genome.id} is a hybrid of species {mid} and {pid}")

        self.logger.debug(f"Linking hybrid genome {genome.id} to mother species {mid}")
        return self.nodes[mid]

    def _add_to(self, x: float, genome: Genome, species: SpeciesNode) -> int:
        self.logger.debug(f"Adding genome {genome.id} to species {species.id}")

        if not species.is_root:
            matches, scores = matches_species(genome, species, self.config)
            if matches:
                return self._insert(x, genome, species, scores)
            self.logger.debug(f"Incompatible with {species.id}")

        for cid in species.children:
            subspecies = self.nodes[cid]
            matches, scores = matches_species(genome, subspecies, self.config)
            if matches:
                return self._insert(x, genome, subspecies, scores)

        subspecies = self._make_node(species)
        subspecies.data.first_appearance = self.step
        subspecies.data.last_appearance = self.step
        subspecies.data.xmin = x
        subspecies.data.xmax = x
        sid = self._insert(x, genome, subspecies, [])
        self.logger.debug(f"Created species {sid} under {species.id}")
        if self.callbacks:
            self.callbacks.on_new_species(sid)
        return sid

    def _insert(self, x: float, genome: Genome, species: SpeciesNode, scores: List[float]) -> int:
        insert_into(species, genome, x, self.step, scores, self.config, self.callbacks, self.logger)
        self.genome_to_species[genome.id] = species.id
        return species.id

    def del_genome(self, step: int, gid: int) -> None:
        """
        Record the death of genome ``gid`` at ``step``.

        Only the species' last appearance changes; the genome stays indexed.
        """
        sid = self.genome_to_species.get(gid)
        if sid is not None:
            self.logger.debug(f"New last appearance of species {sid} is {step}")
            self.nodes[sid].data.last_appearance = step

    def advance_step(self, step: int, alive_ids: Iterable[int]) -> None:
        """
        Move the tree to ``step``; every species with a living member is seen at ``step``.

        Unknown genome ids are skipped.
        """
        alive_species = set()
        for gid in alive_ids:
            sid = self.genome_to_species.get(gid)
            if sid is None:
                self.logger.warning(f"Alive genome {gid} was never added to the tree")
                continue
            alive_species.add(sid)

        for sid in alive_species:
            self.nodes[sid].data.last_appearance = step

        self.step = step

    # =========================================================================
    # Queries
    # =========================================================================

    def species_id(self, gid: int) -> Optional[int]:
        """Species genome ``gid`` was assigned to, None if unknown."""
        return self.genome_to_species.get(gid)

    def node(self, sid: int) -> SpeciesNode:
        return self.nodes[sid]

    def parent_of(self, sid: int) -> Optional[SpeciesNode]:
        parent_id = self.nodes[sid].parent_id
        return None if parent_id is None else self.nodes[parent_id]

    def depth(self, sid: int) -> int:
        depth = 0
        node = self.nodes[sid]
        while node.parent_id is not None:
            node = self.nodes[node.parent_id]
            depth += 1
        return depth

    def __iter__(self) -> Iterator[SpeciesNode]:
        """Depth-first, pre-order traversal from the root."""
        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(self.nodes[cid] for cid in reversed(node.children))

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, sid) -> bool:
        return sid in self.nodes

    def __str__(self) -> str:
        lines = [f"{self.hybrids} Hybrids;"]
        stack = [(self.root, 0)]
        while stack:
            node, depth = stack.pop()
            genomes = "".join(f"{gid} " for gid in node.enveloppe_ids())
            lines.append(f"> {'  ' * depth}[{node.id}] ( {genomes})")
            stack.extend((self.nodes[cid], depth + 1) for cid in reversed(node.children))
        return "\n".join(lines) + "\n"

    def __repr__(self):
        return f"PhylogeneticTree(species={len(self) - 1}, step={self.step}, hybrids={self.hybrids})"
