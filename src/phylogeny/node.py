"""
node.py

Species node data structures: per-node metadata, the sparse cache of
compatibilities between enveloppe points, and the node itself.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .genome import Genome


@dataclass
class NodeData:
    """
    Per-species bookkeeping.

    Attributes:
        first_appearance: Step at which the species was created
        last_appearance: Last step at which a member of the species was alive
        count: Number of genomes ever assigned to the species
        xmin: Smallest spatial coordinate seen among assigned genomes
        xmax: Largest spatial coordinate seen among assigned genomes
    """
    first_appearance: int = 0
    last_appearance: int = 0
    count: int = 0
    xmin: float = 0
    xmax: float = 0

    def to_list(self) -> List:
        return [self.first_appearance, self.last_appearance, self.count, self.xmin, self.xmax]

    @classmethod
    def from_list(cls, values: Sequence) -> "NodeData":
        if not isinstance(values, (list, tuple)) or len(values) != 5:
            raise ValueError(f"Expected 5 metadata values, got {values!r}")
        first, last, count, xmin, xmax = values
        for name, value in (("first_appearance", first), ("last_appearance", last), ("count", count)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise TypeError(f"{name} must be a non-negative integer, got {value!r}")
        for name, value in (("xmin", xmin), ("xmax", xmax)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeError(f"{name} must be a number, got {value!r}")
        if first > last:
            raise ValueError(f"first_appearance {first} is after last_appearance {last}")
        return cls(first_appearance=first, last_appearance=last, count=count, xmin=xmin, xmax=xmax)


def ordered_pair(i: int, j: int) -> Tuple[int, int]:
    """Normalized key for an unordered pair of slots."""
    return (i, j) if i <= j else (j, i)


class DistanceCache:
    """
    Sparse symmetric table of compatibilities between enveloppe slots.

    Keys are slot indices, not genome ids: whenever a slot's occupant changes,
    every pair involving that slot must be rewritten.
    """

    def __init__(self):
        self._values: Dict[Tuple[int, int], float] = {}

    def get(self, i: int, j: int, default: float = 0.0) -> float:
        return self._values.get(ordered_pair(i, j), default)

    def set(self, i: int, j: int, score: float) -> None:
        if i == j:
            raise ValueError(f"Cannot store a compatibility between slot {i} and itself")
        self._values[ordered_pair(i, j)] = float(score)

    def rewrite_slot(self, slot: int, scores: Sequence[float]) -> None:
        """Overwrite every pair (i, slot) with scores[i], for all i != slot."""
        for i, score in enumerate(scores):
            if i != slot:
                self.set(i, slot, score)

    def items(self) -> Iterator[Tuple[int, int, float]]:
        for (i, j), score in sorted(self._values.items()):
            yield i, j, score

    def validate(self, size: int) -> List[str]:
        """Return a list of problems for a cache attached to an enveloppe of ``size`` slots."""
        errors = []
        for i, j in self._values:
            if not (0 <= i < size and 0 <= j < size):
                errors.append(f"pair ({i}, {j}) outside enveloppe of size {size}")
            if i == j:
                errors.append(f"pair ({i}, {j}) relates a slot to itself")
        return errors

    def __contains__(self, pair) -> bool:
        i, j = pair
        return ordered_pair(i, j) in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self):
        return f"DistanceCache({len(self)} pairs)"


@dataclass(eq=False)
class SpeciesNode:
    """
    A species in the phylogenetic tree.

    The node owns its children (by id, in creation order) and refers to its
    parent by id only. The enveloppe is mutated exclusively through
    ``append_representative`` and ``replace_representative`` so that the
    distance cache stays aligned with slot positions.

    Attributes:
        id: Unique, never reused, species identifier
        parent_id: Identifier of the parent species (None for the root)
        children: Identifiers of the child species, in creation order
        enveloppe: Representative genomes, in admission/replacement order
        distances: Compatibilities between enveloppe slots
        data: Temporal/spatial bookkeeping
    """
    id: int
    parent_id: Optional[int] = None
    children: List[int] = field(default_factory=list)
    enveloppe: List[Genome] = field(default_factory=list)
    distances: DistanceCache = field(default_factory=DistanceCache)
    data: NodeData = field(default_factory=NodeData)

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def enveloppe_ids(self) -> List[int]:
        return [g.id for g in self.enveloppe]

    def append_representative(self, genome: Genome, scores: Sequence[float]) -> int:
        """Add ``genome`` to a new slot; ``scores[i]`` is its compatibility with slot i."""
        slot = len(self.enveloppe)
        self.enveloppe.append(genome)
        for i in range(slot):
            self.distances.set(i, slot, scores[i])
        return slot

    def replace_representative(self, slot: int, genome: Genome, scores: Sequence[float]) -> Genome:
        """Put ``genome`` in ``slot`` and return the evicted genome."""
        evicted = self.enveloppe[slot]
        self.enveloppe[slot] = genome
        self.distances.rewrite_slot(slot, scores[:len(self.enveloppe)])
        return evicted

    def __repr__(self):
        return (f"SpeciesNode(id={self.id}, parent={self.parent_id}, "
                f"children={self.children}, enveloppe={self.enveloppe_ids()})")
