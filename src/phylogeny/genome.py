"""
genome.py

Genome capabilities required by the phylogenetic tree, and a reference
vector genome implementing them.

The tree never inspects genome contents: it only needs an identifier, the
parents' identifiers, a distance to another genome of the same type, a
distance-to-compatibility response and a dictionary form for persistence.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import numpy as np


class Parent(Enum):
    """Role filled by a parent genome."""
    MOTHER = 0
    FATHER = 1


@runtime_checkable
class Genome(Protocol):
    """
    Protocol for genomes handled by the phylogenetic tree.

    ``compatibility`` maps a distance to a score in [0, 1]; the tree combines
    both sides' responses by taking their minimum. ``from_dict`` must invert
    ``to_dict``.
    """

    @property
    def id(self) -> int: ...

    def has_parent(self, role: Parent) -> bool: ...

    def parent(self, role: Parent) -> int: ...

    def distance(self, other: "Genome") -> float: ...

    def compatibility(self, distance: float) -> float: ...

    def to_dict(self) -> Dict[str, Any]: ...

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Genome": ...


def genome_distance(lhs: Genome, rhs: Genome) -> float:
    """Distance between two genomes of the same type."""
    return float(lhs.distance(rhs))


def gaussian(x: float, mu: float, sigma: float) -> float:
    """Unnormalized gaussian bell: 1 at ``mu``, decreasing with ``sigma``."""
    if sigma <= 0:
        return 1.0 if x == mu else 0.0
    return math.exp(-((x - mu) ** 2) / (2 * sigma ** 2))


@dataclass
class VectorGenome:
    """
    Reference genome: a real-valued trait vector.

    Distance is the euclidean distance between trait vectors. Compatibility
    is an asymmetric bell centered on ``optimal_distance``: genomes closer
    than the optimum fall off with ``inbreed_tolerance``, farther ones with
    ``outbreed_tolerance``.

    Attributes:
        id: Unique genome identifier
        traits: Trait vector (converted to a float numpy array)
        mother: Identifier of the mother genome, None if unknown
        father: Identifier of the father genome, None if unknown
        optimal_distance: Distance at which compatibility is maximal
        inbreed_tolerance: Spread of the bell below the optimum
        outbreed_tolerance: Spread of the bell above the optimum
    """
    id: int
    traits: np.ndarray
    mother: Optional[int] = None
    father: Optional[int] = None
    optimal_distance: float = 0.0
    inbreed_tolerance: float = 1.0
    outbreed_tolerance: float = 1.0

    def __post_init__(self):
        self.traits = np.asarray(self.traits, dtype=float)

    def has_parent(self, role: Parent) -> bool:
        return self._parent_id(role) is not None

    def parent(self, role: Parent) -> int:
        pid = self._parent_id(role)
        if pid is None:
            raise KeyError(f"Genome {self.id} has no {role.name.lower()}")
        return pid

    def _parent_id(self, role: Parent) -> Optional[int]:
        return self.mother if role is Parent.MOTHER else self.father

    def distance(self, other: "VectorGenome") -> float:
        if self.traits.shape != other.traits.shape:
            raise ValueError(f"Trait shapes differ: {self.traits.shape} vs {other.traits.shape}")
        return float(np.linalg.norm(self.traits - other.traits))

    def compatibility(self, distance: float) -> float:
        sigma = self.inbreed_tolerance if distance <= self.optimal_distance else self.outbreed_tolerance
        return gaussian(distance, self.optimal_distance, sigma)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "traits": self.traits.tolist(),
            "parents": [self.mother, self.father],
            "cdata": [self.optimal_distance, self.inbreed_tolerance, self.outbreed_tolerance],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VectorGenome":
        mother, father = data.get("parents", [None, None])
        optimal, inbreed, outbreed = data.get("cdata", [0.0, 1.0, 1.0])
        return cls(
            id=data["id"],
            traits=np.array(data["traits"], dtype=float),
            mother=mother,
            father=father,
            optimal_distance=optimal,
            inbreed_tolerance=inbreed,
            outbreed_tolerance=outbreed,
        )

    def __hash__(self):
        return hash(self.id)

    def __eq__(self, other):
        return (isinstance(other, VectorGenome) and self.id == other.id
                and np.array_equal(self.traits, other.traits))

    def __repr__(self):
        return f"VectorGenome(id={self.id}, mother={self.mother}, father={self.father})"
