"""
compatibility.py

Species membership test and enveloppe maintenance.

A genome belongs to a species when enough of the species' enveloppe points
deem it compatible. Once admitted, it may enter the enveloppe: freely while
there is room, otherwise by replacing the enveloppe point it is most
compatible with, provided it is more distinct than that point from enough of
the others. This keeps the enveloppe a bounded, diverse sample of the
species rather than its most recent or most typical members.
"""

from enum import Enum
from typing import List, Optional, Tuple

from .config import PTreeConfig
from .genome import Genome, genome_distance
from .node import SpeciesNode
from .callbacks import PTreeCallbacks

from utils import get_custom_logging
get_logger, _, _ = get_custom_logging()


class InsertionOutcome(Enum):
    """What happened to the enveloppe during an insertion."""
    APPENDED = "appended"
    REPLACED = "replaced"
    REJECTED = "rejected"


def compatibility(lhs: Genome, rhs: Genome) -> float:
    """Compatibility between two genomes: the most conservative of both responses."""
    d = genome_distance(lhs, rhs)
    return min(lhs.compatibility(d), rhs.compatibility(d))


def matches_species(genome: Genome, node: SpeciesNode, config: PTreeConfig) -> Tuple[bool, List[float]]:
    """
    Test whether ``genome`` belongs to the species ``node``.

    Args:
        genome: Candidate genome
        node: Species to test against
        config: Thresholds

    Returns:
        Tuple of (matches, scores) where scores[i] is the compatibility with
        enveloppe point i. An empty enveloppe always matches.
    """
    scores = [compatibility(genome, e) for e in node.enveloppe]
    matable = sum(1 for c in scores if c >= config.compatibility_threshold)
    return matable >= config.similarity_threshold * len(scores), scores


def _most_compatible(scores: List[float]) -> int:
    best = 0
    for i in range(1, len(scores)):
        if scores[best] < scores[i]:
            best = i
    return best


def insert_into(node: SpeciesNode, genome: Genome, x: float, step: int, scores: List[float],
                config: PTreeConfig, callbacks: Optional[PTreeCallbacks] = None,
                logger=None) -> InsertionOutcome:
    """
    Record ``genome`` as a member of ``node`` and update its enveloppe.

    Must only be called after ``matches_species`` succeeded on the same node,
    with the scores it returned.

    Args:
        node: Species receiving the genome
        genome: Admitted genome
        x: Spatial coordinate of the genome (e.g. position at birth)
        step: Current simulation step
        scores: Compatibilities with the current enveloppe points
        config: Enveloppe size and outperformance threshold
        callbacks: Optional observer notified of enveloppe changes
        logger: Optional logger instance

    Returns:
        InsertionOutcome describing the enveloppe change
    """
    if logger is None:
        logger = get_logger("Compatibility")

    k = len(node.enveloppe)

    if k < config.enveloppe_size:
        node.append_representative(genome, scores)
        if callbacks:
            callbacks.on_genome_enters_enveloppe(node.id, genome.id)
        logger.debug(f"Genome {genome.id} appended to enveloppe of species {node.id}")
        outcome = InsertionOutcome.APPENDED

    else:
        # Enveloppe point on the ejectable seat
        m = _most_compatible(scores)

        # Number of times the newcomer is more distinct than m from another point
        votes = 0
        for i in range(k):
            if i != m and scores[i] < node.distances.get(i, m):
                votes += 1

        if votes < config.outperformance_threshold * (k - 1):
            logger.debug(f"Genome {genome.id} deemed unremarkable for species {node.id} "
                         f"with {k - 1 - votes} to {votes}")
            outcome = InsertionOutcome.REJECTED

        else:
            evicted_id = node.enveloppe[m].id
            if callbacks:
                callbacks.on_genome_leaves_enveloppe(node.id, evicted_id)
                callbacks.on_genome_enters_enveloppe(node.id, genome.id)
            node.replace_representative(m, genome, scores)
            logger.debug(f"Genome {genome.id} replaced enveloppe point {m} (genome {evicted_id}) "
                         f"of species {node.id} with a vote of {votes} to {k - 1 - votes}")
            outcome = InsertionOutcome.REPLACED

    data = node.data
    if data.count == 0:
        data.xmin = data.xmax = x
    data.count += 1
    data.last_appearance = step
    data.xmin = min(data.xmin, x)
    data.xmax = max(data.xmax, x)

    return outcome
