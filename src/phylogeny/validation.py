"""
validation.py

Structural consistency checks for phylogenetic trees.
"""

from typing import List, Tuple

from .tree import PhylogeneticTree

from utils import get_custom_logging
get_logger, _, _ = get_custom_logging()


def validate_tree(tree: PhylogeneticTree, logger=None) -> Tuple[bool, List[str]]:
    """
    Validate the structural invariants of a tree.

    Checks:
    1. Every registered node is reachable from the root, exactly once
    2. Every non-root node appears once in its parent's children
    3. Enveloppes do not exceed the configured capacity
    4. Distance caches only reference slots inside their enveloppe
    5. first_appearance <= last_appearance
    6. The genome index only points to registered species

    Args:
        tree: Tree to check
        logger: Optional logger instance

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    if logger is None:
        logger = get_logger("Validation")

    errors: List[str] = []

    if tree.root.parent_id is not None:
        errors.append(f"Root {tree.root.id} has a parent ({tree.root.parent_id})")
    if tree.nodes.get(tree.root.id) is not tree.root:
        errors.append(f"Root {tree.root.id} is not registered")

    # Reachability, guarding against cycles
    seen = set()
    stack = [tree.root.id]
    while stack:
        sid = stack.pop()
        if sid in seen:
            errors.append(f"Species {sid} is reachable more than once")
            continue
        seen.add(sid)
        node = tree.nodes.get(sid)
        if node is None:
            errors.append(f"Species {sid} is referenced as a child but not registered")
            continue
        stack.extend(node.children)

    for sid in tree.nodes:
        if sid not in seen:
            errors.append(f"Species {sid} is not reachable from the root")

    for sid, node in tree.nodes.items():
        if node.id != sid:
            errors.append(f"Species registered as {sid} has id {node.id}")

        if node is not tree.root:
            parent = tree.nodes.get(node.parent_id)
            if parent is None:
                errors.append(f"Species {sid} has unknown parent {node.parent_id}")
            elif parent.children.count(sid) != 1:
                errors.append(f"Species {sid} appears {parent.children.count(sid)} times "
                              f"in the children of {parent.id}")

        if len(node.enveloppe) > tree.config.enveloppe_size:
            errors.append(f"Species {sid} enveloppe holds {len(node.enveloppe)} genomes "
                          f"(capacity {tree.config.enveloppe_size})")

        for problem in node.distances.validate(len(node.enveloppe)):
            errors.append(f"Species {sid} distance cache: {problem}")

        if node.data.first_appearance > node.data.last_appearance:
            errors.append(f"Species {sid} first appearance {node.data.first_appearance} "
                          f"is after its last appearance {node.data.last_appearance}")

    for gid, sid in tree.genome_to_species.items():
        if sid not in tree.nodes:
            errors.append(f"Genome {gid} is mapped to unknown species {sid}")

    is_valid = len(errors) == 0
    if is_valid:
        logger.debug(f"Tree with {len(tree.nodes)} nodes is consistent")
    else:
        logger.warning(f"Tree validation found {len(errors)} problems")
        for error in errors:
            logger.warning(f"  - {error}")

    return is_valid, errors
