"""
persistence.py

Saving and restoring phylogenetic trees, and exporting their structure as a
graphviz digraph.

Document layout:
    {
        "step": int,
        "hybrids": int,                     (optional on read)
        "root": {
            "id": int,
            "data": [first_appearance, last_appearance, count, xmin, xmax],
            "enveloppe": [genome.to_dict(), ...],
            "distances": [[slot_a, slot_b, score], ...],
            "children": [<node>, ...]
        }
    }
"""

import json
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Type, Union

from .config import PTreeConfig
from .errors import PTreeFormatError
from .genome import Genome
from .node import NodeData, SpeciesNode
from .callbacks import PTreeCallbacks
from .tree import PhylogeneticTree

from utils import get_custom_logging
get_logger, _, PerformanceLogger = get_custom_logging()

_NODE_FIELDS = ("id", "data", "enveloppe", "distances", "children")

# Deepest JSON nesting load_tree will decode (two levels per tree level)
MAX_JSON_NESTING = 10_000


# =============================================================================
# Serialization
# =============================================================================

def _flat_record(node: SpeciesNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "data": node.data.to_list(),
        "enveloppe": [g.to_dict() for g in node.enveloppe],
        "distances": [[i, j, score] for i, j, score in node.distances.items()],
        "children": [],
    }


def node_to_dict(tree: PhylogeneticTree, node: SpeciesNode) -> Dict[str, Any]:
    """Serialize the subtree rooted at ``node``."""
    record = _flat_record(node)
    stack = [(node, record)]
    while stack:
        current, current_record = stack.pop()
        for cid in current.children:
            child = tree.nodes[cid]
            child_record = _flat_record(child)
            current_record["children"].append(child_record)
            stack.append((child, child_record))
    return record


def tree_to_dict(tree: PhylogeneticTree) -> Dict[str, Any]:
    """Serialize the whole tree (structure, metadata, enveloppes and distance caches)."""
    return {
        "step": tree.step,
        "hybrids": tree.hybrids,
        "root": node_to_dict(tree, tree.root),
    }


def _encode_tree(tree: PhylogeneticTree) -> Iterator[str]:
    """JSON text of ``tree_to_dict(tree)`` in chunks, one node at a time."""
    yield f'{{"step": {json.dumps(tree.step)}, "hybrids": {json.dumps(tree.hybrids)}, "root": '
    stack = [tree.root]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            yield item
            continue
        record = _flat_record(item)
        del record["children"]
        yield json.dumps(record)[:-1] + ', "children": ['
        stack.append("]}")
        for position in range(len(item.children) - 1, -1, -1):
            stack.append(tree.nodes[item.children[position]])
            if position:
                stack.append(", ")
    yield "}"


# =============================================================================
# Deserialization
# =============================================================================

def _rebuild_node(tree: PhylogeneticTree, record: Any, parent: Optional[SpeciesNode],
                  genome_type: Type[Genome]) -> SpeciesNode:
    """Build and register a single node; children records are left to the caller."""
    where = "root" if parent is None else f"child of node {parent.id}"
    if not isinstance(record, dict):
        raise PTreeFormatError(f"{where}: node record must be an object")
    missing = [f for f in _NODE_FIELDS if f not in record]
    if missing:
        raise PTreeFormatError(f"{where}: missing fields {missing}")

    sid = record["id"]
    if isinstance(sid, bool) or not isinstance(sid, int) or sid < 0:
        raise PTreeFormatError(f"{where}: invalid node id {sid!r}")
    if sid in tree.nodes:
        raise PTreeFormatError(f"{where}: duplicate node id {sid}")
    where = f"node {sid}"

    for key in ("enveloppe", "distances", "children"):
        if not isinstance(record[key], list):
            raise PTreeFormatError(f"{where}: {key} must be a list")

    try:
        data = NodeData.from_list(record["data"])
    except (TypeError, ValueError) as e:
        raise PTreeFormatError(f"{where}: invalid metadata: {e}") from e

    try:
        enveloppe = [genome_type.from_dict(g) for g in record["enveloppe"]]
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise PTreeFormatError(f"{where}: invalid enveloppe: {e}") from e
    if len(enveloppe) > tree.config.enveloppe_size:
        raise PTreeFormatError(f"{where}: enveloppe holds {len(enveloppe)} genomes, "
                               f"capacity is {tree.config.enveloppe_size}")

    node = SpeciesNode(id=sid, parent_id=parent.id if parent else None, data=data, enveloppe=enveloppe)
    for triple in record["distances"]:
        try:
            i, j, score = triple
            node.distances.set(int(i), int(j), float(score))
        except (TypeError, ValueError) as e:
            raise PTreeFormatError(f"{where}: invalid distance entry {triple!r}: {e}") from e
    errors = node.distances.validate(len(enveloppe))
    if errors:
        raise PTreeFormatError(f"{where}: {'; '.join(errors)}")

    tree.nodes[sid] = node
    if parent is not None:
        parent.children.append(sid)
    for genome in enveloppe:
        tree.genome_to_species[genome.id] = sid
    return node


def tree_from_dict(document: Dict[str, Any], genome_type: Type[Genome],
                   config: Optional[PTreeConfig] = None,
                   callbacks: Optional[PTreeCallbacks] = None, logger=None) -> PhylogeneticTree:
    """
    Rebuild a tree from ``tree_to_dict`` output.

    Node ids are preserved. The genome index is rebuilt from the enveloppes,
    so only genomes that were representatives at save time are indexed.

    Args:
        document: Serialized tree
        genome_type: Class providing ``from_dict`` for enveloppe genomes
        config: Configuration of the rebuilt tree
        callbacks: Observer of the rebuilt tree
        logger: Optional logger instance

    Raises:
        PTreeFormatError: if the document is malformed. No tree is returned.
    """
    if not isinstance(document, dict):
        raise PTreeFormatError("Tree document must be an object")
    for key in ("step", "root"):
        if key not in document:
            raise PTreeFormatError(f"Tree document is missing '{key}'")

    step = document["step"]
    hybrids = document.get("hybrids", 0)
    for name, value in (("step", step), ("hybrids", hybrids)):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise PTreeFormatError(f"Invalid {name} {value!r}")

    tree = PhylogeneticTree(config, callbacks, logger)
    tree.nodes.clear()
    tree.root = _rebuild_node(tree, document["root"], None, genome_type)
    stack = [(child, tree.root) for child in reversed(document["root"]["children"])]
    while stack:
        record, parent = stack.pop()
        node = _rebuild_node(tree, record, parent, genome_type)
        stack.extend((child, node) for child in reversed(record["children"]))
    tree.step = step
    tree.hybrids = hybrids
    tree._next_node_id = max(tree.nodes) + 1
    return tree


# =============================================================================
# Files
# =============================================================================

def save_tree(tree: PhylogeneticTree, path: Union[str, Path], logger=None) -> None:
    """Write the tree as JSON to ``path``."""
    if logger is None:
        logger = get_logger("PTreePersistence")

    path = Path(path)
    with PerformanceLogger(logger, "Save Phylogenetic Tree", path=str(path)):
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.writelines(_encode_tree(tree))
        logger.info(f"Saved {len(tree) - 1} species to {path}")


@contextmanager
def _nesting_allowance(text: str):
    """Raise the interpreter recursion limit enough for the json decoder to read ``text``."""
    limit = sys.getrecursionlimit()
    levels = min(text.count("{") + text.count("["), MAX_JSON_NESTING)
    sys.setrecursionlimit(limit + levels)
    try:
        yield
    finally:
        sys.setrecursionlimit(limit)


def load_tree(path: Union[str, Path], genome_type: Type[Genome],
              config: Optional[PTreeConfig] = None,
              callbacks: Optional[PTreeCallbacks] = None, logger=None) -> PhylogeneticTree:
    """
    Read a tree written by ``save_tree``.

    Raises:
        FileNotFoundError: if ``path`` does not exist
        PTreeFormatError: if the file is not a valid tree document
    """
    if logger is None:
        logger = get_logger("PTreePersistence")

    path = Path(path)
    with PerformanceLogger(logger, "Load Phylogenetic Tree", path=str(path)):
        if not path.exists():
            logger.error(f"Tree file not found: {path}")
            raise FileNotFoundError(f"Tree file not found: {path}")

        try:
            text = path.read_bytes().decode('utf-8')
            with _nesting_allowance(text):
                document = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Failed to parse tree file {path}: {e}")
            raise PTreeFormatError(f"{path} is not valid UTF-8 JSON: {e}") from e
        except RecursionError as e:
            logger.error(f"Tree file {path} is nested too deeply: {e}")
            raise PTreeFormatError(f"{path} nests deeper than {MAX_JSON_NESTING} levels") from e

        tree = tree_from_dict(document, genome_type, config, callbacks)
        logger.info(f"Loaded {len(tree) - 1} species from {path} (step {tree.step})")
        return tree


# =============================================================================
# Graphviz export
# =============================================================================

def render_dot(tree: PhylogeneticTree) -> str:
    """Directed graph of the tree structure, one vertex per species, in dot format."""
    lines = ["digraph {"]
    stack = [tree.root]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            lines.append(item)
            continue
        lines.append(f"\t{item.id};")
        for cid in reversed(item.children):
            stack.append(tree.nodes[cid])
            stack.append(f"\t{item.id} -> {cid};")
    lines.append("}")
    return "\n".join(lines) + "\n"


def log_dot(tree: PhylogeneticTree, path: Union[str, Path]) -> None:
    """Write ``render_dot`` output to ``path``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_dot(tree), encoding='utf-8')
