"""
Phylogeny module: online species classification of evolving genomes.

Builds a phylogenetic tree over a stream of genome births and deaths. Each
species keeps a bounded enveloppe of representative genomes used to decide
membership of newcomers.

Key features:
- Membership by enveloppe vote (compatibility and similarity thresholds)
- Bounded enveloppes with vote-based replacement favoring distinct genomes
- Hybrids folded into the mother's species
- JSON save/restore preserving species ids, and graphviz export
"""

# Configuration
from .config import PTreeConfig, DEFAULT_CONFIG, load_ptree_config

# Errors
from .errors import (
    PTreeError, ConfigurationError, UnsupportedPolicyError, HybridGenomeError, PTreeFormatError
)

# Genomes
from .genome import Genome, Parent, VectorGenome, genome_distance

# Data structures
from .node import NodeData, DistanceCache, SpeciesNode

# Notifications
from .callbacks import PTreeCallbacks, LoggingCallbacks, RecordingCallbacks

# Membership and enveloppe maintenance
from .compatibility import InsertionOutcome, compatibility, matches_species, insert_into

# Tree
from .tree import PhylogeneticTree

# Persistence
from .persistence import (
    tree_to_dict, tree_from_dict, save_tree, load_tree, render_dot, log_dot
)

# Validation
from .validation import validate_tree

__all__ = [
    # Configuration
    "PTreeConfig", "DEFAULT_CONFIG", "load_ptree_config",

    # Errors
    "PTreeError", "ConfigurationError", "UnsupportedPolicyError", "HybridGenomeError", "PTreeFormatError",

    # Genomes
    "Genome", "Parent", "VectorGenome", "genome_distance",

    # Data structures
    "NodeData", "DistanceCache", "SpeciesNode",

    # Notifications
    "PTreeCallbacks", "LoggingCallbacks", "RecordingCallbacks",

    # Membership
    "InsertionOutcome", "compatibility", "matches_species", "insert_into",

    # Tree
    "PhylogeneticTree",

    # Persistence
    "tree_to_dict", "tree_from_dict", "save_tree", "load_tree", "render_dot", "log_dot",

    # Validation
    "validate_tree",
]
