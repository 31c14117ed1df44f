"""
config.py

Configuration parameters for the phylogenetic tree.
"""

from dataclasses import dataclass, fields
from typing import Optional

from .errors import ConfigurationError

from utils import get_config_utils


@dataclass(frozen=True)
class PTreeConfig:
    """
    Configuration parameters for species assignment and enveloppe maintenance.

    Instances are immutable: the tree reads them but never writes them.

    Attributes:
        compatibility_threshold: Minimal compatibility between a genome and an
                                 enveloppe point for that point to vote "yes".
                                 Range: [0, 1]
                                 Default: 0.3

        similarity_threshold: Fraction of "yes" votes required for a genome to
                              belong to a species.
                              Range: [0, 1]
                              Default: 0.5

        enveloppe_size: Number of representative genomes kept per species.
                        Must be positive.
                        Default: 5

        outperformance_threshold: Fraction of the (enveloppe_size - 1) votes a
                                  newcomer must win to replace the enveloppe
                                  point it is most compatible with.
                                  Range: [0, 1]
                                  Default: 0.5

        ignore_hybrids: Whether genomes born from parents of different species
                        are folded into the mother's species. Disabling it
                        selects an unimplemented policy.
                        Default: True

        simple_new_species: Whether new species are created as plain
                            singletons. Disabling it selects an unimplemented
                            policy.
                            Default: True
    """

    compatibility_threshold: float = 0.3
    similarity_threshold: float = 0.5
    enveloppe_size: int = 5
    outperformance_threshold: float = 0.5
    ignore_hybrids: bool = True
    simple_new_species: bool = True

    def __post_init__(self):
        for name in ("compatibility_threshold", "similarity_threshold", "outperformance_threshold"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0 <= value <= 1:
                raise ConfigurationError(f"{name} must be in [0, 1], got {value!r}")

        if isinstance(self.enveloppe_size, bool) or not isinstance(self.enveloppe_size, int) \
                or self.enveloppe_size <= 0:
            raise ConfigurationError(f"enveloppe_size must be a positive integer, got {self.enveloppe_size!r}")

        for name in ("ignore_hybrids", "simple_new_species"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigurationError(f"{name} must be a boolean, got {getattr(self, name)!r}")

    def to_dict(self) -> dict:
        """Convert configuration to a plain dictionary (for YAML/JSON dumps or logging)."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, config_dict: Optional[dict]) -> "PTreeConfig":
        """
        Create PTreeConfig instance from dictionary.

        Unknown keys are ignored, missing keys take their default value.

        Example:
            >>> config = PTreeConfig.from_dict({"enveloppe_size": 3, "foo": 1})
        """
        config_dict = config_dict or {}
        if not isinstance(config_dict, dict):
            raise ConfigurationError(f"ptree configuration must be a mapping, got {type(config_dict).__name__}")
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in config_dict.items() if k in names})


def load_ptree_config(config_path: str) -> PTreeConfig:
    """
    Load the ``ptree`` section of a YAML configuration file.

    Raises:
        FileNotFoundError: if the file does not exist
        ConfigurationError: if a value is outside its domain or a section is not a mapping
    """
    load_config, _, _, get_config_value = get_config_utils()
    config = load_config(config_path)
    if not isinstance(config, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping at the top level")
    return PTreeConfig.from_dict(get_config_value(config, "ptree", {}))


# Default configuration instance for convenience
DEFAULT_CONFIG = PTreeConfig()
