"""
callbacks.py

Lifecycle notifications pushed by the phylogenetic tree.
"""

from typing import List, Tuple

from utils import get_custom_logging
get_logger, _, _ = get_custom_logging()


class PTreeCallbacks:
    """
    Observer for tree events. Every hook is a no-op; subclass and override
    the ones you need. Return values are ignored.
    """

    def on_new_species(self, sid: int) -> None:
        pass

    def on_genome_enters_enveloppe(self, sid: int, gid: int) -> None:
        pass

    def on_genome_leaves_enveloppe(self, sid: int, gid: int) -> None:
        pass


class LoggingCallbacks(PTreeCallbacks):
    """Reports every event through the project logger."""

    def __init__(self, logger=None):
        self.logger = logger or get_logger("PTreeEvents")

    def on_new_species(self, sid: int) -> None:
        self.logger.info(f"New species {sid}")

    def on_genome_enters_enveloppe(self, sid: int, gid: int) -> None:
        self.logger.info(f"Genome {gid} enters enveloppe of species {sid}")

    def on_genome_leaves_enveloppe(self, sid: int, gid: int) -> None:
        self.logger.info(f"Genome {gid} leaves enveloppe of species {sid}")


class RecordingCallbacks(PTreeCallbacks):
    """
    Keeps every event, in order, as a tuple:
    ``("new_species", sid)``, ``("enters", sid, gid)`` or ``("leaves", sid, gid)``.
    """

    def __init__(self):
        self.events: List[Tuple] = []

    def on_new_species(self, sid: int) -> None:
        self.events.append(("new_species", sid))

    def on_genome_enters_enveloppe(self, sid: int, gid: int) -> None:
        self.events.append(("enters", sid, gid))

    def on_genome_leaves_enveloppe(self, sid: int, gid: int) -> None:
        self.events.append(("leaves", sid, gid))

    def clear(self) -> None:
        self.events.clear()
