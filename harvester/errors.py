"""Error taxonomy for the harvest run.

Only ``LaunchError`` (and a ``PersistenceError`` raised while preparing
the output directories) is fatal. Everything else is caught at the
per-target boundary in ``Harvester`` and turned into a diagnostic.
"""

from typing import Optional


class HarvestError(Exception):
    stage = "harvest"

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.url = url

    def __str__(self) -> str:
        base = f"[{self.stage}] {self.message}"
        if self.url:
            base += f" ({self.url})"
        return base


class LaunchError(HarvestError):
    """The automation runtime could not start a browser session."""
    stage = "launch"


class NavigationError(HarvestError):
    stage = "navigate"


class NavigationTimeout(NavigationError):
    stage = "navigate-timeout"


class SolveError(HarvestError):
    stage = "solve"


class GeometryError(SolveError):
    """Piece or background region could not be cropped from the capture."""
    stage = "geometry"


class ChallengeUnresolved(HarvestError):
    stage = "challenge"


class PersistenceError(HarvestError):
    stage = "persist"
