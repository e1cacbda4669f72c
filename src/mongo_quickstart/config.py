"""
Workflow configuration.

The quick-start reads no files, flags or environment variables; the store
address and names are the literal defaults below.
"""

from __future__ import annotations

from dataclasses import dataclass

from .deadline import DEFAULT_TIMEOUT

__all__ = ["DEFAULT_URI", "WorkflowConfig"]

DEFAULT_URI = "mongodb://localhost:27017"


@dataclass(frozen=True)
class WorkflowConfig:
    """
    Where the workflow runs and how long it may take.

    Attributes:
        uri: Connection string of the document store.
        database: Database created and dropped by the run.
        podcasts: Name of the podcasts collection.
        episodes: Name of the episodes collection.
        timeout: Overall budget in seconds for the whole run.
    """

    uri: str = DEFAULT_URI
    database: str = "quickstart"
    podcasts: str = "podcasts"
    episodes: str = "episodes"
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout!r}")
        if self.podcasts == self.episodes:
            raise ValueError("podcasts and episodes must be different collections")
