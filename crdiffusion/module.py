"""Common interface shared by all candidate-processing modules."""
from __future__ import annotations

from abc import ABC, abstractmethod

from .candidate import Candidate

__all__ = ["Module"]


class Module(ABC):
    """A single propagation or interaction step applied to a candidate.

    Modules are configured before propagation starts and are treated as
    read-only afterwards, so one instance may serve several worker threads.
    """

    _description: str = ""

    @property
    def description(self) -> str:
        return self._description or type(self).__name__

    @description.setter
    def description(self, text: str) -> None:
        self._description = str(text)

    @abstractmethod
    def process(self, candidate: Candidate) -> None:
        """Mutate ``candidate`` in place."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__}: {self.description}>"
