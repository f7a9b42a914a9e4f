"""
infrastructure/interfaces.py

Engine contract shared by the solver front ends.

An engine answers a text query and reports its verdict as a ReasoningResult.
SATSolver implements it for clause text, so callers can pick an engine by
capability tag and estimated cost without knowing its concrete type.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class ReasoningResult:
    """
    Outcome of one engine query.

    success is True when the engine reached a verdict. confidence lies in
    [0.0, 1.0]; complete procedures such as DPLL report 1.0 for any verdict.
    computation_cost is the measured wall time in seconds.
    """

    success: bool
    answer: str = ""
    confidence: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)
    strategy_used: str = ""
    computation_cost: float = 0.0

    def __post_init__(self):
        if not (0.0 <= self.confidence <= 1.0):
            raise ValueError(f"confidence {self.confidence} outside [0.0, 1.0]")


class BaseReasoningEngine(ABC):
    """One query-answering strategy behind a common interface."""

    @abstractmethod
    def reason(self, query: str, context: Dict[str, Any]) -> ReasoningResult:
        """Answer the query; context carries engine-specific options."""

    @abstractmethod
    def get_capabilities(self) -> List[str]:
        """Capability tags, e.g. "sat_solving"."""

    @abstractmethod
    def estimate_cost(self, query: str) -> float:
        """
        Heuristic cost in [0.0, 1.0]: below 0.3 is cheap, above 0.7 is
        expensive. Must not run the query itself.
        """

    def supports_capability(self, capability: str) -> bool:
        return capability in self.get_capabilities()
