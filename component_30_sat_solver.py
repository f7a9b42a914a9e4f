"""
component_30_sat_solver.py
==========================
Single import point for the SAT toolkit.

Re-exports the clause model and DPLL search (component_30_sat_solver_core),
formula normalization and encoders (component_30_cnf_converter) and the
clause text format (component_30_cnf_text), and adds SATSolver: a small
front end that returns plain models and answers clause-text queries through
the BaseReasoningEngine interface.

Author: PropSat Development Team
Date: 2026-10-19
"""

from typing import Any, Dict, List, Optional

from common.constants import COMMENT_MARKER, DEFAULT_MAX_STEPS, DEFAULT_TRACE_ENABLED
from component_15_logging_config import PerformanceLogger, get_logger
from component_30_cnf_converter import (
    CNFConverter,
    PropositionalFormula,
    PropositionalOperator,
    SATEncoder,
    normalize,
)
from component_30_cnf_text import (
    format_cnf,
    parse_cnf_file,
    parse_cnf_lines,
    parse_cnf_text,
    write_cnf_file,
)
from component_30_sat_solver_core import (
    Clause,
    CNFFormula,
    DPLLSolver,
    FormulaLike,
    Literal,
    SATResult,
    SearchStep,
    SolverStatistics,
    StepType,
    as_cnf_formula,
    format_model,
    sorted_model,
)
from infrastructure.interfaces import BaseReasoningEngine, ReasoningResult
from propsat_exceptions import CNFParseError, wrap_exception

logger = get_logger(__name__)


# ============================================================================
# Front End
# ============================================================================


class SATSolver(BaseReasoningEngine):
    """
    DPLL solver returning plain models.

    solve() hands back the model or None and keeps the verdict in
    last_result, so UNSAT and an exhausted step limit can be told apart.
    As a BaseReasoningEngine it answers clause-text queries.

    Example:
        >>> solver = SATSolver()
        >>> model = solver.solve([["x"], ["!x", "y"]])
        >>> if model:
        ...     print(f"SAT: {format_model(model)}")
    """

    def __init__(
        self,
        max_steps: Optional[int] = DEFAULT_MAX_STEPS,
        trace: bool = DEFAULT_TRACE_ENABLED,
    ):
        """
        Args:
            max_steps: Step limit per solve (None = unlimited)
            trace: Record the search trace
        """
        self._solver = DPLLSolver(max_steps=max_steps, trace=trace)
        self.last_result: Optional[SATResult] = None

    def solve(
        self,
        formula: FormulaLike,
        initial_assignment: Optional[Dict[str, bool]] = None,
    ) -> Optional[Dict[str, bool]]:
        """
        Search for a model.

        Args:
            formula: CNF formula, list of Clauses or list of token lists
            initial_assignment: Optional partial assignment

        Returns:
            Dict[str, bool]: Satisfying assignment (SAT)
            None: No solution (UNSAT) or step limit reached (see last_result)
        """
        result, model = self._solver.solve(formula, initial_assignment=initial_assignment)
        self.last_result = result
        return model

    def solve_formula(self, formula: PropositionalFormula) -> Optional[Dict[str, bool]]:
        """Convert a general formula to CNF and solve it."""
        return self.solve(CNFConverter.to_cnf(formula))

    def check_satisfiability(self, formula: FormulaLike) -> bool:
        """True if the formula has a model."""
        return self.solve(formula) is not None

    def get_statistics(self) -> Dict[str, int]:
        """Search counters of the last solve() call."""
        return self._solver.statistics.to_dict()

    def get_trace(self) -> List[SearchStep]:
        """Search trace of the last solve() call (empty unless trace=True)."""
        return list(self._solver.trace)

    # ========================================================================
    # BaseReasoningEngine
    # ========================================================================

    def reason(self, query: str, context: Dict[str, Any]) -> ReasoningResult:
        """
        The query is clause text (one clause per line). Context can specify:
        - 'formula': CNFFormula, clause list, clause text or PropositionalFormula
          used instead of the query
        - 'strict': Reject malformed tokens in the query text

        Returns:
            ReasoningResult; success is True whenever the search reached a
            verdict (SAT or UNSAT)
        """
        formula = context.get("formula")
        strict = context.get("strict", False)
        try:
            if isinstance(formula, PropositionalFormula):
                cnf = CNFConverter.to_cnf(formula)
            elif isinstance(formula, str):
                cnf = parse_cnf_text(formula, strict=strict)
            elif formula is not None:
                try:
                    cnf = as_cnf_formula(formula)
                except (TypeError, ValueError) as e:
                    raise wrap_exception(
                        e, CNFParseError, "Invalid clauses in context formula"
                    ) from e
            else:
                cnf = parse_cnf_text(query, strict=strict)
        except CNFParseError as e:
            logger.log_exception(e, message="Could not read SAT query")
            return ReasoningResult(
                success=False,
                answer=f"Invalid clause text: {e.message}",
                confidence=0.0,
                strategy_used="sat_solver_dpll",
                metadata={"error": "parse_error", "line_number": e.line_number},
            )

        with PerformanceLogger(logger.logger, "SAT reasoning") as perf:
            model = self.solve(cnf)

        metadata: Dict[str, Any] = {
            "result": self.last_result.name,
            "statistics": self.get_statistics(),
        }

        if self.last_result == SATResult.SATISFIABLE:
            metadata["model"] = model
            metadata["num_variables"] = len(model)
            answer = f"SAT: {format_model(model)}"
        elif self.last_result == SATResult.UNSATISFIABLE:
            answer = "UNSAT: No satisfying assignment exists"
        else:
            answer = "UNKNOWN: Step limit reached"

        decided = self.last_result != SATResult.UNKNOWN
        return ReasoningResult(
            success=decided,
            answer=answer,
            confidence=1.0 if decided else 0.0,  # DPLL is complete
            strategy_used="sat_solver_dpll",
            metadata=metadata,
            computation_cost=(perf.duration_ms or 0.0) / 1000.0,
        )

    def get_capabilities(self) -> List[str]:
        """Capability tags used for routing queries to this engine."""
        return [
            "sat_solving",
            "constraint",
            "cnf_clause_text",
            "propositional_models",
            "unsat_detection",
        ]

    def estimate_cost(self, query: str) -> float:
        """
        Estimate computational cost from the number of clause lines.

        SAT is NP-complete, so even small queries start at medium cost.
        """
        clause_lines = sum(
            1
            for line in query.splitlines()
            if line.strip() and not line.strip().startswith(COMMENT_MARKER)
        )
        return min(1.0, 0.3 + clause_lines / 1000.0)


# ============================================================================
# Convenience Functions
# ============================================================================


def solve_cnf(
    clauses: FormulaLike, max_steps: Optional[int] = DEFAULT_MAX_STEPS
) -> Optional[Dict[str, bool]]:
    """
    Solve a clause set (convenience function).

    Returns:
        Satisfying assignment or None (UNSAT)
    """
    return SATSolver(max_steps=max_steps).solve(clauses)


def solve_propositional(formula: PropositionalFormula) -> Optional[Dict[str, bool]]:
    """
    Solve general propositional formula (convert to CNF).

    Returns:
        Satisfying assignment or None (UNSAT)
    """
    cnf = CNFConverter.to_cnf(formula)
    result, model = DPLLSolver().solve(cnf)
    return model if result == SATResult.SATISFIABLE else None


# ============================================================================
# Public API - Re-export for callers importing only the facade
# ============================================================================

__all__ = [
    # Core data structures
    "SATResult",
    "Literal",
    "Clause",
    "CNFFormula",
    # Propositional formulas
    "PropositionalOperator",
    "PropositionalFormula",
    # Converters and encoders
    "CNFConverter",
    "SATEncoder",
    "normalize",
    # Solvers
    "DPLLSolver",
    "SATSolver",
    "SolverStatistics",
    "SearchStep",
    "StepType",
    # Text format
    "parse_cnf_lines",
    "parse_cnf_text",
    "parse_cnf_file",
    "format_cnf",
    "write_cnf_file",
    # Functions
    "solve_cnf",
    "solve_propositional",
    "sorted_model",
    "format_model",
]
