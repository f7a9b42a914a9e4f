"""
component_30_sat_solver_core.py

Core SAT Solver Implementation - DPLL Algorithm and Data Structures

This module provides the foundational SAT solving infrastructure:
- Core data structures (Literal, Clause, CNFFormula)
- Clause simplification (duplicate literals, tautologies)
- DPLL search with unit propagation, pure literal elimination and
  lexicographic branching
- Search statistics and an optional step trace

Decision order per search step:
    success -> failure -> unit propagation -> pure literal -> branching

The search runs on an explicit frame stack instead of Python recursion, so
instances with thousands of variables do not hit the recursion limit. Each
frame owns exactly one binding and removes it again when the frame fails.

Author: PropSat Development Team
Date: 2026-10-19
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple, Union

from common.constants import DEFAULT_MAX_STEPS, DEFAULT_TRACE_ENABLED, NEGATION_MARKER
from component_15_logging_config import PerformanceLogger, get_logger
from propsat_exceptions import InvalidConfigError

logger = get_logger(__name__)


# ============================================================================
# Data Structures
# ============================================================================


class SATResult(Enum):
    """Result of SAT solving."""

    SATISFIABLE = "satisfiable"
    UNSATISFIABLE = "unsatisfiable"
    UNKNOWN = "unknown"  # Step limit exhausted


@dataclass(frozen=True)
class Literal:
    """
    A propositional literal (variable or its negation).

    Immutable for use in sets/dicts.
    """

    variable: str
    negated: bool = False

    def __neg__(self) -> "Literal":
        """Return the complementary literal."""
        return Literal(self.variable, not self.negated)

    def __str__(self):
        return self.to_token()

    def __repr__(self):
        return str(self)

    @property
    def value(self) -> bool:
        """Value the variable must take to make this literal true."""
        return not self.negated

    def is_complement_of(self, other: "Literal") -> bool:
        return self.variable == other.variable and self.negated != other.negated

    def evaluate(self, assignment: Dict[str, bool]) -> Optional[bool]:
        """Truth value under a partial assignment (None if unassigned)."""
        if self.variable not in assignment:
            return None
        return assignment[self.variable] == self.value

    def to_token(self) -> str:
        """Text token: "x" or "!x"."""
        return f"{NEGATION_MARKER if self.negated else ''}{self.variable}"

    @classmethod
    def from_token(cls, token: str) -> "Literal":
        """
        Parse a literal token ("x" or "!x").

        Raises:
            ValueError: If the token carries no variable name or more than
                one negation marker
        """
        token = token.strip()
        negated = token.startswith(NEGATION_MARKER)
        name = token[len(NEGATION_MARKER) :] if negated else token

        if not name:
            raise ValueError(f"Literal token {token!r} has no variable name")
        if name.startswith(NEGATION_MARKER):
            raise ValueError(f"Literal token {token!r} has repeated negation")

        return cls(name, negated)


@dataclass(frozen=True)
class Clause:
    """
    A disjunction of literals (OR-connected), kept in insertion order.

    Empty clause represents FALSE (unsatisfiable).
    """

    literals: Tuple[Literal, ...]

    def __init__(self, literals: Iterable[Literal] = ()):
        object.__setattr__(self, "literals", tuple(literals))

    def __len__(self) -> int:
        return len(self.literals)

    def __iter__(self) -> Iterator[Literal]:
        return iter(self.literals)

    def __contains__(self, literal: object) -> bool:
        return literal in self.literals

    def is_empty(self) -> bool:
        """Check if clause is empty (represents FALSE)."""
        return len(self.literals) == 0

    def is_unit(self) -> bool:
        """Check if clause has exactly one literal (unit clause)."""
        return len(self.literals) == 1

    def get_unit_literal(self) -> Optional[Literal]:
        """Get the single literal if this is a unit clause."""
        if self.is_unit():
            return self.literals[0]
        return None

    def is_tautology(self) -> bool:
        """True if the clause contains a literal and its complement."""
        seen: Set[Literal] = set(self.literals)
        return any(-lit in seen for lit in self.literals)

    def without_duplicates(self) -> "Clause":
        """Collapse repeated literals, keeping the first occurrence."""
        unique = tuple(dict.fromkeys(self.literals))
        if len(unique) == len(self.literals):
            return self
        return Clause(unique)

    def variables(self) -> Set[str]:
        return {lit.variable for lit in self.literals}

    def assign(self, variable: str, value: bool) -> Optional["Clause"]:
        """
        Apply a single binding.

        Returns:
            None if the clause is satisfied by the binding,
            otherwise the clause without the falsified literal
        """
        if Literal(variable, not value) in self.literals:
            return None
        if Literal(variable, value) not in self.literals:
            return self
        return Clause(lit for lit in self.literals if lit.variable != variable)

    def simplify(self, assignment: Dict[str, bool]) -> Optional["Clause"]:
        """
        Simplify clause given partial assignment.

        Returns:
            None if clause is satisfied
            New simplified clause otherwise
        """
        remaining = []

        for lit in self.literals:
            truth = lit.evaluate(assignment)
            if truth is True:
                return None
            if truth is None:
                remaining.append(lit)
            # False literals are dropped

        return Clause(remaining)

    def is_satisfied_by(self, assignment: Dict[str, bool]) -> bool:
        """
        True if some literal is true under the assignment.

        Tautologies count as satisfied whatever the assignment.
        """
        if self.is_tautology():
            return True
        return any(lit.evaluate(assignment) is True for lit in self.literals)

    def to_tokens(self) -> List[str]:
        return [lit.to_token() for lit in self.literals]

    def __str__(self):
        if self.is_empty():
            return "[FALSE]"
        return " v ".join(str(lit) for lit in self.literals)

    def __repr__(self):
        return f"Clause({list(self.literals)})"


ClauseLike = Union[Clause, Sequence[Union[Literal, str]], str]


def make_clause(clause: ClauseLike) -> Clause:
    """
    Build a Clause from a Clause, a sequence of literals/tokens, or a
    whitespace-separated token string.
    """
    if isinstance(clause, Clause):
        return clause
    if isinstance(clause, str):
        clause = clause.split()
    return Clause(
        lit if isinstance(lit, Literal) else Literal.from_token(lit) for lit in clause
    )


@dataclass
class CNFFormula:
    """
    A formula in Conjunctive Normal Form (AND of ORs).

    Represents: C1 AND C2 AND ... AND Cn where each Ci is a clause.
    Clause order is preserved; it decides which unit clause and which pure
    literal the solver handles first.
    """

    clauses: List[Clause]
    variables: Set[str] = field(default_factory=set)

    def __post_init__(self):
        """Extract all variables from clauses."""
        self.clauses = list(self.clauses)
        if not self.variables:
            for clause in self.clauses:
                for lit in clause.literals:
                    self.variables.add(lit.variable)

    @classmethod
    def from_clauses(cls, clauses: Iterable[ClauseLike]) -> "CNFFormula":
        """Build a formula from clauses or token lists ([["x"], ["!x", "y"]])."""
        if isinstance(clauses, (str, bytes)):
            raise TypeError(
                "Expected a collection of clauses, got a single string; "
                "use parse_cnf_text() for clause text"
            )
        return cls([make_clause(clause) for clause in clauses])

    def __len__(self) -> int:
        return len(self.clauses)

    def __iter__(self) -> Iterator[Clause]:
        return iter(self.clauses)

    def add_clause(self, clause: ClauseLike):
        """Add a clause to the formula."""
        clause = make_clause(clause)
        self.clauses.append(clause)
        for lit in clause.literals:
            self.variables.add(lit.variable)

    def is_empty(self) -> bool:
        """Check if formula has no clauses (represents TRUE)."""
        return len(self.clauses) == 0

    def has_empty_clause(self) -> bool:
        """Check if formula contains an empty clause (unsatisfiable)."""
        return any(c.is_empty() for c in self.clauses)

    def get_unit_clauses(self) -> List[Literal]:
        """Get all unit clause literals, in clause order."""
        return [
            lit
            for c in self.clauses
            if c.is_unit() and (lit := c.get_unit_literal()) is not None
        ]

    def get_pure_literals(self) -> List[Literal]:
        """
        Find pure literals (variables that appear only positively or only
        negatively), in order of first occurrence.
        """
        polarities: Dict[str, Set[bool]] = {}

        for clause in self.clauses:
            for lit in clause.literals:
                polarities.setdefault(lit.variable, set()).add(lit.negated)

        return [
            Literal(var, next(iter(seen)))
            for var, seen in polarities.items()
            if len(seen) == 1
        ]

    def simplify(self, assignment: Optional[Dict[str, bool]] = None) -> "CNFFormula":
        """
        Drop tautological clauses and duplicate literals.

        With an assignment, satisfied clauses and false literals are removed
        as well. Idempotent.
        """
        new_clauses = []
        for clause in self.clauses:
            if assignment:
                clause = clause.simplify(assignment)
                if clause is None:
                    continue
            if clause.is_tautology():
                continue
            new_clauses.append(clause.without_duplicates())

        return CNFFormula(new_clauses)

    def assign(self, variable: str, value: bool) -> "CNFFormula":
        """
        Apply one binding: satisfied clauses are removed, the complementary
        literal is removed from the remaining clauses.
        """
        new_clauses = []
        for clause in self.clauses:
            reduced = clause.assign(variable, value)
            if reduced is not None:
                new_clauses.append(reduced)
        return CNFFormula(new_clauses)

    def is_satisfied_by(self, assignment: Dict[str, bool]) -> bool:
        """Check that every clause holds under the assignment."""
        return all(c.is_satisfied_by(assignment) for c in self.clauses)

    def to_token_lists(self) -> List[List[str]]:
        return [c.to_tokens() for c in self.clauses]

    def __str__(self):
        if self.is_empty():
            return "[TRUE]"
        return " ^ ".join(f"({c})" for c in self.clauses)


FormulaLike = Union[CNFFormula, Iterable[ClauseLike]]


def as_cnf_formula(formula: FormulaLike) -> CNFFormula:
    """Accept a CNFFormula or any iterable of clauses / token lists."""
    if isinstance(formula, CNFFormula):
        return formula
    return CNFFormula.from_clauses(formula)


# ============================================================================
# Search Bookkeeping
# ============================================================================


class StepType(Enum):
    """Kinds of search events recorded in the trace."""

    UNIT = "unit"
    PURE = "pure"
    GUESS = "guess"
    BACKTRACK = "backtrack"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class SearchStep:
    """One event of the DPLL search."""

    step_type: StepType
    variable: Optional[str] = None
    value: Optional[bool] = None

    def __str__(self):
        if self.step_type == StepType.UNIT:
            return f"easy case: Singleton {self.variable}={self.value}"
        if self.step_type == StepType.PURE:
            return f"easy case: Pure literal {self.variable}={self.value}"
        if self.step_type == StepType.GUESS:
            return f"hard case: guess {self.variable}={self.value}"
        if self.step_type == StepType.BACKTRACK:
            return f"contradiction: backtrack guess {self.variable}={self.value}"
        return "contradiction: empty clause"


@dataclass
class SolverStatistics:
    """Counters for the last solve() call."""

    steps: int = 0
    decisions: int = 0
    unit_propagations: int = 0
    pure_literals: int = 0
    conflicts: int = 0
    backtracks: int = 0
    max_depth: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "steps": self.steps,
            "decisions": self.decisions,
            "unit_propagations": self.unit_propagations,
            "pure_literals": self.pure_literals,
            "conflicts": self.conflicts,
            "backtracks": self.backtracks,
            "max_depth": self.max_depth,
        }


@dataclass
class _SearchFrame:
    """A binding made during search plus the clause set it was made on."""

    kind: StepType
    variable: str
    value: bool
    clauses: CNFFormula
    reduced: CNFFormula


# ============================================================================
# DPLL Solver
# ============================================================================


class DPLLSolver:
    """
    DPLL-based SAT solver with unit propagation and pure literal elimination.

    Implements:
    - Simplification (duplicate literals, tautologies) on every step
    - Unit propagation (first unit clause in clause order)
    - Pure literal elimination (first pure variable in occurrence order)
    - Branching on the lexicographically smallest variable, True first
    - Chronological backtracking

    Thread Safety:
        This class is NOT thread-safe. Create separate instances for concurrent use.
    """

    def __init__(
        self,
        max_steps: Optional[int] = DEFAULT_MAX_STEPS,
        trace: bool = DEFAULT_TRACE_ENABLED,
    ):
        """
        Initialize DPLL solver.

        Args:
            max_steps: Give up with SATResult.UNKNOWN after this many search
                steps (None = no limit)
            trace: Record a SearchStep for every binding, guess and backtrack
        """
        if max_steps is not None and max_steps < 0:
            raise InvalidConfigError(
                f"max_steps must be non-negative, got {max_steps}",
                parameter="max_steps",
            )

        self.max_steps = max_steps
        self.trace_enabled = trace
        self.statistics = SolverStatistics()
        self.trace: List[SearchStep] = []

    def solve(
        self,
        formula: FormulaLike,
        initial_assignment: Optional[Dict[str, bool]] = None,
    ) -> Tuple[SATResult, Optional[Dict[str, bool]]]:
        """
        Solve SAT problem using DPLL algorithm.

        Args:
            formula: CNF formula, list of Clauses, or list of token lists
            initial_assignment: Optional partial assignment to start with

        Returns:
            (result, model) where model is None unless SATISFIABLE. The model
            is sorted by variable name and may omit unconstrained variables.
        """
        formula = as_cnf_formula(formula)

        logger.info(
            "Starting DPLL solver",
            extra={
                "num_clauses": len(formula.clauses),
                "num_variables": len(formula.variables),
            },
        )

        self.statistics = SolverStatistics()
        self.trace = []

        assignment: Dict[str, bool] = dict(initial_assignment or {})
        if assignment:
            formula = formula.simplify(assignment)

        with PerformanceLogger(
            logger.logger, "DPLL search", clauses=len(formula.clauses)
        ):
            result = self._search(formula, assignment)

        logger.info(
            "DPLL solver finished",
            extra={"result": result.value, **self.statistics.to_dict()},
        )

        if result != SATResult.SATISFIABLE:
            return result, None
        return result, dict(sorted(assignment.items()))

    def _search(self, formula: CNFFormula, assignment: Dict[str, bool]) -> SATResult:
        """
        Iterative DPLL.

        The frame stack mirrors the recursion of the textbook algorithm: a
        frame is pushed for every binding and popped (binding retracted) when
        the subtree below it fails. Guess frames get a second chance with the
        opposite value before they are popped.
        """
        stack: List[_SearchFrame] = []
        current: Optional[CNFFormula] = formula

        while current is not None:
            if self.max_steps is not None and self.statistics.steps >= self.max_steps:
                logger.warning(
                    "DPLL step limit reached",
                    extra={"max_steps": self.max_steps, "depth": len(stack)},
                )
                for frame in stack:
                    del assignment[frame.variable]
                return SATResult.UNKNOWN

            result, frame = self._decide(current, assignment)

            if frame is not None:
                stack.append(frame)
                assignment[frame.variable] = frame.value
                self.statistics.max_depth = max(self.statistics.max_depth, len(stack))
                current = frame.reduced
            elif result == SATResult.SATISFIABLE:
                return result
            else:
                current = self._backtrack(stack, assignment)

        return SATResult.UNSATISFIABLE

    def _decide(
        self, formula: CNFFormula, assignment: Dict[str, bool]
    ) -> Tuple[Optional[SATResult], Optional[_SearchFrame]]:
        """
        One search step.

        Returns:
            (SATISFIABLE, None) or (UNSATISFIABLE, None) at a leaf,
            (None, frame) when a binding was chosen
        """
        self.statistics.steps += 1
        simplified = formula.simplify()

        # 1. All clauses satisfied
        if simplified.is_empty():
            return SATResult.SATISFIABLE, None

        # 2. Contradiction: empty clause
        if simplified.has_empty_clause():
            self.statistics.conflicts += 1
            self._record(StepType.CONFLICT)
            return SATResult.UNSATISFIABLE, None

        # 3. Unit propagation
        unit_literals = simplified.get_unit_clauses()
        if unit_literals:
            lit = unit_literals[0]
            self.statistics.unit_propagations += 1
            return None, self._bind(StepType.UNIT, lit.variable, lit.value, simplified)

        # 4. Pure literal elimination
        pure_literals = simplified.get_pure_literals()
        if pure_literals:
            lit = pure_literals[0]
            self.statistics.pure_literals += 1
            return None, self._bind(StepType.PURE, lit.variable, lit.value, simplified)

        # 5. Branch on smallest unassigned variable
        var = self._choose_variable(simplified, assignment)
        if var is None:
            return SATResult.SATISFIABLE, None

        self.statistics.decisions += 1
        return None, self._bind(StepType.GUESS, var, True, simplified)

    def _bind(
        self, kind: StepType, variable: str, value: bool, clauses: CNFFormula
    ) -> _SearchFrame:
        self._record(kind, variable, value)
        return _SearchFrame(
            kind=kind,
            variable=variable,
            value=value,
            clauses=clauses,
            reduced=clauses.assign(variable, value),
        )

    def _backtrack(
        self, stack: List[_SearchFrame], assignment: Dict[str, bool]
    ) -> Optional[CNFFormula]:
        """
        Unwind after a failure.

        Forced bindings (unit, pure) are retracted and the failure moves up.
        The first guess still set to True is flipped to False.

        Returns:
            Clause set to continue with, or None if the search space is exhausted
        """
        while stack:
            frame = stack[-1]

            if frame.kind == StepType.GUESS and frame.value:
                self.statistics.backtracks += 1
                frame.value = False
                frame.reduced = frame.clauses.assign(frame.variable, False)
                assignment[frame.variable] = False
                self._record(StepType.BACKTRACK, frame.variable, False)
                return frame.reduced

            stack.pop()
            del assignment[frame.variable]

        return None

    def _choose_variable(
        self, formula: CNFFormula, assignment: Dict[str, bool]
    ) -> Optional[str]:
        """Lexicographically smallest variable that is still unassigned."""
        unassigned = formula.variables - set(assignment)
        if not unassigned:
            return None
        return min(unassigned)

    def _record(
        self,
        step_type: StepType,
        variable: Optional[str] = None,
        value: Optional[bool] = None,
    ):
        step = SearchStep(step_type, variable, value)
        logger.debug(str(step))
        if self.trace_enabled:
            self.trace.append(step)


# ============================================================================
# Reporting Helpers
# ============================================================================


def sorted_model(model: Dict[str, bool]) -> List[Tuple[str, bool]]:
    """Assignment as (variable, value) pairs sorted by variable name."""
    return sorted(model.items())


def format_model(model: Dict[str, bool]) -> str:
    """Render an assignment as "a=True b=False" in variable order."""
    return " ".join(f"{var}={value}" for var, value in sorted_model(model))


# ============================================================================
# Public API
# ============================================================================

__all__ = [
    "SATResult",
    "Literal",
    "Clause",
    "CNFFormula",
    "make_clause",
    "as_cnf_formula",
    "DPLLSolver",
    "SolverStatistics",
    "SearchStep",
    "StepType",
    "sorted_model",
    "format_model",
]
