"""
component_30_cnf_converter.py

Propositional formulas, CNF normalization and constraint encoders

Turns arbitrary propositional formulas into the clause lists the DPLL solver
consumes:
- PropositionalFormula data structure (immutable binary tree)
- CNF conversion (biconditional and implication elimination, De Morgan,
  distribution, flattening)
- SATEncoder: clause builders for implication, iff, xor, at-most-one, exactly-one

The conversion is the textbook one without auxiliary variables. Distributing
OR over AND can multiply the clause count; large results are logged, never
refused.

Author: PropSat Development Team
Date: 2026-10-19
"""

from dataclasses import dataclass
from enum import Enum
from itertools import combinations, product
from typing import Dict, Iterator, List, Optional, Set, Tuple

from common.constants import (
    CNF_CACHE_MAXSIZE,
    CNF_CACHE_NAME,
    CNF_CACHE_TTL_SECONDS,
    CNF_CLAUSE_WARNING_THRESHOLD,
    NEGATION_MARKER,
)
from component_15_logging_config import PerformanceLogger, get_logger
from component_30_sat_solver_core import Clause, CNFFormula, Literal
from infrastructure.cache_manager import get_cache_manager
from propsat_exceptions import FormulaError

logger = get_logger(__name__)


# ============================================================================
# Propositional Formula Representation
# ============================================================================


class PropositionalOperator(Enum):
    """Node kinds of a propositional formula"""

    VARIABLE = "VARIABLE"
    NOT = "NOT"
    AND = "AND"
    OR = "OR"
    IMPLIES = "IMPLIES"
    IFF = "IFF"  # Biconditional (if and only if)


_ARITY = {
    PropositionalOperator.VARIABLE: 0,
    PropositionalOperator.NOT: 1,
    PropositionalOperator.AND: 2,
    PropositionalOperator.OR: 2,
    PropositionalOperator.IMPLIES: 2,
    PropositionalOperator.IFF: 2,
}

_SYMBOLS = {
    PropositionalOperator.AND: "^",
    PropositionalOperator.OR: "v",
    PropositionalOperator.IMPLIES: "=>",
    PropositionalOperator.IFF: "<=>",
}


@dataclass(frozen=True)
class PropositionalFormula:
    """
    General propositional formula (not necessarily CNF).

    Immutable binary tree: a VARIABLE leaf carries a name, NOT has one
    operand, the binary operators have an ordered (left, right) pair.
    Hashable, so converted results can be cached per formula.
    """

    operator: PropositionalOperator
    variable: Optional[str] = None
    operands: Tuple["PropositionalFormula", ...] = ()

    def __post_init__(self):
        if not isinstance(self.operator, PropositionalOperator):
            raise FormulaError(f"Unknown operator {self.operator!r}", node=self.operator)
        if self.operator == PropositionalOperator.VARIABLE:
            if not self.variable:
                raise FormulaError("Variable node without a name", node=self.operator)
        elif self.variable is not None:
            raise FormulaError(
                f"{self.operator.value} node must not carry a variable name",
                node=self.operator,
            )

        object.__setattr__(self, "operands", tuple(self.operands))
        expected = _ARITY[self.operator]
        if len(self.operands) != expected:
            raise FormulaError(
                f"{self.operator.value} expects {expected} operand(s), "
                f"got {len(self.operands)}",
                node=self.operator,
            )
        for operand in self.operands:
            if not isinstance(operand, PropositionalFormula):
                raise FormulaError(
                    f"Operand of {self.operator.value} is not a formula", node=operand
                )

    def __str__(self) -> str:
        if self.is_variable():
            return self.variable
        if self.operator == PropositionalOperator.NOT:
            return f"{NEGATION_MARKER}{self.operand}"
        return f"({self.left} {_SYMBOLS[self.operator]} {self.right})"

    def __repr__(self) -> str:
        return f"PropositionalFormula({self})"

    @property
    def operand(self) -> "PropositionalFormula":
        """Operand of a NOT node"""
        return self.operands[0]

    @property
    def left(self) -> "PropositionalFormula":
        return self.operands[0]

    @property
    def right(self) -> "PropositionalFormula":
        return self.operands[1]

    def is_variable(self) -> bool:
        return self.operator == PropositionalOperator.VARIABLE

    def is_literal(self) -> bool:
        """Variable or negated variable"""
        return self.is_variable() or (
            self.operator == PropositionalOperator.NOT and self.operand.is_variable()
        )

    def variables(self) -> Set[str]:
        """All variable names in the formula"""
        names: Set[str] = set()
        stack = [self]
        while stack:
            node = stack.pop()
            if node.is_variable():
                names.add(node.variable)
            else:
                stack.extend(node.operands)
        return names

    def evaluate(self, assignment: Dict[str, bool]) -> bool:
        """
        Truth value under a total assignment of the formula's variables.

        Raises:
            KeyError: If a variable is missing from the assignment
        """
        op = self.operator
        if op == PropositionalOperator.VARIABLE:
            return assignment[self.variable]
        if op == PropositionalOperator.NOT:
            return not self.operand.evaluate(assignment)

        left = self.left.evaluate(assignment)
        right = self.right.evaluate(assignment)
        if op == PropositionalOperator.AND:
            return left and right
        if op == PropositionalOperator.OR:
            return left or right
        if op == PropositionalOperator.IMPLIES:
            return (not left) or right
        return left == right

    @classmethod
    def variable_formula(cls, var: str) -> "PropositionalFormula":
        """Create variable"""
        return cls(PropositionalOperator.VARIABLE, variable=var)

    @classmethod
    def not_formula(cls, operand: "PropositionalFormula") -> "PropositionalFormula":
        """Create negation"""
        return cls(PropositionalOperator.NOT, operands=(operand,))

    @classmethod
    def and_formula(cls, *operands: "PropositionalFormula") -> "PropositionalFormula":
        """Create conjunction (more than two operands fold to the left)"""
        return cls._fold(PropositionalOperator.AND, operands)

    @classmethod
    def or_formula(cls, *operands: "PropositionalFormula") -> "PropositionalFormula":
        """Create disjunction (more than two operands fold to the left)"""
        return cls._fold(PropositionalOperator.OR, operands)

    @classmethod
    def implies_formula(
        cls, antecedent: "PropositionalFormula", consequent: "PropositionalFormula"
    ) -> "PropositionalFormula":
        """Create implication"""
        return cls(PropositionalOperator.IMPLIES, operands=(antecedent, consequent))

    @classmethod
    def iff_formula(
        cls, left: "PropositionalFormula", right: "PropositionalFormula"
    ) -> "PropositionalFormula":
        """Create biconditional"""
        return cls(PropositionalOperator.IFF, operands=(left, right))

    @classmethod
    def _fold(
        cls, operator: PropositionalOperator, operands: Tuple["PropositionalFormula", ...]
    ) -> "PropositionalFormula":
        if len(operands) < 2:
            raise FormulaError(
                f"{operator.value} needs at least two operands, got {len(operands)}",
                node=operands,
            )
        result = operands[0]
        for operand in operands[1:]:
            result = cls(operator, operands=(result, operand))
        return result


# Short aliases for building formulas by hand
Var = PropositionalFormula.variable_formula
Not = PropositionalFormula.not_formula
And = PropositionalFormula.and_formula
Or = PropositionalFormula.or_formula
Implies = PropositionalFormula.implies_formula
Iff = PropositionalFormula.iff_formula


# ============================================================================
# CNF Converter
# ============================================================================


class CNFConverter:
    """
    Convert propositional formulas to CNF (Conjunctive Normal Form).

    Steps:
    1. Eliminate biconditionals
    2. Eliminate implications
    3. Push negations inward (De Morgan, double negation)
    4. Distribute OR over AND
    5. Flatten into a clause list
    """

    @staticmethod
    def to_cnf(formula: PropositionalFormula, use_cache: bool = True) -> CNFFormula:
        """Main method: Convert to CNF"""
        if not isinstance(formula, PropositionalFormula):
            raise FormulaError("Expected a PropositionalFormula", node=formula)

        cnf_cache = None
        if use_cache:
            cnf_cache = get_cache_manager().ensure_cache(
                CNF_CACHE_NAME, maxsize=CNF_CACHE_MAXSIZE, ttl=CNF_CACHE_TTL_SECONDS
            )
            cached = cnf_cache.lookup(formula)
            if cached is not None:
                clauses = list(cached)
                CNFConverter._check_size(clauses)
                return CNFFormula(clauses)

        with PerformanceLogger(logger.logger, "CNF conversion"):
            # Step 1: Eliminate biconditionals
            converted = CNFConverter._eliminate_biconditionals(formula)

            # Step 2: Eliminate implications
            converted = CNFConverter._eliminate_implications(converted)

            # Step 3: Push negations inward
            converted = CNFConverter._push_negations_inward(converted)

            # Step 4: Distribute OR over AND
            converted = CNFConverter._distribute_or_over_and(converted)

            # Step 5: Extract clause list
            clauses = CNFConverter._extract_clauses(converted)

        CNFConverter._check_size(clauses)
        logger.debug("Converted formula to CNF", extra={"clauses": len(clauses)})

        if cnf_cache is not None:
            # Tuples, so callers mutating their CNFFormula cannot touch the entry
            cnf_cache.put(formula, tuple(clauses))

        return CNFFormula(clauses)

    @staticmethod
    def _check_size(clauses: List[Clause]) -> None:
        """Warn about clause sets above CNF_CLAUSE_WARNING_THRESHOLD."""
        if len(clauses) > CNF_CLAUSE_WARNING_THRESHOLD:
            logger.warning(
                "CNF conversion produced a large clause set",
                extra={
                    "clauses": len(clauses),
                    "threshold": CNF_CLAUSE_WARNING_THRESHOLD,
                },
            )

    @staticmethod
    def _eliminate_biconditionals(
        formula: PropositionalFormula,
    ) -> PropositionalFormula:
        """
        A <-> B becomes (A -> B) AND (B -> A); the result is processed again
        so biconditionals nested in A or B disappear as well.
        """
        if formula.is_variable():
            return formula

        if formula.operator == PropositionalOperator.IFF:
            left, right = formula.operands
            return PropositionalFormula.and_formula(
                CNFConverter._eliminate_biconditionals(
                    PropositionalFormula.implies_formula(left, right)
                ),
                CNFConverter._eliminate_biconditionals(
                    PropositionalFormula.implies_formula(right, left)
                ),
            )

        return PropositionalFormula(
            formula.operator,
            operands=tuple(
                CNFConverter._eliminate_biconditionals(op) for op in formula.operands
            ),
        )

    @staticmethod
    def _eliminate_implications(formula: PropositionalFormula) -> PropositionalFormula:
        """
        A -> B becomes NOT A OR B (operands first, bottom-up).
        """
        if formula.is_variable():
            return formula

        operands = tuple(
            CNFConverter._eliminate_implications(op) for op in formula.operands
        )

        if formula.operator == PropositionalOperator.IMPLIES:
            antecedent, consequent = operands
            return PropositionalFormula.or_formula(
                PropositionalFormula.not_formula(antecedent), consequent
            )

        return PropositionalFormula(formula.operator, operands=operands)

    @staticmethod
    def _push_negations_inward(formula: PropositionalFormula) -> PropositionalFormula:
        """
        Push negations inward with De Morgan:
        - NOT (A AND B) = NOT A OR NOT B
        - NOT (A OR B) = NOT A AND NOT B
        - NOT NOT A = A
        """
        if formula.is_variable():
            return formula

        if formula.operator != PropositionalOperator.NOT:
            return PropositionalFormula(
                formula.operator,
                operands=tuple(
                    CNFConverter._push_negations_inward(op) for op in formula.operands
                ),
            )

        inner = formula.operand

        if inner.is_variable():
            return formula

        if inner.operator == PropositionalOperator.NOT:
            return CNFConverter._push_negations_inward(inner.operand)

        if inner.operator == PropositionalOperator.AND:
            return PropositionalFormula.or_formula(
                CNFConverter._push_negations_inward(
                    PropositionalFormula.not_formula(inner.left)
                ),
                CNFConverter._push_negations_inward(
                    PropositionalFormula.not_formula(inner.right)
                ),
            )

        if inner.operator == PropositionalOperator.OR:
            return PropositionalFormula.and_formula(
                CNFConverter._push_negations_inward(
                    PropositionalFormula.not_formula(inner.left)
                ),
                CNFConverter._push_negations_inward(
                    PropositionalFormula.not_formula(inner.right)
                ),
            )

        # Implications are gone by now; keep the negation and recurse below it
        return PropositionalFormula.not_formula(
            CNFConverter._push_negations_inward(inner)
        )

    @staticmethod
    def _distribute_or_over_and(formula: PropositionalFormula) -> PropositionalFormula:
        """
        Distribute OR over AND:
        - (X AND Y) OR B = (X OR B) AND (Y OR B)
        - A OR (X AND Y) = (A OR X) AND (A OR Y)

        A conjunction on the left is distributed first.
        """
        if formula.operator == PropositionalOperator.AND:
            return PropositionalFormula.and_formula(
                CNFConverter._distribute_or_over_and(formula.left),
                CNFConverter._distribute_or_over_and(formula.right),
            )

        if formula.operator != PropositionalOperator.OR:
            # Literal
            return formula

        left = CNFConverter._distribute_or_over_and(formula.left)
        right = CNFConverter._distribute_or_over_and(formula.right)

        if left.operator == PropositionalOperator.AND:
            return PropositionalFormula.and_formula(
                CNFConverter._distribute_or_over_and(
                    PropositionalFormula.or_formula(left.left, right)
                ),
                CNFConverter._distribute_or_over_and(
                    PropositionalFormula.or_formula(left.right, right)
                ),
            )

        if right.operator == PropositionalOperator.AND:
            return PropositionalFormula.and_formula(
                CNFConverter._distribute_or_over_and(
                    PropositionalFormula.or_formula(left, right.left)
                ),
                CNFConverter._distribute_or_over_and(
                    PropositionalFormula.or_formula(left, right.right)
                ),
            )

        return PropositionalFormula.or_formula(left, right)

    @staticmethod
    def _extract_clauses(formula: PropositionalFormula) -> List[Clause]:
        """Flatten a distributed formula, left to right, depth first"""
        if formula.operator == PropositionalOperator.AND:
            return CNFConverter._extract_clauses(
                formula.left
            ) + CNFConverter._extract_clauses(formula.right)

        return [Clause(CNFConverter._collect_literals(formula))]

    @staticmethod
    def _collect_literals(formula: PropositionalFormula) -> Iterator[Literal]:
        """Leaves of an OR tree as literals"""
        if formula.operator == PropositionalOperator.OR:
            yield from CNFConverter._collect_literals(formula.left)
            yield from CNFConverter._collect_literals(formula.right)
        elif formula.is_variable():
            yield Literal(formula.variable)
        elif formula.is_literal():
            yield Literal(formula.operand.variable, True)
        else:
            raise FormulaError(
                "Formula is not in conjunctive normal form", node=formula
            )


def normalize(formula: PropositionalFormula) -> List[Clause]:
    """Convert a formula into its CNF clause list."""
    return CNFConverter.to_cnf(formula).clauses


def is_equivalent(formula: PropositionalFormula, cnf: CNFFormula) -> bool:
    """
    Truth-table check that a clause set agrees with a formula on every
    assignment of the formula's variables. Exponential; meant for small
    formulas and tests.
    """
    names = sorted(formula.variables() | cnf.variables)
    for values in product((False, True), repeat=len(names)):
        assignment = dict(zip(names, values))
        if formula.evaluate(assignment) != cnf.is_satisfied_by(assignment):
            return False
    return True


# ============================================================================
# Constraint Encoders
# ============================================================================


class SATEncoder:
    """
    Clause builders for constraints that come up when modelling problems
    (graph coloring, scheduling) directly as clause sets.

    Literals are taken as given, so negated inputs work too.
    """

    @staticmethod
    def encode_implication(antecedent: Literal, consequent: Literal) -> Clause:
        """antecedent => consequent, i.e. [-antecedent, consequent]."""
        return Clause([-antecedent, consequent])

    @staticmethod
    def encode_iff(lit1: Literal, lit2: Literal) -> List[Clause]:
        """lit1 <=> lit2 as the two implications lit1 => lit2, lit2 => lit1."""
        return [
            SATEncoder.encode_implication(lit1, lit2),
            SATEncoder.encode_implication(lit2, lit1),
        ]

    @staticmethod
    def encode_xor(lit1: Literal, lit2: Literal) -> List[Clause]:
        """Exactly one of lit1, lit2: [lit1, lit2] and [-lit1, -lit2]."""
        return [Clause([lit1, lit2]), Clause([-lit1, -lit2])]

    @staticmethod
    def encode_at_least_one(literals: List[Literal]) -> Clause:
        return Clause(literals)

    @staticmethod
    def encode_at_most_one(literals: List[Literal]) -> List[Clause]:
        """
        Pairwise encoding: one binary clause [-a, -b] per pair, in input
        order. Quadratic in len(literals), no auxiliary variables.
        """
        return [Clause([-first, -second]) for first, second in combinations(literals, 2)]

    @staticmethod
    def encode_exactly_one(literals: List[Literal]) -> List[Clause]:
        """At-least-one clause first, then the pairwise at-most-one clauses."""
        return [SATEncoder.encode_at_least_one(literals)] + SATEncoder.encode_at_most_one(
            literals
        )


# ============================================================================
# Public API
# ============================================================================

__all__ = [
    "PropositionalOperator",
    "PropositionalFormula",
    "Var",
    "Not",
    "And",
    "Or",
    "Implies",
    "Iff",
    "CNFConverter",
    "SATEncoder",
    "normalize",
    "is_equivalent",
]
