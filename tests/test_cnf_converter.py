"""
tests/test_cnf_converter.py
===========================
Test suite for CNF conversion and SAT encoding (component_30).

Tests:
- PropositionalFormula construction, validation and rendering
- The individual rewrite stages
- Clause lists for known formulas (order included)
- Logical equivalence of the CNF with the input formula
- CNF conversion cache
- SATEncoder constraint helpers
"""

import logging
import random

import pytest

import component_30_cnf_converter
from component_30_cnf_converter import (
    And,
    CNFConverter,
    Iff,
    Implies,
    Not,
    Or,
    PropositionalFormula,
    PropositionalOperator,
    SATEncoder,
    Var,
    is_equivalent,
    normalize,
)
from component_30_sat_solver_core import CNFFormula, Literal
from infrastructure.cache_manager import get_cache_manager, reset_cache_manager
from propsat_exceptions import FormulaError


A, B, C, D = Var("A"), Var("B"), Var("C"), Var("D")


def tokens(clauses):
    return [clause.to_tokens() for clause in clauses]


def random_formula(rng: random.Random, depth: int, names) -> PropositionalFormula:
    if depth == 0 or rng.random() < 0.25:
        return Var(rng.choice(names))

    op = rng.choice(
        [
            PropositionalOperator.NOT,
            PropositionalOperator.AND,
            PropositionalOperator.OR,
            PropositionalOperator.IMPLIES,
            PropositionalOperator.IFF,
        ]
    )
    if op == PropositionalOperator.NOT:
        return Not(random_formula(rng, depth - 1, names))
    return PropositionalFormula(
        op,
        operands=(
            random_formula(rng, depth - 1, names),
            random_formula(rng, depth - 1, names),
        ),
    )


def operators_in(formula: PropositionalFormula):
    found = set()
    stack = [formula]
    while stack:
        node = stack.pop()
        found.add(node.operator)
        stack.extend(node.operands)
    return found


@pytest.fixture(autouse=True)
def fresh_cache():
    """Every test starts with an empty cache manager."""
    reset_cache_manager()
    yield
    reset_cache_manager()


class TestPropositionalFormula:
    """Test formula construction and validation."""

    def test_rendering(self):
        """Formulas render with !, ^, v, => and <=>."""
        formula = Implies(And(C, A), Or(B, D))
        assert str(formula) == "((C ^ A) => (B v D))"
        assert str(Iff(A, Not(B))) == "(A <=> !B)"

    def test_variables(self):
        """All variable names of the tree."""
        assert Implies(And(C, A), Or(B, Not(C))).variables() == {"A", "B", "C"}

    def test_nary_helpers_fold_left(self):
        """And/Or with more operands nest to the left."""
        formula = Or(A, B, C)
        assert formula.left == Or(A, B)
        assert formula.right == C

    def test_structural_equality(self):
        """Formulas are values: equal trees compare and hash equal."""
        assert And(A, Not(B)) == And(Var("A"), Not(Var("B")))
        assert len({And(A, B), And(A, B), And(B, A)}) == 2

    def test_evaluate(self):
        """Truth value under a total assignment."""
        formula = Iff(A, Implies(B, C))
        assert formula.evaluate({"A": True, "B": True, "C": True})
        assert not formula.evaluate({"A": True, "B": True, "C": False})
        assert formula.evaluate({"A": False, "B": True, "C": False})

    def test_missing_name_rejected(self):
        """Variable nodes need a name."""
        with pytest.raises(FormulaError):
            Var("")

    def test_wrong_arity_rejected(self):
        """Operators check their operand count."""
        with pytest.raises(FormulaError):
            PropositionalFormula(PropositionalOperator.AND, operands=(A,))
        with pytest.raises(FormulaError):
            PropositionalFormula(PropositionalOperator.NOT, operands=(A, B))

    def test_non_formula_operand_rejected(self):
        """Operands must be formulas."""
        with pytest.raises(FormulaError) as exc_info:
            PropositionalFormula(PropositionalOperator.OR, operands=(A, "B"))
        assert exc_info.value.context["node"] == "'B'"

    def test_single_operand_fold_rejected(self):
        """And() with fewer than two operands is malformed."""
        with pytest.raises(FormulaError):
            And(A)

    def test_to_cnf_rejects_non_formula(self):
        """The converter only accepts PropositionalFormula values."""
        with pytest.raises(FormulaError):
            CNFConverter.to_cnf("A -> B")


class TestConversionStages:
    """Test the individual rewrite stages."""

    def test_eliminate_biconditionals(self):
        """Nested biconditionals are removed too."""
        formula = Iff(Iff(A, B), C)
        result = CNFConverter._eliminate_biconditionals(formula)
        assert PropositionalOperator.IFF not in operators_in(result)
        assert is_equivalent(formula, CNFConverter.to_cnf(result))

    def test_eliminate_implications(self):
        """A => B becomes !A v B."""
        result = CNFConverter._eliminate_implications(Implies(A, B))
        assert result == Or(Not(A), B)

    def test_de_morgan(self):
        """Negations end up directly on variables."""
        result = CNFConverter._push_negations_inward(Not(And(A, Or(B, Not(C)))))
        assert result == Or(Not(A), And(Not(B), C))

    def test_double_negation(self):
        """!!A becomes A."""
        assert CNFConverter._push_negations_inward(Not(Not(Not(Not(A))))) == A
        assert CNFConverter._push_negations_inward(Not(Not(Not(A)))) == Not(A)

    def test_distribution_left_first(self):
        """A conjunction on the left side is distributed first."""
        result = CNFConverter._distribute_or_over_and(Or(And(A, B), And(C, D)))
        clauses = CNFConverter._extract_clauses(result)
        assert tokens(clauses) == [["A", "C"], ["A", "D"], ["B", "C"], ["B", "D"]]

    def test_extract_rejects_non_cnf(self):
        """Flattening a tree that is not in CNF is an error."""
        with pytest.raises(FormulaError):
            CNFConverter._extract_clauses(Or(A, Not(And(B, C))))


class TestNormalize:
    """Clause lists for known formulas."""

    def test_implication_of_conjunction(self):
        """(C ^ A) => (B v D) gives the single clause [!C, !A, B, D]."""
        clauses = normalize(Implies(And(C, A), Or(B, D)))
        assert tokens(clauses) == [["!C", "!A", "B", "D"]]

    def test_biconditional(self):
        """A <=> B gives [!A, B] and [!B, A]."""
        assert tokens(normalize(Iff(A, B))) == [["!A", "B"], ["!B", "A"]]

    def test_literals(self):
        """Single literals become unit clauses."""
        assert tokens(normalize(A)) == [["A"]]
        assert tokens(normalize(Not(A))) == [["!A"]]
        assert tokens(normalize(Not(Not(A)))) == [["A"]]

    def test_or_over_and(self):
        """A v (B ^ C) gives [A, B] and [A, C]."""
        assert tokens(normalize(Or(A, And(B, C)))) == [["A", "B"], ["A", "C"]]

    def test_negated_conjunction(self):
        """!(A ^ (B v !C)) gives [!A, !B] and [!A, C]."""
        clauses = normalize(Not(And(A, Or(B, Not(C)))))
        assert tokens(clauses) == [["!A", "!B"], ["!A", "C"]]

    def test_duplicates_are_kept(self):
        """Deduplication is left to the solver."""
        assert tokens(normalize(Or(A, A))) == [["A", "A"]]

    def test_to_cnf_returns_formula(self):
        """to_cnf wraps the clause list in a CNFFormula."""
        cnf = CNFConverter.to_cnf(Implies(A, B))
        assert isinstance(cnf, CNFFormula)
        assert cnf.variables == {"A", "B"}

    def test_equivalence_random_formulas(self):
        """CNF agrees with the input formula on every assignment."""
        rng = random.Random(11)
        names = ["p", "q", "r", "s"]
        for _ in range(200):
            formula = random_formula(rng, depth=3, names=names)
            cnf = CNFConverter.to_cnf(formula, use_cache=False)
            assert is_equivalent(formula, cnf), str(formula)

    def test_output_is_flat_cnf(self):
        """Every clause holds literals only."""
        rng = random.Random(3)
        for _ in range(50):
            formula = random_formula(rng, depth=3, names=["a", "b", "c"])
            for clause in normalize(formula):
                assert len(clause) >= 1
                assert all(isinstance(lit, Literal) for lit in clause)

    def test_large_result_is_logged(self, monkeypatch, caplog):
        """Clause counts above the threshold log a warning, nothing is refused."""
        monkeypatch.setattr(component_30_cnf_converter, "CNF_CLAUSE_WARNING_THRESHOLD", 3)
        with caplog.at_level(logging.WARNING):
            cnf = CNFConverter.to_cnf(Or(And(A, B), And(C, D)), use_cache=False)
        assert len(cnf) == 4
        assert "large clause set" in caplog.text

    def test_cached_large_result_is_logged_again(self, monkeypatch, caplog):
        """A cache hit on a large clause set warns like the first conversion."""
        monkeypatch.setattr(component_30_cnf_converter, "CNF_CLAUSE_WARNING_THRESHOLD", 3)
        formula = Or(And(A, B), And(C, D))
        CNFConverter.to_cnf(formula)
        caplog.clear()

        with caplog.at_level(logging.WARNING):
            cnf = CNFConverter.to_cnf(formula)

        assert get_cache_manager().get_stats("cnf_conversion")["hits"] == 1
        assert len(cnf) == 4
        assert "large clause set" in caplog.text


class TestConversionCache:
    """CNF results are memoized per formula."""

    def test_second_conversion_is_cache_hit(self):
        """Converting the same formula twice hits the cache once."""
        formula = Implies(And(C, A), Or(B, D))
        first = CNFConverter.to_cnf(formula)
        second = CNFConverter.to_cnf(Implies(And(C, A), Or(B, D)))

        stats = get_cache_manager().get_stats("cnf_conversion")
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert first.clauses == second.clauses

    def test_cached_result_is_not_shared(self):
        """Modifying a returned formula does not touch the cached entry."""
        formula = Or(A, B)
        first = CNFConverter.to_cnf(formula)
        first.add_clause(["C"])
        assert len(CNFConverter.to_cnf(formula)) == 1

    def test_cache_bypass(self):
        """use_cache=False neither reads nor writes the cache."""
        CNFConverter.to_cnf(Or(A, B), use_cache=False)
        assert not get_cache_manager().is_registered("cnf_conversion")


class TestSATEncoder:
    """Test SAT encoding utilities."""

    def test_encode_implication(self):
        """x => y is [!x, y]."""
        clause = SATEncoder.encode_implication(Literal("x"), Literal("y"))
        assert clause.to_tokens() == ["!x", "y"]

    def test_encode_iff(self):
        """x <=> y is two implications."""
        clauses = SATEncoder.encode_iff(Literal("x"), Literal("y"))
        assert tokens(clauses) == [["!x", "y"], ["!y", "x"]]

    def test_encode_xor(self):
        """Exactly one of two."""
        clauses = SATEncoder.encode_xor(Literal("x"), Literal("y"))
        formula = CNFFormula(clauses)
        assert formula.is_satisfied_by({"x": True, "y": False})
        assert not formula.is_satisfied_by({"x": True, "y": True})
        assert not formula.is_satisfied_by({"x": False, "y": False})

    def test_encode_at_most_one(self):
        """Pairwise encoding."""
        lits = [Literal("a"), Literal("b"), Literal("c")]
        clauses = SATEncoder.encode_at_most_one(lits)
        assert tokens(clauses) == [["!a", "!b"], ["!a", "!c"], ["!b", "!c"]]

    def test_encode_exactly_one(self):
        """Satisfied exactly by the one-hot assignments."""
        lits = [Literal("a"), Literal("b"), Literal("c")]
        formula = CNFFormula(SATEncoder.encode_exactly_one(lits))
        assert len(formula) == 4
        assert formula.is_satisfied_by({"a": False, "b": True, "c": False})
        assert not formula.is_satisfied_by({"a": True, "b": True, "c": False})
        assert not formula.is_satisfied_by({"a": False, "b": False, "c": False})
