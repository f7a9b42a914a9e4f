"""
tests/test_graph_coloring_sat.py
================================
Graph coloring encoded as SAT.

Variable "<vertex>_<color>" means the vertex gets that color. Every vertex
gets exactly one color, adjacent vertices never share one.
"""

from typing import Dict, List, Tuple

import pytest

from component_30_cnf_text import format_cnf, parse_cnf_text
from component_30_sat_solver import (
    CNFFormula,
    DPLLSolver,
    Literal,
    SATEncoder,
    SATResult,
    SATSolver,
)


TRIANGLE = [(1, 2), (2, 3), (1, 3)]
SQUARE = [(1, 2), (2, 3), (3, 4), (4, 1)]


def coloring_formula(edges: List[Tuple[int, int]], num_colors: int) -> CNFFormula:
    vertices = sorted({v for edge in edges for v in edge})
    formula = CNFFormula([])

    for v in vertices:
        for clause in SATEncoder.encode_exactly_one(
            [Literal(f"{v}_{c}") for c in range(num_colors)]
        ):
            formula.add_clause(clause)

    for u, v in edges:
        for c in range(num_colors):
            formula.add_clause([Literal(f"{u}_{c}", True), Literal(f"{v}_{c}", True)])

    return formula


def decode_coloring(model: Dict[str, bool], edges, num_colors: int) -> Dict[int, int]:
    """Unbound variables count as False."""
    vertices = sorted({v for edge in edges for v in edge})
    coloring = {}
    for v in vertices:
        colors = [c for c in range(num_colors) if model.get(f"{v}_{c}") is True]
        assert len(colors) == 1, f"vertex {v} has colors {colors}"
        coloring[v] = colors[0]
    return coloring


class TestGraphColoring:
    """Graph coloring instances."""

    def test_triangle_three_colors(self):
        """A triangle is 3-colorable."""
        formula = coloring_formula(TRIANGLE, 3)
        result, model = DPLLSolver().solve(formula)

        assert result == SATResult.SATISFIABLE
        assert formula.is_satisfied_by(model)
        coloring = decode_coloring(model, TRIANGLE, 3)
        for u, v in TRIANGLE:
            assert coloring[u] != coloring[v]

    def test_triangle_two_colors(self):
        """A triangle is not 2-colorable."""
        result, model = DPLLSolver().solve(coloring_formula(TRIANGLE, 2))
        assert result == SATResult.UNSATISFIABLE
        assert model is None

    @pytest.mark.parametrize("num_colors", [2, 3])
    def test_square(self, num_colors):
        """An even cycle needs only two colors."""
        formula = coloring_formula(SQUARE, num_colors)
        model = SATSolver().solve(formula)
        assert model is not None
        coloring = decode_coloring(model, SQUARE, num_colors)
        for u, v in SQUARE:
            assert coloring[u] != coloring[v]

    def test_through_clause_text(self):
        """Same verdict after writing and re-reading the clause text."""
        for num_colors, expected in [(3, SATResult.SATISFIABLE), (2, SATResult.UNSATISFIABLE)]:
            formula = coloring_formula(TRIANGLE, num_colors)
            parsed = parse_cnf_text(format_cnf(formula, header="triangle"))
            result, _ = DPLLSolver().solve(parsed)
            assert result == expected

    def test_reasoning_interface(self):
        """The reasoning interface reports the coloring verdict."""
        solver = SATSolver()
        text = format_cnf(coloring_formula(TRIANGLE, 2))
        result = solver.reason(text, {})
        assert result.success
        assert result.metadata["result"] == "UNSATISFIABLE"
