"""
component_30_cnf_text.py

Clause text format - reading and writing CNF clause sets.

Format:
    - One clause per line
    - Literals separated by whitespace
    - "!" in front of a literal negates it
    - Blank lines and lines starting with "#" are skipped

Example:
    # triangle, vertex 1
    1_0 1_1 1_2
    !1_0 !2_0

By default malformed tokens are skipped with a warning. With strict=True
they raise CNFParseError instead.

Author: PropSat Development Team
Date: 2026-10-19
"""

from pathlib import Path
from typing import Iterable, List, Optional, Union

from common.constants import COMMENT_MARKER
from component_15_logging_config import get_logger
from component_30_sat_solver_core import Clause, CNFFormula, Literal
from propsat_exceptions import CNFParseError

logger = get_logger(__name__)

PathLike = Union[str, Path]


def parse_cnf_lines(lines: Iterable[str], strict: bool = False) -> CNFFormula:
    """
    Parse clause lines into a CNFFormula.

    Args:
        lines: Text lines (with or without trailing newlines)
        strict: Raise on malformed tokens instead of skipping them

    Returns:
        CNFFormula with one clause per non-blank, non-comment line

    Raises:
        CNFParseError: Malformed token in strict mode
    """
    clauses: List[Clause] = []

    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.strip()
        if not line or line.startswith(COMMENT_MARKER):
            continue

        literals: List[Literal] = []
        for token in line.split():
            try:
                literals.append(Literal.from_token(token))
            except ValueError as e:
                if strict:
                    raise CNFParseError(
                        f"Malformed literal on line {line_number}",
                        line_number=line_number,
                        token=token,
                        original_exception=e,
                    ) from e
                logger.warning(
                    "Skipping malformed literal",
                    extra={"line_number": line_number, "token": token},
                )

        if not literals:
            # Every token was malformed; an empty clause would make the set UNSAT
            logger.warning("Skipping line without literals", extra={"line_number": line_number})
            continue

        clauses.append(Clause(literals))

    logger.debug("Parsed clause text", extra={"clauses": len(clauses)})
    return CNFFormula(clauses)


def parse_cnf_text(text: str, strict: bool = False) -> CNFFormula:
    """Parse a block of clause text (see parse_cnf_lines)."""
    return parse_cnf_lines(text.splitlines(), strict=strict)


def parse_cnf_file(
    path: PathLike, strict: bool = False, encoding: str = "utf-8"
) -> CNFFormula:
    """
    Read a clause file.

    Raises:
        CNFParseError: File cannot be read, or malformed token in strict mode
    """
    path = Path(path)
    try:
        with path.open("r", encoding=encoding) as handle:
            return parse_cnf_lines(handle, strict=strict)
    except OSError as e:
        raise CNFParseError(
            f"Cannot read clause file {path}",
            context={"path": str(path)},
            original_exception=e,
        ) from e


def format_cnf(formula: CNFFormula, header: Optional[str] = None) -> str:
    """
    Render a formula in clause text format.

    Args:
        formula: Clause set to render
        header: Optional comment written above the clauses (may span lines)

    Returns:
        Text with one clause per line and a trailing newline
    """
    lines: List[str] = []
    if header:
        lines.extend(f"{COMMENT_MARKER} {line}".rstrip() for line in header.splitlines())
    lines.extend(" ".join(clause.to_tokens()) for clause in formula.clauses)
    return "\n".join(lines) + "\n" if lines else ""


def write_cnf_file(
    formula: CNFFormula,
    path: PathLike,
    header: Optional[str] = None,
    encoding: str = "utf-8",
) -> Path:
    """Write a formula to disk in clause text format and return the path."""
    path = Path(path)
    path.write_text(format_cnf(formula, header=header), encoding=encoding)
    logger.info(
        "Wrote clause file", extra={"path": str(path), "clauses": len(formula.clauses)}
    )
    return path


__all__ = [
    "parse_cnf_lines",
    "parse_cnf_text",
    "parse_cnf_file",
    "format_cnf",
    "write_cnf_file",
]
