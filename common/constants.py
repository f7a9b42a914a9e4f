"""
Centralized constants for the propositional SAT toolkit.

This module provides a single source of truth for the notation markers,
thresholds and configuration defaults used by the CNF converter, the DPLL
solver and the clause text format.

Organization:
    - Clause Text Notation: Markers of the one-clause-per-line format
    - CNF Conversion: Growth warning threshold
    - Cache Configuration: TTL and size limits for the conversion cache
    - Solver Defaults: Step limit and trace defaults
    - Logging: Log file locations and rotation sizes

Usage:
    from common.constants import NEGATION_MARKER, CNF_CLAUSE_WARNING_THRESHOLD

Note:
    These constants define default values. Components accept overrides via
    constructor parameters (e.g. DPLLSolver(max_steps=...)).
"""

from pathlib import Path
from typing import Optional

# =============================================================================
# Clause Text Notation
# =============================================================================

NEGATION_MARKER: str = "!"
"""
Prefix marking a negated literal in clause text ("!x" is NOT x).

Used by:
    - component_30_sat_solver_core.py: Literal.from_token() / Literal.to_token()
    - component_30_cnf_text.py: Parsing and formatting of clause lines
"""

COMMENT_MARKER: str = "#"
"""
Lines starting with this marker are skipped by the clause text reader.
"""

# =============================================================================
# CNF Conversion
# =============================================================================

CNF_CLAUSE_WARNING_THRESHOLD: int = 10_000
"""
Clause count above which the converter logs a growth warning.

Distributing OR over AND can produce m^k clauses for k disjunctions of
m-way conjunctions. The converter never refuses such inputs; the warning
tells callers that an auxiliary-variable encoding may be the better choice.

Used by:
    - component_30_cnf_converter.py: CNFConverter.to_cnf()
"""

# =============================================================================
# Cache Configuration
# =============================================================================

CNF_CACHE_NAME: str = "cnf_conversion"
"""Name of the CacheManager cache holding converted formulas."""

CNF_CACHE_MAXSIZE: int = 500
"""
Maximum number of converted formulas kept in the conversion cache.
"""

CNF_CACHE_TTL_SECONDS: int = 600
"""
TTL for cached conversions (10 minutes).

Formulas are immutable, so cached entries never go stale; the TTL only
bounds memory held by formulas nobody asks for anymore.
"""

# =============================================================================
# Solver Defaults
# =============================================================================

DEFAULT_MAX_STEPS: Optional[int] = None
"""
Default cap on DPLL search steps (None = unlimited).

When a cap is set and exhausted, the solver returns SATResult.UNKNOWN.
"""

DEFAULT_TRACE_ENABLED: bool = False
"""Record a SearchStep for every binding, guess and backtrack."""

# =============================================================================
# Logging
# =============================================================================

LOG_DIR: Path = Path("logs")
"""Directory for log files written by setup_logging()."""

LOG_FILE_MAX_BYTES: int = 10 * 1024 * 1024
"""Rotation size of the main log file (10 MB)."""

LOG_FILE_BACKUP_COUNT: int = 5
"""Number of rotated log files kept."""
