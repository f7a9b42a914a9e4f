"""
Common constants for the propositional SAT toolkit.

This package provides centralized configuration values used throughout
the code base.
"""

from common.constants import *

__all__ = [
    # Clause Text Notation
    "NEGATION_MARKER",
    "COMMENT_MARKER",
    # CNF Conversion
    "CNF_CLAUSE_WARNING_THRESHOLD",
    # Cache Configuration
    "CNF_CACHE_NAME",
    "CNF_CACHE_MAXSIZE",
    "CNF_CACHE_TTL_SECONDS",
    # Solver Defaults
    "DEFAULT_MAX_STEPS",
    "DEFAULT_TRACE_ENABLED",
    # Logging
    "LOG_DIR",
    "LOG_FILE_MAX_BYTES",
    "LOG_FILE_BACKUP_COUNT",
]
