"""
propsat_exceptions.py

Exception hierarchy of the propositional SAT toolkit.

    PropSatException
    ├── FormulaException
    │   └── FormulaError          malformed formula handed to the normalizer
    ├── ParsingException
    │   └── CNFParseError         unreadable clause text or clause file
    └── ConfigurationException
        └── InvalidConfigError    unusable solver or cache settings

Unsatisfiability is a result (SATResult.UNSATISFIABLE), never an exception.
These classes only cover problems at the caller boundary.

Usage:
    from propsat_exceptions import CNFParseError

    try:
        formula = parse_cnf_file("instance.cnf", strict=True)
    except CNFParseError as e:
        logger.error("Could not read clauses", extra={"line": e.line_number})
"""

from typing import Any, Dict, Optional


class PropSatException(Exception):
    """
    Base class. Carries a message, a context dict with the values that
    describe the failure, and optionally the exception that caused it.
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})
        self.original_exception = original_exception

    def __str__(self) -> str:
        parts = [self.message]
        if self.context:
            parts.append(
                "Context: " + ", ".join(f"{key}={value}" for key, value in self.context.items())
            )
        if self.original_exception is not None:
            cause = self.original_exception
            parts.append(f"Caused by: {type(cause).__name__}: {cause}")
        return " | ".join(parts)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, context={self.context!r})"


# ============================================================================
# Formulas
# ============================================================================


class FormulaException(PropSatException):
    """Errors while building or normalizing formulas."""


class FormulaError(FormulaException):
    """
    Value is not a well-formed PropositionalFormula: wrong operand count,
    nameless variable, or a non-formula where a formula is expected.
    """

    def __init__(
        self,
        message: str,
        node: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None,
    ):
        super().__init__(
            message,
            context={**(context or {}), "node": repr(node)},
            original_exception=original_exception,
        )


# ============================================================================
# Clause text
# ============================================================================


class ParsingException(PropSatException):
    """Errors while reading text input."""


class CNFParseError(ParsingException):
    """
    Clause text could not be read: a bare "!", a doubled "!!", or a file
    that cannot be opened. line_number and token are None for file errors.
    """

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        token: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None,
    ):
        super().__init__(
            message,
            context={**(context or {}), "line_number": line_number, "token": token},
            original_exception=original_exception,
        )
        self.line_number = line_number
        self.token = token


# ============================================================================
# Configuration
# ============================================================================


class ConfigurationException(PropSatException):
    """Errors in settings passed to solvers and caches."""


class InvalidConfigError(ConfigurationException):
    """A setting is out of range (negative step limit, empty cache, ...)."""

    def __init__(
        self,
        message: str,
        parameter: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None,
    ):
        super().__init__(
            message,
            context={**(context or {}), "parameter": parameter},
            original_exception=original_exception,
        )
        self.parameter = parameter


# ============================================================================
# Helpers
# ============================================================================


def wrap_exception(
    exc: BaseException,
    exception_class: type[PropSatException],
    message: str,
    **context: Any,
) -> PropSatException:
    """
    Build a toolkit exception around a foreign one.

    Example:
        try:
            text = path.read_text()
        except OSError as e:
            raise wrap_exception(e, CNFParseError, "Cannot read file", path=str(path)) from e
    """
    return exception_class(message, context=context, original_exception=exc)


_FRIENDLY_MESSAGES = {
    FormulaError: "[ERROR] The formula is malformed and cannot be converted to CNF.",
    CNFParseError: "[ERROR] The clause text could not be read.",
    InvalidConfigError: "[ERROR] Invalid solver configuration. Please check the settings.",
}


def get_user_friendly_message(exc: BaseException, include_details: bool = False) -> str:
    """
    One-line message for end users; include_details appends the technical
    message and context (debug mode).
    """
    if isinstance(exc, CNFParseError) and exc.line_number is not None:
        text = (
            f"[ERROR] The clause text could not be read "
            f"(line {exc.line_number}, token {exc.token!r})."
        )
    else:
        text = _FRIENDLY_MESSAGES.get(type(exc), "[ERROR] An unexpected error occurred.")

    if include_details and isinstance(exc, PropSatException):
        text += f"\n\nTechnical details: {exc.message}"
        if exc.context:
            text += f"\n   Context: {exc.context}"
    return text
