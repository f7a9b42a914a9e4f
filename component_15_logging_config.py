"""
component_15_logging_config.py

Logging setup for the propositional SAT toolkit.

Modules never configure logging themselves. They obtain a StructuredLogger
via get_logger(__name__) and pass context as extra={...}; the formatter
appends it to the line as key=value pairs. An application (or a test) calls
setup_logging() once to install handlers:

    propsat.log              everything from file_level up (rotating)
    propsat_errors.log       ERROR and above (rotating)
    propsat_performance.log  timings from PerformanceLogger (rotating)

Usage:
    from component_15_logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("DPLL solver finished", extra={"result": "satisfiable"})
"""

import logging
import logging.handlers
import sys
import time
import traceback
from pathlib import Path
from types import TracebackType
from typing import Any, Dict, Literal, MutableMapping, Optional, Tuple, Type

from common.constants import LOG_DIR, LOG_FILE_BACKUP_COUNT, LOG_FILE_MAX_BYTES

DEFAULT_LOG_FILE_NAME: str = "propsat.log"
ERROR_LOG_FILE_NAME: str = "propsat_errors.log"
PERFORMANCE_LOG_FILE_NAME: str = "propsat_performance.log"

CONSOLE_LOG_LEVEL: int = logging.INFO
FILE_LOG_LEVEL: int = logging.DEBUG

PERFORMANCE_LOGGER_NAME: str = "propsat.performance"

# Secondary logs rotate at half the main size and keep fewer backups
_SECONDARY_MAX_BYTES: int = LOG_FILE_MAX_BYTES // 2
_SECONDARY_BACKUP_COUNT: int = 3


class PropSatLogFormatter(logging.Formatter):
    """
    "[time] [LEVEL] [logger] message | key=value | ..." lines.

    The key=value tail comes from the extra_info attribute that
    StructuredLogger attaches to each record.
    """

    LEVEL_COLORS: Dict[int, str] = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET: str = "\033[0m"

    def __init__(self, use_colors: bool = False, include_extra: bool = True) -> None:
        super().__init__(
            fmt="[%(asctime)s] [%(levelname)-8s] [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.use_colors = use_colors
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)

        extra_info = getattr(record, "extra_info", None)
        if self.include_extra and extra_info:
            line += "".join(f" | {key}={value}" for key, value in extra_info.items())

        if self.use_colors and record.levelno in self.LEVEL_COLORS:
            line = f"{self.LEVEL_COLORS[record.levelno]}{line}{self.RESET}"
        return line


class PerformanceLogger:
    """
    Times a block and reports the duration.

    Success goes to the given logger (DEBUG) and to the performance logger
    (INFO); a failing block is logged as an error and the exception is
    re-raised. duration_ms is available after the block.

    Usage:
        with PerformanceLogger(logger, "DPLL search", clauses=120) as perf:
            solver.solve(formula)
        print(perf.duration_ms)
    """

    def __init__(
        self, logger: logging.Logger, operation_name: str, **context: Any
    ) -> None:
        self.logger = logger
        self.operation_name = operation_name
        self.context = context
        self.duration_ms: Optional[float] = None
        self._started: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self._started = time.perf_counter()
        self.logger.debug(
            f"{self.operation_name} started", extra={"extra_info": self.context}
        )
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> Literal[False]:
        if self._started is None:
            raise RuntimeError("PerformanceLogger exited without being entered")

        self.duration_ms = (time.perf_counter() - self._started) * 1000.0
        timing = {**self.context, "duration_ms": round(self.duration_ms, 3)}

        if exc_type is not None:
            self.logger.error(
                f"{self.operation_name} failed after {self.duration_ms:.2f}ms",
                extra={"extra_info": {**timing, "error": repr(exc_val)}},
            )
            return False

        self.logger.debug(
            f"{self.operation_name} finished in {self.duration_ms:.2f}ms",
            extra={"extra_info": timing},
        )
        logging.getLogger(PERFORMANCE_LOGGER_NAME).info(
            self.operation_name, extra={"extra_info": timing}
        )
        return False


class StructuredLogger(logging.LoggerAdapter):
    """
    LoggerAdapter that moves the caller's extra dict into one record
    attribute (extra_info), so context keys never clash with LogRecord
    attributes such as "message" or "name".
    """

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> Tuple[str, MutableMapping[str, Any]]:
        context = {**self.extra, **kwargs.pop("extra", {})}
        if context:
            kwargs["extra"] = {"extra_info": context}
        return msg, kwargs

    def log_exception(self, exc: BaseException, message: str = "", **context: Any) -> None:
        """ERROR entry with exception type, text and formatted traceback."""
        details = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        ).rstrip()
        prefix = f"{message}: " if message else ""
        self.error(f"{prefix}{type(exc).__name__}: {exc}\n{details}", extra=context)


def _rotating_file_handler(
    path: Path, level: int, max_bytes: int, backup_count: int
) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(PropSatLogFormatter(use_colors=False))
    return handler


def _drop_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def setup_logging(
    console_level: int = CONSOLE_LOG_LEVEL,
    file_level: int = FILE_LOG_LEVEL,
    log_file: Optional[Path] = None,
    enable_performance_logging: bool = True,
) -> None:
    """
    Install console and file handlers on the root logger.

    Safe to call repeatedly; earlier handlers are replaced, not duplicated.

    Args:
        console_level: Minimum level written to stdout
        file_level: Minimum level written to the main log file
        log_file: Main log file (default: logs/propsat.log); the error and
            performance logs go to the same directory
        enable_performance_logging: Write PerformanceLogger timings to their
            own file instead of the main log
    """
    main_path = Path(log_file) if log_file else LOG_DIR / DEFAULT_LOG_FILE_NAME
    log_dir = main_path.parent
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    _drop_handlers(root)
    root.setLevel(logging.DEBUG)  # handlers do the filtering

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(console_level)
    console.setFormatter(PropSatLogFormatter(use_colors=sys.stdout.isatty()))
    root.addHandler(console)

    root.addHandler(
        _rotating_file_handler(
            main_path, file_level, LOG_FILE_MAX_BYTES, LOG_FILE_BACKUP_COUNT
        )
    )
    root.addHandler(
        _rotating_file_handler(
            log_dir / ERROR_LOG_FILE_NAME,
            logging.ERROR,
            _SECONDARY_MAX_BYTES,
            _SECONDARY_BACKUP_COUNT,
        )
    )

    perf_logger = logging.getLogger(PERFORMANCE_LOGGER_NAME)
    _drop_handlers(perf_logger)
    perf_logger.propagate = not enable_performance_logging
    if enable_performance_logging:
        perf_logger.setLevel(logging.INFO)
        perf_logger.addHandler(
            _rotating_file_handler(
                log_dir / PERFORMANCE_LOG_FILE_NAME,
                logging.INFO,
                _SECONDARY_MAX_BYTES,
                _SECONDARY_BACKUP_COUNT,
            )
        )

    get_logger("propsat.logging_config").info(
        "Logging initialized",
        extra={
            "console_level": logging.getLevelName(console_level),
            "file_level": logging.getLevelName(file_level),
            "log_file": str(main_path),
            "performance_logging": enable_performance_logging,
        },
    )


def get_logger(name: str) -> StructuredLogger:
    """StructuredLogger for a module (pass __name__)."""
    return StructuredLogger(logging.getLogger(name), {})
