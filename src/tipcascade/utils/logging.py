"""
Logging for tipcascade: handler setup, nested step timing and error
reporting.

Everything logs under the ``tipcascade`` logger so one call to
:func:`setup_logging` configures the whole package.
"""

import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Dict, Any, List

LOGGER_NAME = "tipcascade"

LOG_FORMATS = {
    "detailed": ("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s", "%Y-%m-%d %H:%M:%S"),
    "simple": ("%(levelname)s: %(message)s", None),
    "minimal": ("%(message)s", None),
}

_timing_logger: Optional["TimingLogger"] = None


@dataclass
class TimedStep:
    """One timed step; ``depth`` counts the steps open around it."""
    
    name: str
    depth: int
    started: float
    finished: Optional[float] = None
    ok: Optional[bool] = None
    
    @property
    def duration(self) -> float:
        if self.finished is None:
            return 0.0
        return self.finished - self.started


class TimingLogger:
    """Stack of timed steps. A step opened inside another is nested under it."""
    
    def __init__(self):
        self.created = time.perf_counter()
        self.completed: List[TimedStep] = []
        self._stack: List[TimedStep] = []
    
    @property
    def current_step(self) -> Optional[TimedStep]:
        return self._stack[-1] if self._stack else None
    
    def start_step(self, name: str) -> None:
        self._stack.append(TimedStep(name, len(self._stack), time.perf_counter()))
    
    def end_step(self, success: bool = True) -> float:
        """Close the innermost step; 0.0 if none is open."""
        if not self._stack:
            return 0.0
        step = self._stack.pop()
        step.finished = time.perf_counter()
        step.ok = success
        self.completed.append(step)
        return step.duration
    
    def summary(self) -> str:
        """Steps in start order, indented by nesting, plus wall time."""
        width = 60
        rows = ["", "═" * width, "  TIMING", "─" * width]
        for step in sorted(self.completed, key=lambda s: s.started):
            mark = "✓" if step.ok else "✗"
            label = "  " * step.depth + step.name
            rows.append(f"  {mark} {label:<{width - 16}}{step.duration:>8.2f}s")
        rows += [
            "─" * width,
            f"  Wall time: {time.perf_counter() - self.created:.2f}s",
            "═" * width,
        ]
        return "\n".join(rows)


def get_timing_logger() -> Optional[TimingLogger]:
    return _timing_logger


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[str | Path] = None,
    log_name: Optional[str] = None,
    format_style: str = "detailed",
) -> logging.Logger:
    """
    Configure the ``tipcascade`` logger and start a fresh step timer.
    
    Parameters
    ----------
    level : str
        Console log level (DEBUG, INFO, WARNING, ERROR).
    log_dir : str or Path, optional
        If given, also write a DEBUG-level log file here.
    log_name : str, optional
        Log file stem. Default "tipcascade".
    format_style : str
        One of "detailed", "simple", "minimal".
    
    Returns
    -------
    logging.Logger
        The package logger.
    """
    global _timing_logger
    _timing_logger = TimingLogger()
    
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    fmt, datefmt = LOG_FORMATS.get(format_style, LOG_FORMATS["minimal"])
    formatter = logging.Formatter(fmt, datefmt=datefmt)
    
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(numeric_level)
    console.setFormatter(formatter)
    logger.addHandler(console)
    
    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path / f"{log_name or LOGGER_NAME}.log")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        # File gets DEBUG even when the console is quieter
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(numeric_level)
    
    return logger


def start_step(name: str) -> None:
    logging.getLogger(LOGGER_NAME).info(f"→ {name}")
    if _timing_logger is not None:
        _timing_logger.start_step(name)


def end_step(success: bool = True) -> float:
    """Close the innermost step and log its duration."""
    name = "step"
    duration = 0.0
    if _timing_logger is not None:
        current = _timing_logger.current_step
        if current is not None:
            name = current.name
        duration = _timing_logger.end_step(success)
    
    logger = logging.getLogger(LOGGER_NAME)
    if success:
        logger.info(f"✓ {name} ({duration:.2f}s)")
    else:
        logger.warning(f"✗ {name} failed after {duration:.2f}s")
    return duration


def log_error(error: Exception, context: str = "") -> None:
    """Log ``error`` at ERROR level; the traceback goes to DEBUG."""
    logger = logging.getLogger(LOGGER_NAME)
    where = f" in {context}" if context else ""
    logger.error(f"{type(error).__name__}{where}: {error}")
    logger.debug("Traceback:", exc_info=error)


def log_calculation_issue(
    issue_type: str,
    description: str,
    details: Dict[str, Any],
) -> None:
    """Warn about a numeric problem (NaN, clamped or out-of-range value)."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.warning(f"[{issue_type}] {description}")
    if details:
        logger.debug("  " + ", ".join(f"{key}={value!r}" for key, value in details.items()))
