"""Colored pipeline logger for discovery and ingestion runs.

Each pipeline stage gets its own color and icon, so one discovery or
coordinator pass can be followed in the terminal at a glance.

Color scheme:
    🔵 Blue    — Discovery (map / search)
    🟣 Magenta — LLM evaluation
    🟢 Green   — Promotion / completion
    🟡 Yellow  — Coordinator / fetch
    🟠 Cyan    — Deduplication / queue
    🔴 Red     — Errors
    ⚪ Gray    — Details / stats
"""

import logging
import time
from contextlib import contextmanager
from typing import Any


# ── ANSI Color Codes ─────────────────────────────────────────────────

class _Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    GRAY = "\033[90m"


# ── Pipeline Stage Definitions ───────────────────────────────────────

class PipelineStage:
    """(label, color, icon) triples for each pipeline stage."""

    DISCOVERY = ("DISCOVERY", _Colors.BLUE, "🔎")
    EVALUATE = ("EVALUATE", _Colors.MAGENTA, "🤖")
    PROMOTE = ("PROMOTE", _Colors.GREEN, "📥")
    COORDINATE = ("COORDINATE", _Colors.YELLOW, "🗓️")
    FETCH = ("FETCH", _Colors.YELLOW, "🌐")
    DEDUP = ("DEDUP", _Colors.CYAN, "🧬")
    QUEUE = ("QUEUE", _Colors.CYAN, "📬")
    PIPELINE = ("PIPELINE", _Colors.WHITE, "⚙️")
    ERROR = ("ERROR", _Colors.RED, "❌")
    COMPLETE = ("COMPLETE", _Colors.GREEN, "✅")


# ── PipelineLogger ───────────────────────────────────────────────────

def _format_kwargs(kwargs: dict[str, Any], color: str) -> str:
    if not kwargs:
        return ""
    details = " | ".join(f"{k}={v}" for k, v in kwargs.items())
    return f" {color}({details}){_Colors.RESET}"


class PipelineLogger:
    """Stage-colored logger for long-running pipelines.

    Usage:
        plog = PipelineLogger("IngestionCoordinator")
        plog.step_start(PipelineStage.FETCH, "Fetching USATF Bylaws")
        plog.detail("content_hash=ab12…")
        plog.step_complete(PipelineStage.QUEUE, "Enqueued ingestion job")
    """

    def __init__(self, component_name: str):
        self._logger = logging.getLogger(component_name)
        self._component = component_name

    def step_start(self, stage: tuple[str, str, str], message: str, **kwargs: Any) -> None:
        label, color, icon = stage
        formatted = (
            f"{color}{_Colors.BOLD}{icon} [{label}]{_Colors.RESET} "
            f"{color}{message}{_Colors.RESET}"
        )
        self._logger.info(formatted + _format_kwargs(kwargs, _Colors.GRAY))

    def step_complete(self, stage: tuple[str, str, str], message: str, **kwargs: Any) -> None:
        label, color, icon = stage
        formatted = (
            f"{color}{icon} [{label}]{_Colors.RESET} "
            f"{_Colors.GREEN}✓ {message}{_Colors.RESET}"
        )
        self._logger.info(formatted + _format_kwargs(kwargs, _Colors.GRAY))

    def step_warning(self, stage: tuple[str, str, str], message: str, **kwargs: Any) -> None:
        label, _, icon = stage
        formatted = (
            f"{_Colors.YELLOW}{icon} [{label}]{_Colors.RESET} "
            f"{_Colors.YELLOW}⚠ {message}{_Colors.RESET}"
        )
        self._logger.warning(formatted + _format_kwargs(kwargs, _Colors.GRAY))

    def step_error(
        self, stage: tuple[str, str, str], message: str, error: Exception | None = None
    ) -> None:
        label, _, _ = stage
        formatted = (
            f"{_Colors.RED}{_Colors.BOLD}❌ [{label}]{_Colors.RESET} "
            f"{_Colors.RED}{message}{_Colors.RESET}"
        )
        if error:
            formatted += f" {_Colors.DIM}→ {type(error).__name__}: {error}{_Colors.RESET}"
        self._logger.error(formatted)

    def detail(self, message: str, **kwargs: Any) -> None:
        formatted = f"   {_Colors.GRAY}├─ {message}{_Colors.RESET}"
        self._logger.info(formatted + _format_kwargs(kwargs, _Colors.DIM))

    def separator(self, title: str = "") -> None:
        if title:
            self._logger.info(
                f"{_Colors.GRAY}{'─' * 10} {title} {'─' * max(0, 50 - len(title))}{_Colors.RESET}"
            )
        else:
            self._logger.info(f"{_Colors.GRAY}{'─' * 60}{_Colors.RESET}")

    def stats(self, **kwargs: Any) -> None:
        parts = [f"{k}: {v}" for k, v in kwargs.items()]
        self._logger.info(f"   {_Colors.GRAY}📈 {' | '.join(parts)}{_Colors.RESET}")

    @contextmanager
    def timed_step(self, stage: tuple[str, str, str], message: str, **kwargs: Any):
        """Log start and end of a block with its elapsed time.

        Usage:
            with plog.timed_step(PipelineStage.DEDUP, "Deduplicating 42 chunks"):
                unique = deduplicate_chunks(chunks, 0.9)
        """
        self.step_start(stage, message, **kwargs)
        start = time.perf_counter()
        try:
            yield
        except Exception as e:
            elapsed = time.perf_counter() - start
            self.step_error(stage, f"{message} — failed after {elapsed:.2f}s", error=e)
            raise
        else:
            elapsed = time.perf_counter() - start
            self.step_complete(stage, f"{message} — {elapsed:.2f}s")
