"""
Poll-until-ready primitive and the readiness predicates built on it.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Sequence

from comprehensive_report.errors import ReadinessTimeout

logger = logging.getLogger(__name__)

PLACEHOLDER_TEXTS = frozenset({'please wait', 'loading', 'loading...', '--', '—', 'n/a', 'na'})
_DIGIT = re.compile(r"\d")
_NUMERIC_CHARS = re.compile(r"[^0-9.\-]")


@dataclass
class ReadinessCheck:
    """Result of evaluating a predicate against one observation."""
    ready: bool
    count: int = 0
    ratio: float = 0.0


@dataclass
class ReadinessOutcome:
    """Final result of a polling run."""
    ready: bool
    attempts: int
    count: int = 0
    ratio: float = 0.0


async def await_condition(probe: Callable[[], Awaitable[Any]],
                          predicate: Callable[[Any], ReadinessCheck],
                          *, interval: float, max_attempts: int,
                          settle: float = 0.0) -> ReadinessOutcome:
    """
    Poll ``probe`` until ``predicate`` holds or the attempt budget runs out.

    Args:
        probe: Coroutine function returning the current observation
        predicate: Evaluates an observation
        interval: Seconds between attempts
        max_attempts: Attempt budget, at least one attempt is always made
        settle: Extra delay after success to absorb a final re-render

    Returns:
        ReadinessOutcome with the last observed count and ratio
    """
    check = ReadinessCheck(ready=False)
    attempts = 0
    for attempts in range(1, max(1, int(max_attempts)) + 1):
        check = predicate(await probe())
        if check.ready:
            if settle > 0:
                await asyncio.sleep(settle)
            return ReadinessOutcome(True, attempts, check.count, check.ratio)
        if attempts < max_attempts:
            await asyncio.sleep(interval)
    return ReadinessOutcome(False, attempts, check.count, check.ratio)


async def wait_until_ready(target: str, probe: Callable[[], Awaitable[Any]],
                           predicate: Callable[[Any], ReadinessCheck],
                           *, interval: float, max_attempts: int,
                           settle: float = 0.0) -> ReadinessOutcome:
    """Same as ``await_condition`` but raises ReadinessTimeout on exhaustion."""
    outcome = await await_condition(probe, predicate, interval=interval,
                                    max_attempts=max_attempts, settle=settle)
    if not outcome.ready:
        raise ReadinessTimeout(target, outcome.attempts, outcome.count, outcome.ratio)
    logger.debug(f"{target} ready after {outcome.attempts} attempts "
                 f"(count={outcome.count}, ratio={outcome.ratio:.2f})")
    return outcome


def parse_display_number(text: str) -> Optional[float]:
    """Numeric value of a rendered KPI text such as ``1.25 M`` or ``-3.4%``."""
    cleaned = _NUMERIC_CHARS.sub("", text.replace("−", "-").replace("–", "-"))
    if not cleaned or cleaned in ('-', '.', '-.'):
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def is_numeric_text(text: Optional[str], zero_is_placeholder: bool = True) -> bool:
    """
    Whether a rendered value looks like a loaded number.

    Loading skeletons render placeholder words or a bare ``0``; both count as
    not yet loaded.
    """
    if text is None:
        return False
    value = text.strip()
    if not value or value.lower() in PLACEHOLDER_TEXTS:
        return False
    if zero_is_placeholder and value == '0':
        return False
    return bool(_DIGIT.search(value))


def table_ready(min_rows: int = 2) -> Callable[[Any], ReadinessCheck]:
    """Predicate over a row count: header plus at least one data row."""
    def predicate(row_count: Any) -> ReadinessCheck:
        count = int(row_count or 0)
        return ReadinessCheck(ready=count >= min_rows, count=count, ratio=1.0 if count >= min_rows else 0.0)
    return predicate


def numeric_ready(min_count: int = 3, min_ratio: float = 0.6,
                  zero_is_placeholder: bool = True) -> Callable[[Any], ReadinessCheck]:
    """
    Predicate over the texts of value-bearing elements.

    Ready when enough elements exist, enough of them are numeric, and the
    numbers are not all zero.
    """
    def predicate(texts: Any) -> ReadinessCheck:
        values: List[str] = [str(t) for t in (texts or [])]
        count = len(values)
        if count == 0:
            return ReadinessCheck(ready=False)

        numeric = [text for text in values if is_numeric_text(text, zero_is_placeholder)]
        ratio = len(numeric) / count
        parsed = [parse_display_number(text) for text in numeric]
        all_zero = all(value is None or abs(value) <= 0.001 for value in parsed)
        ready = count >= min_count and ratio >= min_ratio and bool(numeric) and not all_zero
        return ReadinessCheck(ready=ready, count=count, ratio=ratio)
    return predicate


def element_ready(min_count: int = 1) -> Callable[[Any], ReadinessCheck]:
    """Predicate over a count of rendered elements."""
    def predicate(element_count: Any) -> ReadinessCheck:
        count = int(element_count or 0)
        return ReadinessCheck(ready=count >= min_count, count=count, ratio=1.0 if count >= min_count else 0.0)
    return predicate


def build_predicate(kind: str, params: dict) -> Callable[[Any], ReadinessCheck]:
    """Predicate for a readiness kind ('table', 'numeric' or 'chart')."""
    if kind == 'table':
        return table_ready(int(params.get('min_rows', 2)))
    if kind == 'numeric':
        return numeric_ready(
            int(params.get('min_count', 3)),
            float(params.get('min_ratio', 0.6)),
            bool(params.get('zero_is_placeholder', True)),
        )
    if kind == 'chart':
        return element_ready(int(params.get('min_count', 1)))
    raise ValueError(f"Unknown readiness kind: {kind}")


def merge_params(defaults: dict, overrides: Optional[dict]) -> dict:
    """Readiness defaults from settings overlaid with a view's own values."""
    merged = dict(defaults)
    merged.update(overrides or {})
    return merged


def selectors_list(value: Any) -> Sequence[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, Iterable):
        return [str(v) for v in value]
    return []
