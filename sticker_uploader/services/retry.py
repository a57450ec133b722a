"""
Retry engine - drives one plan entry to a terminal outcome.

Flow per attempt:
1. Transport submits fields + file (file re-read every attempt)
2. Classifier turns the response into an AttemptOutcome
3. SUCCESS / FATAL end the loop, TRANSPORT_ERROR waits the fixed delay,
   RETRY_AFTER waits exactly what the server asked for
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..models import AttemptOutcome, OutcomeKind
from ..protocols import Clock, ITransport, Sleeper
from .classifier import ResponseClassifier
from .transport import TransportFailure

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY = 5.0

RetryCallback = Callable[[AttemptOutcome, int], Any]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounds for the retry loop.

    Both bounds default to None, which means retry forever.
    """
    retry_delay: float = DEFAULT_RETRY_DELAY
    max_attempts: Optional[int] = None
    deadline: Optional[float] = None

    def __post_init__(self):
        if self.retry_delay < 0:
            raise ValueError("retry_delay must be >= 0")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.deadline is not None and self.deadline <= 0:
            raise ValueError("deadline must be > 0")

    @property
    def unbounded(self) -> bool:
        return self.max_attempts is None and self.deadline is None

    def exhausted(self, attempts: int, elapsed: float, next_delay: float) -> bool:
        """True when no further attempt is allowed."""
        if self.max_attempts is not None and attempts >= self.max_attempts:
            return True
        if self.deadline is not None and elapsed + next_delay > self.deadline:
            return True
        return False

    def delay_for(self, outcome: AttemptOutcome) -> float:
        if outcome.kind is OutcomeKind.RETRY_AFTER and outcome.delay is not None:
            return float(outcome.delay)
        return self.retry_delay


class RetryEngine:
    """
    Wraps Transport + Classifier in a retry loop.

    Usage:
        engine = RetryEngine(transport)
        outcome = await engine.send(url, fields, path)
        if outcome.is_fatal:
            ...  # caller stops the run
    """

    def __init__(
        self,
        transport: ITransport,
        classifier: Optional[ResponseClassifier] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Optional[Sleeper] = None,
        clock: Optional[Clock] = None,
    ):
        self._transport = transport
        self._classifier = classifier or ResponseClassifier()
        self._policy = policy or RetryPolicy()
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.monotonic

    async def _attempt(
        self,
        url: str,
        fields: Dict[str, str],
        path: Path,
        filename: Optional[str],
    ) -> AttemptOutcome:
        try:
            response = await self._transport.submit(url, fields, path, filename)
        except TransportFailure as exc:
            return self._classifier.classify(None, exc)
        return self._classifier.classify(response)

    async def send(
        self,
        url: str,
        fields: Dict[str, str],
        path: Path,
        filename: Optional[str] = None,
        on_retry: Optional[RetryCallback] = None,
    ) -> AttemptOutcome:
        """Submit until SUCCESS or FATAL. Never raises for remote or network errors."""
        path = Path(path)
        name = filename or path.name
        started = self._clock()
        attempts = 0

        while True:
            attempts += 1
            try:
                outcome = await self._attempt(url, fields, path, filename)
            except OSError as exc:
                logger.error("Cannot read %s: %s", name, exc)
                return AttemptOutcome.fatal(f"cannot read {name}: {exc}")

            if outcome.is_success:
                if attempts > 1:
                    logger.debug("%s succeeded after %d attempts", name, attempts)
                return outcome

            if outcome.is_fatal:
                logger.error("Remote rejected %s: %s", name, outcome.message)
                return outcome

            delay = self._policy.delay_for(outcome)
            elapsed = self._clock() - started
            if self._policy.exhausted(attempts, elapsed, delay):
                reason = outcome.message or outcome.kind.value
                logger.error("Giving up on %s after %d attempts (%s)", name, attempts, reason)
                return AttemptOutcome.fatal(f"gave up after {attempts} attempts: {reason}")

            if outcome.kind is OutcomeKind.RETRY_AFTER:
                logger.warning("Rate limited on %s, sleeping for %s seconds", name, _fmt(delay))
            else:
                logger.warning(
                    "Network error on %s (%s), retrying in %ss",
                    name,
                    outcome.message or "no response",
                    _fmt(delay),
                )

            if on_retry is not None:
                result = on_retry(outcome, attempts)
                if inspect.isawaitable(result):
                    await result

            await self._sleep(delay)


def _fmt(seconds: float) -> str:
    return str(int(seconds)) if float(seconds).is_integer() else f"{seconds:.2f}"
