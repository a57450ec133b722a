"""Classify raw Bot API responses into attempt outcomes."""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from ..models import AttemptOutcome
from .transport import MalformedResponseFailure, TransportFailure, TransportResponse

logger = logging.getLogger(__name__)

MALFORMED_MESSAGE = "malformed response"
UNKNOWN_ERROR_MESSAGE = "unknown error"


def _retry_after_hint(payload: dict) -> Optional[float]:
    parameters = payload.get("parameters")
    if not isinstance(parameters, dict):
        return None
    value = parameters.get("retry_after")
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value <= 0:
        return None
    return value


def _decode(body: str) -> Optional[dict]:
    try:
        payload: Any = json.loads(body)
    except (TypeError, ValueError):
        return None
    if not isinstance(payload, dict) or "ok" not in payload:
        return None
    return payload


class ResponseClassifier:
    """
    Turns a response (or a transport failure) into an AttemptOutcome.

    The same logic applies to every Bot API method. Undecodable bodies are
    fatal unless ``malformed_is_transient`` is set.
    """

    def __init__(self, malformed_is_transient: bool = False):
        self._malformed_is_transient = malformed_is_transient

    def _malformed(self) -> AttemptOutcome:
        if self._malformed_is_transient:
            return AttemptOutcome.transport_error(MALFORMED_MESSAGE)
        return AttemptOutcome.fatal(MALFORMED_MESSAGE)

    def classify(
        self,
        response: Optional[TransportResponse],
        failure: Optional[TransportFailure] = None,
    ) -> AttemptOutcome:
        if isinstance(failure, MalformedResponseFailure):
            logger.debug("Undecodable response stream: %s", failure)
            return self._malformed()
        if failure is not None or response is None:
            return AttemptOutcome.transport_error(str(failure) if failure else None)

        payload = _decode(response.body)
        if payload is None:
            logger.debug("Undecodable response (HTTP %s): %.200s", response.status_code, response.body)
            return self._malformed()

        if payload.get("ok") is True:
            return AttemptOutcome.success()

        hint = _retry_after_hint(payload)
        if hint is not None:
            return AttemptOutcome.retry_after(hint)

        description = payload.get("description")
        if not isinstance(description, str) or not description.strip():
            description = UNKNOWN_ERROR_MESSAGE
        return AttemptOutcome.fatal(description)
