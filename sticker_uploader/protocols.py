"""
Protocols (Interfaces) for Dependency Inversion.

Small interfaces so the retry engine and orchestrator can be driven by
scripted fakes in tests.
"""
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional, Protocol, runtime_checkable


Sleeper = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]


@runtime_checkable
class ITransport(Protocol):
    """Interface for a single multipart submission."""

    async def submit(
        self,
        url: str,
        fields: Dict[str, str],
        path: Path,
        filename: Optional[str] = None,
    ):
        """POST fields plus one file; return the raw response or raise TransportFailure."""
        ...
