"""
Sticker uploader - batch local video stickers into Telegram sticker sets.

Usage:
    from sticker_uploader import UploadOrchestrator, UploadConfig

    config = UploadConfig(token=token, owner_id="123456", bot_username="my_bot")
    async with UploadOrchestrator(config) as orchestrator:
        result = await orchestrator.upload_folder(Path("./output"))

    # 0 when every pack was created, 1 when the Bot API rejected a sticker
    exit_code = result.exit_code
"""
from .orchestrator import UploadOrchestrator, GroupPlanner, FileCollector
from .models import (
    AttemptOutcome,
    Group,
    Item,
    Operation,
    OutcomeKind,
    PackResult,
    PlanEntry,
    RunResult,
    UploadConfig,
)
from .services import (
    HTTPTransport,
    PackNaming,
    ResponseClassifier,
    RetryEngine,
    RetryPolicy,
    TransportFailure,
    TransportResponse,
)

__version__ = "0.1.0"
__all__ = [
    # Main
    "UploadOrchestrator",
    "GroupPlanner",
    "FileCollector",
    # Models
    "AttemptOutcome",
    "Group",
    "Item",
    "Operation",
    "OutcomeKind",
    "PackResult",
    "PlanEntry",
    "RunResult",
    "UploadConfig",
    # Services
    "HTTPTransport",
    "PackNaming",
    "ResponseClassifier",
    "RetryEngine",
    "RetryPolicy",
    "TransportFailure",
    "TransportResponse",
]
