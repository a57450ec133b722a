"""
Models for sticker uploader.

Immutable dataclasses describing what gets uploaded and how each attempt ended.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple


TELEGRAM_API_BASE = "https://api.telegram.org"
MAX_GROUP_SIZE = 100


class Operation(Enum):
    """Bot API method used for a plan entry."""
    CREATE_COLLECTION = "createNewStickerSet"
    APPEND_ITEM = "addStickerToSet"

    @property
    def method(self) -> str:
        return self.value


class OutcomeKind(Enum):
    """Classification of a single request attempt."""
    SUCCESS = "success"
    RETRY_AFTER = "retry_after"
    FATAL = "fatal"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True)
class Item:
    """One local media file."""
    path: Path
    name: str = ""

    def __post_init__(self):
        object.__setattr__(self, "path", Path(self.path))
        if not self.name:
            object.__setattr__(self, "name", self.path.name)

    @classmethod
    def from_path(cls, path: Path) -> "Item":
        return cls(path=Path(path))


@dataclass(frozen=True)
class Group:
    """Contiguous batch of items mapped to one sticker set."""
    index: int
    items: Tuple[Item, ...]

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))
        if not self.items:
            raise ValueError("Group must contain at least one item")

    def __len__(self) -> int:
        return len(self.items)

    @property
    def number(self) -> int:
        """1-based index shown to humans."""
        return self.index + 1


@dataclass(frozen=True)
class PlanEntry:
    """One item within one group, tagged with the operation it needs."""
    group_index: int
    position: int
    item: Item
    operation: Operation
    pack_name: str
    fields: Dict[str, str] = field(default_factory=dict, hash=False, compare=True)

    @property
    def creates_collection(self) -> bool:
        return self.operation is Operation.CREATE_COLLECTION


@dataclass(frozen=True)
class AttemptOutcome:
    """Immutable result of one request attempt."""
    kind: OutcomeKind
    delay: Optional[float] = None
    message: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @property
    def is_fatal(self) -> bool:
        return self.kind is OutcomeKind.FATAL

    @property
    def is_retryable(self) -> bool:
        return self.kind in (OutcomeKind.RETRY_AFTER, OutcomeKind.TRANSPORT_ERROR)

    @classmethod
    def success(cls):
        return cls(kind=OutcomeKind.SUCCESS)

    @classmethod
    def retry_after(cls, seconds: float):
        return cls(kind=OutcomeKind.RETRY_AFTER, delay=seconds)

    @classmethod
    def fatal(cls, message: str):
        return cls(kind=OutcomeKind.FATAL, message=message)

    @classmethod
    def transport_error(cls, message: Optional[str] = None):
        return cls(kind=OutcomeKind.TRANSPORT_ERROR, message=message)


@dataclass(frozen=True)
class UploadConfig:
    """Immutable configuration for a sticker upload run."""
    token: str
    owner_id: str
    bot_username: str
    api_base: str = TELEGRAM_API_BASE
    group_size: int = MAX_GROUP_SIZE
    emoji: str = "\U0001F525"
    sticker_format: str = "video"
    pack_prefix: str = "gif_pack"
    title_prefix: str = "Go GIF Pack"
    file_field: str = "sticker_file"
    request_timeout: float = 60.0
    retry_delay: float = 5.0
    max_attempts: Optional[int] = None  # None = retry forever
    deadline: Optional[float] = None    # seconds per entry, None = no deadline
    malformed_is_transient: bool = False

    def method_url(self, operation: Operation) -> str:
        """Full Bot API URL for an operation."""
        return f"{self.api_base.rstrip('/')}/bot{self.token}/{operation.method}"


@dataclass
class PackResult:
    """Outcome of one uploaded sticker set."""
    group_index: int
    name: str
    title: str
    link: str
    total_items: int
    uploaded_items: int = 0

    @property
    def complete(self) -> bool:
        return self.uploaded_items == self.total_items


@dataclass
class RunResult:
    """Result of a full upload run."""
    success: bool
    total_items: int
    uploaded_items: int
    packs: List[PackResult] = field(default_factory=list)
    error: Optional[str] = None
    failed_item: Optional[str] = None

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    @property
    def total_packs(self) -> int:
        return len(self.packs)
