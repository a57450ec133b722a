"""Shared fixtures for sticker uploader tests."""
import json
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from sticker_uploader.models import Item, UploadConfig
from sticker_uploader.services.transport import TransportFailure, TransportResponse


def ok_response() -> TransportResponse:
    return TransportResponse(200, json.dumps({"ok": True, "result": True}))


def rate_limited(seconds) -> TransportResponse:
    return TransportResponse(
        429,
        json.dumps({
            "ok": False,
            "error_code": 429,
            "description": f"Too Many Requests: retry after {seconds}",
            "parameters": {"retry_after": seconds},
        }),
    )


def rejected(description: str = "Bad Request: STICKERSET_INVALID") -> TransportResponse:
    return TransportResponse(400, json.dumps({"ok": False, "error_code": 400, "description": description}))


class ScriptedTransport:
    """Fake ITransport returning queued responses, then ``default`` once the script runs out."""

    def __init__(self, script=None, default: Optional[TransportResponse] = None):
        self.script = list(script or [])
        self.default = default or ok_response()
        self.calls: List[Dict] = []

    async def submit(self, url: str, fields: Dict[str, str], path: Path, filename: Optional[str] = None):
        self.calls.append({"url": url, "fields": dict(fields), "path": Path(path), "filename": filename})
        step = self.script.pop(0) if self.script else self.default
        if isinstance(step, BaseException):
            raise step
        return step


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def config():
    return UploadConfig(token="123456:SECRET", owner_id="42", bot_username="pack_bot")


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def make_items(tmp_path):
    def _make(count: int) -> List[Item]:
        items = []
        for idx in range(count):
            path = tmp_path / f"sticker_{idx:04d}.webm"
            path.write_bytes(b"webm" + str(idx).encode())
            items.append(Item.from_path(path))
        return items
    return _make


def network_down() -> TransportFailure:
    return TransportFailure("ConnectError: connection refused")


@pytest.fixture
def sticker_config(config):
    """Config with two stickers per pack."""
    return UploadConfig(
        token=config.token,
        owner_id=config.owner_id,
        bot_username=config.bot_username,
        group_size=2,
    )
