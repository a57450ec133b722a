"""Tests for UploadOrchestrator and FileCollector."""
import json

import pytest

from conftest import ScriptedTransport, network_down, ok_response, rate_limited, rejected
from sticker_uploader.models import Operation, OutcomeKind
from sticker_uploader.orchestrator import FileCollector, UploadOrchestrator


def _method(call):
    return call["url"].rsplit("/", 1)[-1]


class TestUploadOrchestrator:
    @pytest.mark.asyncio
    async def test_empty_input_is_noop(self, config, sleep):
        transport = ScriptedTransport()
        notified = []

        async with UploadOrchestrator(config, transport=transport, sleep=sleep) as orchestrator:
            orchestrator.on_nothing_to_do(lambda: notified.append("nothing"))
            result = await orchestrator.upload_items([])

        assert notified == ["nothing"]
        assert transport.calls == []
        assert result.success is True
        assert result.exit_code == 0
        assert result.packs == []

    @pytest.mark.asyncio
    async def test_250_items_three_packs(self, config, sleep, make_items):
        items = make_items(250)
        transport = ScriptedTransport()

        async with UploadOrchestrator(config, transport=transport, sleep=sleep) as orchestrator:
            result = await orchestrator.upload_items(items)

        assert result.success is True
        assert result.exit_code == 0
        assert result.uploaded_items == 250
        assert [pack.total_items for pack in result.packs] == [100, 100, 50]
        assert [pack.name for pack in result.packs] == [
            "gif_pack_0_42_by_pack_bot",
            "gif_pack_1_42_by_pack_bot",
            "gif_pack_2_42_by_pack_bot",
        ]
        assert len(transport.calls) == 250

        # Second pack: entry 1 creates, entries 2..100 append
        second = transport.calls[100:200]
        assert _method(second[0]) == Operation.CREATE_COLLECTION.method
        assert all(_method(call) == Operation.APPEND_ITEM.method for call in second[1:])
        assert {call["fields"]["name"] for call in second} == {"gif_pack_1_42_by_pack_bot"}

        # Items are sent in order, exactly once
        assert [call["path"] for call in transport.calls] == [item.path for item in items]

    @pytest.mark.asyncio
    async def test_urls_use_token(self, config, sleep, make_items):
        transport = ScriptedTransport()

        async with UploadOrchestrator(config, transport=transport, sleep=sleep) as orchestrator:
            await orchestrator.upload_items(make_items(2))

        assert transport.calls[0]["url"] == "https://api.telegram.org/bot123456:SECRET/createNewStickerSet"
        assert transport.calls[1]["url"] == "https://api.telegram.org/bot123456:SECRET/addStickerToSet"
        assert json.loads(transport.calls[0]["fields"]["stickers"])[0]["format"] == "video"

    @pytest.mark.asyncio
    async def test_fatal_halts_everything(self, config, sleep, make_items):
        items = make_items(5)
        transport = ScriptedTransport([ok_response(), ok_response(), rejected("Bad Request: STICKER_VIDEO_LONG")])
        fatal = []

        async with UploadOrchestrator(config, transport=transport, sleep=sleep) as orchestrator:
            orchestrator.on_fatal(lambda entry, message: fatal.append((entry.position, message)))
            result = await orchestrator.upload_items(items)

        assert len(transport.calls) == 3
        assert [call["path"] for call in transport.calls] == [item.path for item in items[:3]]
        assert result.success is False
        assert result.exit_code != 0
        assert result.uploaded_items == 2
        assert result.failed_item == items[2].name
        assert result.error == "Bad Request: STICKER_VIDEO_LONG"
        assert fatal == [(2, "Bad Request: STICKER_VIDEO_LONG")]

    @pytest.mark.asyncio
    async def test_fatal_on_create_skips_later_groups(self, sticker_config, sleep, make_items):
        transport = ScriptedTransport([ok_response(), ok_response(), rejected("Bad Request: sticker set name is already occupied")])

        async with UploadOrchestrator(sticker_config, transport=transport, sleep=sleep) as orchestrator:
            result = await orchestrator.upload_items(make_items(6))

        # group size 2: pack 0 done, pack 1 create rejected, pack 2 never started
        assert len(transport.calls) == 3
        assert _method(transport.calls[2]) == Operation.CREATE_COLLECTION.method
        assert result.exit_code == 1
        assert [pack.complete for pack in result.packs] == [True, False]

    @pytest.mark.asyncio
    async def test_retries_do_not_skip_or_duplicate(self, config, sleep, make_items):
        items = make_items(3)
        transport = ScriptedTransport([ok_response(), network_down(), rate_limited(7), ok_response(), ok_response()])
        retries = []

        async with UploadOrchestrator(config, transport=transport, sleep=sleep) as orchestrator:
            orchestrator.on_retry(lambda entry, outcome, attempt: retries.append((entry.position, outcome.kind, attempt)))
            result = await orchestrator.upload_items(items)

        assert result.success is True
        assert [call["path"] for call in transport.calls] == [
            items[0].path, items[1].path, items[1].path, items[1].path, items[2].path
        ]
        assert sleep.delays == [5.0, 7]
        assert retries == [(1, OutcomeKind.TRANSPORT_ERROR, 1), (1, OutcomeKind.RETRY_AFTER, 2)]
        assert {_method(call) for call in transport.calls[1:]} == {Operation.APPEND_ITEM.method}

    @pytest.mark.asyncio
    async def test_progress_events(self, sticker_config, sleep, make_items):
        events = []
        transport = ScriptedTransport()

        async with UploadOrchestrator(sticker_config, transport=transport, sleep=sleep) as orchestrator:
            orchestrator.on_pack_start(lambda group, pack: events.append(("start", group.index, pack.title)))
            orchestrator.on_item_complete(lambda entry, done, total: events.append(("item", done, total)))
            orchestrator.on_pack_complete(lambda pack: events.append(("done", pack.link)))
            orchestrator.on_finish(lambda result: events.append(("finish", result.uploaded_items)))
            await orchestrator.upload_items(make_items(3))

        assert events == [
            ("start", 0, "Go GIF Pack Part 1"),
            ("item", 1, 2),
            ("item", 2, 2),
            ("done", "https://t.me/addstickers/gif_pack_0_42_by_pack_bot"),
            ("start", 1, "Go GIF Pack Part 2"),
            ("item", 1, 1),
            ("done", "https://t.me/addstickers/gif_pack_1_42_by_pack_bot"),
            ("finish", 3),
        ]

    @pytest.mark.asyncio
    async def test_listener_errors_do_not_stop_upload(self, config, sleep, make_items):
        transport = ScriptedTransport()

        def broken(*args):
            raise ValueError("listener bug")

        async with UploadOrchestrator(config, transport=transport, sleep=sleep) as orchestrator:
            orchestrator.on_item_complete(broken)
            result = await orchestrator.upload_items(make_items(3))

        assert result.success is True
        assert len(transport.calls) == 3

    @pytest.mark.asyncio
    async def test_upload_folder_sorted(self, config, sleep, tmp_path):
        for name in ["b.webm", "a.webm", "c.webm", "notes.txt"]:
            (tmp_path / name).write_bytes(b"x")
        transport = ScriptedTransport()

        async with UploadOrchestrator(config, transport=transport, sleep=sleep) as orchestrator:
            result = await orchestrator.upload_folder(tmp_path)

        assert result.uploaded_items == 3
        assert [call["path"].name for call in transport.calls] == ["a.webm", "b.webm", "c.webm"]

    @pytest.mark.asyncio
    async def test_requires_context(self, config, make_items):
        orchestrator = UploadOrchestrator(config, transport=ScriptedTransport())
        with pytest.raises(RuntimeError, match="not initialized"):
            await orchestrator.upload_items(make_items(1))

    def test_plan_items_no_network(self, config, make_items):
        orchestrator = UploadOrchestrator(config)
        plan = orchestrator.plan_items(make_items(101))
        assert [len(entries) for _, entries in plan] == [100, 1]


class TestFileCollector:
    def test_collect_files(self, tmp_path):
        (tmp_path / "10.webm").write_bytes(b"x")
        (tmp_path / "02.webm").write_bytes(b"x")
        (tmp_path / "image.gif").write_bytes(b"x")
        (tmp_path / "dir.webm").mkdir()
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "01.webm").write_bytes(b"x")

        files = FileCollector.collect_files(tmp_path)

        assert [path.name for path in files] == ["02.webm", "10.webm"]

    def test_custom_pattern(self, tmp_path):
        (tmp_path / "a.gif").write_bytes(b"x")
        (tmp_path / "b.webm").write_bytes(b"x")
        assert [path.name for path in FileCollector.collect_files(tmp_path, "*.gif")] == ["a.gif"]

    def test_missing_folder(self, tmp_path):
        assert FileCollector.collect_files(tmp_path / "nope") == []

    def test_collect_items(self, tmp_path):
        (tmp_path / "a.webm").write_bytes(b"x")
        items = FileCollector.collect_items(tmp_path)
        assert items[0].name == "a.webm"
        assert items[0].path == tmp_path / "a.webm"
