"""Core orchestrator - drives the upload plan through the retry engine."""
import logging
from functools import partial
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from ..models import AttemptOutcome, Group, Item, PackResult, PlanEntry, RunResult, UploadConfig
from ..protocols import Clock, ITransport, Sleeper
from ..services.classifier import ResponseClassifier
from ..services.naming import PackNaming
from ..services.retry import RetryEngine, RetryPolicy
from ..services.transport import HTTPTransport
from ..utils.events import EventEmitter
from .file_collector import DEFAULT_PATTERN, FileCollector
from .planner import GroupPlanner

logger = logging.getLogger(__name__)


class UploadOrchestrator:
    """
    Uploads sticker groups in order, one entry at a time.

    Follows:
    - Dependency Injection (transport, sleep and clock injectable)
    - Single Responsibility (planning, retrying and transport live elsewhere)

    Usage:
        async with UploadOrchestrator(config) as orchestrator:
            orchestrator.on_pack_complete(lambda pack: print(pack.link))
            result = await orchestrator.upload_folder(Path("./output"))
        raise SystemExit(result.exit_code)
    """

    def __init__(
        self,
        config: UploadConfig,
        transport: Optional[ITransport] = None,
        sleep: Optional[Sleeper] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize orchestrator with dependencies.

        Args:
            config: Upload configuration (credentials, naming, retry bounds)
            transport: Pre-built transport; an HTTPTransport is created when omitted
            sleep: Awaitable sleep used between retries (asyncio.sleep by default)
            clock: Monotonic clock used for deadline checks
        """
        self._config = config
        self._external_transport = transport
        self._sleep = sleep
        self._clock = clock
        self._events = EventEmitter()

        self._naming = PackNaming(
            owner_id=config.owner_id,
            bot_username=config.bot_username,
            pack_prefix=config.pack_prefix,
            title_prefix=config.title_prefix,
        )
        self._planner = GroupPlanner(
            self._naming,
            group_size=config.group_size,
            emoji=config.emoji,
            sticker_format=config.sticker_format,
            file_field=config.file_field,
        )

        # Initialized in __aenter__
        self._transport: Optional[ITransport] = None
        self._owned_transport: Optional[HTTPTransport] = None
        self._engine: Optional[RetryEngine] = None

    async def __aenter__(self):
        """Initialize transport and retry engine."""
        if self._external_transport is not None:
            self._transport = self._external_transport
        else:
            self._owned_transport = HTTPTransport(
                timeout=self._config.request_timeout,
                file_field=self._config.file_field,
            )
            await self._owned_transport.__aenter__()
            self._transport = self._owned_transport

        self._engine = RetryEngine(
            self._transport,
            classifier=ResponseClassifier(self._config.malformed_is_transient),
            policy=RetryPolicy(
                retry_delay=self._config.retry_delay,
                max_attempts=self._config.max_attempts,
                deadline=self._config.deadline,
            ),
            sleep=self._sleep,
            clock=self._clock,
        )
        return self

    async def __aexit__(self, *args):
        """Cleanup resources."""
        if self._owned_transport is not None:
            await self._owned_transport.__aexit__(*args)
            self._owned_transport = None

    # Event subscription methods
    def on_nothing_to_do(self, callback: Callable[[], None]):
        """Called once when there is nothing to upload."""
        self._events.on("nothing_to_do", callback)

    def on_pack_start(self, callback: Callable[[Group, PackResult], None]):
        """Called before the first entry of a group is sent."""
        self._events.on("pack_start", callback)

    def on_item_complete(self, callback: Callable[[PlanEntry, int, int], None]):
        """Called after each entry succeeds. Receives entry, done count and group size."""
        self._events.on("item_complete", callback)

    def on_pack_complete(self, callback: Callable[[PackResult], None]):
        """Called when every entry of a group succeeded."""
        self._events.on("pack_complete", callback)

    def on_retry(self, callback: Callable[[PlanEntry, AttemptOutcome, int], None]):
        """Called before each retry sleep. Receives entry, outcome and attempt number."""
        self._events.on("retry", callback)

    def on_fatal(self, callback: Callable[[PlanEntry, str], None]):
        """Called when an entry ends fatally; the run stops right after."""
        self._events.on("fatal", callback)

    def on_finish(self, callback: Callable[[RunResult], None]):
        """Called with the final RunResult."""
        self._events.on("finish", callback)

    @property
    def planner(self) -> GroupPlanner:
        return self._planner

    @property
    def naming(self) -> PackNaming:
        return self._naming

    def plan_items(self, items: Iterable[Item]) -> List[Tuple[Group, List[PlanEntry]]]:
        """Plan without any network I/O (used for dry runs)."""
        return self._planner.plan(list(items))

    async def _finish(self, result: RunResult) -> RunResult:
        await self._events.emit("finish", result)
        return result

    async def _notify_retry(self, entry: PlanEntry, outcome: AttemptOutcome, attempt: int):
        await self._events.emit("retry", entry, outcome, attempt)

    async def upload_items(self, items: Iterable[Item]) -> RunResult:
        """
        Upload every item, group by group, strictly in order.

        Returns a failed RunResult as soon as one entry ends fatally; entries
        after it are never sent.
        """
        if self._engine is None:
            raise RuntimeError("UploadOrchestrator not initialized. Use 'async with' context.")

        items = list(items)
        plan = self._planner.plan(items)
        if not plan:
            logger.info("No files to upload")
            await self._events.emit("nothing_to_do")
            return await self._finish(RunResult(success=True, total_items=0, uploaded_items=0))

        logger.info("Uploading %d files in %d packs", len(items), len(plan))
        uploaded = 0
        packs: List[PackResult] = []

        for group, entries in plan:
            pack_name = entries[0].pack_name
            pack = PackResult(
                group_index=group.index,
                name=pack_name,
                title=self._naming.title(group.index),
                link=self._naming.link(pack_name),
                total_items=len(entries),
            )
            packs.append(pack)
            logger.info("Creating pack %s (%d stickers)", pack.name, pack.total_items)
            await self._events.emit("pack_start", group, pack)

            for entry in entries:
                outcome = await self._engine.send(
                    self._config.method_url(entry.operation),
                    entry.fields,
                    entry.item.path,
                    entry.item.name,
                    on_retry=partial(self._notify_retry, entry),
                )

                if not outcome.is_success:
                    message = outcome.message or "unknown error"
                    logger.error(
                        "Stopping: %s failed on %s (%s)",
                        entry.operation.method,
                        entry.item.name,
                        message,
                    )
                    await self._events.emit("fatal", entry, message)
                    return await self._finish(
                        RunResult(
                            success=False,
                            total_items=len(items),
                            uploaded_items=uploaded,
                            packs=packs,
                            error=message,
                            failed_item=entry.item.name,
                        )
                    )

                pack.uploaded_items += 1
                uploaded += 1
                logger.debug("[%d/%d] Added %s to %s", pack.uploaded_items, pack.total_items, entry.item.name, pack.name)
                await self._events.emit("item_complete", entry, pack.uploaded_items, pack.total_items)

            logger.info("Pack done: %s", pack.link)
            await self._events.emit("pack_complete", pack)

        return await self._finish(
            RunResult(success=True, total_items=len(items), uploaded_items=uploaded, packs=packs)
        )

    async def upload_folder(self, folder: Path, pattern: str = DEFAULT_PATTERN) -> RunResult:
        """Collect ``pattern`` files from ``folder`` in sorted order and upload them."""
        items = FileCollector.collect_items(Path(folder), pattern)
        logger.debug("Collected %d files from %s", len(items), folder)
        return await self.upload_items(items)
