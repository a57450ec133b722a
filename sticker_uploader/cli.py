"""Command line interface for sticker uploader package."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from rich.logging import RichHandler

from . import __version__
from .cli_progress import (
    PackUploadProgressDisplay,
    mask_token,
    render_configuration_summary,
    render_plan,
)
from .models import MAX_GROUP_SIZE, TELEGRAM_API_BASE, Item, UploadConfig
from .orchestrator import FileCollector, UploadOrchestrator
from .orchestrator.file_collector import DEFAULT_PATTERN

DEFAULT_SOURCE_DIR = "./output"

ENV_TOKEN = "TELEGRAM_BOT_TOKEN"
ENV_USER_ID = "TELEGRAM_USER_ID"
ENV_BOT_USERNAME = "TELEGRAM_BOT_USERNAME"
ENV_API_BASE = "TELEGRAM_API_BASE"


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug, --log-level or LOG_LEVEL is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    env_level = os.getenv("LOG_LEVEL")
    if silent or (not debug and not log_level and not env_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, (log_level or env_level or "INFO").upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    # httpx logs full request URLs, which contain the bot token
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _require_env(name: str) -> str:
    value = (os.getenv(name) or "").strip()
    if not value:
        raise CLIError(f"{name} environment variable is not set")
    return value


def _build_config(args: argparse.Namespace) -> UploadConfig:
    """Merge environment credentials with CLI flags."""
    if not 1 <= args.group_size <= MAX_GROUP_SIZE:
        raise CLIError(f"--group-size must be between 1 and {MAX_GROUP_SIZE}")
    if args.retry_delay < 0:
        raise CLIError("--retry-delay must be >= 0")
    if args.max_attempts is not None and args.max_attempts < 1:
        raise CLIError("--max-attempts must be >= 1")
    if args.deadline is not None and args.deadline <= 0:
        raise CLIError("--deadline must be > 0")

    return UploadConfig(
        token=_require_env(ENV_TOKEN),
        owner_id=_require_env(ENV_USER_ID),
        bot_username=_require_env(ENV_BOT_USERNAME).lstrip("@"),
        api_base=os.getenv(ENV_API_BASE) or TELEGRAM_API_BASE,
        group_size=args.group_size,
        emoji=args.emoji,
        pack_prefix=args.pack_prefix,
        title_prefix=args.title_prefix,
        request_timeout=args.timeout,
        retry_delay=args.retry_delay,
        max_attempts=args.max_attempts,
        deadline=args.deadline,
        malformed_is_transient=args.retry_malformed,
    )


async def _run_upload(config: UploadConfig, items: List[Item]) -> int:
    async with UploadOrchestrator(config) as orchestrator:
        PackUploadProgressDisplay().attach(orchestrator)
        result = await orchestrator.upload_items(items)
    return result.exit_code


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sticker-up",
        description="Upload a folder of video stickers to Telegram as sticker sets of up to 100.",
    )
    parser.add_argument(
        "source",
        nargs="?",
        type=Path,
        default=Path(DEFAULT_SOURCE_DIR),
        help=f"Folder with sticker files (default {DEFAULT_SOURCE_DIR})",
    )
    parser.add_argument(
        "-p",
        "--pattern",
        default=DEFAULT_PATTERN,
        help=f"Glob pattern for sticker files (default {DEFAULT_PATTERN})",
    )
    parser.add_argument(
        "-n",
        "--group-size",
        type=int,
        default=MAX_GROUP_SIZE,
        help=f"Stickers per pack, 1-{MAX_GROUP_SIZE} (default {MAX_GROUP_SIZE})",
    )
    parser.add_argument("--emoji", default="\U0001F525", help="Emoji attached to every sticker")
    parser.add_argument("--pack-prefix", default="gif_pack", help="Prefix of generated pack names")
    parser.add_argument("--title-prefix", default="Go GIF Pack", help="Prefix of generated pack titles")
    parser.add_argument(
        "--retry-delay",
        type=float,
        default=5.0,
        help="Seconds to wait after a network error (default 5)",
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=None,
        help="Give up on a sticker after this many attempts (default: retry forever)",
    )
    parser.add_argument(
        "--deadline",
        type=float,
        default=None,
        help="Give up on a sticker after this many seconds of retrying (default: none)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=60.0,
        help="HTTP timeout per request in seconds (default 60)",
    )
    parser.add_argument(
        "--retry-malformed",
        action="store_true",
        help="Treat undecodable API responses as network errors instead of fatal",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the pack plan and exit without uploading",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"sticker-up {__version__}",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    source = Path(args.source).expanduser()
    if source.exists() and not source.is_dir():
        print(f"ERROR: source is not a directory: {source}", file=sys.stderr)
        return 1

    try:
        config = _build_config(args)
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    items = FileCollector.collect_items(source, args.pattern)
    render_configuration_summary(
        {
            "Source": str(source),
            "Pattern": args.pattern,
            "Files": len(items),
            "Bot": f"@{config.bot_username}",
            "Token": mask_token(config.token),
            "Owner": config.owner_id,
            "Pack Size": config.group_size,
            "Retry Delay": f"{config.retry_delay:g}s",
            "Max Attempts": config.max_attempts or "unbounded",
            "Deadline": f"{config.deadline:g}s" if config.deadline else "none",
            "Malformed": "retry" if config.malformed_is_transient else "fatal",
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    if args.dry_run:
        orchestrator = UploadOrchestrator(config)
        render_plan(orchestrator.plan_items(items), orchestrator.naming)
        return 0

    try:
        return asyncio.run(_run_upload(config, items))
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
