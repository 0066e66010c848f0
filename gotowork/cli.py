"""Click CLI: reads the stop event, runs the decision pipeline, writes the hook response."""

import asyncio
import json
import logging
import sys
from functools import partial

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from config.config_loader import (
    DEFAULT_CONFIG_PATH,
    SAMPLE_CONFIG,
    STRATEGIES,
    AppConfig,
    ConfigError,
    load_config,
)
from gotowork.ensemble import build_providers, run_ensemble
from gotowork.healthcheck import run_health_checks
from gotowork.models import ConversationRecord, Decision, HookEvent
from gotowork.policy import DecisionPolicy, PolicySettings, apply_wait
from gotowork.providers.base import AIProvider
from gotowork.responder import emit
from gotowork.transcript import TranscriptUnreadable, read_transcript_tail

logger = logging.getLogger(__name__)

VERSION = "0.4.0"
LOG_FILE_NAME = "cc-goto-work.log"

# stdout carries the hook response only
console = Console(stderr=True, legacy_windows=False)


def _setup_logging(verbose: bool) -> RichHandler:
    level = logging.DEBUG if verbose else logging.WARNING
    # stderr keeps this level when the debug log lowers the root logger
    handler = RichHandler(console=console, rich_tracebacks=True, show_path=False)
    handler.setLevel(level)
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler])
    return handler


def _enable_debug_log(config: AppConfig) -> None:
    """Append DEBUG records to a log file next to the config file."""
    if config.source_path is None:
        return
    log_path = config.source_path.parent / LOG_FILE_NAME
    try:
        handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError as exc:
        logger.warning("Cannot open debug log %s: %s", log_path, exc)
        return
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    handler.setLevel(logging.DEBUG)
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)


def _parse_event(payload: str) -> HookEvent:
    """Parse the caller's stdin JSON. Raises ValueError on anything but an object."""
    try:
        raw = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ValueError(f"stdin is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise ValueError("stdin must be a JSON object")

    transcript_path = raw.get("transcript_path")
    return HookEvent(
        session_id=str(raw.get("session_id") or ""),
        transcript_path=str(transcript_path) if transcript_path else None,
        loop_guard_active=raw.get("stop_hook_active") is True or raw.get("loop_guard_active") is True,
        cwd=raw.get("cwd"),
        hook_event_name=raw.get("hook_event_name"),
    )


async def _decide(
    event: HookEvent,
    config: AppConfig,
    settings: PolicySettings,
    providers: list[AIProvider],
) -> Decision:
    """Read the transcript, decide, and apply the wait. Returns the final decision."""
    consult = partial(run_ensemble, providers, system_prompt=config.system_prompt) if providers else None
    policy = DecisionPolicy(settings, consult)

    records: list[ConversationRecord] | None = None
    unreadable_reason = "No transcript path in stop event"
    if event.transcript_path and not event.loop_guard_active:
        try:
            records = read_transcript_tail(event.transcript_path, config.tail_bytes, config.max_records)
        except TranscriptUnreadable as exc:
            logger.warning("Transcript unreadable: %s", exc)
            unreadable_reason = f"Transcript unreadable: {exc}"

    decision = await policy.decide(event, records, unreadable_reason)
    logger.info(
        "Decision for %s: %s (wait %ds): %s",
        event.session_id or "?",
        "continue" if decision.should_continue else "stop",
        decision.wait_seconds,
        decision.reason,
    )
    await apply_wait(decision)
    return decision


def _check_providers(providers: list[AIProvider]) -> bool:
    """Run health checks and print results. Returns True when all pass."""
    if not providers:
        console.print("[bold red]Error:[/bold red] No providers available. Check api_key entries in the config.")
        return False

    console.print("[bold]Checking providers...[/bold]")
    results = asyncio.run(run_health_checks(providers))
    for name in sorted(results):
        ok, err = results[name]
        if ok:
            console.print(f"  [green]OK  [/green] {escape(name)}")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {escape(name)}: {escape(short_err)}")
    return all(ok for ok, _ in results.values())


@click.command()
@click.option("--config", "-c", "config_path", default=str(DEFAULT_CONFIG_PATH), show_default=True,
              envvar="CC_GOTO_WORK_CONFIG", help="Path to config.yaml")
@click.option("--wait", "wait_seconds", default=None, type=click.IntRange(min=0),
              help="Seconds to wait before resuming after a retryable error (default: from config)")
@click.option("--strategy", default=None, type=click.Choice(STRATEGIES),
              help="Decision strategy (default: from config)")
@click.option("--check", "check_only", is_flag=True, default=False,
              help="Ping every configured provider and exit")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.version_option(VERSION, prog_name="cc-goto-work")
def main(
    config_path: str,
    wait_seconds: int | None,
    strategy: str | None,
    check_only: bool,
    verbose: bool,
) -> None:
    """cc-goto-work -- Claude Code stop hook that resumes spurious stops.

    Reads the stop event as JSON on stdin and writes the hook response as
    JSON on stdout.

    \b
    Examples:
      cc-goto-work < event.json
      cc-goto-work --wait 10 --config ./config.yaml < event.json
      cc-goto-work --strategy heuristic < event.json
      cc-goto-work --check
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config(config_path)
    except ConfigError as exc:
        console.print(f"[bold red]Config error:[/bold red] {escape(str(exc))}")
        console.print("Create a config file with the following format:\n")
        console.print(SAMPLE_CONFIG, markup=False, highlight=False)
        sys.exit(1)

    if config.debug:
        _enable_debug_log(config)

    settings = PolicySettings.from_config(config, wait_override=wait_seconds, strategy_override=strategy)
    providers = build_providers(config) if settings.strategy != "heuristic" or check_only else []

    if check_only:
        sys.exit(0 if _check_providers(providers) else 1)

    try:
        event = _parse_event(sys.stdin.read())
    except ValueError as exc:
        console.print(f"[bold red]Input error:[/bold red] {escape(str(exc))}")
        sys.exit(1)

    decision = asyncio.run(_decide(event, config, settings, providers))
    emit(decision, sys.stdout)


if __name__ == "__main__":
    main()
