"""Turn a classifier signal and optional ensemble vote into a resume-or-stop decision."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from config.config_loader import DEFAULT_WAIT_SEC, AppConfig
from gotowork.classifier import classify
from gotowork.ensemble import EnsembleUnavailable, tally_votes
from gotowork.models import ConversationRecord, Decision, ErrorSignal, HookEvent, ProviderVote, SignalKind

logger = logging.getLogger(__name__)

Consult = Callable[[list[ConversationRecord]], Awaitable[list[ProviderVote]]]
Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class PolicySettings:
    strategy: str = "hybrid"   # "heuristic", "hybrid", "ai"
    wait_seconds: int = DEFAULT_WAIT_SEC
    fail_open: bool = True

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        wait_override: int | None = None,
        strategy_override: str | None = None,
    ) -> "PolicySettings":
        return cls(
            strategy=strategy_override or config.strategy,
            wait_seconds=config.wait_seconds if wait_override is None else wait_override,
            fail_open=config.fail_open,
        )


def _stop(reason: str) -> Decision:
    return Decision(should_continue=False, wait_seconds=0, reason=reason)


class DecisionPolicy:
    """Combines classifier and ensemble output, enforcing the loop guard.

    Args:
        settings: Immutable policy settings for this invocation.
        consult: Async callable returning ensemble votes for a record
            window. None disables the ensemble entirely.
    """

    def __init__(self, settings: PolicySettings, consult: Consult | None = None) -> None:
        self._settings = settings
        self._consult = consult

    def _signal_wait(self, signal: ErrorSignal) -> int:
        return 0 if signal.skip_wait else self._settings.wait_seconds

    def _fail(self, cause: str) -> Decision:
        if self._settings.fail_open:
            return _stop(cause)
        return Decision(
            should_continue=True,
            wait_seconds=self._settings.wait_seconds,
            reason=f"{cause}; resuming (fail-closed)",
        )

    def _routes_to_ensemble(self, signal: ErrorSignal) -> bool:
        if self._consult is None or self._settings.strategy == "heuristic":
            return False
        if signal.kind is SignalKind.UNKNOWN:
            return True
        return signal.kind is SignalKind.RETRYABLE and self._settings.strategy == "ai"

    def _local(self, signal: ErrorSignal) -> Decision:
        if signal.kind is SignalKind.RETRYABLE:
            return Decision(should_continue=True, wait_seconds=self._signal_wait(signal), reason=signal.reason)
        if signal.kind is SignalKind.UNKNOWN:
            return self._fail(f"Could not determine stop cause: {signal.reason}")
        return _stop(signal.reason)

    async def decide(
        self,
        event: HookEvent,
        records: list[ConversationRecord] | None,
        unreadable_reason: str = "Transcript unavailable",
    ) -> Decision:
        """Decide for one stop event. records=None means the transcript was unreadable."""
        if event.loop_guard_active:
            return _stop("Loop guard active: already resumed once in this stop cycle")

        if not records:
            return self._fail(unreadable_reason if records is None else "Transcript is empty")

        signal = classify(records)
        logger.info("Session %s classified as %s: %s", event.session_id, signal.kind.value, signal.reason)

        if signal.kind in (SignalKind.FATAL, SignalKind.NORMAL):
            return _stop(signal.reason)

        if not self._routes_to_ensemble(signal):
            return self._local(signal)

        try:
            votes = await self._consult(records)
        except EnsembleUnavailable as exc:
            logger.warning("Ensemble unavailable (%s), falling back to local signal", exc)
            return self._local(signal)

        yes = sum(1 for v in votes if v.should_continue)
        tally = f"{yes}/{len(votes)} votes to continue"
        if not tally_votes(votes):
            return _stop(f"AI: task complete ({tally})")

        wait = self._signal_wait(signal) if signal.kind is SignalKind.RETRYABLE else self._settings.wait_seconds
        rationale = next((v.rationale for v in votes if v.should_continue and v.rationale), None)
        reason = f"AI: {rationale} ({tally})" if rationale else f"AI: task incomplete ({tally})"
        return Decision(should_continue=True, wait_seconds=wait, reason=reason)


async def apply_wait(decision: Decision, sleep: Sleep | None = None) -> None:
    """Sleep for the decision's wait. Called after deciding, before responding."""
    if decision.should_continue and decision.wait_seconds > 0:
        logger.info("Waiting %ds before resuming", decision.wait_seconds)
        await (sleep or asyncio.sleep)(decision.wait_seconds)
