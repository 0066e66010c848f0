"""Provider health checks: ping each configured endpoint with a trivial transcript."""

import asyncio

from gotowork.ensemble import DEFAULT_SYSTEM_PROMPT
from gotowork.providers.base import AIProvider

_PING_TRANSCRIPT = "User: Say hello.\nAssistant: Hello!\n[stop_reason: end_turn]"
_TIMEOUT_SEC = 15.0


async def _check_one(provider: AIProvider) -> tuple[str, bool, str]:
    """Ping a single provider. Returns (name, ok, error_message)."""
    try:
        await asyncio.wait_for(
            provider.judge(DEFAULT_SYSTEM_PROMPT, _PING_TRANSCRIPT),
            timeout=_TIMEOUT_SEC,
        )
        return provider.name(), True, ""
    except Exception as exc:
        return provider.name(), False, str(exc) or type(exc).__name__


async def run_health_checks(
    providers: list[AIProvider],
) -> dict[str, tuple[bool, str]]:
    """Ping all providers in parallel.

    Returns:
        Dict mapping provider name -> (ok, error_message).
        error_message is "" when ok is True.
    """
    results = await asyncio.gather(*(_check_one(p) for p in providers))
    return {name: (ok, err) for name, ok, err in results}
