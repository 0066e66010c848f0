"""Unit tests for gotowork/healthcheck.py, no real API calls."""

from unittest.mock import AsyncMock

from gotowork.healthcheck import run_health_checks
from gotowork.providers.base import ProviderError
from tests.conftest import MockProvider


async def test_all_providers_pass():
    """All providers succeed -> all marked ok, no errors."""
    providers = [MockProvider("openai/gpt-4o-mini"), MockProvider("deepseek/deepseek-chat")]

    results = await run_health_checks(providers)

    assert results["openai/gpt-4o-mini"] == (True, "")
    assert results["deepseek/deepseek-chat"] == (True, "")


async def test_one_provider_fails():
    """A provider that raises returns ok=False with the error message."""
    ok = MockProvider("openai/gpt-4o-mini")
    broken = MockProvider("grok/grok-3")
    broken.judge = AsyncMock(side_effect=ProviderError("grok/grok-3", "403 Forbidden"))

    results = await run_health_checks([ok, broken])

    assert results["openai/gpt-4o-mini"] == (True, "")
    passed, err = results["grok/grok-3"]
    assert passed is False
    assert "403 Forbidden" in err


async def test_error_without_message_uses_type_name():
    broken = MockProvider("x/y")
    broken.judge = AsyncMock(side_effect=TimeoutError())

    results = await run_health_checks([broken])

    assert results["x/y"] == (False, "TimeoutError")


async def test_empty_provider_list():
    assert await run_health_checks([]) == {}
