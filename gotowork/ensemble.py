"""Provider ensemble: concurrent verdict requests, abstention handling, majority vote."""

import asyncio
import logging

from config.config_loader import AppConfig
from gotowork.models import ConversationRecord, ProviderVote
from gotowork.providers.base import AIProvider, ProviderError
from gotowork.providers.openai_compat import OpenAICompatibleProvider
from gotowork.transcript import format_transcript

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = """\
You are a supervisor monitoring a Claude Code session. Claude Code is an AI coding \
assistant that helps users with programming tasks through conversation.

Your task: read the transcript and decide whether Claude stopped working \
prematurely or finished properly.

Return "should_continue": true if:
- Claude's reply was cut off mid-sentence or mid-code (output truncation)
- Claude hit an API error, rate limit, or server issue
- Claude said it would do something but did not do it
- Claude gave a partial answer and clearly has more work to do
- The last message ends abruptly without a conclusion
- An [Error: ...] line shows a problem that interrupted the work

Return "should_continue": false if:
- The requested task is complete
- Claude asked the user a question and is waiting for an answer
- Claude said it is done or asked for feedback
- The conversation reached a natural stopping point
- Claude explained it cannot do something (legitimate refusal)

Respond with ONLY a JSON object, no other text:
{"should_continue": true, "reason": "brief explanation"}
or
{"should_continue": false, "reason": "brief explanation"}"""


class EnsembleUnavailable(Exception):
    """Raised when the ensemble collects no valid vote."""


def build_providers(config: AppConfig) -> list[AIProvider]:
    """One provider per configured (endpoint, model) pair with an API key."""
    providers: list[AIProvider] = []
    for endpoint in config.endpoints():
        try:
            providers.append(OpenAICompatibleProvider(endpoint))
        except ProviderError as exc:
            logger.warning("Failed to instantiate provider: %s", exc)
    return providers


async def _call_provider(
    provider: AIProvider,
    system_prompt: str,
    transcript_text: str,
) -> ProviderVote | ProviderError:
    """Call a single provider. Never raises; returns ProviderError on failure."""
    try:
        return await provider.judge(system_prompt, transcript_text)
    except ProviderError as exc:
        logger.warning("Provider %s abstained: %s", provider.name(), exc)
        return exc
    except Exception as exc:
        logger.warning("Provider %s unexpected failure: %s", provider.name(), exc)
        return ProviderError(provider.name(), f"Unexpected error: {exc}")


async def run_ensemble(
    providers: list[AIProvider],
    records: list[ConversationRecord],
    system_prompt: str | None = None,
) -> list[ProviderVote]:
    """Ask every provider concurrently and return the valid votes.

    Each provider enforces its own timeout, so a straggler is abandoned
    rather than holding up the rest.

    Raises:
        EnsembleUnavailable: If there is nothing to ask, or no provider
            returned a valid vote.
    """
    if not providers:
        raise EnsembleUnavailable("No providers configured")

    transcript_text = format_transcript(records)
    if not transcript_text:
        raise EnsembleUnavailable("Transcript has nothing to judge")

    prompt = system_prompt or DEFAULT_SYSTEM_PROMPT
    logger.info("Consulting %d providers", len(providers))

    results = await asyncio.gather(
        *(_call_provider(p, prompt, transcript_text) for p in providers)
    )
    votes = [r for r in results if isinstance(r, ProviderVote)]

    logger.info("Ensemble complete: %d/%d providers voted", len(votes), len(providers))
    if not votes:
        raise EnsembleUnavailable(f"All {len(providers)} providers abstained")
    return votes


def tally_votes(votes: list[ProviderVote]) -> bool:
    """Majority of should_continue. An even split continues."""
    if not votes:
        raise ValueError("Cannot tally an empty vote")
    yes = sum(1 for v in votes if v.should_continue)
    return yes >= len(votes) - yes
