"""Abstract base for all ensemble providers."""

from abc import ABC, abstractmethod

from gotowork.models import ProviderVote


class ProviderError(Exception):
    """Raised when a provider call fails or returns no usable verdict."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class AIProvider(ABC):
    """Abstract base for all ensemble providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the provider id, unique per (endpoint, model) pair."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def judge(self, system_prompt: str, transcript_text: str) -> ProviderVote:
        """Ask the model whether the session stopped prematurely.

        Args:
            system_prompt: Instruction text describing the verdict format.
            transcript_text: The formatted transcript window.

        Returns:
            ProviderVote carrying the model's should_continue verdict.

        Raises:
            ProviderError: On API failure, timeout, or unparseable reply.
        """
        ...
