"""Port for the LLM that scores discovered URLs and their content."""

from abc import ABC, abstractmethod

from app.domain.entities import ChatMessage, ChatCompletionResult


class ChatProvider(ABC):
    """Single-shot chat completion; the evaluation service parses the reply as JSON."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[ChatMessage],
        model: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatCompletionResult:
        """Return the assistant reply with its token usage.

        Raises:
            ChatProviderError: The provider failed or returned no usable choice.
        """
        ...
