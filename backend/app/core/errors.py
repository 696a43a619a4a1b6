"""
Error taxonomy for the chat pipeline.

Provider failures are recoverable by falling back to the next provider;
NoProviderAvailable is terminal for the turn.
"""


class ChatError(Exception):
    """Base class for chat pipeline failures."""


class ProviderNotConfigured(ChatError):
    """The provider has no credential; no request was sent."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"{provider} is not configured")


class ProviderError(ChatError):
    """Transport failure or non-2xx response from a provider."""

    def __init__(self, provider: str, status: int | None = None, detail: str = ""):
        self.provider = provider
        self.status = status
        self.detail = detail
        if status is not None:
            message = f"{provider} API error: {status}"
        else:
            message = f"{provider} request failed: {detail}"
        super().__init__(message)


class MalformedResponse(ChatError):
    """A 2xx response without a usable message."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"No message in {provider} response")


class StreamToolCall(ChatError):
    """A streamed reply asked for a tool instead of answering."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"{provider} stream ended with a tool call and no content")


class NoProviderAvailable(ChatError):
    """Every provider failed or none is configured."""

    def __init__(self, configured: bool):
        self.configured = configured
        super().__init__(
            "All LLM providers unavailable" if configured else "No LLM configured"
        )
