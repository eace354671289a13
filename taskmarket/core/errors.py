"""
Application errors for clean API error handling.

Use ServiceUnavailableError when a dependency (Solana RPC, Discord, LLM)
is misconfigured or unreachable so the API can return 503 with a user-facing message.
"""


class ServiceUnavailableError(Exception):
    """Raised when a required service (e.g. Solana RPC, OpenAI) is unavailable or misconfigured."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(Exception):
    """Raised when a task, payment or user row does not exist."""


class PaymentError(ServiceUnavailableError):
    """Raised when the treasury wallet or the payment network cannot settle a transfer."""


class DiscordError(Exception):
    """Raised when the Discord API answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Discord API error {status_code}: {body}")
