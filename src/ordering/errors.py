"""Error taxonomy for the ordering context.

Input and lookup failures reuse Protean's ``ValidationError`` and
``ObjectNotFoundError`` so that command field validation and repository
lookups surface through the same types. The remaining errors describe
failures Protean has no notion of.
"""

from protean.exceptions import ValidationError


class InvariantViolation(Exception):
    """A computed financial value is negative or inconsistent.

    Indicates a validation gap upstream; the operation is aborted and
    nothing is persisted.
    """


class AuthenticationFailed(Exception):
    """An inbound provider callback failed checksum or merchant verification."""


class UpstreamProviderError(Exception):
    """A payment or shipping provider call failed or timed out.

    The caller may retry; no local state was changed.
    """

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
        self.status_code = status_code


class InsufficientStockError(ValidationError):
    """A stock decrement would take a product below zero."""
