"""Request and token budget tracking."""

from __future__ import annotations

from typing import Any, Optional

from llm_conductor.errors import BudgetExceeded, ConfigurationError
from llm_conductor.types import LimitState

__all__ = ["UsageLedger"]

DEFAULT_MAX_TOKENS = 4096
DEFAULT_MAX_REQUESTS = 25


class UsageLedger:
    """
    Holds token and request ceilings with running counters.

    A ceiling of 0 means unlimited. Checks raise `BudgetExceeded`; a failed
    `record_request` leaves both counters untouched.
    """

    def __init__(self, max_tokens: int = DEFAULT_MAX_TOKENS, max_requests: int = DEFAULT_MAX_REQUESTS) -> None:
        self._max_tokens = _validate_limit(max_tokens, "token")
        self._max_requests = _validate_limit(max_requests, "request")
        self._used_tokens = 0
        self._used_requests = 0

    # --- configuration ------------------------------------------------------
    def set_max_tokens(self, limit: int) -> None:
        """Set maximum token limit (0 = unlimited)."""
        self._max_tokens = _validate_limit(limit, "token")

    def set_max_requests(self, limit: int) -> None:
        """Set maximum request limit (0 = unlimited)."""
        self._max_requests = _validate_limit(limit, "request")

    @property
    def max_tokens(self) -> int:
        return self._max_tokens

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def used_tokens(self) -> int:
        return self._used_tokens

    @property
    def used_requests(self) -> int:
        return self._used_requests

    @property
    def is_tokens_unlimited(self) -> bool:
        return self._max_tokens == 0

    @property
    def is_requests_unlimited(self) -> bool:
        return self._max_requests == 0

    @property
    def remaining_tokens(self) -> Optional[int]:
        if self.is_tokens_unlimited:
            return None
        return max(0, self._max_tokens - self._used_tokens)

    @property
    def remaining_requests(self) -> Optional[int]:
        if self.is_requests_unlimited:
            return None
        return max(0, self._max_requests - self._used_requests)

    @property
    def state(self) -> LimitState:
        return LimitState(
            max_tokens=self._max_tokens,
            max_requests=self._max_requests,
            used_tokens=self._used_tokens,
            used_requests=self._used_requests,
        )

    # --- checks -------------------------------------------------------------
    def check_estimated_token_limit(self, estimated_tokens: int) -> None:
        """Reject a request whose estimated size would exceed the token budget."""
        if self.is_tokens_unlimited:
            return
        if self._used_tokens + estimated_tokens > self._max_tokens:
            raise BudgetExceeded(
                f"Estimated token limit would be exceeded. Current usage: {self._used_tokens}, "
                f"estimated additional tokens: {estimated_tokens}, limit: {self._max_tokens}. "
                "Request aborted before reaching the backend.",
                kind="tokens",
                used=self._used_tokens,
                requested=estimated_tokens,
                limit=self._max_tokens,
            )

    def check_token_limit(self, tokens_to_add: int) -> None:
        if self.is_tokens_unlimited:
            return
        if self._used_tokens + tokens_to_add > self._max_tokens:
            raise BudgetExceeded(
                f"Token limit exceeded. Current usage: {self._used_tokens}, "
                f"attempting to add: {tokens_to_add}, limit: {self._max_tokens}",
                kind="tokens",
                used=self._used_tokens,
                requested=tokens_to_add,
                limit=self._max_tokens,
            )

    def check_request_limit(self) -> None:
        if self.is_requests_unlimited:
            return
        if self._used_requests + 1 > self._max_requests:
            raise BudgetExceeded(
                f"Request limit exceeded. Current requests: {self._used_requests}, "
                f"limit: {self._max_requests}",
                kind="requests",
                used=self._used_requests,
                requested=1,
                limit=self._max_requests,
            )

    # --- commit -------------------------------------------------------------
    def record_request(self, actual_tokens: int) -> None:
        """Commit one request and its actual token usage, or raise without mutating."""
        if actual_tokens < 0:
            raise ValueError("actual_tokens cannot be negative")
        self.check_request_limit()
        self.check_token_limit(actual_tokens)

        self._used_requests += 1
        self._used_tokens += actual_tokens

    def reset(self) -> None:
        """Reset usage counters but keep the configured limits."""
        self._used_tokens = 0
        self._used_requests = 0

    def get_limit_info(self) -> dict[str, Any]:
        return {
            "max_tokens": self._max_tokens,
            "max_requests": self._max_requests,
            "current_tokens_used": self._used_tokens,
            "current_request_count": self._used_requests,
            "remaining_tokens": self.remaining_tokens,
            "remaining_requests": self.remaining_requests,
            "is_tokens_unlimited": self.is_tokens_unlimited,
            "is_requests_unlimited": self.is_requests_unlimited,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(tokens={self._used_tokens}/{self._max_tokens or 'inf'}, "
            f"requests={self._used_requests}/{self._max_requests or 'inf'})"
        )


def _validate_limit(limit: int, label: str) -> int:
    if limit < 0:
        raise ConfigurationError(f"Max {label} limit cannot be negative")
    return limit
