"""Approximate token counting for pre-flight budget checks."""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Final, Iterable, Optional

import tiktoken

from llm_conductor.types import Message

__all__ = ["TokenEstimator"]

DEFAULT_ENCODING: Final = "cl100k_base"
CHARS_PER_TOKEN: Final = 4
# Every message follows <|start|>{role/name}\n{content}<|end|>\n
TOKENS_PER_MESSAGE: Final = 3
REPLY_PRIMER_TOKENS: Final = 3

_MODEL_ALIASES: Final[dict[str, str]] = {
    "gpt-4-turbo-preview": "gpt-4-0125-preview",
}

EncodingLoader = Callable[[Optional[str]], Any]


def _load_tiktoken_encoding(model: Optional[str]) -> Any:
    if model:
        try:
            return tiktoken.encoding_for_model(_MODEL_ALIASES.get(model, model))
        except KeyError:
            pass
    return tiktoken.get_encoding(DEFAULT_ENCODING)


class TokenEstimator:
    """
    Token counter backed by tiktoken.

    Unknown models use the ``cl100k_base`` encoding. When no encoding can be
    loaded at all (e.g. the BPE file cannot be fetched) the estimator
    degrades to ``ceil(len(text) / 4)`` instead of failing.
    """

    def __init__(
        self,
        *,
        encoding_loader: Optional[EncodingLoader] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._load = encoding_loader or _load_tiktoken_encoding
        self.logger = logger or logging.getLogger(__name__)
        self._encodings: dict[Optional[str], Any] = {}

    def count_tokens(self, text: str, model: Optional[str] = None) -> int:
        if not text:
            return 0
        encoding = self._encoding_for(model)
        if encoding is not None:
            try:
                return len(encoding.encode(text))
            except Exception:
                self.logger.debug("Token encode failed for model %s; using estimation", model, exc_info=True)
        return self._approximate(text)

    estimate = count_tokens

    def count_messages(self, messages: Iterable[Message], model: Optional[str] = None) -> int:
        """Count tokens for a message sequence, including per-message overhead."""
        messages = list(messages)
        if not messages:
            return 0
        try:
            total = 0
            for message in messages:
                if message.content:
                    total += self.count_tokens(message.content, model)
                total += TOKENS_PER_MESSAGE
                if message.name:
                    total += self.count_tokens(message.name, model)
                for call in message.tool_calls or ():
                    total += self.count_tokens(call.name, model)
                    total += self.count_tokens(call.arguments, model)
            return total + REPLY_PRIMER_TOKENS
        except Exception:
            self.logger.warning("Failed to count message tokens; using estimation", exc_info=True)
            text = " ".join((m.content or "") + (m.name or "") for m in messages)
            return self._approximate(text)

    def _encoding_for(self, model: Optional[str]) -> Any:
        if model not in self._encodings:
            try:
                self._encodings[model] = self._load(model)
            except Exception:
                self.logger.warning(
                    "No tiktoken encoding available for model %s; using length heuristic",
                    model,
                    exc_info=True,
                )
                self._encodings[model] = None
        return self._encodings[model]

    @staticmethod
    def _approximate(text: str) -> int:
        return math.ceil(len(text) / CHARS_PER_TOKEN)
