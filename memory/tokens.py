"""Token estimation for context budgeting and cost estimates."""

import math
from abc import ABC, abstractmethod
from typing import Iterable

import tiktoken

from .models import ConversationTurn


class TokenEstimator(ABC):
    """Approximates how many model tokens a text will consume.

    Implementations must be deterministic: the compression loop accepts or
    rejects turns greedily based on these numbers.
    """

    @abstractmethod
    def estimate(self, text: str) -> int:
        """Estimate the token count of a text string."""
        pass

    def estimate_turn(self, turn: ConversationTurn) -> int:
        """Estimate tokens for one turn rendered as "role: content"."""
        return self.estimate(f"{turn.role}: {turn.content}")

    def estimate_turns(self, turns: Iterable[ConversationTurn]) -> int:
        """Sum of per-turn estimates."""
        return sum(self.estimate_turn(turn) for turn in turns)


class HeuristicTokenEstimator(TokenEstimator):
    """Character-based estimate: one token per four characters, rounded up."""

    def __init__(self, chars_per_token: int = 4):
        if chars_per_token <= 0:
            raise ValueError("chars_per_token must be positive")
        self.chars_per_token = chars_per_token

    def estimate(self, text: str) -> int:
        if not text:
            return 0
        return math.ceil(len(text) / self.chars_per_token)


class TiktokenEstimator(TokenEstimator):
    """Exact counts using a tiktoken encoding."""

    def __init__(self, encoding_name: str = "cl100k_base"):
        """
        Initialize the estimator.

        Args:
            encoding_name: Name of the tiktoken encoding to use.
                          "cl100k_base" is used by GPT-4, GPT-3.5-turbo
        """
        self.encoding = tiktoken.get_encoding(encoding_name)

    def estimate(self, text: str) -> int:
        if not text:
            return 0
        return len(self.encoding.encode(text))


def create_token_estimator(kind: str = "heuristic") -> TokenEstimator:
    """
    Create a token estimator by name.

    Args:
        kind: "heuristic" or "tiktoken"

    Raises:
        ValueError: If the kind is not supported
    """
    if kind == "heuristic":
        return HeuristicTokenEstimator()
    elif kind == "tiktoken":
        return TiktokenEstimator()
    else:
        raise ValueError(f"Unsupported token estimator: {kind}")
