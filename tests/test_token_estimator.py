"""Tests for token estimators."""

import pytest
from unittest.mock import Mock, patch
from memory.models import ConversationTurn
from memory.tokens import HeuristicTokenEstimator, TiktokenEstimator, create_token_estimator


class TestHeuristicTokenEstimator:
    """Test the characters-per-token estimate."""

    def setup_method(self):
        """Set up test fixtures."""
        self.estimator = HeuristicTokenEstimator()

    def test_rounds_up(self):
        """Test that partial tokens count as a whole token."""
        assert self.estimator.estimate("abcd") == 1
        assert self.estimator.estimate("abcde") == 2

    def test_empty_text(self):
        """Test that empty text costs nothing."""
        assert self.estimator.estimate("") == 0

    def test_turn_includes_role(self):
        """Test that a turn is estimated as 'role: content'."""
        turn = ConversationTurn(role="user", content="abcd")
        # "user: abcd" is 10 characters
        assert self.estimator.estimate_turn(turn) == 3

    def test_turns_sum(self):
        """Test that estimating several turns sums the per-turn estimates."""
        turns = [
            ConversationTurn(role="user", content="abcd"),
            ConversationTurn(role="assistant", content="abcd"),
        ]
        expected = sum(self.estimator.estimate_turn(t) for t in turns)
        assert self.estimator.estimate_turns(turns) == expected

    def test_invalid_ratio(self):
        """Test that a non-positive ratio is rejected."""
        with pytest.raises(ValueError):
            HeuristicTokenEstimator(chars_per_token=0)


class TestTokenEstimatorFactory:
    """Test estimator selection by name."""

    def test_heuristic(self):
        assert isinstance(create_token_estimator("heuristic"), HeuristicTokenEstimator)

    @patch("memory.tokens.tiktoken.get_encoding")
    def test_tiktoken(self, mock_get_encoding):
        """Test that the tiktoken estimator counts encoded tokens."""
        encoding = Mock()
        encoding.encode.return_value = [1, 2, 3]
        mock_get_encoding.return_value = encoding

        estimator = create_token_estimator("tiktoken")

        assert isinstance(estimator, TiktokenEstimator)
        assert estimator.estimate("hello world") == 3
        assert estimator.estimate("") == 0
        mock_get_encoding.assert_called_once_with("cl100k_base")

    def test_unknown(self):
        with pytest.raises(ValueError):
            create_token_estimator("bytes")
