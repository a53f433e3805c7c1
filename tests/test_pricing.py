"""Tests for token accounting and cost estimation."""

import pytest

from devday.pricing import estimate_cost, get_model_pricing, sum_tokens
from devday.protocol import TokenUsage


class TestSumTokens:
    def test_no_operands_is_zero(self):
        assert sum_tokens() == TokenUsage()

    def test_pointwise_sum_includes_total(self):
        a = TokenUsage.from_buckets(input=10, output=5, reasoning=1)
        b = TokenUsage.from_buckets(input=1, cache_read=7, cache_write=2)
        total = sum_tokens(a, b)
        assert total.input == 11
        assert total.output == 5
        assert total.reasoning == 1
        assert total.cache_read == 7
        assert total.cache_write == 2
        assert total.total == 26

    def test_associative_and_commutative(self):
        a = TokenUsage.from_buckets(input=1, output=2)
        b = TokenUsage.from_buckets(reasoning=3, cache_read=4)
        c = TokenUsage.from_buckets(cache_write=5, input=6)
        assert sum_tokens(sum_tokens(a, b), c) == sum_tokens(a, sum_tokens(b, c))
        assert sum_tokens(a, b) == sum_tokens(b, a)

    def test_from_buckets_total_is_sum(self):
        usage = TokenUsage.from_buckets(input=100, output=50, reasoning=10, cache_read=20)
        assert usage.total == 180


class TestEstimateCost:
    def test_known_model(self):
        usage = TokenUsage.from_buckets(input=1_000_000, output=500_000)
        assert estimate_cost("gpt-4o", usage) == pytest.approx(7.5)

    def test_unknown_model_uses_default(self):
        usage = TokenUsage.from_buckets(input=1_000_000, output=1_000_000)
        assert estimate_cost("some-unknown-model", usage) == pytest.approx(18.0)

    def test_cache_and_reasoning_not_priced(self):
        usage = TokenUsage.from_buckets(reasoning=1_000_000, cache_read=1_000_000, cache_write=1_000_000)
        assert estimate_cost("gpt-4o", usage) == 0.0

    def test_none_model_uses_default(self):
        assert get_model_pricing(None) == {"input": 3.0, "output": 15.0}
