import pytest

from query_service import ConfigurationError
from query_service.services.backoff import PollBackoff, RetryBackoff


class TestRetryBackoff:

    def test_delay_doubles_per_attempt(self):
        backoff = RetryBackoff(max_jitter=0.0)

        assert [backoff.delay(n) for n in range(4)] == pytest.approx([0.1, 0.2, 0.4, 0.8])

    def test_delay_is_capped(self):
        backoff = RetryBackoff(max_jitter=0.0)

        assert backoff.delay(7) == pytest.approx(10.0)
        assert backoff.delay(50) == pytest.approx(10.0)

    def test_huge_attempt_does_not_overflow(self):
        backoff = RetryBackoff(max_jitter=0.0)

        assert backoff.delay(100_000) == pytest.approx(10.0)

    def test_jitter_comes_from_random_source(self):
        backoff = RetryBackoff(random_source=lambda: 0.5)

        assert backoff.delay(0) == pytest.approx(0.1 + 0.05)
        assert backoff.delay(2) == pytest.approx(0.4 + 0.05)

    def test_jitter_stays_below_max(self):
        backoff = RetryBackoff(random_source=lambda: 0.999999)

        assert 0.1 <= backoff.delay(0) < 0.2

    def test_default_jitter_is_bounded(self):
        backoff = RetryBackoff()

        for _ in range(100):
            assert 0.1 <= backoff.delay(0) < 0.2

    @pytest.mark.parametrize("field", ["base_delay", "max_delay", "max_jitter"])
    def test_negative_values_rejected(self, field):
        with pytest.raises(ConfigurationError):
            RetryBackoff(**{field: -1.0})


class TestPollBackoff:

    def test_intervals_grow_by_half(self):
        intervals = PollBackoff().intervals()

        first = [next(intervals) for _ in range(4)]

        assert first == pytest.approx([0.1, 0.15, 0.225, 0.3375])

    def test_intervals_monotonic_and_capped(self):
        intervals = PollBackoff(start=0.1, maximum=2.0).intervals()

        values = [next(intervals) for _ in range(50)]

        assert values == sorted(values)
        assert max(values) == pytest.approx(2.0)
        assert values[-1] == pytest.approx(2.0)

    def test_start_above_maximum_is_clamped(self):
        intervals = PollBackoff(start=5.0, maximum=2.0).intervals()

        assert next(intervals) == 2.0
        assert next(intervals) == 2.0

    def test_next_interval(self):
        backoff = PollBackoff(maximum=1.0)

        assert backoff.next_interval(0.5) == pytest.approx(0.75)
        assert backoff.next_interval(0.9) == pytest.approx(1.0)

    def test_factor_below_one_rejected(self):
        with pytest.raises(ConfigurationError):
            PollBackoff(factor=0.5)
