import pytest

from user_service.observability.rate_limit import TokenBucket


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_bucket_starts_full_and_drains() -> None:
    clock = FakeClock()
    bucket = TokenBucket(rate=1.0, burst=3, clock=clock)

    assert [bucket.allow() for _ in range(4)] == [True, True, True, False]


def test_bucket_refills_over_time_up_to_burst() -> None:
    clock = FakeClock()
    bucket = TokenBucket(rate=2.0, burst=2, clock=clock)
    bucket.allow()
    bucket.allow()
    assert bucket.allow() is False

    clock.now += 0.5
    assert bucket.allow() is True
    assert bucket.allow() is False

    clock.now += 60
    assert bucket.tokens == pytest.approx(0.0)
    assert bucket.allow() is True
    assert bucket.tokens == pytest.approx(1.0)


def test_zero_rate_never_refills() -> None:
    clock = FakeClock()
    bucket = TokenBucket(rate=0.0, burst=1, clock=clock)
    assert bucket.allow() is True

    clock.now += 3600
    assert bucket.allow() is False


def test_clock_going_backwards_does_not_drain() -> None:
    clock = FakeClock()
    bucket = TokenBucket(rate=1.0, burst=2, clock=clock)

    clock.now -= 10
    assert bucket.allow() is True
    assert bucket.tokens == pytest.approx(1.0)


@pytest.mark.parametrize(("rate", "burst"), [(-1.0, 1), (1.0, -1)])
def test_negative_arguments_rejected(rate: float, burst: int) -> None:
    with pytest.raises(ValueError):
        TokenBucket(rate=rate, burst=burst)
