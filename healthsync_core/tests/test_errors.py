import pytest

from healthsync_core.chat.errors import (
    USER_MESSAGES,
    ErrorBanner,
    classify_status,
    classify_transport_error,
    make_error,
)
from healthsync_core.chat.retry import RetryPolicy
from healthsync_core.domain.exceptions import AppError, BusinessError


def test_app_error_is_business_error():
    err = classify_status(429, details="slow down")
    assert isinstance(err, BusinessError)
    assert err.code == "RATE_LIMIT"
    assert err.message == USER_MESSAGES["rate-limit"]
    assert err.details == "slow down"


def test_transport_error_keeps_exception_text():
    err = classify_transport_error(ConnectionError("refused"))
    assert err.kind == "network"
    assert "refused" in err.details


@pytest.mark.parametrize(
    "kind,dismissable",
    [
        ("auth", False),
        ("bad-request", False),
        ("network", True),
        ("rate-limit", True),
        ("server-error", True),
        ("unknown", True),
    ],
)
def test_banner_persistence_per_kind(kind, dismissable):
    banner = ErrorBanner.from_error(make_error(kind))
    assert banner.dismissable is dismissable
    assert banner.retry_available is make_error(kind).retryable


def test_backoff_schedule():
    policy = RetryPolicy()
    assert [policy.delay_ms(n) for n in range(1, 7)] == [0, 1000, 2000, 4000, 8000, 10000]
    assert policy.delay_seconds(2) == 1.0


def test_should_retry_respects_attempt_budget():
    policy = RetryPolicy(max_attempts=3)
    assert policy.should_retry(1, True)
    assert policy.should_retry(2, True)
    assert not policy.should_retry(3, True)
    assert not policy.should_retry(1, False)


def test_app_error_repr():
    err = AppError(kind="unknown", message="m", retryable=True)
    assert "unknown" in repr(err)
