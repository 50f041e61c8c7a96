"""测试异常的错误码和详情."""

from candlesync.core.exceptions import (
    CacheError,
    CandleSyncError,
    ConfigurationError,
    LockTimeoutError,
    PersistenceError,
    ProviderError,
    RateLimitError,
)


def test_default_error_codes():
    assert CandleSyncError("x").error_code == "GENERAL_ERROR"
    assert ProviderError("x", "stub").error_code == "PROVIDER_ERROR"
    assert RateLimitError("x", "stub").error_code == "RATE_LIMIT_ERROR"
    assert CacheError("x").error_code == "CACHE_ERROR"
    assert PersistenceError("x").error_code == "PERSISTENCE_ERROR"
    assert ConfigurationError("x").error_code == "CONFIGURATION_ERROR"


def test_explicit_error_code_wins():
    error = ProviderError("bad payload", "stub", error_code="PAYLOAD_ERROR")

    assert error.error_code == "PAYLOAD_ERROR"
    assert ProviderError("x", "stub").error_code == "PROVIDER_ERROR"


def test_rate_limit_is_a_provider_error():
    error = RateLimitError("slow down", "twelvedata", retry_after=30)

    assert isinstance(error, ProviderError)
    assert error.details == {"provider": "twelvedata", "retry_after": 30}


def test_to_dict_flattens_details():
    error = LockTimeoutError("candles:sync:EURUSD:5min", 10)

    assert error.to_dict() == {
        "error": "LockTimeoutError",
        "error_code": "LOCK_TIMEOUT",
        "message": "Could not acquire lock 'candles:sync:EURUSD:5min' within 10s",
        "lock_name": "candles:sync:EURUSD:5min",
        "wait_seconds": 10,
    }


def test_optional_details_are_omitted():
    assert PersistenceError("closed").details == {}
    assert PersistenceError("closed", operation="upsert").details == {"operation": "upsert"}
    assert ConfigurationError("bad", field="locks.ttl").field == "locks.ttl"


def test_caller_details_are_copied():
    details = {"symbol": "EUR/USD"}
    error = CandleSyncError("x", details=details)
    error.details["extra"] = 1

    assert details == {"symbol": "EUR/USD"}
