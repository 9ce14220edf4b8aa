import pytest
from pymongo.errors import AutoReconnect, OperationFailure

from jalsetu.core.exceptions import DatabaseError
from jalsetu.core.retry import RetryConfig, retry_with_backoff


def no_jitter(max_attempts=3):
    return RetryConfig(max_attempts=max_attempts, base_delay=1.0, max_delay=3.0, jitter=False)


def test_delay_grows_exponentially_up_to_max():
    config = no_jitter()

    assert [config.calculate_delay(attempt) for attempt in range(4)] == [1.0, 2.0, 3.0, 3.0]


def test_retries_connection_errors_then_succeeds():
    sleeps = []
    attempts = []

    @retry_with_backoff(no_jitter(), sleep=sleeps.append)
    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise AutoReconnect("primary stepped down")
        return "ok"

    assert flaky() == "ok"
    assert sleeps == [1.0, 2.0]


def test_gives_up_with_database_error():
    sleeps = []

    @retry_with_backoff(no_jitter(max_attempts=2), operation_name="ping", sleep=sleeps.append)
    def down():
        raise AutoReconnect("no primary")

    with pytest.raises(DatabaseError) as exc_info:
        down()

    assert "ping failed after 2 attempts" in exc_info.value.message
    assert sleeps == [1.0]


def test_other_errors_are_not_retried():
    attempts = []

    @retry_with_backoff(no_jitter(), sleep=lambda delay: None)
    def denied():
        attempts.append(1)
        raise OperationFailure("not authorized", code=13)

    with pytest.raises(OperationFailure):
        denied()

    assert len(attempts) == 1
