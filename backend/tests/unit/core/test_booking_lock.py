import threading
import time
from unittest.mock import ANY, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.core import booking_lock
from app.core.booking_lock import (
    _namespaced_key,
    coach_credit_lock,
    coach_schedule_lock,
    reset_locks,
    session_capacity_lock,
)
from app.core.config import settings
from app.core.exceptions import LockTimeoutException


def test_same_key_serializes_holders() -> None:
    order = []

    def second_holder() -> None:
        with session_capacity_lock("s1"):
            order.append("second")

    with session_capacity_lock("s1"):
        worker = threading.Thread(target=second_holder)
        worker.start()
        time.sleep(0.05)
        order.append("first")

    worker.join(timeout=2)
    assert order == ["first", "second"]


def test_distinct_keys_do_not_block() -> None:
    with coach_schedule_lock("c1"):
        acquired = []

        def other() -> None:
            with coach_schedule_lock("c2"):
                acquired.append(True)

        worker = threading.Thread(target=other)
        worker.start()
        worker.join(timeout=2)

    assert acquired == [True]


def test_schedule_capacity_and_credit_keys_are_separate() -> None:
    with coach_schedule_lock("same-id"):
        with session_capacity_lock("same-id"):
            with coach_credit_lock("same-id"):
                assert set(booking_lock._LOCKS) == {
                    "coach:same-id:schedule",
                    "session:same-id:capacity",
                    "coach:same-id:credits",
                }


def test_lock_released_on_exception() -> None:
    with pytest.raises(RuntimeError):
        with session_capacity_lock("s1"):
            raise RuntimeError("boom")

    assert booking_lock._LOCKS == {}
    acquired = []

    def reacquire() -> None:
        with session_capacity_lock("s1"):
            acquired.append(True)

    worker = threading.Thread(target=reacquire)
    worker.start()
    worker.join(timeout=2)
    assert acquired == [True]


def test_registry_empties_after_release() -> None:
    for index in range(50):
        with session_capacity_lock(f"s{index}"):
            pass

    assert booking_lock._LOCKS == {}


def test_entry_kept_while_a_waiter_is_queued() -> None:
    entered = threading.Event()
    sizes = []

    def waiter() -> None:
        entered.set()
        with coach_schedule_lock("c1"):
            sizes.append(len(booking_lock._LOCKS))

    with coach_schedule_lock("c1"):
        worker = threading.Thread(target=waiter)
        worker.start()
        entered.wait(timeout=2)
        time.sleep(0.05)

    worker.join(timeout=2)
    assert sizes == [1]
    assert booking_lock._LOCKS == {}


def test_slow_acquire_is_logged(caplog) -> None:
    with patch("app.core.booking_lock.time") as mock_time:
        mock_time.monotonic.side_effect = [10.0, 11.0]
        with caplog.at_level("WARNING"):
            with session_capacity_lock("slow"):
                pass

    assert any(r.getMessage() == "booking_lock_slow_acquire" for r in caplog.records)


def test_local_wait_times_out(monkeypatch) -> None:
    monkeypatch.setattr(settings, "lock_wait_seconds", 0.05)
    outcome = []

    def contender() -> None:
        try:
            with coach_schedule_lock("busy"):
                outcome.append("acquired")
        except LockTimeoutException as exc:
            outcome.append(exc.code)

    with coach_schedule_lock("busy"):
        worker = threading.Thread(target=contender)
        worker.start()
        worker.join(timeout=2)

    assert outcome == ["RESOURCE_BUSY"]
    assert booking_lock._LOCKS == {}


def test_reset_locks_clears_registry() -> None:
    entry = booking_lock._checkout("coach:c1:schedule")
    assert booking_lock._LOCKS

    reset_locks()

    assert booking_lock._LOCKS == {}
    booking_lock._checkin("coach:c1:schedule", entry)


def test_holder_blocks_until_release() -> None:
    released_at = []
    acquired_at = []

    def waiter() -> None:
        with coach_schedule_lock("c1"):
            acquired_at.append(time.monotonic())

    with coach_schedule_lock("c1"):
        worker = threading.Thread(target=waiter)
        worker.start()
        time.sleep(0.05)
        released_at.append(time.monotonic())

    worker.join(timeout=2)
    assert acquired_at and acquired_at[0] >= released_at[0]


class TestRedisLayer:
    def test_set_nx_with_ttl_and_token_release(self) -> None:
        mock_redis = MagicMock()
        mock_redis.set.return_value = True
        mock_redis.eval.return_value = 1

        with patch("app.core.booking_lock._get_sync_redis", return_value=mock_redis):
            with coach_schedule_lock("c1"):
                pass

        name = _namespaced_key("coach:c1:schedule")
        mock_redis.set.assert_called_once_with(
            name, ANY, nx=True, ex=settings.lock_ttl_seconds
        )
        token = mock_redis.set.call_args.args[1]
        mock_redis.eval.assert_called_once_with(booking_lock._RELEASE_SCRIPT, 1, name, token)

    def test_namespaced_key_uses_configured_prefix(self) -> None:
        assert _namespaced_key("session:s1:capacity") == (
            f"{settings.lock_namespace}:lock:session:s1:capacity"
        )

    def test_polls_until_other_worker_releases(self) -> None:
        mock_redis = MagicMock()
        mock_redis.set.side_effect = [None, None, True]
        mock_redis.eval.return_value = 1

        with patch("app.core.booking_lock._get_sync_redis", return_value=mock_redis), patch(
            "app.core.booking_lock.REDIS_POLL_SECONDS", 0
        ):
            with session_capacity_lock("s1"):
                pass

        assert mock_redis.set.call_count == 3

    def test_held_elsewhere_past_deadline_times_out(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "lock_wait_seconds", 0.05)
        mock_redis = MagicMock()
        mock_redis.set.return_value = None

        with patch("app.core.booking_lock._get_sync_redis", return_value=mock_redis):
            with pytest.raises(LockTimeoutException) as exc_info:
                with session_capacity_lock("s1"):
                    pass

        assert exc_info.value.details == {"lock_key": "session:s1:capacity"}
        mock_redis.eval.assert_not_called()
        assert booking_lock._LOCKS == {}

    def test_redis_error_falls_back_to_local_lock(self, caplog) -> None:
        mock_redis = MagicMock()
        mock_redis.set.side_effect = RedisConnectionError("down")
        ran = []

        with patch("app.core.booking_lock._get_sync_redis", return_value=mock_redis):
            with caplog.at_level("WARNING"):
                with session_capacity_lock("s1"):
                    ran.append(True)

        assert ran == [True]
        mock_redis.eval.assert_not_called()
        assert any(
            r.getMessage() == "booking_lock_redis_acquire_failed" for r in caplog.records
        )

    def test_expired_lock_is_reported_on_release(self, caplog) -> None:
        mock_redis = MagicMock()
        mock_redis.set.return_value = True
        mock_redis.eval.return_value = 0

        with patch("app.core.booking_lock._get_sync_redis", return_value=mock_redis):
            with caplog.at_level("WARNING"):
                with coach_schedule_lock("c1"):
                    pass

        assert any(
            r.getMessage() == "booking_lock_expired_before_release" for r in caplog.records
        )


class TestGetSyncRedis:
    def test_unset_url_disables_redis(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "redis_url", "")

        with patch("app.core.booking_lock.Redis") as redis_cls:
            assert booking_lock._get_sync_redis() is None

        redis_cls.from_url.assert_not_called()

    def test_client_is_cached(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "redis_url", "redis://localhost:6379/0")
        client = MagicMock()

        with patch("app.core.booking_lock.Redis") as redis_cls:
            redis_cls.from_url.return_value = client
            assert booking_lock._get_sync_redis() is client
            assert booking_lock._get_sync_redis() is client

        redis_cls.from_url.assert_called_once_with(
            "redis://localhost:6379/0", encoding="utf-8", decode_responses=True
        )
        client.ping.assert_called_once()

    def test_unreachable_server_returns_none(self, monkeypatch, caplog) -> None:
        monkeypatch.setattr(settings, "redis_url", "redis://localhost:6379/0")

        with patch("app.core.booking_lock.Redis") as redis_cls:
            redis_cls.from_url.return_value.ping.side_effect = RedisConnectionError("refused")
            with caplog.at_level("WARNING"):
                assert booking_lock._get_sync_redis() is None

        assert any("booking_lock_redis_unavailable" in r.getMessage() for r in caplog.records)
