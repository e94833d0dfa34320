from __future__ import annotations

import threading
from unittest.mock import MagicMock, patch

from redis import RedisError

from therasoul.core.slot_lock import (
    InProcessSlotLocks,
    RedisSlotLocks,
    build_slot_locks,
    slot_key,
)


def test_slot_key() -> None:
    assert slot_key("t-1", "2025-01-15", "10:00") == "slot:t-1:2025-01-15:10:00:mutex"


class TestInProcessSlotLocks:
    def test_hold_releases_and_forgets_key(self) -> None:
        locks = InProcessSlotLocks(wait_seconds=0.01)
        with locks.hold("t-1", "2025-01-15", "10:00") as acquired:
            assert acquired
            assert locks.active_keys() == [slot_key("t-1", "2025-01-15", "10:00")]
        assert locks.active_keys() == []

    def test_second_holder_times_out(self) -> None:
        locks = InProcessSlotLocks(wait_seconds=0.05)
        key = slot_key("t-1", "2025-01-15", "10:00")
        token = locks.acquire(key)
        assert token is not None

        results = []
        worker = threading.Thread(target=lambda: results.append(locks.acquire(key)))
        worker.start()
        worker.join()

        assert results == [None]
        locks.release(key, token)
        assert locks.active_keys() == []

    def test_distinct_slots_do_not_block(self) -> None:
        locks = InProcessSlotLocks(wait_seconds=0.01)
        with locks.hold("t-1", "2025-01-15", "10:00") as first:
            with locks.hold("t-1", "2025-01-15", "11:00") as second:
                assert first and second

    def test_release_unknown_key_is_noop(self) -> None:
        InProcessSlotLocks().release("slot:missing", "token")


class TestRedisSlotLocks:
    def test_acquire_uses_set_nx_with_ttl(self) -> None:
        client = MagicMock()
        client.set.return_value = True
        locks = RedisSlotLocks(client, namespace="ts", ttl_s=30, wait_seconds=0)

        token = locks.acquire("slot:a")

        assert token is not None
        client.set.assert_called_once_with("ts:lock:slot:a", token, nx=True, ex=30)

    def test_acquire_gives_up_after_wait(self) -> None:
        client = MagicMock()
        client.set.return_value = None
        locks = RedisSlotLocks(client, wait_seconds=0)
        assert locks.acquire("slot:a") is None

    def test_redis_errors_fail_open(self) -> None:
        client = MagicMock()
        client.set.side_effect = RedisError("connection refused")
        locks = RedisSlotLocks(client, wait_seconds=0)
        assert locks.acquire("slot:a") is not None

    def test_release_is_a_single_compare_and_delete(self) -> None:
        client = MagicMock()
        script = client.register_script.return_value
        locks = RedisSlotLocks(client, namespace="ts")

        script.return_value = 0
        locks.release("slot:a", "mine")
        script.assert_called_once_with(keys=["ts:lock:slot:a"], args=["mine"])

        script.return_value = 1
        locks.release("slot:a", "mine")

        (lua,), _ = client.register_script.call_args
        assert "redis.call('get', KEYS[1]) == ARGV[1]" in lua
        client.get.assert_not_called()
        client.delete.assert_not_called()

    def test_release_swallows_redis_errors(self) -> None:
        client = MagicMock()
        client.register_script.return_value.side_effect = RedisError("timeout")
        RedisSlotLocks(client).release("slot:a", "mine")


class TestBuildSlotLocks:
    def test_without_url_uses_in_process(self, test_settings) -> None:
        assert isinstance(build_slot_locks(test_settings), InProcessSlotLocks)

    def test_unreachable_redis_falls_back(self, test_settings) -> None:
        config = test_settings.model_copy(update={"slot_lock_redis_url": "redis://nowhere:6379/0"})
        client = MagicMock()
        client.ping.side_effect = RedisError("unreachable")
        with patch("therasoul.core.slot_lock.Redis") as redis_cls:
            redis_cls.from_url.return_value = client
            assert isinstance(build_slot_locks(config), InProcessSlotLocks)

    def test_reachable_redis(self, test_settings) -> None:
        config = test_settings.model_copy(
            update={"slot_lock_redis_url": "redis://cache:6379/0", "slot_lock_namespace": "ts"}
        )
        with patch("therasoul.core.slot_lock.Redis") as redis_cls:
            redis_cls.from_url.return_value = MagicMock()
            locks = build_slot_locks(config)
        assert isinstance(locks, RedisSlotLocks)
        assert locks.namespace == "ts"
