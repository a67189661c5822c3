"""Tests for boshpush/push/registry.py"""

import random
import threading

import pytest

from boshpush.push.registry import SessionRegistry


def _assert_consistent(registry: SessionRegistry):
    """Every device entry points at a session holding that token, and vice versa."""
    sessions = registry._sessions
    devices = registry._devices
    for token, sid in devices.items():
        assert sessions[sid].device_token == token
    for sid, registration in sessions.items():
        assert devices[registration.device_token] == sid


class TestRegister:
    def test_register_and_lookup(self, registry):
        assert registry.register("s1", "tokA") is True

        registration = registry.lookup("s1")
        assert registration is not None
        assert registration.device_token == "tokA"
        assert registration.badge == 0

    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_token_rejected(self, registry, token):
        assert registry.register("s1", token) is False
        assert registry.lookup("s1") is None
        assert len(registry) == 0

    def test_info_is_kept(self, registry):
        registry.register("s1", "tokA", info={"sid": "s1", "device-token": "tokA", "jid": "bob@x"})
        assert registry.lookup("s1").info["jid"] == "bob@x"

    def test_reregister_same_token_keeps_badge(self, registry):
        registry.register("s1", "tokA")
        registry.set_badge("s1", 4)

        assert registry.register("s1", "tokA") is True
        assert registry.lookup("s1").badge == 4
        assert len(registry) == 1

    def test_reregister_new_token_frees_old_token(self, registry):
        registry.register("s1", "tokA")
        registry.register("s1", "tokB")

        assert registry.lookup("s1").device_token == "tokB"
        assert registry.lookup_device("tokA") is None
        assert registry.lookup_device("tokB") == "s1"
        _assert_consistent(registry)


class TestEviction:
    def test_new_sid_evicts_previous_owner(self, registry):
        registry.register("s1", "tokA")
        registry.register("s2", "tokA")

        assert registry.lookup("s1") is None
        assert "s1" not in registry
        assert registry.lookup("s2").device_token == "tokA"
        assert registry.lookup_device("tokA") == "s2"
        _assert_consistent(registry)

    def test_eviction_leaves_other_devices_alone(self, registry):
        registry.register("s1", "tokA")
        registry.register("s3", "tokC")
        registry.register("s2", "tokA")

        assert registry.lookup("s3").device_token == "tokC"
        assert len(registry) == 2

    def test_random_sequences_keep_one_sid_per_token(self, registry):
        rng = random.Random(1234)
        sids = [f"s{i}" for i in range(8)]
        tokens = [f"tok{i}" for i in range(4)]

        for _ in range(500):
            action = rng.random()
            sid = rng.choice(sids)
            if action < 0.6:
                registry.register(sid, rng.choice(tokens))
            elif action < 0.8:
                registry.unregister(sid)
            else:
                registry.remove_by_stream_termination(sid)

            _assert_consistent(registry)
            live_tokens = [r.device_token for r in registry.snapshot()]
            assert len(live_tokens) == len(set(live_tokens))

    def test_concurrent_registrations_stay_consistent(self, registry):
        barrier = threading.Barrier(8)

        def worker(n):
            barrier.wait()
            for i in range(200):
                registry.register(f"s{n}-{i}", f"tok{i % 3}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        _assert_consistent(registry)
        assert len(registry) == 3


class TestUnregister:
    def test_unregister_removes_both_views(self, registry):
        registry.register("s1", "tokA")
        registry.unregister("s1")

        assert registry.lookup("s1") is None
        assert registry.lookup_device("tokA") is None

    def test_unregister_unknown_is_noop(self, registry):
        registry.register("s1", "tokA")
        before = registry.snapshot()

        registry.unregister("nope")
        registry.unregister("nope")

        assert registry.snapshot() == before

    def test_termination_after_unregister_is_noop(self, registry):
        registry.register("s1", "tokA")
        registry.unregister("s1")
        registry.remove_by_stream_termination("s1")

        assert len(registry) == 0

    def test_unregister_evicted_sid_keeps_new_owner(self, registry):
        registry.register("s1", "tokA")
        registry.register("s2", "tokA")
        registry.unregister("s1")

        assert registry.lookup_device("tokA") == "s2"


class TestBadge:
    def test_set_badge_known_sid(self, registry):
        registry.register("s1", "tokA")
        assert registry.set_badge("s1", 7) is True
        assert registry.lookup("s1").badge == 7

    def test_set_badge_unknown_sid(self, registry):
        assert registry.set_badge("ghost", 1) is False

    def test_negative_badge_rejected(self, registry):
        registry.register("s1", "tokA")
        with pytest.raises(ValueError):
            registry.set_badge("s1", -1)


class TestReads:
    def test_lookup_returns_copy(self, registry):
        registry.register("s1", "tokA")
        copy = registry.lookup("s1")
        copy.badge = 99
        copy.info["x"] = "y"

        assert registry.lookup("s1").badge == 0
        assert "x" not in registry.lookup("s1").info

    def test_snapshot_lists_all(self, registry):
        registry.register("s1", "tokA")
        registry.register("s2", "tokB")

        assert {r.sid for r in registry.snapshot()} == {"s1", "s2"}
