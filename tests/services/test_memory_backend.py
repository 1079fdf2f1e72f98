"""Unit tests for MemoryCacheBackend."""

import asyncio

import pytest

from otakuproxy.services.cache import MemoryCacheBackend
from otakuproxy.services.cache.memory_backend import compile_glob


class TestMemoryCacheBackend:
    """Test cases for the in-process cache backend."""

    @pytest.mark.asyncio
    async def test_set_and_get(self, memory_backend):
        await memory_backend.set("otaku:home", '{"a":1}', 60)
        assert await memory_backend.get("otaku:home") == '{"a":1}'

    @pytest.mark.asyncio
    async def test_get_missing(self, memory_backend):
        assert await memory_backend.get("otaku:nothing") is None

    @pytest.mark.asyncio
    async def test_overwrite_replaces_value_and_expiry(self, memory_backend, fake_clock):
        await memory_backend.set("k", "old", 10)
        fake_clock.advance(5)
        await memory_backend.set("k", "new", 10)
        fake_clock.advance(7)

        assert await memory_backend.get("k") == "new"

    @pytest.mark.asyncio
    async def test_expired_entry_is_miss_and_evicted(self, memory_backend, fake_clock):
        """Reads never return an entry at or past its expiry."""
        await memory_backend.set("k", "v", 10)
        fake_clock.advance(10)

        assert await memory_backend.get("k") is None
        assert memory_backend.size == 0

    @pytest.mark.asyncio
    async def test_zero_ttl_is_immediately_expired(self, memory_backend):
        await memory_backend.set("k", "v", 0)
        assert await memory_backend.get("k") is None

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, memory_backend):
        await memory_backend.set("k", "v", 10)
        await memory_backend.delete("k")
        await memory_backend.delete("k")
        assert await memory_backend.get("k") is None

    @pytest.mark.asyncio
    async def test_ttl(self, memory_backend, fake_clock):
        await memory_backend.set("k", "v", 60)
        fake_clock.advance(15.5)

        assert await memory_backend.ttl("k") == 45
        assert await memory_backend.ttl("absent") == -2

    @pytest.mark.asyncio
    async def test_ttl_under_one_second_still_live(self, memory_backend, fake_clock):
        await memory_backend.set("k", "v", 10)
        fake_clock.advance(9.6)

        assert await memory_backend.get("k") == "v"
        assert await memory_backend.ttl("k") == 1

    @pytest.mark.asyncio
    async def test_keys_glob(self, memory_backend, fake_clock):
        await memory_backend.set("otaku:anime:one-piece", "1", 60)
        await memory_backend.set("otaku:anime:naruto", "2", 60)
        await memory_backend.set("otaku:episodes:naruto-1", "3", 60)
        await memory_backend.set("otaku:anime:expired", "4", 1)
        fake_clock.advance(2)

        keys = await memory_backend.keys("otaku:anime*")

        assert sorted(keys) == ["otaku:anime:naruto", "otaku:anime:one-piece"]

    @pytest.mark.asyncio
    async def test_ping(self, memory_backend):
        assert await memory_backend.ping() is True

    @pytest.mark.asyncio
    async def test_sweep_purges_expired(self, memory_backend, fake_clock):
        """sweep removes every expired entry and leaves live ones."""
        await memory_backend.set("a", "1", 5)
        await memory_backend.set("b", "2", 50)
        fake_clock.advance(10)

        assert memory_backend.sweep() == 1
        assert memory_backend.size == 1

    @pytest.mark.asyncio
    async def test_sweeper_task_runs_periodically(self, fake_clock):
        backend = MemoryCacheBackend(sweep_interval=0.01, clock=fake_clock)
        await backend.set("a", "1", 1)
        fake_clock.advance(2)

        backend.start_sweeper()
        backend.start_sweeper()
        assert backend.sweeper_running
        await asyncio.sleep(0.05)

        assert backend.size == 0
        await backend.close()
        assert not backend.sweeper_running


class TestCompileGlob:
    """Glob matching used for key patterns."""

    @pytest.mark.parametrize(
        ("pattern", "key", "matches"),
        [
            ("otaku:anime*", "otaku:anime", True),
            ("otaku:anime*", "otaku:anime:x", True),
            ("otaku:anime*", "otaku:episodes:x", False),
            ("*:naruto", "otaku:anime:naruto", True),
            ("otaku:search:a.b", "otaku:search:aXb", False),
            ("otaku:search:[x]", "otaku:search:[x]", True),
            ("otaku:search:?", "otaku:search:a", False),
        ],
    )
    def test_only_star_is_special(self, pattern, key, matches):
        assert bool(compile_glob(pattern).match(key)) is matches
