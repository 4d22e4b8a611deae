"""Unit tests for the response cache."""
import pytest
from concurrent.futures import ThreadPoolExecutor

from coach.services.response_cache import ResponseCache, cache_key


@pytest.mark.unit
class TestCacheKey:

    def test_key_is_16_hex_chars(self):
        key = cache_key("How do I build a habit?")
        assert len(key) == 16
        int(key, 16)

    def test_case_and_whitespace_insensitive(self):
        assert cache_key("How do I  build a habit?") == cache_key("  how do i build A habit?")

    def test_only_first_words_count(self):
        """Messages that differ after the tenth word share a key."""
        prefix = "one two three four five six seven eight nine ten"
        assert cache_key(prefix + " eleven") == cache_key(prefix + " something else")
        assert cache_key("one two") != cache_key("one three")

    def test_word_count_is_configurable(self):
        assert cache_key("a b c", words=2) == cache_key("a b d", words=2)


@pytest.mark.unit
class TestResponseCache:

    def test_set_then_get(self, cache):
        cache.set("u1", "How do I build a habit?", "Start small.")
        assert cache.get("u1", "how do i build a habit?") == "Start small."

    def test_entries_are_per_user(self, cache):
        cache.set("u1", "hello", "hi u1")
        assert cache.get("u2", "hello") is None

    def test_expired_entry_is_dropped_on_read(self, cache, fake_clock):
        cache.set("u1", "hello", "hi")
        fake_clock.advance(3600)

        assert cache.get("u1", "hello") is None
        assert len(cache) == 0

    def test_entry_valid_before_ttl(self, cache, fake_clock):
        cache.set("u1", "hello", "hi")
        fake_clock.advance(3599)
        assert cache.get("u1", "hello") == "hi"

    def test_last_writer_wins(self, cache):
        cache.set("u1", "hello", "first")
        cache.set("u1", "hello", "second")
        assert cache.get("u1", "hello") == "second"

    def test_clear_expired(self, cache, fake_clock):
        cache.set("u1", "old message", "old")
        fake_clock.advance(1800)
        cache.set("u1", "new message", "new")
        fake_clock.advance(1800)

        assert cache.clear_expired() == 1
        assert len(cache) == 1
        assert cache.get("u1", "new message") == "new"

    def test_clear(self, cache):
        cache.set("u1", "hello", "hi")
        cache.clear()
        assert len(cache) == 0

    def test_concurrent_writes_are_not_lost(self, cache):
        """Many threads writing distinct keys all land."""
        def write(i):
            cache.set(f"user-{i % 7}", f"message number {i}", f"reply {i}")

        with ThreadPoolExecutor(max_workers=16) as pool:
            list(pool.map(write, range(500)))

        assert len(cache) == 500
        assert cache.get("user-3", "message number 3") == "reply 3"
