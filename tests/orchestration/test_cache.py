import unittest
from unittest.mock import patch

from commitsage.diff.models import ChangeRecord
from commitsage.llm.models import GenerationResponse
from commitsage.orchestration.cache import CacheEntry, ResponseCache, make_cache_key


def response(subject: str) -> GenerationResponse:
    return GenerationResponse(subject=subject, raw_text=subject)


RECORDS = (ChangeRecord("a.py", content="+a\n"), ChangeRecord("b.py", content="+b\n"))


class TestMakeCacheKey(unittest.TestCase):
    def test_same_input_same_key(self) -> None:
        self.assertEqual(make_cache_key(RECORDS, "llama3"), make_cache_key(list(RECORDS), "llama3"))

    def test_key_depends_on_content_model_and_context(self) -> None:
        base = make_cache_key(RECORDS, "llama3", "ctx")
        changed = (RECORDS[0], ChangeRecord("b.py", content="+c\n"))
        self.assertNotEqual(base, make_cache_key(changed, "llama3", "ctx"))
        self.assertNotEqual(base, make_cache_key(RECORDS, "mistral", "ctx"))
        self.assertNotEqual(base, make_cache_key(RECORDS, "llama3", "other"))

    def test_key_is_hex_digest(self) -> None:
        key = make_cache_key(RECORDS, "llama3")
        self.assertEqual(len(key), 64)
        int(key, 16)


class TestResponseCache(unittest.TestCase):
    def test_get_missing(self) -> None:
        self.assertIsNone(ResponseCache().get("nope"))

    def test_set_and_get(self) -> None:
        cache = ResponseCache()
        cache.set("k", response("feat: a"))
        self.assertEqual(cache.get("k").subject, "feat: a")
        self.assertEqual(len(cache), 1)

    def test_least_recently_used_is_evicted(self) -> None:
        cache = ResponseCache(max_entries=2)
        cache.set("a", response("feat: a"))
        cache.set("b", response("feat: b"))
        cache.get("a")
        cache.set("c", response("feat: c"))
        self.assertIsNotNone(cache.get("a"))
        self.assertIsNone(cache.get("b"))
        self.assertIsNotNone(cache.get("c"))
        self.assertEqual(len(cache), 2)

    def test_overwrite_does_not_evict(self) -> None:
        cache = ResponseCache(max_entries=2)
        cache.set("a", response("feat: a"))
        cache.set("b", response("feat: b"))
        cache.set("a", response("feat: a2"))
        self.assertEqual(cache.get("a").subject, "feat: a2")
        self.assertIsNotNone(cache.get("b"))

    def test_entries_expire(self) -> None:
        cache = ResponseCache(ttl=10.0)
        with patch("commitsage.orchestration.cache.time.monotonic", return_value=100.0):
            cache.set("k", response("feat: a"))
        with patch("commitsage.orchestration.cache.time.monotonic", return_value=109.0):
            self.assertIsNotNone(cache.get("k"))
        with patch("commitsage.orchestration.cache.time.monotonic", return_value=110.0):
            self.assertIsNone(cache.get("k"))
        self.assertEqual(len(cache), 0)

    def test_per_entry_ttl(self) -> None:
        cache = ResponseCache(ttl=10.0)
        with patch("commitsage.orchestration.cache.time.monotonic", return_value=0.0):
            cache.set("short", response("feat: a"), ttl=1.0)
            cache.set("long", response("feat: b"))
        with patch("commitsage.orchestration.cache.time.monotonic", return_value=5.0):
            self.assertIsNone(cache.get("short"))
            self.assertIsNotNone(cache.get("long"))

    def test_clean_expired(self) -> None:
        cache = ResponseCache(ttl=10.0)
        with patch("commitsage.orchestration.cache.time.monotonic", return_value=0.0):
            cache.set("old", response("feat: a"), ttl=1.0)
            cache.set("new", response("feat: b"))
        with patch("commitsage.orchestration.cache.time.monotonic", return_value=2.0):
            self.assertEqual(cache.clean_expired(), 1)
        self.assertEqual(len(cache), 1)

    def test_delete_and_clear(self) -> None:
        cache = ResponseCache()
        cache.set("a", response("feat: a"))
        cache.set("b", response("feat: b"))
        cache.delete("a")
        cache.delete("missing")
        self.assertIsNone(cache.get("a"))
        cache.clear()
        self.assertEqual(len(cache), 0)

    def test_invalid_arguments(self) -> None:
        with self.assertRaises(ValueError):
            ResponseCache(max_entries=0)
        with self.assertRaises(ValueError):
            ResponseCache(ttl=0)

    def test_entry_expiry(self) -> None:
        entry = CacheEntry(response=response("feat: a"), expires_at=5.0)
        self.assertFalse(entry.is_expired(now=4.9))
        self.assertTrue(entry.is_expired(now=5.0))


if __name__ == "__main__":
    unittest.main()
