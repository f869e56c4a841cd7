"""Tests for the per-run content cache and encoding-safe reads."""

from concurrent.futures import ThreadPoolExecutor

from codemap.cache import ContentCache, read_text_safe


class TestReadTextSafe:
    def test_utf8(self, tmp_path):
        f = tmp_path / "a.txt"
        f.write_text("héllo", encoding="utf-8")
        assert read_text_safe(f) == "héllo"

    def test_utf8_bom_stripped(self, tmp_path):
        f = tmp_path / "a.txt"
        f.write_bytes(b"\xef\xbb\xbfhi")
        assert read_text_safe(f) == "hi"

    def test_utf16_bom(self, tmp_path):
        f = tmp_path / "a.txt"
        f.write_bytes("héllo".encode("utf-16"))
        assert read_text_safe(f) == "héllo"

    def test_latin1_fallback(self, tmp_path):
        f = tmp_path / "a.txt"
        f.write_bytes(b"caf\xe9")
        assert read_text_safe(f) == "café"


class TestContentCache:
    def test_reads_once(self, tmp_path):
        f = tmp_path / "a.ts"
        f.write_text("export const a = 1;\n")
        cache = ContentCache()
        assert cache.get(f) == "export const a = 1;\n"
        f.unlink()
        # Served from memory after the file is gone
        assert cache.get(f) == "export const a = 1;\n"

    def test_str_and_path_keys_agree(self, tmp_path):
        f = tmp_path / "a.ts"
        f.write_text("x")
        cache = ContentCache()
        cache.get(f)
        assert str(f) in cache
        assert f in cache
        assert len(cache) == 1

    def test_missing_file_cached_as_empty(self, tmp_path):
        missing = tmp_path / "nope.ts"
        cache = ContentCache()
        assert cache.get(missing) == ""
        assert missing in cache
        missing.write_text("late")
        assert cache.get(missing) == ""

    def test_clear(self, tmp_path):
        f = tmp_path / "a.ts"
        f.write_text("one")
        cache = ContentCache()
        cache.get(f)
        cache.clear()
        assert len(cache) == 0
        f.write_text("two")
        assert cache.get(f) == "two"

    def test_concurrent_readers(self, tmp_path):
        paths = []
        for i in range(20):
            p = tmp_path / f"f{i}.ts"
            p.write_text(f"// {i}\n")
            paths.append(p)
        cache = ContentCache()
        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(cache.get, paths * 3))
        assert results == [f"// {i % 20}\n" for i in range(60)]
        assert len(cache) == 20
