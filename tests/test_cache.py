"""Tests for schema caching functionality."""

import os
import tempfile
import time
from pathlib import Path

import pytest

from xsd_typegen.cache import (
    CacheEntry,
    CachedGrammar,
    SchemaCache,
    get_cache_instance,
    get_cached_grammar,
    parse_config_pairs,
)
from xsd_typegen.xsd_grammar import GrammarConfig


def test_cache_entry_expiration():
    """Test cache entry TTL expiration."""
    entry = CacheEntry(data="test", ttl=0.1)  # 0.1 second TTL

    assert not entry.is_expired()
    time.sleep(0.2)
    assert entry.is_expired()


def test_cache_entry_staleness():
    """Test cache staleness based on file modification time."""
    with tempfile.NamedTemporaryFile(mode='w', delete=False) as f:
        f.write("test content")
        path = Path(f.name)

    try:
        # Create entry with current file time
        entry = CacheEntry(data="test", file_mtime=path.stat().st_mtime)
        assert not entry.is_stale(path)

        # Modify file
        _touch_later(path, "modified content")
        assert entry.is_stale(path)

        # Missing files are always stale
        path.unlink()
        assert entry.is_stale(path)

    finally:
        if path.exists():
            path.unlink()


def test_schema_cache_basic_operations():
    """Test basic cache operations."""
    cache = SchemaCache(default_ttl=1.0)

    # Set and get
    cache.set("test_key", "test_value")
    assert cache.get("test_key") == "test_value"

    # Non-existent key
    assert cache.get("nonexistent") is None

    stats = cache.get_cache_stats()
    assert stats["cache_size"] == 1
    assert stats["hits"] == 1
    assert stats["misses"] == 1

    # Clear
    cache.clear()
    assert cache.get("test_key") is None


def test_schema_cache_ttl():
    """Test cache TTL functionality."""
    cache = SchemaCache(default_ttl=0.1)

    cache.set("short_ttl", "value")
    assert cache.get("short_ttl") == "value"

    time.sleep(0.2)
    assert cache.get("short_ttl") is None  # Should be expired


def test_cache_invalidation():
    """Test cache invalidation functionality."""
    cache = SchemaCache()

    cache.set("key1", "value1")
    cache.set("key2", "value2")

    cache.invalidate("key1")
    assert cache.get("key1") is None
    assert cache.get("key2") == "value2"

    cache.clear()
    assert cache.get("key2") is None


def test_make_key_is_deterministic():
    cache = SchemaCache()
    assert cache._make_key("xsd", "a") == cache._make_key("xsd", "a")
    assert cache._make_key("xsd", "a") != cache._make_key("xsd", "b")


def create_simple_xsd(field_name: str = "id") -> str:
    """Create a simple XSD for testing."""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">
    <xs:complexType name="Root">
        <xs:sequence>
            <xs:element name="{field_name}" type="xs:string"/>
        </xs:sequence>
    </xs:complexType>
</xs:schema>"""


def _touch_later(path: Path, content: str) -> None:
    path.write_text(content)
    stat = path.stat()
    os.utime(path, (stat.st_atime + 10, stat.st_mtime + 10))


def test_cached_grammar_parse_xsd(tmp_path):
    """Test cached XSD parsing."""
    path = tmp_path / "simple.xsd"
    path.write_text(create_simple_xsd())
    grammar = CachedGrammar(cache=SchemaCache())

    # First parse - should cache
    result1 = grammar.parse_xsd(path)
    assert result1.children[0].name == "Root"

    # Second parse - should use cache
    result2 = grammar.parse_xsd(path)
    assert result2 is result1

    # Force refresh
    result3 = grammar.parse_xsd(path, force_refresh=True)
    assert result3 is not result1
    assert result3.children[0].name == "Root"


def test_cached_grammar_file_modification(tmp_path):
    """Test that cache invalidates when file is modified."""
    path = tmp_path / "simple.xsd"
    path.write_text(create_simple_xsd())
    grammar = CachedGrammar(cache=SchemaCache())

    result1 = grammar.parse_xsd(path)
    assert result1.children[0].children[0].attr["fieldName"] == "id"

    _touch_later(path, create_simple_xsd("code"))

    result2 = grammar.parse_xsd(path)
    assert result2.children[0].children[0].attr["fieldName"] == "code"


def test_cached_grammar_text_keys_include_config():
    grammar = CachedGrammar(cache=SchemaCache())
    text = create_simple_xsd()

    default = grammar.parse_xsd_string(text)
    assert grammar.parse_xsd_string(text) is default

    named = grammar.parse_xsd_string(text, GrammarConfig(schema_name="orders"))
    assert named is not default
    assert named.name == "orders"
    assert default.name == "schema"

    grammar.invalidate_all()
    assert grammar.parse_xsd_string(text) is not default


def test_cached_grammar_with_config(tmp_path):
    """Test cached grammar with custom configuration."""
    path = tmp_path / "simple.xsd"
    path.write_text(create_simple_xsd())
    grammar = CachedGrammar(cache=SchemaCache(), config=GrammarConfig(schema_name="simple"))

    assert grammar.parse_xsd(path).name == "simple"


def test_parse_config_pairs():
    config = parse_config_pairs("schema_name=orders, regexp_max_length=20,default_namespace=tns,bogus=1")
    assert config.schema_name == "orders"
    assert config.regexp_max_length == 20
    assert config.default_namespace == "tns"

    assert parse_config_pairs("default_namespace=").default_namespace is None


def test_get_cached_grammar_function():
    """Test the convenience function for getting cached grammars."""
    grammar1 = get_cached_grammar()
    grammar2 = get_cached_grammar()
    assert grammar1 is grammar2  # Should be same instance due to LRU cache
    assert grammar1.cache is get_cache_instance()

    config_key = "schema_name=orders,regexp_max_length=5"
    grammar3 = get_cached_grammar(config_key)
    assert grammar3.config.schema_name == "orders"
    assert grammar3.config.regexp_max_length == 5
    assert get_cached_grammar(config_key) is grammar3


def test_cache_performance():
    """Test that caching provides performance benefits."""
    fields = "".join(f'<xs:element name="field{i}" type="xs:string"/>' for i in range(200))
    text = (
        '<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">'
        f'<xs:complexType name="Root"><xs:sequence>{fields}</xs:sequence></xs:complexType>'
        "</xs:schema>"
    )
    grammar = CachedGrammar(cache=SchemaCache())

    start_time = time.time()
    result1 = grammar.parse_xsd_string(text)
    first_parse_time = time.time() - start_time

    start_time = time.time()
    result2 = grammar.parse_xsd_string(text)
    cached_parse_time = time.time() - start_time

    assert cached_parse_time < first_parse_time / 2
    assert result1 is result2


def test_schema_cache_evicts_least_recently_used():
    cache = SchemaCache(max_entries=2)
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.get("a") == 1  # "b" is now the oldest

    cache.set("c", 3)
    assert cache.get("b") is None
    assert cache.get("a") == 1
    assert cache.get("c") == 3

    stats = cache.get_cache_stats()
    assert stats["cache_size"] == 2
    assert stats["max_entries"] == 2
    assert stats["evictions"] == 1


def test_schema_cache_evicts_expired_entries_first():
    cache = SchemaCache(max_entries=2)
    cache.set("old", 1, ttl=0.05)
    cache.set("fresh", 2)
    time.sleep(0.1)

    cache.set("new", 3)
    assert cache.get("fresh") == 2
    assert cache.get("new") == 3
    assert cache.get_cache_stats()["cache_size"] == 2


def test_schema_cache_rejects_empty_bound():
    with pytest.raises(ValueError):
        SchemaCache(max_entries=0)


def test_cached_grammar_text_parses_are_bounded():
    grammar = CachedGrammar(cache=SchemaCache(max_entries=10))
    for i in range(50):
        grammar.parse_xsd_string(create_simple_xsd(f"field{i}"))

    assert grammar.cache.get_cache_stats()["cache_size"] == 10
    assert grammar.cache.get_cache_stats()["evictions"] == 40


def test_cache_records_file_mtime(tmp_path):
    path = tmp_path / "simple.xsd"
    path.write_text(create_simple_xsd())
    cache = SchemaCache()

    cache.set("key", "value", file_path=path)
    assert not cache.check_file_staleness("key", path)

    _touch_later(path, create_simple_xsd("code"))
    assert cache.check_file_staleness("key", path)
    assert cache.check_file_staleness("missing", path)
