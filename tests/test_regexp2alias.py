"""Tests for pattern expansion into literal unions."""

import pytest

from xsd_typegen.regexp2alias import (
    ALL_CHARS,
    DIGITS,
    RegExpError,
    RegExpProcessor,
    expand_pattern,
    literal_union,
    regexp_pattern2type_alias,
)


def variants(pattern, max_length=100):
    options, _ = RegExpProcessor(max_length).variants(pattern)
    return options


def test_character_class():
    assert variants("[ABC]") == ["A", "B", "C"]


def test_character_class_deduplicates():
    assert variants("[ABCA]") == ["A", "B", "C"]


def test_optional():
    assert variants("A?") == ["", "A"]


def test_plus_respects_max_length():
    assert variants("A+", max_length=3) == ["A", "AA", "AAA"]


def test_star_includes_empty():
    assert variants("A*", max_length=2) == ["", "A", "AA"]


def test_negated_plus_is_not_enumerable():
    with pytest.raises(RegExpError):
        variants("[^A-Z]+", max_length=2)
    assert expand_pattern("[^A-Z]+", max_length=2) is None
    assert regexp_pattern2type_alias("[^A-Z]+", "string", max_length=2) == "string"


def test_negation_is_relative_to_alphabet():
    options = variants("[^A-Za-z]")
    assert "A" not in options
    assert "z" not in options
    assert set(DIGITS) <= set(options)
    assert len(options) == len(ALL_CHARS) - 52


def test_ranges():
    assert variants("[a-c]") == ["a", "b", "c"]
    assert variants("[0-2x]") == ["0", "1", "2", "x"]


def test_sequence_of_atoms():
    assert variants("v[12]") == ["v1", "v2"]


def test_specials():
    assert variants("\\d") == list(DIGITS)
    assert variants("a\\.b") == ["a.b"]
    assert variants("\\[x\\]") == ["[x]"]
    assert variants("\\\\") == ["\\"]
    assert len(variants(".")) == len(ALL_CHARS)


def test_unknown_escape_is_literal():
    assert variants("\\#") == ["#"]


def test_variants_stops_at_alternation():
    options, index = RegExpProcessor().variants("AB|C")
    assert options == ["AB"]
    assert index == 2


def test_variants_reports_no_progress():
    options, index = RegExpProcessor().variants("|A")
    assert options is None
    assert index == 0


def test_groups():
    assert expand_pattern("(EUR|USD)[12]") == ["EUR1", "EUR2", "USD1", "USD2"]
    assert expand_pattern("x(?:a|b)?") == ["x", "xa", "xb"]


@pytest.mark.parametrize(
    "pattern, expected",
    [
        ("A{2}", ["AA"]),
        ("A{1,3}", ["A", "AA", "AAA"]),
        ("[AB]{2}", ["AA", "AB", "BA", "BB"]),
        ("A{0,1}", ["", "A"]),
        ("A{2,}", ["AA", "AAA", "AAAA"]),
    ],
)
def test_brace_quantifiers(pattern, expected):
    assert RegExpProcessor(max_length=4).expand(pattern) == expected


def test_reversed_brace_bounds_fail():
    assert expand_pattern("A{3,1}") is None


def test_alternatives_keep_pattern_order():
    assert expand_pattern("C|A|B") == ["C", "A", "B"]
    assert expand_pattern("B|A|B") == ["B", "A"]


def test_empty_alternative():
    assert expand_pattern("A|") == ["A", ""]


def test_malformed_patterns_are_not_enumerable():
    assert expand_pattern("[AB") is None
    assert expand_pattern("(AB") is None
    assert expand_pattern("AB)") is None
    assert expand_pattern("?") is None


def test_option_ceiling():
    processor = RegExpProcessor(max_options=10)
    with pytest.raises(RegExpError):
        processor.variants("[0-9][0-9]")
    assert processor.expand("[0-9][0-9]") is None


def test_type_alias_empty_pattern():
    assert regexp_pattern2type_alias("", "string") == "string"


def test_type_alias_string_literals():
    assert regexp_pattern2type_alias("A|B|C") == '"A"|"B"|"C"'
    assert regexp_pattern2type_alias('a"b') == '"a\\"b"'


def test_type_alias_numbers():
    assert regexp_pattern2type_alias("[1-3]", "number") == "1|2|3"
    assert regexp_pattern2type_alias("1\\.5|2", "number") == "1.5|2"
    # leading zeros are not numeric literals
    assert regexp_pattern2type_alias("0[0-9]", "number") == "number"


def test_type_alias_fallback_type():
    assert regexp_pattern2type_alias("[a-z]+", "string", fallback_type="Code") == "Code"
    assert regexp_pattern2type_alias("", "string", fallback_type="Code") == "Code"


def test_literal_union():
    assert literal_union(["a", "b"]) == '"a"|"b"'
    assert literal_union(["1", "-2.5"], "number") == "1|-2.5"
    assert literal_union(["x"], "number") is None
