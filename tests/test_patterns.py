import json

import pytest

from tubeshield.dom import PageGlobals
from tubeshield.patterns import (
    build_network_filters,
    compile_pattern,
    export_patterns,
    is_blocked,
    matches,
    write_network_filters,
)
from tubeshield.signatures import BLOCKED_AD_PATTERNS, PATTERNS_GLOBAL


def test_subdomain_glob():
    pattern = "*://*.doubleclick.net/*"
    assert matches(pattern, "https://ads.doubleclick.net/x")
    assert matches(pattern, "http://doubleclick.net/")
    assert not matches(pattern, "https://doubleclick.net.evil.com/x")
    assert not matches(pattern, "https://notdoubleclick.net/x")


def test_wildcards_span_path_and_query():
    pattern = "*://*.googlevideo.com/videoplayback*&aclk=*"
    assert matches(pattern, "https://r3---sn-a.googlevideo.com/videoplayback?expire=1&aclk=abc")
    assert not matches(pattern, "https://r3---sn-a.googlevideo.com/videoplayback?expire=1")


def test_literal_host_is_exact():
    assert matches("*://youtube.com/pagead/*", "https://youtube.com/pagead/conversion")
    assert not matches("*://youtube.com/pagead/*", "https://www.youtube.com/pagead/conversion")


def test_question_mark_is_literal():
    assert matches("*://a.com/x?y", "https://a.com/x?y")
    assert not matches("*://a.com/x?y", "https://a.com/xzy")


def test_scheme_and_host_case_insensitive():
    assert matches("*://*.doubleclick.net/*", "HTTPS://ADS.DoubleClick.NET/x")


def test_is_blocked_against_default_list():
    assert is_blocked("https://www.youtube.com/api/stats/ads?ver=2")
    assert is_blocked("https://www.youtube.com/pagead/interaction/?ai=1")
    assert not is_blocked("https://www.youtube.com/youtubei/v1/player?key=x")
    assert not is_blocked("not a url")


def test_pattern_without_scheme_rejected():
    with pytest.raises(ValueError):
        compile_pattern("doubleclick.net/*")


def test_export_publishes_ordered_tuple():
    window = PageGlobals()
    exported = export_patterns(window)
    assert window[PATTERNS_GLOBAL] == tuple(BLOCKED_AD_PATTERNS)
    assert exported[0] == BLOCKED_AD_PATTERNS[0]
    assert isinstance(window[PATTERNS_GLOBAL], tuple)


def test_network_filter_file(tmp_path):
    filters = build_network_filters("2.0.1")
    assert filters["version"] == "2.0.1"
    assert [r["pattern"] for r in filters["rules"]] == list(BLOCKED_AD_PATTERNS)
    assert len({r["id"] for r in filters["rules"]}) == len(BLOCKED_AD_PATTERNS)

    path = write_network_filters(tmp_path / "filters" / "youtube-network.json")
    with open(path) as f:
        data = json.load(f)
    assert data["name"] == "YouTube Network Filters"
    assert len(data["rules"]) == len(BLOCKED_AD_PATTERNS)
