import pytest

from site_mirror.urls import CrawlScope, in_scope, normalize_key, origin_of, path_prefix


def test_normalize_key_strips_fragment():
    assert normalize_key("https://example.com/site#top") == "https://example.com/site"
    assert normalize_key("https://example.com/site#a") == normalize_key(
        "https://example.com/site#b"
    )


def test_normalize_key_keeps_query_and_lowercases_host():
    assert normalize_key("HTTPS://Example.COM/A?b=1#c") == "https://example.com/A?b=1"


def test_normalize_key_adds_root_path():
    assert normalize_key("https://example.com") == "https://example.com/"


@pytest.mark.parametrize("url", ["", "not a url", "/relative/path", "http://[::1", "http://h:99999/"])
def test_normalize_key_invalid(url):
    assert normalize_key(url) is None


def test_in_scope_scenario():
    origin = origin_of("https://example.com/site")
    prefix = path_prefix("https://example.com/site")
    assert in_scope("https://example.com/site/about", origin, prefix)
    assert in_scope("https://example.com/site", origin, prefix)
    assert not in_scope("https://other.com/x", origin, prefix)
    assert not in_scope("https://example.com/elsewhere", origin, prefix)
    assert not in_scope("http://example.com/site/about", origin, prefix)
    assert not in_scope("mailto:someone@example.com", origin, prefix)


def test_scope_trailing_slash_prefix():
    scope = CrawlScope.from_target("https://example.com/docs/")
    assert scope.prefix == "/docs"
    assert scope.contains("https://example.com/docs/intro")


def test_scope_rejects_invalid_target():
    with pytest.raises(ValueError):
        CrawlScope.from_target("example.com/site")
    with pytest.raises(ValueError):
        CrawlScope.from_target("ftp://example.com/site")
