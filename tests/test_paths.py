from pathlib import Path

from site_mirror.paths import make_relative, map_asset, map_page
from site_mirror.utils import sanitize_segment

ROOT = Path("out")


def test_map_asset_keeps_extension():
    assert map_asset("https://cdn.test/img/a.png?v=2", ROOT) == ROOT / "assets" / "cdn.test" / "img" / "a.png"


def test_map_asset_adds_bin_extension():
    assert map_asset("https://cdn.test/fonts/roboto", ROOT) == ROOT / "assets" / "cdn.test" / "fonts" / "roboto.bin"


def test_map_asset_directory_gets_index():
    assert map_asset("https://cdn.test/js/", ROOT) == ROOT / "assets" / "cdn.test" / "js" / "index.bin"
    assert map_asset("https://cdn.test", ROOT) == ROOT / "assets" / "cdn.test" / "index.bin"


def test_map_asset_decodes_and_confines_path():
    path = map_asset("https://cdn.test/a%20b/%2E%2E/../c.png", ROOT)
    assert path == ROOT / "assets" / "cdn.test" / "a b" / "c.png"
    assert ".." not in path.parts


def test_map_page_variants():
    assert map_page("https://example.com/site", ROOT) == ROOT / "example.com" / "site" / "index.html"
    assert map_page("https://example.com/site/", ROOT) == ROOT / "example.com" / "site" / "index.html"
    assert map_page("https://example.com/", ROOT) == ROOT / "example.com" / "index.html"
    assert map_page("https://example.com/a/page.html", ROOT) == ROOT / "example.com" / "a" / "page.html"
    assert map_page("https://example.com/a/page.php", ROOT) == ROOT / "example.com" / "a" / "page.php.html"


def test_mapping_is_deterministic():
    url = "https://example.com/site/x%C3%A9/photo"
    assert map_asset(url, ROOT) == map_asset(url, ROOT)
    assert map_page(url, ROOT) == map_page(url, ROOT)


def test_make_relative():
    page = ROOT / "example.com" / "site" / "index.html"
    asset = ROOT / "assets" / "x" / "a.png"
    assert make_relative(page, asset) == "../../assets/x/a.png"
    sibling = ROOT / "example.com" / "site" / "b.html"
    assert make_relative(page, sibling) == "./b.html"


def test_sanitize_segment():
    assert sanitize_segment("..") == ""
    assert sanitize_segment("a:b?c*") == "abc"
    assert sanitize_segment("con") == "_con"
    assert sanitize_segment("name. ") == "name"
    assert len(sanitize_segment("x" * 400).encode()) == 255


def test_make_relative_quotes_reserved_characters():
    page = ROOT / "example.com" / "site" / "index.html"
    asset = map_asset("https://cdn.test/img/a%23b%25c%20d.png", ROOT)
    assert asset.name == "a#b%c d.png"
    assert make_relative(page, asset) == "../../assets/cdn.test/img/a%23b%25c%20d.png"
