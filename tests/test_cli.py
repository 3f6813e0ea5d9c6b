from site_mirror import cli
from site_mirror.config import resolve_proxy
from site_mirror.crawler import MirrorResult


def test_missing_target_exits_with_usage(capsys):
    assert cli.main([]) == 1
    assert "Usage: site-mirror <target-url>" in capsys.readouterr().err


def test_unparsable_target_exits_with_failure(capsys):
    assert cli.main(["not-a-url", "out"]) == 1
    assert "Invalid target URL" in capsys.readouterr().err


def test_invalid_concurrency_is_rejected(capsys):
    assert cli.main(["https://example.com/", "out", "2", "0"]) == 1


def test_positional_arguments():
    args = cli.parse_args(["https://example.com/site", "mirror", "3", "4", "http://proxy:8080"])
    assert args.target_url == "https://example.com/site"
    assert str(args.outdir) == "mirror"
    assert (args.max_depth, args.concurrency, args.proxy) == (3, 4, "http://proxy:8080")

    defaults = cli.parse_args(["https://example.com/site"])
    assert (defaults.max_depth, defaults.concurrency, defaults.proxy) == (2, 2, None)


def test_proxy_precedence(monkeypatch):
    monkeypatch.setenv("PROXY", "http://env:1")
    assert resolve_proxy("http://cli:2") == "http://cli:2"
    assert resolve_proxy(None) == "http://env:1"
    monkeypatch.delenv("PROXY")
    assert resolve_proxy(None) is None


def test_main_runs_mirror(monkeypatch, tmp_path):
    seen = {}

    async def fake_run_mirror(config):
        seen["config"] = config
        return MirrorResult(output_root=config.output_root)

    monkeypatch.setattr(cli, "run_mirror", fake_run_mirror)
    monkeypatch.delenv("PROXY", raising=False)
    assert cli.main(["https://example.com/site", str(tmp_path), "1", "3"]) == 0
    config = seen["config"]
    assert (config.max_depth, config.concurrency, config.proxy) == (1, 3, None)
