import json

from tubeshield.__main__ import main
from tubeshield.signatures import BLOCKED_AD_PATTERNS


def test_filters_to_stdout(capsys):
    assert main(["filters", "--version", "3.1.0"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["version"] == "3.1.0"
    assert len(data["rules"]) == len(BLOCKED_AD_PATTERNS)


def test_filters_to_file(tmp_path):
    path = tmp_path / "youtube-network.json"
    assert main(["filters", str(path)]) == 0
    assert json.loads(path.read_text())["name"] == "YouTube Network Filters"


def test_check_reports_blocked_urls(capsys):
    code = main(["check", "https://ads.doubleclick.net/x", "https://www.youtube.com/watch?v=a"])
    out = capsys.readouterr().out.splitlines()
    assert code == 1
    assert out[0].startswith("BLOCKED")
    assert out[1].startswith("allowed")


def test_usage_errors(capsys):
    assert main([]) == 2
    assert main(["check"]) == 2
    assert main(["filters", "--version"]) == 2
    assert main(["bogus"]) == 2
    assert "usage" in capsys.readouterr().err
