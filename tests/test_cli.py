import io
import json

import httpx
import pytest

from conftest import FakeScanner, StaticCatalog
from social_scanner import cli
from social_scanner.engine import HttpScanner


def run(argv, **kwargs):
    out, err = io.StringIO(), io.StringIO()
    code = cli.main(argv, out=out, err=err, **kwargs)
    return code, out.getvalue(), err.getvalue()


def test_list_filters_by_category(sample_catalog):
    code, out, _ = run(["list", "--categories", "tech"], catalog=sample_catalog)

    assert code == 0
    assert "github" in out
    assert "twitter" not in out
    assert "total rules: 2" in out
    assert "total categories: 2" in out
    assert "matched rules: 1" in out


def test_list_sorted_categories_only(sample_catalog):
    code, out, _ = run(["list", "--sort", "--categories-only"], catalog=sample_catalog)

    assert code == 0
    assert out.index("Category: social") < out.index("Category: tech")
    assert "Name:" not in out


def test_list_with_unknown_category_reports_no_match(sample_catalog):
    code, out, _ = run(["list", "--categories", "gaming"], catalog=sample_catalog)

    assert code == 0
    assert "There are no rules that match these categories: [gaming]" in out


def test_list_with_malformed_categories_is_config_error(sample_catalog):
    code, _, err = run(["list", "--categories", "tech,,social"], catalog=sample_catalog)

    assert code == 2
    assert "--categories" in err


def test_list_uses_bundled_catalog():
    code, out, _ = run(["list", "--categories", "tech"])

    assert code == 0
    assert "Name: github" in out


def test_scan_rejects_bad_timeout_before_scanning(sample_catalog):
    scanner = FakeScanner()

    code, out, err = run(
        ["scan", "alice", "--timeout", "notanumber"], catalog=sample_catalog, scanner=scanner
    )

    assert code == 2
    assert err.startswith("error: invalid configuration:")
    assert "invalid timeout" in err
    assert scanner.calls == []
    assert "Scan started" not in out


def test_scan_prints_summary(sample_catalog, scenario_scanner):
    code, out, _ = run(["scan", "alice"], catalog=sample_catalog, scanner=scenario_scanner)

    assert code == 0
    assert "Scan Summary for alice" in out
    assert "Matches   : 1" in out
    assert "Failures  : 1" in out
    assert " - github: https://github.com/alice" in out
    assert scenario_scanner.calls[0]["timeout_ms"] == 2000


def test_scan_writes_json_report(tmp_path, sample_catalog, scenario_scanner):
    out_dir = tmp_path / "out"

    code, out, _ = run(
        ["scan", "alice", "--output", str(out_dir)], catalog=sample_catalog, scanner=scenario_scanner
    )

    assert code == 0
    files = list(out_dir.glob("alice_*.json"))
    assert len(files) == 1
    assert f"Report written to {files[0]}" in out
    data = json.loads(files[0].read_text(encoding="utf-8"))
    assert sorted(data, key=lambda item: item["name"]) == [
        {"name": "github", "address": "https://github.com/alice", "error": None, "category": ["tech"]},
        {"name": "twitter", "address": None, "error": "404", "category": ["social"]},
    ]


def test_scan_output_failure_keeps_summary(tmp_path, sample_catalog, scenario_scanner):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")

    code, out, err = run(
        ["scan", "alice", "--output", str(blocker)], catalog=sample_catalog, scanner=scenario_scanner
    )

    assert code == 0
    assert "Scan Summary for alice" in out
    assert "Could not write report" in err


def test_scan_restricts_rules(sample_catalog, scenario_scanner):
    code, _, _ = run(
        ["scan", "alice", "--restrict-rules", "twitter"], catalog=sample_catalog, scanner=scenario_scanner
    )

    assert code == 0
    assert scenario_scanner.calls[0]["rules"] == ["twitter"]


def test_scan_engine_failure_exits_without_report(tmp_path, sample_catalog):
    scanner = FakeScanner(exc=RuntimeError("boom"))

    code, out, err = run(
        ["scan", "alice", "--output", str(tmp_path)], catalog=sample_catalog, scanner=scanner
    )

    assert code == 4
    assert err.startswith("error: the scan failed:")
    assert "boom" in err
    assert "Scan Summary" not in out
    assert list(tmp_path.iterdir()) == []


def test_scan_interrupt_discards_results(tmp_path, sample_catalog):
    scanner = FakeScanner(exc=KeyboardInterrupt())

    code, out, err = run(
        ["scan", "alice", "--output", str(tmp_path)], catalog=sample_catalog, scanner=scanner
    )

    assert code == 130
    assert "Aborted" in err
    assert "Scan Summary" not in out
    assert list(tmp_path.iterdir()) == []


def test_malformed_catalog_is_reported(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("- name: github\n  url: https://github.com/{username}\n", encoding="utf-8")

    code, _, err = run(["--catalog", str(path), "list"])

    assert code == 3
    assert err.startswith("error: invalid rule catalog:")


def test_catalog_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "env.yaml"
    path.write_text(
        "- name: mastodon\n  url: https://mastodon.social/@{username}\n  category: social\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("SOCIAL_SCANNER_CATALOG", str(path))

    code, out, _ = run(["list"])

    assert code == 0
    assert "mastodon" in out


def test_missing_command_exits_with_usage():
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])

    assert excinfo.value.code == 2


def test_dispatch_table_covers_commands():
    assert set(cli.COMMANDS) == {"scan", "list"}


def test_scan_restrict_matching_nothing_fails_before_banner(sample_catalog):
    scanner = FakeScanner()

    code, out, err = run(
        ["scan", "alice", "--restrict-rules", "myspace"], catalog=sample_catalog, scanner=scanner
    )

    assert code == 2
    assert err.startswith("error: invalid configuration:")
    assert "matched no rules" in err
    assert out == ""
    assert scanner.calls == []


def test_scan_with_unroutable_username_still_reports():
    catalog = StaticCatalog(
        [
            {"name": "github", "url": "https://github.com/{username}", "category": ["tech"]},
            {"name": "tumblr", "url": "https://{username}.tumblr.com", "category": ["blog"]},
        ]
    )
    scanner = HttpScanner(transport=httpx.MockTransport(lambda request: httpx.Response(200)))

    code, out, _ = run(["scan", "alice:x"], catalog=catalog, scanner=scanner)

    assert code == 0
    assert "Matches   : 1" in out
    assert "Failures  : 1" in out
