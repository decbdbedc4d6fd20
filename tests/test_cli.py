from __future__ import annotations

from click.testing import CliRunner

from steptrace import __version__
from steptrace.cli.main import cli
from steptrace.core.models import TestStatus
from steptrace.core.store import ResultStore


def _isolate(monkeypatch) -> None:
    for name in ("UPLOAD_JIRA", "XRAY_TEST_EXECUTION_KEY", "XRAY_TEST_SUMMARY", "XRAY_PROJECT_KEY"):
        monkeypatch.delenv(name, raising=False)


def test_cli_help_short_flag() -> None:
    result = CliRunner().invoke(cli, ["-h"])
    assert result.exit_code == 0
    assert "Usage:" in result.output
    assert "upload" in result.output
    assert "show" in result.output


def test_cli_version() -> None:
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert result.output.strip() == f"steptrace {__version__}"


def test_show_lists_results_without_consuming(tmp_path, make_result) -> None:
    results_dir = tmp_path / "results"
    store = ResultStore(results_dir)
    store.persist(make_result("PXX-1"))
    store.persist(make_result("PXX-2", status=TestStatus.FAILED))

    result = CliRunner().invoke(cli, ["show", "--results-dir", str(results_dir), "--no-color"])
    assert result.exit_code == 0
    assert "PXX-1 PASSED" in result.output
    assert "PXX-2 FAILED" in result.output
    assert "Total: 2 result(s)" in result.output
    assert len(list(results_dir.glob("*.json"))) == 2


def test_show_empty_directory(tmp_path) -> None:
    result = CliRunner().invoke(cli, ["show", "--results-dir", str(tmp_path / "none")])
    assert result.exit_code == 0
    assert "No persisted results found." in result.output


def test_upload_no_upload_writes_bundle(tmp_path, monkeypatch, make_result) -> None:
    _isolate(monkeypatch)
    monkeypatch.setenv("UPLOAD_JIRA", "on")
    results_dir = tmp_path / "results"
    ResultStore(results_dir).persist(make_result("PXX-1"))
    config = tmp_path / "steptrace.yaml"
    config.write_text(f"manual_reports_dir: {(tmp_path / 'bundles').as_posix()}\n", encoding="utf-8")

    result = CliRunner().invoke(
        cli,
        ["upload", "--results-dir", str(results_dir), "--config", str(config), "--no-upload", "--no-color"],
    )
    assert result.exit_code == 0, result.output
    assert "1 result(s) collected" in result.output
    assert "upload disabled" in result.output
    (bundle_dir,) = (tmp_path / "bundles").iterdir()
    assert (bundle_dir / "test_login.json").exists()
    assert not results_dir.exists()


def test_upload_with_nothing_collected(tmp_path, monkeypatch) -> None:
    _isolate(monkeypatch)
    result = CliRunner().invoke(cli, ["upload", "--results-dir", str(tmp_path / "empty"), "--no-upload"])
    assert result.exit_code == 0
    assert "no keyed test results were collected" in result.output


def test_upload_invalid_config(tmp_path) -> None:
    config = tmp_path / "bad.yaml"
    config.write_text("nonsense: 1\n", encoding="utf-8")
    result = CliRunner().invoke(cli, ["upload", "--config", str(config)])
    assert result.exit_code != 0
    assert "schema validation failed" in result.output
