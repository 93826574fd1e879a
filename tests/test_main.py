import sys
from datetime import timedelta

import pytest
from click.testing import CliRunner

from punused.__main__ import format_summary, main
from punused.run import RunSummary
from tests.helpers import FAKE_GOPLS, document_symbol, fake_gopls, ref, write_workspace


@pytest.fixture
def workspace(tmp_path):
    ws = tmp_path / "ws"
    ws.mkdir()
    write_workspace(ws, ["lib/lib.go", "cmd/main.go"])
    command = fake_gopls(
        tmp_path,
        symbols={
            "lib/lib.go": [
                document_symbol("Unused", line=2),
                document_symbol("Used", line=6),
            ],
            "cmd/main.go": [document_symbol("Orphan", line=4)],
        },
        references={"lib/lib.go:6:5": [ref("cmd/main.go", 3, 5)]},
    )
    return ws, " ".join(command)


def invoke(*args):
    runner = CliRunner(catch_exceptions=False)
    return runner.invoke(main, list(args))


def test_help():
    result = invoke("--help")
    assert result.exit_code == 0
    assert "--no-remove" in result.output


def test_reports_unused_symbols(workspace):
    ws, gopls = workspace
    result = invoke("--wd", str(ws), "--gopls", gopls, "--no-remove")
    assert result.exit_code == 0, result.output
    assert result.stdout.splitlines() == [
        "cmd/main.go:5:6 function Orphan is unused (EU1002)",
        "lib/lib.go:3:6 function Unused is unused (EU1002)",
    ]


def test_pattern_restricts_files(workspace):
    ws, gopls = workspace
    result = invoke("--wd", str(ws), "--gopls", gopls, "--no-remove", "./lib/*.go")
    assert result.exit_code == 0, result.output
    assert result.stdout == "lib/lib.go:3:6 function Unused is unused (EU1002)\n"


def test_verbose_prints_summary(workspace):
    ws, gopls = workspace
    result = invoke("--wd", str(ws), "--gopls", gopls, "--no-remove", "--volume", "verbose")
    assert result.exit_code == 0, result.output
    assert "Checked 2 files" in result.stderr
    assert "2 unused" in result.stderr


def test_quiet_has_no_diagnostics(workspace):
    ws, gopls = workspace
    result = invoke("--wd", str(ws), "--gopls", gopls, "--no-remove", "--volume", "quiet")
    assert result.exit_code == 0
    assert result.stderr == ""


def test_cpuprofile_is_written(workspace, tmp_path):
    ws, gopls = workspace
    profile = tmp_path / "cpu.prof"
    result = invoke(
        "--wd", str(ws), "--gopls", gopls, "--no-remove", "--cpuprofile", str(profile)
    )
    assert result.exit_code == 0, result.output
    assert profile.stat().st_size > 0


def test_missing_go_mod_is_an_error(tmp_path):
    write_workspace(tmp_path, ["main.go"], module=False)
    result = invoke("--wd", str(tmp_path), "--gopls", f"{sys.executable} {FAKE_GOPLS}")
    assert result.exit_code == 1
    assert "go.mod" in result.stderr


def test_bad_pattern_is_an_error(workspace):
    ws, gopls = workspace
    result = invoke("--wd", str(ws), "--gopls", gopls, "{lib,cmd/*.go")
    assert result.exit_code == 1
    assert "unmatched" in result.stderr


def test_unknown_gopls_command(tmp_path):
    result = invoke("--wd", str(tmp_path), "--gopls", "definitely-not-a-real-gopls")
    assert result.exit_code == 2
    assert "command not found" in result.stderr


def test_empty_rf_command(tmp_path):
    result = invoke("--wd", str(tmp_path), "--gopls", sys.executable, "--rf", "")
    assert result.exit_code == 2
    assert "must not be empty" in result.stderr


def test_format_summary():
    summary = RunSummary(
        files_checked=3,
        unused=2,
        test_only=1,
        removed=1,
        removal_failures=1,
        elapsed=timedelta(seconds=2).total_seconds(),
    )
    text = format_summary(summary)
    assert text.startswith("Checked 3 files in 2 seconds: 2 unused, 1 used in test only")
    assert "removed 1, 1 removals failed" in text
    assert "could not be checked" not in text
