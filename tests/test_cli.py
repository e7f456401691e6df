"""Tests for the CLI command surface."""

from pathlib import Path

import pytest
import structlog
from typer.testing import CliRunner

from increments.baseline import BASELINE_FILE
from increments.cli import app
from tests.conftest import write_increment

runner = CliRunner()


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Isolate each test from structlog state and settings cache."""
    from increments.config import get_settings

    get_settings.cache_clear()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    yield
    get_settings.cache_clear()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


def _env(tmp_path: Path, **extra: str) -> dict[str, str]:
    """Env vars pointing increments at temp dirs."""
    return {
        "INCREMENTS_PATHS__INCREMENTS_DIR": str(tmp_path / "incrementals"),
        "INCREMENTS_PATHS__STATE_DIR": str(tmp_path / "state"),
        **extra,
    }


def _setup_chain(tmp_path: Path) -> Path:
    """Write the three-file example chain: a, b accepted from the baseline; c rejected."""
    d = tmp_path / "incrementals"
    d.mkdir(exist_ok=True)
    (d / ".gitkeep").touch()
    write_increment(d, "a.sql", "20160129_192339", "20160128_192500")
    write_increment(d, "b.sql", "20160130_090000", "20160129_192339")
    write_increment(d, "c.sql", "20160201_000000", "99999999_999999")
    return d


def _accepted_lines(output: str) -> list[str]:
    return [line for line in output.splitlines() if line.endswith(".sql")]


# ---------------------------------------------------------------------------
# Help and version
# ---------------------------------------------------------------------------


class TestHelp:
    def test_root_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for cmd in ("validate", "config"):
            assert cmd in result.output

    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "increments" in result.output

    def test_validate_help(self):
        result = runner.invoke(app, ["validate", "--help"])
        assert result.exit_code == 0
        assert "--baseline" in result.output


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


class TestValidate:
    def test_prints_accepted_files_in_order(self, tmp_path):
        _setup_chain(tmp_path)
        result = runner.invoke(
            app, ["validate", "--baseline", "20160128_192500"], env=_env(tmp_path)
        )
        assert result.exit_code == 0, result.output
        assert _accepted_lines(result.output) == ["a.sql", "b.sql"]
        assert "20160130_090000" in result.output

    def test_baseline_from_settings(self, tmp_path):
        _setup_chain(tmp_path)
        env = _env(tmp_path, INCREMENTS_CHAIN__BASELINE="20160129_192339")
        result = runner.invoke(app, ["validate"], env=env)
        assert result.exit_code == 0, result.output
        assert _accepted_lines(result.output) == ["b.sql"]

    def test_no_baseline_accepts_first_file(self, tmp_path):
        _setup_chain(tmp_path)
        env = _env(tmp_path, INCREMENTS_CHAIN__BASELINE="SOMETHING_ELSE")
        result = runner.invoke(app, ["validate", "--no-baseline"], env=env)
        assert result.exit_code == 0, result.output
        assert _accepted_lines(result.output) == ["a.sql", "b.sql"]

    def test_dir_option_overrides_settings(self, tmp_path):
        d = tmp_path / "elsewhere"
        d.mkdir()
        write_increment(d, "x.sql", "T1", "T0")
        result = runner.invoke(
            app, ["validate", "--dir", str(d), "--baseline", "T0"], env=_env(tmp_path)
        )
        assert result.exit_code == 0, result.output
        assert _accepted_lines(result.output) == ["x.sql"]

    def test_missing_directory_is_empty_run(self, tmp_path):
        result = runner.invoke(app, ["validate"], env=_env(tmp_path))
        assert result.exit_code == 0, result.output
        assert "0 accepted" in result.output
        assert "increments directory missing" in result.output

    def test_nonexistent_dir_option_exits_two(self, tmp_path):
        result = runner.invoke(
            app, ["validate", "--dir", str(tmp_path / "typo")], env=_env(tmp_path)
        )
        assert result.exit_code == 2
        assert "is not a directory" in result.output

    def test_dir_option_pointing_at_file_exits_two(self, tmp_path):
        f = tmp_path / "a.sql"
        f.write_text("x")
        result = runner.invoke(app, ["validate", "--dir", str(f)], env=_env(tmp_path))
        assert result.exit_code == 2

    def test_malformed_file_exits_one(self, tmp_path):
        d = _setup_chain(tmp_path)
        (d / "b2.sql").write_text("not a header\n")
        result = runner.invoke(
            app, ["validate", "--baseline", "20160128_192500"], env=_env(tmp_path)
        )
        assert result.exit_code == 1
        assert "halted at b2.sql (header)" in result.output
        assert _accepted_lines(result.output) == ["a.sql", "b.sql"]

    def test_strict_policy_halts_on_mismatch(self, tmp_path):
        _setup_chain(tmp_path)
        result = runner.invoke(
            app,
            ["validate", "--baseline", "20160128_192500", "--policy", "strict"],
            env=_env(tmp_path),
        )
        assert result.exit_code == 1
        assert "chain_break" in result.output

    def test_invalid_policy_exits_two(self, tmp_path):
        result = runner.invoke(app, ["validate", "--policy", "lenient"], env=_env(tmp_path))
        assert result.exit_code == 2

    def test_baseline_and_no_baseline_conflict(self, tmp_path):
        result = runner.invoke(
            app, ["validate", "--baseline", "T0", "--no-baseline"], env=_env(tmp_path)
        )
        assert result.exit_code == 2


class TestSaveBaseline:
    def test_save_writes_final_token(self, tmp_path):
        _setup_chain(tmp_path)
        result = runner.invoke(
            app, ["validate", "--baseline", "20160128_192500", "--save"], env=_env(tmp_path)
        )
        assert result.exit_code == 0, result.output
        saved = (tmp_path / "state" / BASELINE_FILE).read_text().strip()
        assert saved == "20160130_090000"

    def test_saved_baseline_used_on_next_run(self, tmp_path):
        d = _setup_chain(tmp_path)
        runner.invoke(
            app, ["validate", "--baseline", "20160128_192500", "--save"], env=_env(tmp_path)
        )
        write_increment(d, "d.sql", "20160202_000000", "20160130_090000")

        result = runner.invoke(app, ["validate"], env=_env(tmp_path))
        assert result.exit_code == 0, result.output
        assert _accepted_lines(result.output) == ["d.sql"]

    def test_without_save_nothing_written(self, tmp_path):
        _setup_chain(tmp_path)
        runner.invoke(app, ["validate", "--baseline", "20160128_192500"], env=_env(tmp_path))
        assert not (tmp_path / "state" / BASELINE_FILE).exists()

    def test_halted_run_is_not_saved(self, tmp_path):
        d = _setup_chain(tmp_path)
        (d / "b2.sql").write_text("broken")
        runner.invoke(
            app, ["validate", "--baseline", "20160128_192500", "--save"], env=_env(tmp_path)
        )
        assert not (tmp_path / "state" / BASELINE_FILE).exists()


# ---------------------------------------------------------------------------
# config show
# ---------------------------------------------------------------------------


class TestConfigShow:
    def test_prints_every_section(self, tmp_path):
        result = runner.invoke(app, ["config", "show"], env=_env(tmp_path))
        assert result.exit_code == 0, result.output
        for section in ("[paths]", "[chain]", "[header]", "[logging]"):
            assert section in result.output

    def test_reflects_env_override(self, tmp_path):
        env = _env(tmp_path, INCREMENTS_CHAIN__POLICY="strict")
        result = runner.invoke(app, ["config", "show"], env=env)
        assert "strict" in result.output
