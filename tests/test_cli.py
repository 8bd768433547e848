"""Tests for the uniqlog command line."""

import json
import os
import subprocess
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from uniqlog import __version__, config
from uniqlog.cli import _threshold

REPO_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

LINE = "2024-01-01 ERROR disk full"
FOOTER = "\t\t\t\t-- repeated {} more times --"


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("APPDATA", str(tmp_path))
    for key in list(os.environ):
        if key.startswith(config.ENV_PREFIX):
            monkeypatch.delenv(key)
    config.reload()
    yield tmp_path
    config.reload()


def _run_cli(home, *args, stdin=""):
    """Run uniqlog as a subprocess and return (returncode, stdout, stderr)."""
    env = {k: v for k, v in os.environ.items() if not k.startswith(config.ENV_PREFIX)}
    env["HOME"] = str(home)
    env["APPDATA"] = str(home)
    result = subprocess.run(  # noqa: S603
        [sys.executable, "-m", "uniqlog", *args],
        input=stdin,
        capture_output=True,
        text=True,
        cwd=REPO_DIR,
        env=env,
        check=False,
    )
    return result.returncode, result.stdout, result.stderr


def _write(path, lines):
    path.write_text("".join(line + "\n" for line in lines))
    return str(path)


class TestVersion:
    def test_prints_version(self, home):
        rc, stdout, _ = _run_cli(home, "--version")
        assert rc == 0
        assert f"uniqlog v{__version__}" in stdout

    def test_help(self, home):
        rc, stdout, _ = _run_cli(home, "--help")
        assert rc == 0
        assert "-fst" in stdout
        assert "-kst" in stdout


class TestInputs:
    def test_stdin(self, home):
        rc, stdout, _ = _run_cli(home, "--no-color", stdin=(LINE + "\n") * 5)
        assert rc == 0
        assert stdout == f"{LINE}\n{FOOTER.format(4)}\n"

    def test_dash_is_stdin(self, home):
        rc, stdout, _ = _run_cli(home, "--no-color", "-", stdin=(LINE + "\n") * 3)
        assert rc == 0
        assert stdout == f"{LINE}\n{FOOTER.format(2)}\n"

    def test_file(self, home):
        path = _write(home / "app.log", [LINE] * 5)
        rc, stdout, _ = _run_cli(home, "--no-color", path)
        assert rc == 0
        assert stdout == f"{LINE}\n{FOOTER.format(4)}\n"

    def test_files_have_independent_state(self, home):
        first = _write(home / "a.log", [LINE] * 3)
        second = _write(home / "b.log", [LINE] * 3)
        rc, stdout, _ = _run_cli(home, "--no-color", first, second)
        assert rc == 0
        assert stdout == f"{LINE}\n{FOOTER.format(2)}\n" * 2

    def test_missing_file_reported_and_others_processed(self, home):
        path = _write(home / "app.log", ["only line here"])
        rc, stdout, stderr = _run_cli(home, "--no-color", str(home / "missing.log"), path)
        assert rc == 1
        assert "Unable to open file" in stderr
        assert stdout == "only line here\n"

    def test_color_by_default(self, home):
        rc, stdout, _ = _run_cli(home, stdin=(LINE + "\n") * 3)
        assert rc == 0
        assert "\033[" in stdout


class TestOptions:
    def test_first_threshold_flag(self, home):
        rc, stdout, _ = _run_cli(home, "--no-color", "-fst", "1.0", stdin=(LINE + "\n") * 3)
        assert rc == 0
        assert stdout == (LINE + "\n") * 3

    def test_invalid_threshold_falls_back(self, home):
        rc, stdout, stderr = _run_cli(home, "--no-color", "-fst", "abc", stdin=(LINE + "\n") * 3)
        assert rc == 0
        assert "Invalid first_similarity_threshold" in stderr
        assert stdout == f"{LINE}\n{FOOTER.format(2)}\n"

    def test_debug_explains_false_start(self, home):
        lines = [
            "2024-01-01 worker alpha started job",
            "2024-01-01 cache miss for key",
            "2024-01-02 worker alpha started job",
            "2024-01-02 something totally else here",
        ]
        rc, stdout, _ = _run_cli(home, "--no-color", "-d", stdin="\n".join(lines) + "\n")
        assert rc == 0
        assert "--- Failed at 1 range: 2 sim: 0.00" in stdout
        assert "-2024-01-02 something totally else here" in stdout

    def test_debug_writes_log_file(self, home):
        rc, _, _ = _run_cli(home, "-d", stdin=(LINE + "\n") * 3)
        assert rc == 0
        log_dir = home / ("uniqlog" if os.name == "nt" else ".uniqlog")
        assert "established" in (log_dir / "uniqlog.log").read_text()

    def test_stats_text(self, home):
        rc, _, stderr = _run_cli(home, "--no-color", "--stats", stdin=(LINE + "\n") * 5)
        assert rc == 0
        assert "uniqlog: <stdin>: 5 lines read, 1 line printed, 1 block collapsed" in stderr

    def test_stats_json(self, home):
        rc, _, stderr = _run_cli(home, "--stats", "--json", "-", stdin=(LINE + "\n") * 5)
        assert rc == 0
        data = json.loads(stderr.strip().splitlines()[-1])
        assert data["source"] == "<stdin>"
        assert data["consumed"] == data["emitted"] == 5
        assert data["printed"] == 1

    def test_config_file_disables_color(self, home):
        config_dir = home / ("uniqlog" if os.name == "nt" else ".uniqlog")
        config_dir.mkdir()
        (config_dir / "config.json").write_text(json.dumps({"color": False}))
        rc, stdout, _ = _run_cli(home, stdin=(LINE + "\n") * 3)
        assert rc == 0
        assert "\033[" not in stdout

    def test_bad_config_values_fall_back(self, home):
        config_dir = home / ("uniqlog" if os.name == "nt" else ".uniqlog")
        config_dir.mkdir()
        (config_dir / "config.json").write_text(
            json.dumps({"first_similarity_threshold": "high", "max_lines_track": 0})
        )
        rc, stdout, stderr = _run_cli(home, "--no-color", stdin=(LINE + "\n") * 5)
        assert rc == 0
        assert "Traceback" not in stderr
        assert "first_similarity_threshold" in stderr
        assert stdout == f"{LINE}\n{FOOTER.format(4)}\n"


class TestThresholdParsing:
    def test_valid(self, home):
        assert _threshold("0.7", "first_similarity_threshold") == 0.7

    def test_missing_uses_config(self, home):
        assert _threshold(None, "keep_similarity_threshold") == 0.49

    def test_not_a_number(self, home):
        assert _threshold("abc", "first_similarity_threshold") == 0.9

    def test_out_of_range(self, home):
        assert _threshold("1.5", "keep_similarity_threshold") == 0.49
        assert _threshold("-0.1", "first_similarity_threshold") == 0.9
