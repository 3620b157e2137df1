"""Tests for the command-line interface."""

import pytest
from click.testing import CliRunner

from assetforge import __version__
from assetforge.cli import main
from assetforge.core.fingerprint import compute_fingerprint
from assetforge.core.json_canonical import canonical_json_loads


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def project(tmp_path):
    """A small source tree with one stylesheet and one page."""
    css = tmp_path / "src" / "assets" / "styles" / "app.css"
    css.parent.mkdir(parents=True)
    css.write_bytes(b"body { color: red; }")
    (tmp_path / "src" / "index.html").write_text('<link href="asset://styles/app.css">')
    return tmp_path


class TestCli:
    """Tests for assetforge commands."""

    def test_version(self, runner):
        """--version should print the package version."""
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_fingerprint(self, runner, tmp_path):
        """fingerprint should print hash and revisioned name."""
        path = tmp_path / "app.css"
        path.write_bytes(b"body { color: red; }")

        result = runner.invoke(main, ["fingerprint", str(path)])

        fp = compute_fingerprint(b"body { color: red; }")
        assert result.exit_code == 0
        assert result.output.strip() == f"{fp}  app-{fp}.css"

    def test_fingerprint_missing_file(self, runner, tmp_path):
        """A missing file should exit with an error."""
        result = runner.invoke(main, ["fingerprint", str(tmp_path / "nope.css")])
        assert result.exit_code == 1

    def test_scan(self, runner, tmp_path):
        """scan should count references and list each once."""
        path = tmp_path / "page.html"
        path.write_text('<img src="asset://a.png"><img src="asset://a.png"><a href="asset://b.pdf">')

        result = runner.invoke(main, ["scan", str(path)])

        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0].endswith("3 reference(s)")
        assert lines[1:] == ["  asset://a.png", "  asset://b.pdf"]

    def test_build(self, runner, project):
        """build should revision, rewrite and write to dist."""
        result = runner.invoke(
            main,
            ["build", "--cwd", str(project), "--rev", "assets/**/*.css", "--replace", "*.html"],
        )

        fp = compute_fingerprint(b"body { color: red; }")
        assert result.exit_code == 0, result.output
        assert "Manifest" in result.output
        assert (project / "dist" / "assets" / "styles" / f"app-{fp}.css").exists()
        html = (project / "dist" / "index.html").read_text()
        assert html == f'<link href="/assets/styles/app-{fp}.css">'

    def test_build_report(self, runner, project):
        """--report should write one JSON record per rewritten file."""
        report = project / "out" / "report.json"
        result = runner.invoke(
            main,
            [
                "build", "--cwd", str(project),
                "--rev", "assets/**/*.css", "--replace", "*.html",
                "--report", str(report),
            ],
        )

        assert result.exit_code == 0, result.output
        records = canonical_json_loads(report.read_text())
        assert len(records) == 1
        assert records[0]["state"] == "resolved"
        assert records[0]["resolved"] == ["asset://styles/app.css"]
        assert records[0]["unresolved"] == []

    def test_build_from_config(self, runner, project):
        """Branches can come from a config file."""
        config = project / "assetforge.yaml"
        config.write_text(
            "prefix: //cdn.example.com\n"
            "branches:\n"
            "  - name: styles\n"
            "    patterns: ['assets/**/*.css']\n"
            "  - name: pages\n"
            "    patterns: ['*.html']\n"
            "    stages: [replace]\n"
        )

        result = runner.invoke(main, ["build", "-c", str(config), "--cwd", str(project)])

        assert result.exit_code == 0, result.output
        html = (project / "dist" / "index.html").read_text()
        assert html.startswith('<link href="//cdn.example.com/assets/styles/app-')

    def test_build_rejects_unknown_log_level(self, runner, project):
        """--log-level should only accept known level names."""
        result = runner.invoke(main, ["build", "--cwd", str(project), "--log-level", "chatty"])
        assert result.exit_code == 2

    def test_build_nothing_to_do(self, runner, project):
        """build without branches should fail."""
        result = runner.invoke(main, ["build", "--cwd", str(project)])
        assert result.exit_code == 1

    def test_build_missing_config(self, runner, project):
        """A missing config file should fail."""
        result = runner.invoke(main, ["build", "-c", str(project / "nope.yaml")])
        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_build_invalid_config(self, runner, project):
        """An invalid config file should fail."""
        config = project / "bad.yaml"
        config.write_text("repeat: -3\n")
        result = runner.invoke(main, ["build", "-c", str(config)])
        assert result.exit_code == 1
        assert "Error parsing config" in result.output

    def test_build_unresolved(self, runner, project):
        """Unresolved references should fail the build."""
        config = project / "fast.yaml"
        config.write_text("interval: 1\nrepeat: 2\n")

        args = ["build", "-c", str(config), "--cwd", str(project), "--replace", "*.html"]
        result = runner.invoke(main, args)
        assert result.exit_code == 1
        assert "Stalled or unable to process asset url" in result.output

        result = runner.invoke(main, [*args, "--allow-unresolved"])
        assert result.exit_code == 0
        assert (project / "dist" / "index.html").read_text() == '<link href="asset://styles/app.css">'
