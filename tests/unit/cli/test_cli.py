"""Tests for the polycat command line interface."""

from __future__ import annotations

import json

import pytest
import toml
from click.testing import CliRunner

from polycat.cli.main import cli, main

pytestmark = [pytest.mark.unit, pytest.mark.cli]


@pytest.fixture
def cli_env(tmp_path, catalog_tree, monkeypatch):
    """Config file pointing at the on-disk catalogs, with an isolated environment."""
    for name in ("LC_ALL", "LC_MESSAGES", "LANG"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    prefs = tmp_path / "prefs.json"
    config_file = tmp_path / "polycat.toml"
    config_file.write_text(
        toml.dumps(
            {
                "locale": {"preference_file": str(prefs), "title_resync_delay": 0.0},
                "catalogs": {
                    "authenticated_root": str(catalog_tree["authenticated"]),
                    "unauthenticated_root": str(catalog_tree["unauthenticated"]),
                },
            }
        ),
        encoding="utf-8",
    )
    return {"config": str(config_file), "prefs": prefs}


class TestInfoCommands:
    """Test commands that only report."""

    def test_locales(self):
        result = CliRunner().invoke(cli, ["locales"])
        assert result.exit_code == 0
        assert "ja-JP" in result.output
        assert "日本語" in result.output

    def test_detect_preference(self, cli_env):
        cli_env["prefs"].write_text(json.dumps({"language": "ko-KR"}), encoding="utf-8")
        result = CliRunner().invoke(cli, ["-c", cli_env["config"], "detect"])
        assert result.exit_code == 0
        assert "ko-KR (from preference)" in result.output

    def test_detect_platform(self, cli_env, monkeypatch):
        monkeypatch.setenv("LC_ALL", "zh_HK.UTF-8")
        result = CliRunner().invoke(cli, ["-c", cli_env["config"], "detect"])
        assert result.exit_code == 0
        assert "zh-TW (from platform)" in result.output

    def test_config_show_json(self, cli_env):
        result = CliRunner().invoke(cli, ["-c", cli_env["config"], "config", "show", "--format", "json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["locale"]["preference_file"] == str(cli_env["prefs"])
        assert data["branding"]["site_name"] == "EZ THEME USER"

    def test_missing_config_file(self, tmp_path):
        result = CliRunner().invoke(cli, ["-c", str(tmp_path / "absent.toml"), "locales"])
        assert result.exit_code == 2


class TestLoadCommand:
    """Test the catalog load report."""

    def test_unauthenticated_without_index(self, cli_env):
        # the unauthenticated root is empty; every locale comes from the main root
        result = CliRunner().invoke(cli, ["-c", cli_env["config"], "load"])
        assert result.exit_code == 0
        assert "unauthenticated" in result.output
        assert "Catalog index unavailable" in result.output
        assert "substituted" not in result.output
        assert "No catalog available" not in result.output

    def test_authenticated_uses_index(self, cli_env):
        result = CliRunner().invoke(cli, ["-c", cli_env["config"], "load", "--authenticated"])
        assert result.exit_code == 0
        assert "index" in result.output
        assert "Catalog index unavailable" not in result.output

    def test_substitution_reported(self, cli_env, catalog_tree):
        (catalog_tree["authenticated"] / "fa-IR.json").unlink()
        result = CliRunner().invoke(cli, ["-c", cli_env["config"], "load"])
        assert result.exit_code == 0
        assert "substituted" in result.output


class TestRuntimeCommands:
    """Test commands that drive the locale runtime."""

    def test_translate_in_locale(self, cli_env):
        result = CliRunner().invoke(
            cli, ["-c", cli_env["config"], "translate", "menu.home", "--locale", "ru-RU"]
        )
        assert result.exit_code == 0
        assert result.output.strip() == "Home [ru-RU]"

    def test_translate_detected_locale_with_branding(self, cli_env, monkeypatch):
        monkeypatch.setenv("LANG", "ja_JP.UTF-8")
        runner = CliRunner()
        home = runner.invoke(cli, ["-c", cli_env["config"], "translate", "menu.home"])
        app_name = runner.invoke(cli, ["-c", cli_env["config"], "translate", "common.appName"])
        assert home.output.strip() == "Home [ja-JP]"
        assert app_name.output.strip() == "EZ THEME USER"

    def test_translate_missing_key(self, cli_env):
        result = CliRunner().invoke(cli, ["-c", cli_env["config"], "translate", "no.such.key"])
        assert result.output.strip() == "no.such.key"

    def test_translate_uses_authenticated_catalogs(self, cli_env):
        runner = CliRunner()
        authenticated = runner.invoke(
            cli,
            ["-c", cli_env["config"], "translate", "source", "--locale", "ja-JP", "--authenticated"],
        )
        anonymous = runner.invoke(
            cli, ["-c", cli_env["config"], "translate", "source", "--locale", "ja-JP"]
        )
        assert authenticated.output.strip() == "authenticated-index"
        assert anonymous.output.strip() == "main"

    def test_switch_persists_and_sets_title(self, cli_env):
        result = CliRunner().invoke(
            cli,
            ["-c", cli_env["config"], "switch", "ko-KR", "--title-key", "title.dashboard"],
        )
        assert result.exit_code == 0
        assert "Active locale: ko-KR" in result.output
        assert "Title: Dashboard [ko-KR] - EZ THEME USER" in result.output
        assert json.loads(cli_env["prefs"].read_text(encoding="utf-8")) == {"language": "ko-KR"}

    def test_switch_unsupported_falls_back(self, cli_env):
        result = CliRunner().invoke(cli, ["-c", cli_env["config"], "switch", "xx-XX"])
        assert result.exit_code == 0
        assert "Active locale: en-US" in result.output
        assert json.loads(cli_env["prefs"].read_text(encoding="utf-8")) == {"language": "en-US"}


def test_main_entry_point(monkeypatch):
    monkeypatch.setattr("sys.argv", ["polycat", "locales"])
    assert main() == 0
