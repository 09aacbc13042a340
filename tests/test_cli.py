"""Tests for the command line entry point and message catalogs."""

import json

import pytest

from audiodedupe import cli, i18n


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("DEDUPE_LANG", "DEDUPE_CONFIG", "DEDUPE_DATA_DIR", "DEDUPE_TRASH_DIR"):
        monkeypatch.delenv(name, raising=False)


class TestResolveLanguage:
    langs = {"en", "es"}

    def test_precedence(self, monkeypatch):
        monkeypatch.setenv("DEDUPE_LANG", "es")

        assert cli.resolve_language("en", "es", self.langs) == ("en", None)
        assert cli.resolve_language(None, "en", self.langs) == ("es", None)

    def test_settings_language(self):
        assert cli.resolve_language(None, "es", self.langs) == ("es", None)
        assert cli.resolve_language(None, None, self.langs) == ("en", None)

    def test_unknown_language_falls_back(self):
        assert cli.resolve_language("fr", None, self.langs) == ("en", "fr")


class TestMain:
    def test_init_and_status(self, tmp_path, capsys):
        config_file = tmp_path / "config.json"

        with pytest.raises(SystemExit) as info:
            cli.main(["--config", str(config_file), "--lang", "es", "init"])
        assert info.value.code == 0
        assert json.loads(config_file.read_text(encoding="utf-8"))["language"] == "es"
        capsys.readouterr()

        with pytest.raises(SystemExit) as info:
            cli.main(["--config", str(config_file), "--data-dir", str(tmp_path / "data"), "status"])
        assert info.value.code == 0
        # the settings document selects Spanish
        out = capsys.readouterr().out
        assert "Idioma:" in out
        assert "Escaneados:     0 archivos" in out

    def test_unknown_language_is_warned(self, tmp_path, capsys):
        with pytest.raises(SystemExit):
            cli.main(["--config", str(tmp_path / "config.json"), "--lang", "fr", "init"])

        assert "Unknown language 'fr'" in capsys.readouterr().err

    def test_missing_settings_is_reported(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as info:
            cli.main(["--config", str(tmp_path / "nope.json"), "find-dupes"])

        assert info.value.code == 1
        assert "nope.json" in capsys.readouterr().err

    def test_no_command_prints_help(self, capsys):
        with pytest.raises(SystemExit) as info:
            cli.main([])

        assert info.value.code == 0
        assert "usage" in capsys.readouterr().out

    def test_verify_exit_status(self, tmp_path):
        data = tmp_path / "data"
        data.mkdir()
        (tmp_path / "config.json").write_text("{}", encoding="utf-8")
        (data / "decisions.json").write_text(json.dumps({"decisions": [
            {"groupId": "g1", "keep": ["/a"], "delete": ["/b"]},
            {"groupId": "g2", "keep": ["/b"], "delete": ["/a"]},
        ]}), encoding="utf-8")

        with pytest.raises(SystemExit) as info:
            cli.main(["--config", str(tmp_path / "config.json"), "--data-dir", str(data), "verify"])

        assert info.value.code == 1


class TestCatalogs:
    def test_languages_share_keys(self):
        en = i18n.load_catalog("en")
        es = i18n.load_catalog("es")

        assert set(en) == set(es)

    def test_render_unknown_key_and_missing_params(self):
        assert i18n.render({"key": "NOT_A_KEY"}) == "NOT_A_KEY"
        assert i18n.render(i18n.msg("SCAN_ROOT_MISSING")) == "Scan root does not exist, skipping: {path} {}"

    def test_raw_mode_prints_payload(self, capsys):
        i18n.configure("en", raw=True)
        i18n.emit("SCAN_DONE", count=3)

        assert capsys.readouterr().out.strip() == "{'key': 'SCAN_DONE', 'params': {'count': 3}}"
