"""Environment settings, the YAML candidate profile and the log file location."""
from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from applyflow.config import DEFAULT_MODEL, OUTPUT_DIR, Settings, load_profile, load_settings
from applyflow.errors import ConfigError
from applyflow.log import DEFAULT_LOG_DIR, run_log_path


class TestLoadSettings:
    def test_defaults(self) -> None:
        settings = load_settings({})
        assert settings.openai_model == DEFAULT_MODEL
        assert (settings.concurrency, settings.retries, settings.max_results) == (2, 3, 40)
        assert settings.output_dir == OUTPUT_DIR
        assert settings.openai_base_url is None

    def test_reads_values_and_aliases(self) -> None:
        settings = load_settings({
            "SERPER_API_KEY": " serper ",
            "AI_INTEGRATIONS_OPENAI_API_KEY": "sk-alias",
            "AI_INTEGRATIONS_OPENAI_BASE_URL": "http://localhost:8080/v1",
            "BATCH_CONCURRENCY": "4",
            "BATCH_RETRIES": "0",
            "OUTPUT_DIR": "/tmp/applyflow",
        })
        assert settings.serper_api_key == "serper"
        assert settings.openai_api_key == "sk-alias"
        assert settings.openai_base_url == "http://localhost:8080/v1"
        assert (settings.concurrency, settings.retries) == (4, 0)
        assert settings.output_dir == Path("/tmp/applyflow")

    def test_primary_key_wins_over_alias(self) -> None:
        settings = load_settings({"OPENAI_API_KEY": "sk-main", "OPENAI_KEY": "sk-old"})
        assert settings.openai_api_key == "sk-main"

    @pytest.mark.parametrize(
        ("key", "value"),
        [("BATCH_CONCURRENCY", "0"), ("BATCH_RETRIES", "-1"), ("SEARCH_MAX_RESULTS", "lots")],
    )
    def test_invalid_integers(self, key: str, value: str) -> None:
        with pytest.raises(ConfigError, match=key):
            load_settings({key: value})


class TestRequire:
    def test_names_every_missing_credential(self) -> None:
        with pytest.raises(ConfigError) as info:
            Settings(jina_api_key="j").require("serper_api_key", "jina_api_key", "openai_api_key")
        assert str(info.value) == "SERPER_API_KEY, OPENAI_API_KEY is missing"

    def test_present_credentials_pass(self) -> None:
        Settings(serper_api_key="s").require("serper_api_key")


class TestLoadProfile:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        profile = load_profile(tmp_path / "nope.yaml")
        assert profile == {"keywords": "", "location": "", "select_top": 2, "min_match": 0}

    def test_reads_yaml_and_joins_keyword_list(self, tmp_path: Path) -> None:
        path = tmp_path / "profile.yaml"
        path.write_text(
            "resume_path: cv.pdf\nkeywords: [python, backend]\nlocation: Leeds\nselect_top: 3\n",
            encoding="utf-8",
        )
        profile = load_profile(path)
        assert profile["resume_path"] == "cv.pdf"
        assert profile["keywords"] == "python backend"
        assert profile["location"] == "Leeds"
        assert profile["select_top"] == 3
        assert profile["min_match"] == 0

    def test_non_mapping_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "profile.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_profile(path)


class TestRunLogPath:
    def test_daily_file_under_configured_dir(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("APPLYFLOW_LOG_DIR", str(tmp_path))
        assert run_log_path(date(2026, 5, 6)) == tmp_path / "applyflow_2026-05-06.log"

    def test_default_dir(self, monkeypatch) -> None:
        monkeypatch.delenv("APPLYFLOW_LOG_DIR", raising=False)
        assert run_log_path().parent == DEFAULT_LOG_DIR
