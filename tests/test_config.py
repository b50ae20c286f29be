# LICENSE HEADER MANAGED BY add-license-header
#
# BSD 3-Clause License
#
# Copyright (c) 2026, Martin Vesterlund
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# 1. Redistributions of source code must retain the above copyright notice, this
#    list of conditions and the following disclaimer.
#
# 2. Redistributions in binary form must reproduce the above copyright notice,
#    this list of conditions and the following disclaimer in the documentation
#    and/or other materials provided with the distribution.
#
# 3. Neither the name of the copyright holder nor the names of its
#    contributors may be used to endorse or promote products derived from
#    this software without specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE
# DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE
# FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR
# SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
# CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY,
# OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE
# OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
#
"""Tests for config-laddning och validering."""

import pytest

from feedupdater.config import ConfigError, load_settings, settings_from_dict


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("LLM_API_KEY", "LLM_API_BASE", "LLM_NAME", "LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


def minimal(**extra):
    cfg = {"sources": ["https://example.com/rss"], "llm": {"api_key": "k"}}
    cfg.update(extra)
    return cfg


class TestSettingsFromDict:
    def test_defaults(self):
        s = settings_from_dict(minimal())

        assert s.sources == ["https://example.com/rss"]
        assert s.max_items_per_feed == 50
        assert s.throttle.concurrency == 3
        assert s.throttle.interval_cap == 15
        assert s.throttle.interval_s == 60.0
        assert s.throttle.token_ceiling == 900_000
        assert s.throttle.token_per_char == 0.4
        assert s.retry.max_attempts == 3
        assert s.retry.base_delay_s == 2.0
        assert s.summary.clip_chars == 3000
        assert s.summary.fallback == "summary generation failed"
        assert s.log_level == "INFO"

    def test_source_entries_as_dicts(self):
        s = settings_from_dict(
            minimal(
                sources=[
                    {"url": "https://a.example/rss", "name": "A"},
                    {"url": "https://b.example/rss", "enabled": False},
                    "https://a.example/rss",
                    " https://c.example/rss ",
                ]
            )
        )

        assert s.sources == ["https://a.example/rss", "https://c.example/rss"]

    def test_no_sources_is_an_error(self):
        with pytest.raises(ConfigError):
            settings_from_dict(minimal(sources=[]))

    def test_missing_api_key_is_an_error(self):
        with pytest.raises(ConfigError, match="LLM_API_KEY"):
            settings_from_dict({"sources": ["https://example.com/rss"]})

    def test_api_key_and_model_from_environment(self, monkeypatch):
        monkeypatch.setenv("LLM_API_KEY", "from-env")
        monkeypatch.setenv("LLM_NAME", "gemini-test")
        monkeypatch.setenv("LLM_API_BASE", "https://proxy.example/models/")

        s = settings_from_dict({"sources": ["https://example.com/rss"]})

        assert s.llm["api_key"] == "from-env"
        assert s.llm["model"] == "gemini-test"
        assert s.llm["api_base"] == "https://proxy.example/models/"

    def test_config_value_wins_over_environment(self, monkeypatch):
        monkeypatch.setenv("LLM_NAME", "from-env")

        s = settings_from_dict(minimal(llm={"api_key": "k", "model": "from-config"}))

        assert s.llm["model"] == "from-config"

    def test_variable_references_are_expanded(self, monkeypatch):
        monkeypatch.setenv("FEEDUPDATER_TEST_KEY", "hemlig")

        s = settings_from_dict(
            {"sources": ["https://example.com/rss"], "llm": {"api_key": "${FEEDUPDATER_TEST_KEY}"}}
        )

        assert s.llm["api_key"] == "hemlig"

    def test_unset_variable_reference_counts_as_missing(self, monkeypatch):
        monkeypatch.delenv("FEEDUPDATER_TEST_UNSET", raising=False)

        with pytest.raises(ConfigError):
            settings_from_dict(
                {
                    "sources": ["https://example.com/rss"],
                    "llm": {"api_key": "${FEEDUPDATER_TEST_UNSET}"},
                }
            )

    def test_ollama_does_not_need_api_key(self):
        s = settings_from_dict(
            {"sources": ["https://example.com/rss"], "llm": {"provider": "ollama"}}
        )

        assert s.llm["provider"] == "ollama"

    def test_data_path_becomes_store_path(self):
        s = settings_from_dict(minimal(data_path="./mina-data"))

        assert s.store["path"] == "./mina-data"

    @pytest.mark.parametrize(
        "extra",
        [
            {"throttle": {"concurrency": 0}},
            {"throttle": {"interval_cap": -1}},
            {"throttle": {"token_ceiling": "massor"}},
            {"retry": {"max_attempts": 0}},
            {"max_items_per_feed": 0},
        ],
    )
    def test_non_positive_limits_are_rejected(self, extra):
        with pytest.raises(ConfigError):
            settings_from_dict(minimal(**extra))

    def test_log_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        assert settings_from_dict(minimal(logging={"level": "WARNING"})).log_level == "DEBUG"


class TestLoadSettings:
    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_settings(str(tmp_path / "config.yaml"))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("sources: [oavslutad\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            load_settings(str(path))

    def test_reads_env_file_next_to_config(self, tmp_path, monkeypatch):
        # registrera variabeln hos monkeypatch så att värdet från filen städas bort
        monkeypatch.setenv("LLM_API_KEY", "tillfällig")
        monkeypatch.delenv("LLM_API_KEY")
        (tmp_path / ".env.local").write_text("LLM_API_KEY=från-fil\n", encoding="utf-8")
        path = tmp_path / "config.yaml"
        path.write_text("sources:\n  - https://example.com/rss\n", encoding="utf-8")

        s = load_settings(str(path))

        assert s.llm["api_key"] == "från-fil"
