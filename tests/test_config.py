"""
Tests for connection settings.

Run with: pytest tests/test_config.py
"""

import logging

import pytest

from assistant_endpoint.config import (
    DEFAULT_TIMEOUT,
    ENV_AGENT_ID,
    ENV_API_KEY,
    ENV_SERVER_URL,
    ENV_TIMEOUT,
    ConnectionSettings,
    create_settings,
    load_settings_yaml,
    normalize_server_url,
    settings_from_env,
)
from assistant_endpoint.errors import ConfigurationError
from assistant_endpoint.llm import ServerConnection


class TestNormalizeServerUrl:

    @pytest.mark.parametrize("raw, expected", [
        ("example.com", "https://example.com"),
        ("https://example.com/", "https://example.com"),
        ("http://example.com:8080", "http://example.com:8080"),
        ("  https://example.com/api/v1?x=1  ", "https://example.com"),
        ("HTTPS://Example.com", "https://Example.com"),
        ("localhost:5000", "https://localhost:5000"),
    ])
    def test_valid(self, raw, expected):
        assert normalize_server_url(raw) == expected

    @pytest.mark.parametrize("raw", [
        None,
        "",
        "   ",
        "ftp://example.com",
        "https://example.com:notaport",
        "https://exa mple.com",
        "https://",
    ])
    def test_invalid(self, raw):
        with pytest.raises(ConfigurationError):
            normalize_server_url(raw)


class TestConnectionSettings:

    def test_defaults(self):
        s = ConnectionSettings(server_url="agent.example.com")
        assert s.server_url == "https://agent.example.com"
        assert s.timeout == DEFAULT_TIMEOUT
        assert s.auth_header_name == "Authorization"
        assert s.auth_scheme == "Bearer"
        assert not s.use_api_key_as_query_param

    def test_bad_url_rejected_at_construction(self):
        with pytest.raises(ConfigurationError):
            ConnectionSettings(server_url="")

    def test_build_url_substitutes_agent_id(self, settings):
        assert settings.build_url(settings.call_endpoint) == "http://agent.test/agents/abc/call"

    def test_build_url_with_default_template(self):
        s = ConnectionSettings(server_url="https://h.test", agent_access_id="a1")
        assert s.build_url(s.call_endpoint) == "https://h.test/api/v1/cloud-ai/agents/a1/call"

    def test_build_url_adds_leading_slash(self):
        s = ConnectionSettings(server_url="https://h.test", agent_access_id="a1")
        assert s.build_url("agents/{agent_access_id}") == "https://h.test/agents/a1"

    def test_build_url_quotes_agent_id(self):
        s = ConnectionSettings(server_url="https://h.test", agent_access_id="a/b c")
        assert s.build_url("/agents/{agent_access_id}") == "https://h.test/agents/a%2Fb%20c"

    @pytest.mark.parametrize("agent_id", ["", "   "])
    def test_build_url_requires_agent_id(self, agent_id):
        s = ConnectionSettings(server_url="https://h.test", agent_access_id=agent_id)
        with pytest.raises(ConfigurationError, match="Agent access id"):
            s.build_url(s.call_endpoint)

    def test_header_auth(self, settings):
        assert settings.auth_headers() == {"Authorization": "Bearer secret-key"}
        assert settings.auth_params() == {}

    def test_header_auth_without_scheme(self):
        s = ConnectionSettings(server_url="h.test", api_key="k", auth_header_name="X-Api-Key", auth_scheme="")
        assert s.auth_headers() == {"X-Api-Key": "k"}

    def test_query_param_auth(self):
        s = ConnectionSettings(
            server_url="h.test", api_key="k",
            use_api_key_as_query_param=True, api_key_query_param_name="key",
        )
        assert s.auth_headers() == {}
        assert s.auth_params() == {"key": "k"}

    def test_repr_hides_api_key(self, settings):
        assert "secret-key" not in repr(settings)
        assert "agent.test" in repr(settings)

    def test_settings_are_immutable(self, settings):
        with pytest.raises(AttributeError):
            settings.timeout = 1.0


class TestCreateSettings:

    def test_basic(self):
        s = create_settings(" agent.example.com/ ", " key ", timeout=12, agent_access_id="abc")
        assert s.server_url == "https://agent.example.com"
        assert s.api_key == "key"
        assert s.timeout == 12.0
        assert s.agent_access_id == "abc"

    @pytest.mark.parametrize("url, key", [("", "k"), ("   ", "k"), ("h.test", ""), ("h.test", "  ")])
    def test_blank_fields(self, url, key):
        with pytest.raises(ConfigurationError):
            create_settings(url, key)

    def test_short_timeout_is_ignored(self, caplog):
        with caplog.at_level(logging.WARNING, logger="assistant_endpoint.config"):
            s = create_settings("h.test", "k", timeout=0.5)
        assert s.timeout == DEFAULT_TIMEOUT
        assert "Ignoring timeout" in caplog.text

    def test_minimum_timeout_is_accepted(self):
        assert create_settings("h.test", "k", timeout=1).timeout == 1.0

    def test_use_tls_flag(self):
        assert create_settings("h.test", "k", use_tls=False).use_tls is False


class TestSettingsFromEnv:

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in (ENV_SERVER_URL, ENV_API_KEY, ENV_AGENT_ID, ENV_TIMEOUT):
            monkeypatch.delenv(name, raising=False)

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv(ENV_SERVER_URL, "env.test")
        monkeypatch.setenv(ENV_API_KEY, "env-key")
        monkeypatch.setenv(ENV_AGENT_ID, "env-agent")
        monkeypatch.setenv(ENV_TIMEOUT, "45")

        s = settings_from_env()
        assert s.server_url == "https://env.test"
        assert s.api_key == "env-key"
        assert s.agent_access_id == "env-agent"
        assert s.timeout == 45.0

    def test_overrides_win_and_none_is_skipped(self, monkeypatch):
        monkeypatch.setenv(ENV_SERVER_URL, "env.test")
        monkeypatch.setenv(ENV_AGENT_ID, "env-agent")

        s = settings_from_env(agent_access_id="cli-agent", api_key=None)
        assert s.agent_access_id == "cli-agent"
        assert s.api_key == ""

    def test_missing_server_url(self):
        with pytest.raises(ConfigurationError):
            settings_from_env()

    def test_bad_timeout(self, monkeypatch):
        monkeypatch.setenv(ENV_SERVER_URL, "env.test")
        monkeypatch.setenv(ENV_TIMEOUT, "soon")
        with pytest.raises(ConfigurationError, match=ENV_TIMEOUT):
            settings_from_env()


class TestLoadSettingsYaml:

    def test_load_profile(self, tmp_path):
        profile = tmp_path / "agent.yaml"
        profile.write_text(
            "server_url: http://yaml.test/\n"
            "api_key: 12345\n"
            "agent_access_id: abc\n"
            "timeout: 60\n"
            "call_endpoint: /agents/{agent_access_id}/call\n"
        )

        s = load_settings_yaml(profile)
        assert s.server_url == "http://yaml.test"
        assert s.api_key == "12345"
        assert s.timeout == 60.0
        assert s.build_url(s.call_endpoint) == "http://yaml.test/agents/abc/call"

    def test_overrides_win(self, tmp_path):
        profile = tmp_path / "agent.yaml"
        profile.write_text("server_url: yaml.test\nagent_access_id: abc\n")

        s = load_settings_yaml(profile, agent_access_id="other", timeout=None)
        assert s.agent_access_id == "other"
        assert s.timeout == DEFAULT_TIMEOUT

    def test_unknown_keys_are_ignored(self, tmp_path, caplog):
        profile = tmp_path / "agent.yaml"
        profile.write_text("server_url: yaml.test\nmodel: gpt-4\n")

        with caplog.at_level(logging.WARNING, logger="assistant_endpoint.config"):
            s = load_settings_yaml(profile)

        assert s.server_url == "https://yaml.test"
        assert "model" in caplog.text

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings_yaml(tmp_path / "nope.yaml")

    @pytest.mark.parametrize("content", ["", "- a\n- b\n"])
    def test_empty_or_not_a_mapping(self, tmp_path, content):
        profile = tmp_path / "agent.yaml"
        profile.write_text(content)
        with pytest.raises(ConfigurationError):
            load_settings_yaml(profile)

    def test_missing_server_url(self, tmp_path):
        profile = tmp_path / "agent.yaml"
        profile.write_text("api_key: k\n")
        with pytest.raises(ConfigurationError, match="server_url"):
            load_settings_yaml(profile)


def test_connection_requires_settings():
    with pytest.raises(ConfigurationError):
        ServerConnection(None)
