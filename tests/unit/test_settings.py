# tests/unit/test_settings.py
"""
Unit tests for the layered settings.
"""

import pytest
from pydantic import ValidationError

from storefront_e2e.config.settings import (
    BrowserSettings,
    Environment,
    ExistingSessionPolicy,
    Settings,
    get_settings,
    reload_settings
)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """No stray .env file or suite variables leak into these tests."""
    monkeypatch.chdir(tmp_path)
    for name in (
            "ENVIRONMENT", "DEBUG", "APPLICATION_URL", "PARALLEL_THREAD_COUNT",
            "BROWSER", "HEADLESS", "VIEWPORT_WIDTH", "VIEWPORT_HEIGHT",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    get_settings.cache_clear()


class TestDefaults:

    def test_context_defaults(self):
        settings = Settings()

        assert settings.context_options() == {
            "viewport": {"width": 1920, "height": 1080},
            "locale": "en-US",
            "timezone_id": "America/New_York",
            "accept_downloads": True,
            "ignore_https_errors": True,
        }
        assert settings.browser.timeout == 30000

    def test_suite_defaults(self):
        settings = Settings()

        assert settings.browser.name == "chromium"
        assert settings.browser.headless is True
        assert settings.application_url == "https://www.saucedemo.com/"
        assert settings.parallel_thread_count == 5
        assert settings.session.on_existing_session == ExistingSessionPolicy.SUPERSEDE

    def test_tracing_defaults(self):
        assert Settings().tracing_options() == {
            "screenshots": True,
            "snapshots": True,
            "sources": False,
        }

    def test_launch_options_without_args(self):
        assert Settings().launch_options() == {"headless": True, "slow_mo": 0}


class TestEnvironmentOverrides:

    def test_nested_values(self, monkeypatch):
        monkeypatch.setenv("BROWSER__NAME", "Firefox")
        monkeypatch.setenv("BROWSER__VIEWPORT_WIDTH", "800")
        monkeypatch.setenv("BROWSER__VIEWPORT_HEIGHT", "600")
        monkeypatch.setenv("SESSION__ON_EXISTING_SESSION", "reject")

        settings = Settings()

        assert settings.browser.name == "firefox"
        assert settings.context_options()["viewport"] == {"width": 800, "height": 600}
        assert settings.session.on_existing_session == ExistingSessionPolicy.REJECT

    def test_top_level_values(self, monkeypatch):
        monkeypatch.setenv("APPLICATION_URL", "http://localhost:3000/")
        monkeypatch.setenv("PARALLEL_THREAD_COUNT", "8")

        settings = Settings()

        assert settings.application_url == "http://localhost:3000/"
        assert settings.parallel_thread_count == 8

    def test_env_file_is_read(self, tmp_path):
        (tmp_path / ".env").write_text("BROWSER__TIMEOUT=20000\nBROWSER__HEADLESS=false\n")

        settings = Settings()

        assert settings.browser.timeout == 20000
        assert settings.browser.headless is False

    def test_environment_variable_beats_env_file(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("BROWSER__HEADLESS=false\n")
        monkeypatch.setenv("BROWSER__HEADLESS", "true")

        assert Settings().browser.headless is True

    @pytest.mark.parametrize("environment", ["production", "testing"])
    def test_headless_forced(self, monkeypatch, environment):
        monkeypatch.setenv("ENVIRONMENT", environment)
        monkeypatch.setenv("BROWSER__HEADLESS", "false")

        assert Settings().browser.headless is True

    def test_debug_in_development_lowers_log_level(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "development")
        monkeypatch.setenv("DEBUG", "true")

        settings = Settings()

        assert settings.environment == Environment.DEVELOPMENT
        assert settings.logging.level == "DEBUG"

    def test_reload_settings_picks_up_changes(self, monkeypatch):
        monkeypatch.setenv("BROWSER__TIMEOUT", "10000")
        assert reload_settings().browser.timeout == 10000

        monkeypatch.setenv("BROWSER__TIMEOUT", "15000")
        assert get_settings().browser.timeout == 10000
        assert reload_settings().browser.timeout == 15000


class TestFlatKeys:
    """Single-word configuration names next to the nested ones."""

    def test_browser_names_the_engine_kind(self, monkeypatch):
        monkeypatch.setenv("BROWSER", "firefox")

        assert Settings().browser.name == "firefox"

    def test_browser_merges_with_nested_values(self, monkeypatch):
        monkeypatch.setenv("BROWSER", "WebKit")
        monkeypatch.setenv("BROWSER__TIMEOUT", "45000")

        settings = Settings()

        assert settings.browser.name == "webkit"
        assert settings.browser.timeout == 45000

    def test_browser_as_json_object(self, monkeypatch):
        monkeypatch.setenv("BROWSER", '{"name": "firefox", "slow_mo": 10}')

        settings = Settings()

        assert settings.browser.name == "firefox"
        assert settings.browser.slow_mo == 10

    def test_empty_browser_keeps_default(self, monkeypatch):
        monkeypatch.setenv("BROWSER", "")

        assert Settings().browser.name == "chromium"

    def test_desktop_browser_path_does_not_break_loading(self, monkeypatch):
        monkeypatch.setenv("BROWSER", "/usr/bin/firefox")

        assert Settings().browser.name == "/usr/bin/firefox"

    def test_headless_and_viewport(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "development")
        monkeypatch.setenv("HEADLESS", "false")
        monkeypatch.setenv("VIEWPORT_WIDTH", "800")
        monkeypatch.setenv("VIEWPORT_HEIGHT", "600")

        settings = Settings()

        assert settings.browser.headless is False
        assert settings.context_options()["viewport"] == {"width": 800, "height": 600}

    def test_flat_names_win_over_nested(self, monkeypatch):
        monkeypatch.setenv("VIEWPORT_WIDTH", "800")
        monkeypatch.setenv("BROWSER__VIEWPORT_WIDTH", "1280")

        assert Settings().browser.viewport_width == 800

    def test_flat_names_in_env_file(self, tmp_path):
        (tmp_path / ".env").write_text("BROWSER=firefox\nHEADLESS=true\nVIEWPORT_WIDTH=800\n")

        settings = Settings()

        assert settings.browser.name == "firefox"
        assert settings.browser.headless is True
        assert settings.browser.viewport_width == 800

    def test_invalid_flat_viewport(self, monkeypatch):
        monkeypatch.setenv("VIEWPORT_WIDTH", "0")

        with pytest.raises(ValidationError):
            Settings()


class TestValidation:

    def test_invalid_url(self, monkeypatch):
        monkeypatch.setenv("APPLICATION_URL", "saucedemo")

        with pytest.raises(ValidationError):
            Settings()

    def test_malformed_number(self, monkeypatch):
        monkeypatch.setenv("BROWSER__TIMEOUT", "invalid_number")

        with pytest.raises(ValidationError):
            Settings()

    def test_empty_browser_name(self):
        with pytest.raises(ValidationError):
            BrowserSettings(name="  ")

    def test_unknown_browser_name_is_accepted(self):
        assert BrowserSettings(name="Netscape").name == "netscape"

    def test_args_from_comma_separated_string(self):
        browser = BrowserSettings(args="--lang=en-US, --mute-audio,")

        assert browser.args == ["--lang=en-US", "--mute-audio"]

    def test_assignment_is_validated(self):
        browser = BrowserSettings()

        with pytest.raises(ValidationError):
            browser.viewport_width = 0

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(logging={"level": "verbose"})

    def test_unknown_policy(self):
        with pytest.raises(ValidationError):
            Settings(session={"on_existing_session": "ignore"})


def test_summary_reports_banner_values():
    settings = Settings(browser={"name": "webkit", "viewport_width": 800, "viewport_height": 600})

    summary = settings.summary()

    assert summary["browser_name"] == "webkit"
    assert summary["viewport"] == "800x600"
    assert summary["application_url"] == "https://www.saucedemo.com/"
    assert summary["parallel_thread_count"] == 5
