from datetime import timedelta
from pathlib import Path

from browser_flow.config import BrowserEngine, FlowSettings, load_settings
from browser_flow.streams import Subject


def test_defaults():
    settings = FlowSettings()

    assert settings.wait == timedelta(seconds=10)
    assert settings.interval == timedelta(milliseconds=500)
    assert settings.dispose_on_completion is False
    assert settings.browser.engine is BrowserEngine.CHROMIUM
    assert isinstance(settings.log_stream, Subject)
    settings.logging_action("ignored", 0)


def test_load_settings_reads_env_file(tmp_path: Path) -> None:
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "BROWSER_FLOW_WAIT=PT3S",
                "BROWSER_FLOW_DISPOSE_ON_COMPLETION=true",
                "BROWSER_FLOW_BROWSER__HEADLESS=false",
                "BROWSER_FLOW_BROWSER__ENGINE=firefox",
            ]
        )
    )

    settings = load_settings(env_file=env_path)

    assert settings.wait == timedelta(seconds=3)
    assert settings.dispose_on_completion is True
    assert settings.browser.headless is False
    assert settings.browser.engine is BrowserEngine.FIREFOX


def test_load_settings_prioritises_overrides(tmp_path: Path) -> None:
    env_path = tmp_path / ".env"
    env_path.write_text("BROWSER_FLOW_BROWSER__VIEWPORT_WIDTH=1024\n")

    config_path = tmp_path / "flow.yaml"
    config_path.write_text(
        "\n".join(
            [
                "interval: 0.25",
                "browser:",
                "  headless: false",
            ]
        )
    )

    settings = load_settings(config_path, env_file=env_path, browser={"engine": "webkit"})

    assert settings.interval == timedelta(milliseconds=250)
    assert settings.browser.headless is False
    assert settings.browser.engine is BrowserEngine.WEBKIT


def test_load_settings_keeps_runtime_hooks(tmp_path: Path) -> None:
    lines = []

    def logging_action(text, indent):
        lines.append(text)

    config_path = tmp_path / "flow.yaml"
    config_path.write_text("wait: 2\n")

    settings = load_settings(config_path, logging_action=logging_action)

    assert settings.wait == timedelta(seconds=2)
    assert settings.logging_action is logging_action
