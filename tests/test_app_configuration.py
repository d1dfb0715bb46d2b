from pathlib import Path

import pytest

from reaper.configuration.app_configuration import AppConfig


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def test_app_config_reload_parses_yaml(config_path: Path) -> None:
    config_path.write_text(
        "database:\n"
        "  path: ./somewhere/bot.db\n"
        "expiry_sweeper:\n"
        "  interval_seconds: 10\n"
        "moderation:\n"
        "  system_moderator_id: 1234\n"
        "logging:\n"
        "  level: info\n",
        encoding="utf-8",
    )

    config = AppConfig(config_path)

    assert config.database_path == Path("./somewhere/bot.db").resolve()
    assert config.expiry_sweep_interval == pytest.approx(10.0)
    assert config.system_moderator_id == 1234
    assert config.log_level == "INFO"
    assert config.get("moderation") == {"system_moderator_id": 1234}


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.database_path == Path("./data/reaper.db").resolve()
    assert config.expiry_sweep_interval == pytest.approx(45.0)
    assert config.system_moderator_id is None
    assert config.log_level == "DEBUG"


def test_app_config_non_mapping_is_ignored(config_path: Path) -> None:
    config_path.write_text("- just\n- a list\n", encoding="utf-8")

    assert AppConfig(config_path).data == {}


@pytest.mark.parametrize("value", ["-5", "0", "soon"])
def test_invalid_sweep_interval_falls_back(config_path: Path, value: str) -> None:
    config_path.write_text(f"expiry_sweeper:\n  interval_seconds: {value}\n", encoding="utf-8")

    assert AppConfig(config_path).expiry_sweep_interval == pytest.approx(45.0)


def test_invalid_system_moderator_is_ignored(config_path: Path) -> None:
    config_path.write_text("moderation:\n  system_moderator_id: nobody\n", encoding="utf-8")

    assert AppConfig(config_path).system_moderator_id is None


def test_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text("logging:\n  level: WARNING\n", encoding="utf-8")
    config = AppConfig(config_path)
    assert config.log_level == "WARNING"

    config_path.write_text("logging:\n  level: ERROR\n", encoding="utf-8")
    config.reload()

    assert config.log_level == "ERROR"
