"""
Tests for YAML configuration loading and the config-backed agent repository.
"""

import asyncio
from datetime import time

import pytest

from slotbooker.adapters.config_repository import ConfigAgentRepository
from slotbooker.config import AppConfig
from slotbooker.domain.exceptions import AgentNotFoundError, ConfigurationError
from slotbooker.domain.models import CalendarProvider, Credential, DayOfWeek


CONFIG_YAML = """
defaults:
  slot_minutes: 20
  days_ahead: 7
database_url: "sqlite:///./test.db"
agents:
  - id: desk
    booking_settings:
      timezone: "Europe/Rome"
    weekly_availability:
      - day_of_week: monday
        start_time: "09:00"
        end_time: "12:00"
    calendar_connections:
      - id: desk-google
        provider: GOOGLE
        calendar_id: primary
        refresh_token: r-1
        is_primary: true
"""


def _write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_full_config(tmp_path):
    config = AppConfig.load_from_yaml(_write(tmp_path, CONFIG_YAML))

    assert config.defaults.days_ahead == 7
    agent = config.find_agent("desk")
    assert agent is not None
    assert agent.weekly_availability[0].day_of_week == DayOfWeek.MONDAY
    assert agent.weekly_availability[0].start_time == time(9, 0)


def test_slot_length_falls_back_to_defaults(tmp_path):
    config = AppConfig.load_from_yaml(_write(tmp_path, CONFIG_YAML))

    settings = config.booking_settings_for(config.find_agent("desk"))

    assert settings.appointment_slot == 20
    assert settings.timezone == "Europe/Rome"
    assert settings.allow_same_day_booking is False


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        AppConfig.load_from_yaml(tmp_path / "absent.yaml")


def test_invalid_yaml(tmp_path):
    with pytest.raises(ConfigurationError):
        AppConfig.load_from_yaml(_write(tmp_path, "agents: [unclosed"))


def test_invalid_timezone_rejected(tmp_path):
    text = CONFIG_YAML.replace("Europe/Rome", "Atlantis/Capital")

    with pytest.raises(ConfigurationError):
        AppConfig.load_from_yaml(_write(tmp_path, text))


def test_slot_length_must_be_multiple_of_five(tmp_path):
    text = CONFIG_YAML.replace("slot_minutes: 20", "slot_minutes: 17")

    with pytest.raises(ConfigurationError):
        AppConfig.load_from_yaml(_write(tmp_path, text))


def test_window_must_open_before_close(tmp_path):
    text = CONFIG_YAML.replace('end_time: "12:00"', 'end_time: "08:00"')

    with pytest.raises(ConfigurationError):
        AppConfig.load_from_yaml(_write(tmp_path, text))


def test_duplicate_agent_ids(tmp_path):
    text = CONFIG_YAML + "  - id: desk\n"

    with pytest.raises(ConfigurationError):
        AppConfig.load_from_yaml(_write(tmp_path, text))


class TestConfigAgentRepository:
    """Tests for ConfigAgentRepository."""

    def test_loads_agent_data(self, tmp_path):
        repository = ConfigAgentRepository(AppConfig.load_from_yaml(_write(tmp_path, CONFIG_YAML)))

        rules = asyncio.run(repository.load_weekly_rules("desk"))
        connections = asyncio.run(repository.load_calendar_connections("desk"))

        assert rules[0].weekday == 1
        assert connections[0].provider == CalendarProvider.GOOGLE
        assert connections[0].is_primary

    def test_unknown_agent(self, tmp_path):
        repository = ConfigAgentRepository(AppConfig.load_from_yaml(_write(tmp_path, CONFIG_YAML)))

        with pytest.raises(AgentNotFoundError):
            asyncio.run(repository.load_booking_settings("nobody"))

    def test_refreshed_tokens_are_kept_in_memory(self, tmp_path):
        repository = ConfigAgentRepository(AppConfig.load_from_yaml(_write(tmp_path, CONFIG_YAML)))
        connection = asyncio.run(repository.load_calendar_connections("desk"))[0]

        repository.note_refreshed_tokens(connection, Credential(access_token="fresh"))

        reloaded = asyncio.run(repository.load_calendar_connections("desk"))[0]
        assert reloaded.access_token == "fresh"
        assert reloaded.refresh_token == "r-1"
