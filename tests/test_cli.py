"""
Tests for the command-line interface in mock mode.
"""

from typer.testing import CliRunner

from slotbooker.cli.app import app


runner = CliRunner()

CONFIG_YAML = """
database_url: "sqlite:///{db}"
agents:
  - id: desk
    booking_settings:
      timezone: "UTC"
      appointment_slot: 30
    weekly_availability:
      - day_of_week: MONDAY
        start_time: "09:00"
        end_time: "12:00"
    calendar_connections:
      - id: desk-google
        provider: GOOGLE
        calendar_id: primary
        access_token: a-1
        refresh_token: r-1
        is_primary: true
"""


def _config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML.format(db=tmp_path / "cli.db"), encoding="utf-8")
    return str(path)


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "slotbooker" in result.stdout


def test_slots_in_mock_mode(tmp_path):
    result = runner.invoke(app, ["slots", "desk", "2030-01-07", "--mock", "--json", "-c", _config(tmp_path)])

    assert result.exit_code == 0
    assert '"date": "2030-01-07"' in result.stdout
    assert "2030-01-07T11:30:00Z" in result.stdout


def test_book_then_list_appointments(tmp_path):
    config = _config(tmp_path)

    booked = runner.invoke(
        app,
        [
            "book", "desk", "2030-01-07T09:00:00Z", "2030-01-07T09:30:00Z",
            "--email", "ada@example.com", "--mock", "-c", config,
        ],
    )
    listed = runner.invoke(app, ["appointments", "desk", "-c", config])

    assert booked.exit_code == 0
    assert "Appointment confirmed" in booked.stdout
    assert listed.exit_code == 0
    assert "CONFIRMED" in listed.stdout


def test_engine_error_exits_with_code(tmp_path):
    result = runner.invoke(
        app,
        ["book", "desk", "2030-01-07T09:30:00Z", "2030-01-07T09:00:00Z", "--mock", "-c", _config(tmp_path)],
    )

    assert result.exit_code == 1
    assert "invalid_time_range" in result.stdout


def test_unknown_agent(tmp_path):
    result = runner.invoke(app, ["dates", "nobody", "--mock", "-c", _config(tmp_path)])

    assert result.exit_code == 1
    assert "agent_not_found" in result.stdout


def test_check_calendar(tmp_path):
    result = runner.invoke(app, ["check-calendar", "desk", "-c", _config(tmp_path)])

    assert result.exit_code == 0
    assert "primary" in result.stdout


def test_unusable_database_reports_storage_error(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML.format(db=tmp_path / "missing-dir" / "cli.db"), encoding="utf-8")

    result = runner.invoke(app, ["appointments", "desk", "-c", str(path)])

    assert result.exit_code == 1
    assert "storage_error" in result.stdout
