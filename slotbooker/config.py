"""
Configuration management using Pydantic models loaded from YAML.
"""

import os
from datetime import datetime, time
from pathlib import Path
from typing import List, Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .domain.exceptions import ConfigurationError, InvalidTimezoneError
from .domain.models import (
    BookingSettings,
    CalendarConnection,
    CalendarProvider,
    DayOfWeek,
    WeeklyAvailabilityRule,
)
from .domain.timezones import validate_timezone


class DefaultsConfig(BaseModel):
    """Engine-wide defaults."""
    slot_minutes: int = 15
    days_ahead: int = 14
    request_timeout_seconds: float = 30.0
    step_timeout_seconds: float = 45.0

    @field_validator("slot_minutes")
    @classmethod
    def validate_slot_minutes(cls, value: int) -> int:
        """Slots are 5..120 minutes in steps of 5."""
        if not 5 <= value <= 120 or value % 5:
            raise ValueError("slot_minutes must be a multiple of 5 between 5 and 120")
        return value

    @field_validator("days_ahead")
    @classmethod
    def validate_days_ahead(cls, value: int) -> int:
        if value < 0:
            raise ValueError("days_ahead must not be negative")
        return value

    @field_validator("request_timeout_seconds", "step_timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be greater than zero")
        return value


class WeeklyAvailabilityConfig(BaseModel):
    """One availability window, e.g. MONDAY 09:00-12:00."""
    day_of_week: DayOfWeek
    start_time: time
    end_time: time

    @field_validator("day_of_week", mode="before")
    @classmethod
    def normalize_day(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "WeeklyAvailabilityConfig":
        """Ensure the window opens before it closes."""
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    def to_rule(self) -> WeeklyAvailabilityRule:
        return WeeklyAvailabilityRule(
            day_of_week=self.day_of_week,
            start_time=self.start_time,
            end_time=self.end_time,
        )


class BookingSettingsConfig(BaseModel):
    """Per-agent booking policy."""
    timezone: str = "UTC"
    allow_same_day_booking: bool = False
    appointment_slot: Optional[int] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            return validate_timezone(value)
        except InvalidTimezoneError as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("appointment_slot")
    @classmethod
    def validate_slot(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and (not 5 <= value <= 120 or value % 5):
            raise ValueError("appointment_slot must be a multiple of 5 between 5 and 120")
        return value


class CalendarConnectionConfig(BaseModel):
    """Stored credentials for one external calendar account."""
    id: str
    provider: CalendarProvider = CalendarProvider.GOOGLE
    account_email: str = ""
    calendar_id: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    access_token_expires_at: Optional[datetime] = None
    is_primary: bool = False

    def to_connection(self) -> CalendarConnection:
        expires_at = None
        if self.access_token_expires_at is not None:
            expires_at = pendulum.instance(self.access_token_expires_at, tz="UTC")
        return CalendarConnection(
            id=self.id,
            provider=self.provider,
            account_email=self.account_email,
            calendar_id=self.calendar_id,
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            access_token_expires_at=expires_at,
            is_primary=self.is_primary,
        )


class AgentConfig(BaseModel):
    """A bookable agent: policy, weekly template and calendar accounts."""
    id: str
    booking_settings: BookingSettingsConfig = Field(default_factory=BookingSettingsConfig)
    weekly_availability: List[WeeklyAvailabilityConfig] = Field(default_factory=list)
    calendar_connections: List[CalendarConnectionConfig] = Field(default_factory=list)


class GoogleConfig(BaseModel):
    """OAuth client used to refresh Google Calendar tokens."""
    client_id: str = Field(default_factory=lambda: os.getenv("GOOGLE_CLIENT_ID", ""))
    client_secret: str = Field(default_factory=lambda: os.getenv("GOOGLE_CLIENT_SECRET", ""))
    token_uri: str = "https://oauth2.googleapis.com/token"


class MicrosoftConfig(BaseModel):
    """MSAL confidential client used to refresh Microsoft Graph tokens."""
    client_id: str = Field(default_factory=lambda: os.getenv("MICROSOFT_CLIENT_ID", ""))
    tenant_id: str = Field(default_factory=lambda: os.getenv("MICROSOFT_TENANT_ID", "common"))
    client_secret: str = Field(default_factory=lambda: os.getenv("MICROSOFT_CLIENT_SECRET", ""))

    def get_authority_url(self) -> str:
        """Get the formatted authority URL."""
        return f"https://login.microsoftonline.com/{self.tenant_id}"


class AppConfig(BaseModel):
    """Application configuration."""
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    database_url: str = "sqlite:///./slotbooker.db"
    google: GoogleConfig = Field(default_factory=GoogleConfig)
    microsoft: MicrosoftConfig = Field(default_factory=MicrosoftConfig)
    agents: List[AgentConfig] = Field(default_factory=list)

    @field_validator("agents")
    @classmethod
    def validate_agents(cls, value: List[AgentConfig]) -> List[AgentConfig]:
        """Ensure agent ids are unique."""
        seen: set[str] = set()
        for agent in value:
            if agent.id in seen:
                raise ValueError(f"Duplicate agent id detected: {agent.id}")
            seen.add(agent.id)
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            ConfigurationError: If the file is missing, not YAML, or invalid
        """
        if not config_path.exists():
            raise ConfigurationError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigurationError("Config file must contain a mapping at the root level.")

        try:
            return cls(**data)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration in {config_path}:\n{exc}") from exc

    def find_agent(self, agent_id: str) -> AgentConfig | None:
        """Find an agent by id."""
        for agent in self.agents:
            if agent.id == agent_id:
                return agent
        return None

    def booking_settings_for(self, agent: AgentConfig) -> BookingSettings:
        """Resolve an agent's settings, filling the slot length from defaults."""
        settings = agent.booking_settings
        return BookingSettings(
            timezone=settings.timezone,
            allow_same_day_booking=settings.allow_same_day_booking,
            appointment_slot=settings.appointment_slot or self.defaults.slot_minutes,
        )


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
