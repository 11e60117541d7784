"""
Configuration settings for the shift reconciliation engine.
Classification thresholds, directories and logging, with defaults read from the environment.
"""

import os
from typing import Optional
from pydantic import BaseModel, Field
from dotenv import load_dotenv

from config.constants import (
    DEFAULT_TARDINESS_MINOR_MIN,
    DEFAULT_TARDINESS_MAJOR_MIN,
    DEFAULT_EARLY_DEPARTURE_MIN,
    DEFAULT_STAYED_LATE_MIN,
    DEFAULT_ARRIVED_EARLY_MIN,
)

# Load environment variables
load_dotenv()


class ThresholdVariables(BaseModel):
    """Organization threshold overrides, in minutes, keyed the way configuration storage keys them"""

    # Late arrivals at or above this are minor tardiness
    tardiness_minor_min: float = Field(
        default_factory=lambda: float(os.getenv("TARDINESS_MINOR_MIN", str(DEFAULT_TARDINESS_MINOR_MIN))),
        description="Minutes late before minor tardiness is suggested"
    )

    # Late arrivals at or above this are major tardiness (checked before minor)
    tardiness_major_min: float = Field(
        default_factory=lambda: float(os.getenv("TARDINESS_MAJOR_MIN", str(DEFAULT_TARDINESS_MAJOR_MIN))),
        description="Minutes late before major tardiness is suggested"
    )

    early_departure_min: float = Field(
        default_factory=lambda: float(os.getenv("EARLY_DEPARTURE_MIN", str(DEFAULT_EARLY_DEPARTURE_MIN))),
        description="Minutes before scheduled out time that count as an early departure"
    )

    stayed_late_min: float = Field(
        default_factory=lambda: float(os.getenv("STAYED_LATE_MIN", str(DEFAULT_STAYED_LATE_MIN))),
        description="Minutes past scheduled out time that earn a stayed-late credit"
    )

    arrived_early_min: float = Field(
        default_factory=lambda: float(os.getenv("ARRIVED_EARLY_MIN", str(DEFAULT_ARRIVED_EARLY_MIN))),
        description="Minutes before scheduled in time that earn an arrived-early credit"
    )


class DirectorySettings(BaseModel):
    """Directory path configuration"""

    script_dir: str = Field(default_factory=lambda: os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

    # Output directories
    output_dir: str = Field(default="output")
    logs_dir: str = Field(default="logs")

    def model_post_init(self, __context=None) -> None:
        """Initialize relative paths after script_dir is set"""
        if not os.path.isabs(self.output_dir):
            self.output_dir = os.path.join(self.script_dir, self.output_dir)
        if not os.path.isabs(self.logs_dir):
            self.logs_dir = os.path.join(self.script_dir, self.logs_dir)


class AppSettings(BaseModel):
    """Main application settings combining all configuration"""

    thresholds: ThresholdVariables = Field(default_factory=ThresholdVariables)
    directories: DirectorySettings = Field(default_factory=DirectorySettings)

    log_level: str = Field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"),
        description="Logging level for the application"
    )

    scheduling_platform: Optional[str] = Field(
        default_factory=lambda: os.getenv("SCHEDULING_PLATFORM") or None,
        description="Default scheduling platform id for both exports (auto-detected when unset)"
    )


def get_settings() -> AppSettings:
    """Get application settings instance"""
    return AppSettings()


def ensure_directories(settings: AppSettings) -> None:
    """Ensure all required directories exist"""
    directories = [
        settings.directories.output_dir,
        settings.directories.logs_dir,
    ]

    for directory in directories:
        os.makedirs(directory, exist_ok=True)
