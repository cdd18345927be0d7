"""
ChatRewind Configuration.

Centralized configuration management using Pydantic Settings.
Loads configuration from environment variables.
"""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_xdg_state_dir() -> str:
    """
    Get XDG-compliant state directory for ChatRewind logs.

    Follows the XDG Base Directory layout:
    - Uses $XDG_STATE_HOME/chatrewind if XDG_STATE_HOME is set
    - Falls back to $HOME/.local/state/chatrewind if not set
    - Returns relative path ./logs if HOME not available (dev/testing)

    Returns:
        str: Path to state/logs directory
    """
    xdg_state_home = os.getenv("XDG_STATE_HOME")
    if xdg_state_home:
        return str(Path(xdg_state_home) / "chatrewind" / "logs")

    home = os.getenv("HOME")
    if home:
        return str(Path(home) / ".local" / "state" / "chatrewind" / "logs")

    # Fallback for development/testing environments without HOME
    return "./logs"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Rewind analysis
    rewind_days_back: int = 365  # Lookback window for in-scope messages
    rewind_target_filename: str = "conversations.json"  # Archive entry suffix
    rewind_top_n: int = 5  # Length of top-N lists
    rewind_phrase_min_count: int = 5  # Habit phrases below this are noise
    rewind_nickname_min_count: int = 2  # Nicknames below this are noise

    # Streaming
    rewind_read_chunk_bytes: int = 1_048_576  # 1MB reads from the byte source
    rewind_queue_high_water_bytes: int = 16_777_216  # Pause producer above 16MB
    rewind_queue_low_water_bytes: int = 4_194_304  # Resume producer below 4MB
    rewind_yield_every: int = 25  # Conversations between cooperative yields
    rewind_max_upload_bytes: int = 1_073_741_824  # 1GB

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = False

    # Application
    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    log_dir: str = ""  # XDG-compliant log directory (defaults to XDG state dir if empty)
    log_format: str = "standard"  # standard or json
    log_console_enabled: bool = True  # Enable console (stderr) logging
    log_file_enabled: bool = False  # Enable file-based logging
    log_max_bytes: int = 10_485_760  # 10MB per log file
    log_backup_count: int = 5  # Keep 5 backup files

    @property
    def log_directory(self) -> Path:
        """Get the log directory path, using XDG default if not specified."""
        if self.log_dir:
            return Path(self.log_dir).expanduser()
        return Path(get_xdg_state_dir())


# Global settings instance
settings = Settings()
