"""
Configuration management for kgmem.

Uses pydantic-settings for environment variable binding.
All settings can be overridden via environment variables with KGMEM_ prefix.
The memory file path also honours the legacy MEMORY_FILE_PATH variable.
"""

import logging
import sys
from pathlib import Path
from typing import IO, Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable binding."""

    model_config = SettingsConfigDict(
        env_prefix="KGMEM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================
    # Storage
    # ==========================================
    memory_path: Path = Field(
        default=Path("memory.jsonl"),
        validation_alias=AliasChoices("KGMEM_MEMORY_PATH", "MEMORY_FILE_PATH"),
    )
    """Backing JSONL file. Relative paths resolve against the working directory."""

    # ==========================================
    # MCP Server
    # ==========================================
    mcp_host: str = "127.0.0.1"
    mcp_port: int = 8765
    mcp_transport: Literal["stdio", "websocket"] = "stdio"

    # ==========================================
    # Logging
    # ==========================================
    log_level: str = "INFO"
    log_file: Path | None = None

    def resolve_memory_path(self, custom: str | Path | None = None) -> Path:
        """Return the absolute backing file path, preferring an explicit argument."""
        path = Path(custom) if custom else self.memory_path
        path = path.expanduser()
        if not path.is_absolute():
            path = Path.cwd() / path
        return path.resolve()


# Global settings instance
settings = Settings()


def setup_logging(level: str | None = None, stream: IO[str] | None = None) -> None:
    """
    Configure application logging.

    The stdio MCP transport owns stdout, so callers running it pass
    ``stream=sys.stderr``.
    """
    log_level = level or settings.log_level

    handlers: list[logging.Handler] = [
        logging.StreamHandler(stream or sys.stdout),
    ]

    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        handlers=handlers,
        force=True,
    )

    # Quiet noisy libraries
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(f"kgmem.{name}")
