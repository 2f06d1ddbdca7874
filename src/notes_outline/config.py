from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

CONFIG_ENV_VAR = "NOTES_OUTLINE_CONFIG"


class AppConfig(BaseModel):
    notes_dir: Path = Field(default=Path("notes"))
    index_dir: Path = Field(default=Path(".notes_index"))
    file_suffixes: List[str] = Field(default_factory=lambda: [".md", ".markdown", ".txt"])
    encoding: str = Field(default="utf-8")
    similarity_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    search_limit: int = Field(default=10, ge=1)
    log_level: str = Field(default="WARNING")

    @field_validator("file_suffixes")
    @classmethod
    def _dotted_suffixes(cls, value: List[str]) -> List[str]:
        return [s.lower() if s.startswith(".") else f".{s.lower()}" for s in value]

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {value!r}")
        return level

    @property
    def notes_dir_resolved(self) -> Path:
        return self.notes_dir.resolve()

    @property
    def index_dir_resolved(self) -> Path:
        return self.index_dir.resolve()


def load_config(path: Optional[Path] = None) -> AppConfig:
    """
    Load configuration from a YAML file.

    If `path` is None, uses the file named by NOTES_OUTLINE_CONFIG, or
    `config.yaml` in the current working directory. Environment variables
    from a `.env` file are loaded first, so NOTES_OUTLINE_CONFIG may be set
    there.
    """
    load_dotenv()

    if path is None:
        path = Path(os.getenv(CONFIG_ENV_VAR, "config.yaml"))

    if not path.exists():
        # Fall back to defaults if no config file is present.
        return AppConfig()

    with path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    try:
        return AppConfig(**raw)
    except ValidationError as e:
        raise SystemExit(f"Invalid configuration in {path}:\n{e}") from e


__all__ = ["AppConfig", "load_config"]
