"""Application configuration: settings schema and config.yaml loader"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field


CONFIG_FILE = "config.yaml"


class Settings(BaseModel):
    app_name:       str = "mdsite"
    content_dir:    str = Field(default="content", description="Directory of markdown sources")
    output_dir:     str = Field(default="_site",   description="Directory the HTML tree is written to")
    templates_dir:  Optional[str] = Field(default=None, description="Directory of <layout>.html templates; built-ins when unset")
    strict:         bool = Field(default=True, description="Abort on the first bad document; false skips and reports")
    workers:        int = Field(default=1, ge=1, description="Parallel render workers; 1 renders serially")
    clean:          bool = Field(default=True, description="Remove the previous output tree before writing")
    parser_config:  str = Field(default="gfm-like", description="MarkdownIt parser preset name")
    default_layout: str = Field(default="page", description="Layout for documents without front matter")
    log_level:      str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_file:       Optional[str] = Field(default=None, description="Also log to this file")


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then MDSITE_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid {CONFIG_FILE}: expected a mapping, got {type(data).__name__}")

    for name in Settings.model_fields:
        if val := os.getenv(f"MDSITE_{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings(**data)
    except ValueError as e:
        raise ValueError(f"Invalid configuration: {e}") from e
