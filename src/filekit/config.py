"""Configuration loading with environment variable substitution."""

import json
import os
import re
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from filekit.exceptions import ConfigError

ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")

# Default per-directory cap (FAT32 limit)
DEFAULT_MAX_DIR_FILES = 65535
UNLIMITED = -1


def substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR_NAME} patterns with environment variables."""
    if isinstance(value, str):
        def replace(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ConfigError(f"Environment variable {var_name} is not set")
            return env_value

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]
    return value


class FilenamePolicy(str, Enum):
    """How stored filenames are chosen."""

    GENERATED = "generated"
    PRESERVED = "preserved"


class OverwritePolicy(str, Enum):
    """What happens when the target path already exists."""

    WRITE_NEW_ONLY = "write_new_only"
    OVERWRITE = "overwrite"


class BackendConfig(BaseModel):
    """Storage backend selection."""

    name: str = "memory"
    # Passed to the backend constructor as keyword arguments
    options: dict[str, Any] = Field(default_factory=dict)


class FilekitConfig(BaseModel):
    """Main configuration for filekit."""

    base_url: str | None = None
    max_dir_files: int = DEFAULT_MAX_DIR_FILES  # -1 = unlimited
    filename_policy: FilenamePolicy = FilenamePolicy.GENERATED
    overwrite_policy: OverwritePolicy = OverwritePolicy.WRITE_NEW_ONLY
    max_allocation_attempts: int = Field(default=10, ge=1)
    random_name_length: int = Field(default=32, ge=8)
    backend: BackendConfig = Field(default_factory=BackendConfig)

    @field_validator("max_dir_files")
    @classmethod
    def _check_max_dir_files(cls, value: int) -> int:
        if value != UNLIMITED and value < 1:
            raise ValueError("max_dir_files must be >= 1 or -1 for unlimited")
        return value

    @property
    def unlimited(self) -> bool:
        """Whether shards never roll over."""
        return self.max_dir_files == UNLIMITED

    @property
    def preserve_file_names(self) -> bool:
        return self.filename_policy is FilenamePolicy.PRESERVED

    @property
    def overwrite(self) -> bool:
        return self.overwrite_policy is OverwritePolicy.OVERWRITE

    @classmethod
    def from_file(cls, path: str | Path) -> "FilekitConfig":
        """Load configuration from a YAML or JSON file."""
        path = Path(path)
        with path.open() as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FilekitConfig":
        """Load configuration from a dictionary."""
        data = substitute_env_vars(data)
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid filekit configuration: {e}") from e
