"""Loading of runner configuration from YAML files."""

import asyncio
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from typetest_runner.models.config import RunnerConfig

log = logging.getLogger(__name__)

CONFIG_FILE_NAMES = ("typetest.yaml", "typetest.yml")


async def load_config(
    config_path: Path, overrides: dict[str, Any] | None = None
) -> RunnerConfig:
    """Load and validate a config file.

    A relative ``root_path`` is resolved against the directory holding the
    config file, which defaults to being the root itself.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is empty, is not valid YAML or does not match
            the config schema

    """
    if not config_path.is_file():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    content = await asyncio.to_thread(config_path.read_text)

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty config file: {config_path}")
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config schema in {config_path}: expected a mapping")

    base_dir = config_path.resolve().parent
    data["root_path"] = base_dir / str(data.get("root_path", "."))
    data["config_file_path"] = config_path.resolve()
    data.update(overrides or {})

    try:
        config = RunnerConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid config schema in {config_path}: {e}") from e

    log.debug("Loaded config from %s", config_path)
    return config


def find_config_file(start_dir: Path) -> Path | None:
    """Find a config file in ``start_dir`` or any of its parents."""
    current = start_dir.resolve()
    for directory in (current, *current.parents):
        for name in CONFIG_FILE_NAMES:
            if (candidate := directory / name).is_file():
                return candidate
    return None
