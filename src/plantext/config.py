# src/plantext/config.py

"""
Explicit configuration value.

Responsibilities:
- hold the storage location and document encoding settings,
- read them from an optional YAML file and the environment,
- build the file byte-store they describe.

Nothing here is module-level mutable state: callers load a Config and
pass it (or the store built from it) to the engine entry points.
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Final, Mapping, Optional

import yaml

from plantext.engine.storage import FileByteStore


logger = logging.getLogger(__name__)

DEFAULT_STORAGE_DIR: Final[Path] = Path.home() / "planning"
DEFAULT_SUFFIX: Final[str] = ".yml"
DEFAULT_ENCODING: Final[str] = "utf-8"

ENV_STORAGE_DIR: Final[str] = "PLANTEXT_STORAGE_DIR"
ENV_DOCUMENT_SUFFIX: Final[str] = "PLANTEXT_DOCUMENT_SUFFIX"


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ConfigError(Exception):
    """
    Raised when a config file exists but cannot be used.
    """

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


# ---------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Config:
    storage_dir: Path = DEFAULT_STORAGE_DIR
    document_suffix: str = DEFAULT_SUFFIX
    encoding: str = DEFAULT_ENCODING


def load_config(
    path: Optional[str | Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """
    Build a Config from defaults, an optional YAML file and the environment.

    File keys: storage_dir, document_suffix, encoding. Environment
    variables override the file. A missing file is not an error.
    """
    env = os.environ if environ is None else environ
    cfg = Config()

    if path is not None:
        cfg = _apply_file(cfg, Path(path))

    storage_dir = env.get(ENV_STORAGE_DIR, "").strip()
    if storage_dir:
        cfg = replace(cfg, storage_dir=Path(storage_dir).expanduser())

    suffix = env.get(ENV_DOCUMENT_SUFFIX, "").strip()
    if suffix:
        cfg = replace(cfg, document_suffix=_suffix(suffix))

    return cfg


def open_store(config: Config) -> FileByteStore:
    logger.debug(f"Opening project store at {config.storage_dir} (*{config.document_suffix})")
    return FileByteStore(config.storage_dir, suffix=config.document_suffix)


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _apply_file(cfg: Config, path: Path) -> Config:
    if not path.is_file():
        logger.debug(f"No config file at {path}; using defaults")
        return cfg

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(str(path), f"Cannot read config: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(str(path), "YAML root must be a mapping/dictionary")

    if data.get("storage_dir"):
        storage_dir = Path(str(data["storage_dir"])).expanduser()
        # relative paths are relative to the config file
        if not storage_dir.is_absolute():
            storage_dir = path.parent / storage_dir
        cfg = replace(cfg, storage_dir=storage_dir)
    if data.get("document_suffix"):
        cfg = replace(cfg, document_suffix=_suffix(str(data["document_suffix"])))
    if data.get("encoding"):
        cfg = replace(cfg, encoding=str(data["encoding"]))

    logger.info(f"Loaded config from {path}")
    return cfg


def _suffix(value: str) -> str:
    value = value.strip()
    return value if value.startswith(".") else f".{value}"
