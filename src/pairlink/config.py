"""Server configuration, read from a YAML file.

Example ``~/.config/pairlink/config.yaml``::

    port: 10000
    log_level: INFO
    static_dir: ~/pairlink/web
    pairing:
      logout_grace: 0.4
    liveness:
      interval: 15.0

Every key is optional; anything missing keeps its default.
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable

import yaml

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGE_SIZE = 100 * 1024 * 1024  # files travel inline as base64

FileReader = Callable[[Path], dict[str, Any] | None]


@dataclass
class PairingConfig:
    """Pairing protocol configuration."""

    logout_grace: float = 0.4  # seconds between logout notice and close
    handler_timeout: float = 10.0  # seconds


@dataclass
class LivenessConfig:
    """Liveness probing configuration."""

    interval: float = 15.0  # seconds between probe cycles
    enabled: bool = True

    def __post_init__(self):
        if self.interval <= 0:
            raise ValueError(f"liveness interval must be positive, got {self.interval}")


@dataclass
class Config:
    """Server configuration."""

    port: int = 10000
    bind_address: str = "0.0.0.0"
    log_level: str = "INFO"
    log_file: str | None = None
    static_dir: str | None = None
    max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE
    pairing: PairingConfig = field(default_factory=PairingConfig)
    liveness: LivenessConfig = field(default_factory=LivenessConfig)


# Keys holding a nested section rather than a scalar
_SECTIONS = {"pairing": PairingConfig, "liveness": LivenessConfig}


def get_config_path(custom_path: Path | None = None) -> Path:
    """Config file location; ``custom_path`` wins when given."""
    if custom_path is not None:
        return custom_path
    return Path.home() / ".config" / "pairlink" / "config.yaml"


def _read_yaml(path: Path) -> dict[str, Any] | None:
    if not path.is_file():
        return None
    try:
        return yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        logger.warning(f"Ignoring unreadable config {path}: {e}")
        return None


def _known_keys(cls: type, data: dict[str, Any], where: str) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    for key in data.keys() - names:
        logger.warning(f"Unknown config key {where}{key!r} ignored")
    return {k: v for k, v in data.items() if k in names}


def load_config(path: Path | None = None, file_reader: FileReader | None = None) -> Config:
    """Load configuration, falling back to defaults.

    A missing, empty, unparsable or non-mapping file yields ``Config()``.
    Values that fail validation (e.g. a non-positive liveness interval)
    raise ValueError.

    Args:
        path: Config file. Defaults to get_config_path().
        file_reader: Replaces the YAML reader in tests.
    """
    reader = file_reader or _read_yaml
    data = reader(get_config_path(path))

    if not isinstance(data, dict):
        return Config()

    values = _known_keys(Config, data, "")
    for name, section_cls in _SECTIONS.items():
        section = values.pop(name, None) or {}
        if not isinstance(section, dict):
            logger.warning(f"Config section {name!r} is not a mapping, using defaults")
            section = {}
        values[name] = section_cls(**_known_keys(section_cls, section, f"{name}."))

    return Config(**values)
