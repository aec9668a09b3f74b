"""Configuration management for eventmodel.

Two config groups:
- rules: switches for the structural rule engine
- cli: output behaviour of the command line tool

The engine itself never reads the global config: builders, validators and
the deserializer receive a RulesConfig explicitly. Only the CLI resolves the
process-wide config.

Config resolution order (highest priority first):
1. Programmatic (EventModelConfig constructed in code)
2. Environment variables (EVENTMODEL_ALLOW_EVENT_FED_AUTOMATION, ...)
3. Config file (~/.config/eventmodel/config.json, managed by `eventmodel config`)
4. Hardcoded defaults
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any


logger = logging.getLogger(__name__)


# =============================================================================
# Config file location
# =============================================================================

CONFIG_DIR = Path.home() / ".config" / "eventmodel"
CONFIG_FILE = CONFIG_DIR / "config.json"

CLI_MODES = ("human", "agent")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def parse_bool(value: str) -> bool:
    """Parse a boolean from an env var or CLI string.

    Raises:
        ValueError: If the string is not a recognised boolean literal.
    """
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


# =============================================================================
# Config dataclasses
# =============================================================================


@dataclass
class RulesConfig:
    """Switches for the type rule engine.

    - allow_event_fed_automation: accept EVENT -> AUTOMATION edges. Off by
      default: automations must be fed by a read model.
    - require_connected_elements: elements of a committed slice need at least
      one dependency.
    - sequencing_warnings: report screen placement warnings on commit.
    """

    allow_event_fed_automation: bool = False
    require_connected_elements: bool = True
    sequencing_warnings: bool = True


@dataclass
class CliConfig:
    """Command line output configuration."""

    mode: str = "human"  # "agent" forces JSON output
    indent: int = 2


@dataclass
class EventModelConfig:
    """Top-level eventmodel configuration.

    Examples:
        # Package use
        config = EventModelConfig(rules=RulesConfig(allow_event_fed_automation=True))
        builder = ModelBuilder(rules=config.rules)

        # CLI use, loads from ~/.config/eventmodel/config.json
        config = EventModelConfig.load()
    """

    rules: RulesConfig = field(default_factory=RulesConfig)
    cli: CliConfig = field(default_factory=CliConfig)

    @classmethod
    def load(cls) -> "EventModelConfig":
        """Load config from file + env vars.

        Priority: env var values > config.json values > defaults.
        """
        config = cls()

        # Layer 1: config file
        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = json.load(f)
                _apply_dict(config, data)
            except (json.JSONDecodeError, OSError) as exc:
                logger.warning("Failed to load config from %s: %s", CONFIG_FILE, exc)

        # Layer 2: env var overrides
        if val := os.environ.get("EVENTMODEL_ALLOW_EVENT_FED_AUTOMATION"):
            try:
                config.rules.allow_event_fed_automation = parse_bool(val)
            except ValueError:
                logger.warning(
                    "Invalid EVENTMODEL_ALLOW_EVENT_FED_AUTOMATION=%r, ignoring", val
                )
        if val := os.environ.get("EVENTMODEL_SEQUENCING_WARNINGS"):
            try:
                config.rules.sequencing_warnings = parse_bool(val)
            except ValueError:
                logger.warning(
                    "Invalid EVENTMODEL_SEQUENCING_WARNINGS=%r, ignoring", val
                )
        if val := os.environ.get("EVENTMODEL_CLI_MODE"):
            if val in CLI_MODES:
                config.cli.mode = val
            else:
                logger.warning("Invalid EVENTMODEL_CLI_MODE=%r, ignoring", val)

        return config

    def save(self) -> None:
        """Save config to ~/.config/eventmodel/config.json."""
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for display."""
        return {
            "rules": asdict(self.rules),
            "cli": asdict(self.cli),
        }


# =============================================================================
# Config dict application
# =============================================================================


def _apply_dict(config: EventModelConfig, data: dict) -> None:
    """Apply a dict of values onto an EventModelConfig."""
    if "rules" in data and isinstance(data["rules"], dict):
        for k, v in data["rules"].items():
            if not hasattr(config.rules, k):
                continue
            if isinstance(v, str):
                try:
                    v = parse_bool(v)
                except ValueError:
                    logger.warning("Invalid rules.%s=%r in config file, ignoring", k, v)
                    continue
            elif not isinstance(v, bool):
                logger.warning("Invalid rules.%s=%r in config file, ignoring", k, v)
                continue
            setattr(config.rules, k, v)
    if "cli" in data and isinstance(data["cli"], dict):
        for k, v in data["cli"].items():
            if k == "indent":
                try:
                    v = int(v)
                except (TypeError, ValueError):
                    logger.warning("Invalid cli.indent=%r in config file, ignoring", v)
                    continue
            elif k == "mode" and v not in CLI_MODES:
                logger.warning("Invalid cli.mode=%r in config file, ignoring", v)
                continue
            if hasattr(config.cli, k):
                setattr(config.cli, k, v)


# =============================================================================
# Global config singleton
# =============================================================================

_config: EventModelConfig | None = None


def get_config() -> EventModelConfig:
    """Get the global EventModelConfig instance.

    First call loads from file + env vars. Subsequent calls return cached instance.
    """
    global _config
    if _config is None:
        _config = EventModelConfig.load()
    return _config


def configure(config: EventModelConfig) -> None:
    """Set the global EventModelConfig programmatically."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global config (forces reload on next get_config())."""
    global _config
    _config = None
