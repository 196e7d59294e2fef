"""Configuration dataclasses for the beat-grid quantizer."""
from dataclasses import dataclass, field
from typing import List


@dataclass
class DetectConfig:
    """Which timing points to inspect and how far off the grid they may be."""

    start: bool = True
    keyframe: bool = True
    end: bool = True
    project_end: bool = False
    distance: int = 2
    clamp_distance: bool = True


@dataclass
class ScanConfig:
    """Timeline naming rules."""

    layer_name_template: str = "Layer {number}"
    wrapper_effect_names: List[str] = field(default_factory=lambda: ["フィルタオブジェクト"])


@dataclass
class CLIConfig:
    """CLI presentation controls."""

    emit_json_tail: bool = False
    json_pretty: bool = False


@dataclass
class LoggingConfig:
    """Log verbosity for the CLI."""

    level: str = "WARNING"


@dataclass
class AppConfig:
    """Aggregated configuration loaded from the user-provided TOML file."""

    detect: DetectConfig = field(default_factory=DetectConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    cli: CLIConfig = field(default_factory=CLIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
