"""Configuration for storing and checking benchmark results."""

import json
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

from .analysis.comparison import parse_percentage
from .parsers.custom import SUPPORTED_TOOLS
from .storage.datajs import DEFAULT_DATA_PATH


@dataclass
class BenchConfig:
    """Settings shared by the CLI commands, loadable from a JSON file."""

    # History file
    data_path: Path = DEFAULT_DATA_PATH
    external_json: bool = False
    suite_name: str = "Benchmark"
    max_items: Optional[int] = None

    # Input
    tool: str = "googlecpp"
    skip_aggregates: bool = False

    # Alerting
    alert_threshold: str = "200%"
    fail_threshold: Optional[str] = None
    fail_on_alert: bool = False
    alert_cc_users: list[str] = field(default_factory=list)

    def __post_init__(self):
        self.data_path = Path(self.data_path)

    @property
    def alert_ratio(self) -> float:
        return parse_percentage(self.alert_threshold)

    @property
    def fail_ratio(self) -> float:
        """Failure ratio, falling back to the alert ratio."""
        if self.fail_threshold is None:
            return self.alert_ratio
        return parse_percentage(self.fail_threshold)

    def validate(self) -> None:
        """Check values that the CLI cannot express through option types.

        Raises:
            ValueError: On an unknown tool, malformed threshold or bad max_items
        """
        if self.tool not in SUPPORTED_TOOLS:
            msg = f"Unsupported tool '{self.tool}' (supported: {', '.join(SUPPORTED_TOOLS)})"
            raise ValueError(msg)
        if self.max_items is not None and self.max_items < 1:
            msg = f"max_items must be at least 1, got {self.max_items}"
            raise ValueError(msg)
        if self.fail_ratio < self.alert_ratio:
            msg = (
                f"fail_threshold ({self.fail_threshold}) must be greater than or equal to "
                f"alert_threshold ({self.alert_threshold})"
            )
            raise ValueError(msg)

    def with_overrides(self, **overrides: Any) -> "BenchConfig":
        """Copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        d = asdict(self)
        d["data_path"] = str(d["data_path"])
        return d

    def save(self, path: Path):
        """Save configuration to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> "BenchConfig":
        """Load configuration from JSON file; unknown keys are rejected."""
        with open(path, "r") as f:
            data = json.load(f)

        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(data) - known)
        if unknown:
            msg = f"Unknown configuration keys in {path}: {', '.join(unknown)}"
            raise ValueError(msg)

        return cls(**data)
