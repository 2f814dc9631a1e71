"""Workboard configuration."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path

import yaml

from .board.scope import ScopeThresholds
from .workflow.exceptions import ValidationError


@dataclass
class WorkboardConfig:
    """Settings shared by the CLI and the MCP server.

    Loaded from a YAML mapping whose keys match the field names; keys that
    are absent keep their defaults.
    """

    store_path: str = "workboard.yaml"
    scope_medium_pct: float = 15.0
    scope_high_pct: float = 25.0
    member_capacity_hours: int = 40
    sprint_duration_days: int = 14
    model: str = "sonnet"
    oracle_timeout_seconds: int = 120

    @property
    def scope_thresholds(self) -> ScopeThresholds:
        return ScopeThresholds(medium_pct=self.scope_medium_pct, high_pct=self.scope_high_pct)

    @classmethod
    def load(cls, path: Path | str | None) -> WorkboardConfig:
        if path is None:
            return cls()
        path = Path(path)
        if not path.exists():
            return cls()
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid config file {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ValidationError(f"Config file {path} must contain a mapping")

        known = {f.name for f in fields(cls)}
        unknown = set(raw) - known
        if unknown:
            raise ValidationError(f"Unknown config keys in {path}: {', '.join(sorted(unknown))}")
        config = cls(**raw)
        if config.scope_high_pct < config.scope_medium_pct:
            raise ValidationError("scope_high_pct must not be below scope_medium_pct")
        return config
