"""Configuration for the workflow insights engine.

Every heuristic constant the engine uses (correlation windows, struggle
noise floor, classifier thresholds, scoring weights and grade bands) lives
here, validated with Pydantic, so callers and tests can exercise boundaries
without touching code.
"""

import os
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

CONFIG_ENV_VAR = "WORKFLOW_INSIGHTS_CONFIG"


def get_config_path() -> Optional[Path]:
    """Get config file path from environment, if set."""
    if path := os.environ.get(CONFIG_ENV_VAR):
        return Path(path)
    return None


DEFAULT_GRADE_BANDS: List[Tuple[float, str]] = [
    (90.0, "A+"),
    (85.0, "A"),
    (80.0, "A-"),
    (75.0, "B+"),
    (70.0, "B"),
    (65.0, "B-"),
    (60.0, "C+"),
    (55.0, "C"),
    (50.0, "C-"),
]


class StruggleConfig(BaseModel):
    """Struggle detection and shell statistics settings.

    Attributes:
        min_run_length: Shortest run of struggle-like commands kept as an episode
        minutes_per_command: Fixed time estimate per command in an episode
        struggle_commands: Base commands that count as struggle-like on their own
        top_commands: How many base commands to report as most used
        min_chain_frequency: Minimum occurrences for a command chain to be reported
        max_chains: Maximum number of command chains reported
    """

    min_run_length: int = Field(default=3, ge=1)
    minutes_per_command: float = Field(default=2.0, ge=0)
    struggle_commands: List[str] = Field(default_factory=lambda: ["npm", "cargo", "git"])
    top_commands: int = Field(default=20, ge=1)
    min_chain_frequency: int = Field(default=3, ge=1)
    max_chains: int = Field(default=10, ge=0)


class SessionClassifierConfig(BaseModel):
    """Thresholds for labelling AI-assisted sessions.

    Attributes:
        copy_paste_max_minutes: Conversations shorter than this can be copy-paste
        copy_paste_min_lines: Single commits larger than this can be copy-paste
        intense_min_commits: Commits needed for intense collaboration
        intense_min_tool_uses: Tool uses needed for intense collaboration
        refactor_deletion_ratio: Deleted share of changed lines above which a session is a refactor
        refactor_min_lines: Minimum changed lines for a refactor
        quick_fix_max_lines: Single commits smaller than this are quick fixes
    """

    copy_paste_max_minutes: float = Field(default=5.0, ge=0)
    copy_paste_min_lines: int = Field(default=50, ge=0)
    intense_min_commits: int = Field(default=3, ge=1)
    intense_min_tool_uses: int = Field(default=5, ge=0)
    refactor_deletion_ratio: float = Field(default=0.3, ge=0, le=1)
    refactor_min_lines: int = Field(default=100, ge=0)
    quick_fix_max_lines: int = Field(default=50, ge=0)


class CorrelationConfig(BaseModel):
    """Forward correlation windows and workflow pattern constants.

    Attributes:
        window_minutes: Default forward window between linked events
        quick_fix_window_minutes: Window between conversation end and a quick-fix commit
        max_examples: Examples kept per workflow pattern
        git_conflict_success_rate: Reported success rate for git conflict resolution
        build_failure_success_rate: Reported success rate for build failure recovery
        quick_fix_success_rate: Reported success rate for quick fixes
    """

    window_minutes: float = Field(default=120.0, gt=0)
    quick_fix_window_minutes: float = Field(default=15.0, gt=0)
    max_examples: int = Field(default=5, ge=0)
    git_conflict_success_rate: float = Field(default=89.0, ge=0, le=100)
    build_failure_success_rate: float = Field(default=76.0, ge=0, le=100)
    quick_fix_success_rate: float = Field(default=95.0, ge=0, le=100)

    @property
    def window(self) -> timedelta:
        return timedelta(minutes=self.window_minutes)

    @property
    def quick_fix_window(self) -> timedelta:
        return timedelta(minutes=self.quick_fix_window_minutes)


class ScoringConfig(BaseModel):
    """Productivity score weights, penalties and grade bands.

    Attributes:
        ai_weight: Weight of the AI effectiveness sub-score
        shell_weight: Weight of the shell efficiency sub-score
        workflow_weight: Weight of the workflow quality sub-score
        failure_penalty_factor: Shell points lost per percent of failing commands
        struggle_penalty: Shell points lost per struggle episode
        max_struggle_penalty: Cap on the struggle penalty
        copy_paste_good_ratio: Copy-paste ratio below which quality is full
        copy_paste_fair_ratio: Copy-paste ratio below which quality is partial
        full_cycle_bonus_threshold: Full cycles needed for the larger pattern bonus
        no_workflow_quality: Workflow quality when no workflows were found
        grade_bands: (minimum score, grade) pairs, checked top down
        fallback_grade: Grade below the last band
    """

    ai_weight: float = Field(default=0.4, ge=0, le=1)
    shell_weight: float = Field(default=0.3, ge=0, le=1)
    workflow_weight: float = Field(default=0.3, ge=0, le=1)
    failure_penalty_factor: float = Field(default=0.5, ge=0)
    struggle_penalty: float = Field(default=2.0, ge=0)
    max_struggle_penalty: float = Field(default=30.0, ge=0)
    copy_paste_good_ratio: float = Field(default=0.10, ge=0)
    copy_paste_fair_ratio: float = Field(default=0.20, ge=0)
    full_cycle_bonus_threshold: int = Field(default=10, ge=0)
    no_workflow_quality: float = Field(default=50.0, ge=0, le=100)
    grade_bands: List[Tuple[float, str]] = Field(
        default_factory=lambda: list(DEFAULT_GRADE_BANDS)
    )
    fallback_grade: str = Field(default="D")

    @field_validator("grade_bands")
    @classmethod
    def sort_bands(cls, v):
        """Keep bands ordered from the highest minimum down."""
        return sorted(v, key=lambda band: -band[0])

    @model_validator(mode="after")
    def check_ratios(self):
        if self.copy_paste_fair_ratio < self.copy_paste_good_ratio:
            raise ValueError("copy_paste_fair_ratio must be >= copy_paste_good_ratio")
        return self


class EngineConfig(BaseModel):
    """Execution settings.

    Attributes:
        max_workers: Threads for the independent stages (1 runs them inline)
        log_level: Logging level used by the CLI
    """

    max_workers: int = Field(default=2, ge=1)
    log_level: str = Field(default="INFO")


class InsightsConfig(BaseModel):
    """Top-level configuration for the workflow insights engine."""

    struggles: StruggleConfig = Field(default_factory=StruggleConfig)
    sessions: SessionClassifierConfig = Field(default_factory=SessionClassifierConfig)
    correlation: CorrelationConfig = Field(default_factory=CorrelationConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "InsightsConfig":
        """Load configuration from dictionary.

        Args:
            config_dict: Configuration dictionary

        Returns:
            Validated InsightsConfig instance
        """
        return cls(**config_dict)

    @classmethod
    def from_yaml(cls, config_path: Path) -> "InsightsConfig":
        """Load configuration from YAML file."""
        import yaml

        with open(config_path) as f:
            config_dict = yaml.safe_load(f)

        return cls.from_dict(config_dict or {})

    @classmethod
    def from_toml(cls, config_path: Path) -> "InsightsConfig":
        """Load configuration from TOML file."""
        import tomllib

        with open(config_path, "rb") as f:
            config_dict = tomllib.load(f)

        return cls.from_dict(config_dict)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "InsightsConfig":
        """Load configuration from a file, the environment, or defaults.

        Args:
            config_path: YAML or TOML file. Falls back to $WORKFLOW_INSIGHTS_CONFIG,
                then to built-in defaults.

        Returns:
            Validated InsightsConfig instance
        """
        if config_path is None:
            config_path = get_config_path()
        if config_path is None:
            return cls()
        if config_path.suffix == ".toml":
            return cls.from_toml(config_path)
        return cls.from_yaml(config_path)

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration to a plain dictionary.

        Returns:
            Configuration as dictionary, with grade bands as lists
        """
        data = self.model_dump()
        data["scoring"]["grade_bands"] = [list(band) for band in data["scoring"]["grade_bands"]]
        return data

    def to_yaml(self, config_path: Path) -> None:
        """Export configuration to YAML file."""
        import yaml

        with open(config_path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
