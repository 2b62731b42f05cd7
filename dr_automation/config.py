"""
Configuration module for the disaster recovery engine
Validated, immutable runbook configuration loaded from YAML or mappings
"""

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.exceptions import ConfigurationError
from .logging_adapter import get_safe_logger
from .models import StepType

logger = get_safe_logger("dr_automation.config")

NotificationChannelName = Literal["email", "sms", "webhook", "slack"]


class _FrozenModel(BaseModel):
    """Immutable model accepting both snake_case and camelCase keys"""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="forbid",
    )


class RecoveryStep(_FrozenModel):
    """One unit of a recovery runbook"""

    id: str = Field(..., min_length=1, description="Unique within a config")
    name: Optional[str] = Field(None, description="Display name, defaults to id")
    type: StepType = Field(..., description="Handler type used for dispatch")
    order: int = Field(..., description="Scheduling sequence, ascending")
    timeout: float = Field(30, gt=0, description="Per-attempt timeout in minutes")
    retries: int = Field(0, ge=0, description="Retry attempts after the first")
    dependencies: Tuple[str, ...] = Field(default_factory=tuple)
    critical: bool = Field(False, description="Failure halts the whole execution")
    rollback_command: Optional[str] = None
    command: Optional[str] = None
    script: Optional[str] = None
    validation_query: Optional[str] = None

    @field_validator('dependencies')
    @classmethod
    def validate_dependencies(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if len(set(v)) != len(v):
            raise ValueError("dependencies must not contain duplicates")
        return v

    @model_validator(mode='after')
    def validate_not_self_dependent(self) -> 'RecoveryStep':
        if self.id in self.dependencies:
            raise ValueError(f"step '{self.id}' cannot depend on itself")
        return self

    @property
    def display_name(self) -> str:
        return self.name or self.id


class NotificationSettings(_FrozenModel):
    """Delivery targets handed to the notification gateway"""

    channels: Tuple[NotificationChannelName, ...] = Field(default_factory=tuple)
    recipients: Tuple[str, ...] = Field(default_factory=tuple)
    webhook_url: Optional[str] = None
    slack_channel: Optional[str] = None

    @model_validator(mode='after')
    def validate_channel_targets(self) -> 'NotificationSettings':
        if "webhook" in self.channels and not self.webhook_url:
            raise ValueError("webhook channel requires webhook_url")
        if "slack" in self.channels and not self.slack_channel:
            raise ValueError("slack channel requires slack_channel")
        return self


class BackupSources(_FrozenModel):
    database: Optional[str] = None
    files: Optional[str] = None
    configuration: Optional[str] = None


class DisasterRecoveryConfig(_FrozenModel):
    """
    Process-wide disaster recovery configuration.

    Immutable once built; changing it requires building a new orchestrator.
    Recovery time/point objectives are informational SLO targets in minutes.
    """

    enabled: bool = True
    auto_failover: bool = False
    recovery_time_objective: float = Field(60, ge=0)
    recovery_point_objective: float = Field(15, ge=0)
    primary_region: Optional[str] = None
    failover_regions: Tuple[str, ...] = Field(default_factory=tuple)
    health_check_interval: float = Field(60, gt=0, description="Seconds between health ticks")
    failure_threshold: int = Field(3, ge=1, description="Consecutive failed ticks before auto-trigger")
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    backup_sources: BackupSources = Field(default_factory=BackupSources)
    recovery_steps: Tuple[RecoveryStep, ...] = Field(default_factory=tuple)

    @model_validator(mode='after')
    def validate_steps(self) -> 'DisasterRecoveryConfig':
        seen = set()
        for step in self.recovery_steps:
            if step.id in seen:
                raise ValueError(f"duplicate recovery step id '{step.id}'")
            seen.add(step.id)

        for step in self.recovery_steps:
            unknown = [dep for dep in step.dependencies if dep not in seen]
            if unknown:
                raise ValueError(
                    f"step '{step.id}' depends on unknown steps: {', '.join(unknown)}"
                )
        return self

    def get_step(self, step_id: str) -> Optional[RecoveryStep]:
        for step in self.recovery_steps:
            if step.id == step_id:
                return step
        return None

    def ordered_steps(self) -> List[RecoveryStep]:
        """Steps sorted ascending by order; ties keep configuration order"""
        return sorted(self.recovery_steps, key=lambda step: step.order)

    def ordering_hazards(self) -> List[Tuple[str, str]]:
        """
        (step_id, dependency_id) pairs where the dependency runs at or after
        the dependent step. Such steps are always skipped at runtime.
        """
        position = {step.id: index for index, step in enumerate(self.ordered_steps())}
        hazards = []
        for step in self.ordered_steps():
            for dep in step.dependencies:
                if position[dep] > position[step.id]:
                    hazards.append((step.id, dep))
        return hazards


class DisasterRecoverySettings(BaseSettings):
    """Environment-driven runtime settings (DR_ prefix)"""

    model_config = SettingsConfigDict(env_prefix="DR_", extra="ignore")

    config_path: Optional[Path] = None
    log_level: str = "INFO"
    json_logs: bool = False

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return v.upper()


def build_config(data: Dict[str, Any]) -> DisasterRecoveryConfig:
    """Validate a mapping into a DisasterRecoveryConfig"""
    try:
        return DisasterRecoveryConfig.model_validate(data)
    except ValidationError as e:
        logger.error("config_validation_failed", errors=e.error_count())
        raise ConfigurationError(
            f"Invalid disaster recovery configuration: {e}",
            details={"errors": e.errors(include_url=False)},
        ) from e


def load_config(path: Union[str, Path]) -> DisasterRecoveryConfig:
    """
    Load and validate a YAML configuration file.

    Raises:
        ConfigurationError: file missing, unparsable or invalid
    """
    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}",
            details={"path": str(config_path)},
        )

    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Configuration file is not valid YAML: {e}",
            details={"path": str(config_path)},
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            "Configuration root must be a mapping",
            details={"path": str(config_path)},
        )

    config = build_config(data)
    logger.info(
        "config_loaded",
        path=str(config_path),
        steps=len(config.recovery_steps),
        auto_failover=config.auto_failover,
    )
    return config
