# fleet_induction/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from dotenv import load_dotenv
from typing import Any, Dict, Optional
import logging
import os
import yaml
from pathlib import Path

from fleet_induction.models.allocation import BayConfiguration, ForecastParameters
from fleet_induction.models.schedule import SchedulingConfig

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # API Configuration
    api_host: str = Field(default="127.0.0.1", env="API_HOST")
    api_port: int = Field(default=8000, env="API_PORT")
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    # Real-time monitoring
    monitor_interval_seconds: float = Field(default=5.0, env="MONITOR_INTERVAL_SECONDS")
    readiness_threshold: Optional[float] = Field(default=None, env="READINESS_THRESHOLD")
    shunting_penalty: Optional[float] = Field(default=None, env="SHUNTING_PENALTY")

    # Scheduling defaults
    default_shunt_cost: float = Field(default=300.0, env="DEFAULT_SHUNT_COST")
    dev_mock_seed: int = Field(default=0, env="DEV_MOCK_SEED")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


load_dotenv(".env")

# Load defaults from YAML if available
_defaults_path = Path(__file__).parent / "defaults.yaml"
_defaults: Dict[str, Any] = {}
if _defaults_path.exists():
    try:
        with open(_defaults_path, "r") as f:
            _defaults = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load defaults.yaml: {e}")

settings = Settings()

# Override settings with defaults.yaml values if not set in environment
if _defaults:
    if "MONITOR_INTERVAL_SECONDS" in _defaults and not os.getenv("MONITOR_INTERVAL_SECONDS"):
        settings.monitor_interval_seconds = float(_defaults["MONITOR_INTERVAL_SECONDS"])
    if "DEV_MOCK_SEED" in _defaults and not os.getenv("DEV_MOCK_SEED"):
        settings.dev_mock_seed = int(_defaults["DEV_MOCK_SEED"])
    if "DEFAULT_SHUNT_COST" in _defaults and not os.getenv("DEFAULT_SHUNT_COST"):
        settings.default_shunt_cost = float(_defaults["DEFAULT_SHUNT_COST"])


def get_scheduling_config(overrides: Optional[Dict[str, Any]] = None) -> SchedulingConfig:
    """
    Build the scheduling config from defaults.yaml, then apply caller overrides
    (uppercase or snake_case keys are both accepted).
    """
    values = dict(_defaults.get("scheduling") or {})
    for key, value in (overrides or {}).items():
        field = SchedulingConfig.model_fields.get(key)
        values[field.alias if field and field.alias else key] = value
    return SchedulingConfig(**values)


def get_bay_configuration() -> BayConfiguration:
    return BayConfiguration(**(_defaults.get("bay_layout") or {}))


def get_forecast_parameters() -> ForecastParameters:
    values = dict(_defaults.get("forecast") or {})
    if settings.readiness_threshold is not None:
        values["readinessThreshold"] = settings.readiness_threshold
    if settings.shunting_penalty is not None:
        values["shuntingPenalty"] = settings.shunting_penalty
    return ForecastParameters(**values)
