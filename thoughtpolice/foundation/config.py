"""Unified configuration management system."""

import os
import yaml
from typing import Dict, List, Optional, Any
from pathlib import Path
import logging
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, ValidationError

from .types import LogLevel, ConfigValidationError


class HttpConfig(BaseModel):
    """Reddit HTTP client settings."""
    base_url: str = Field(default="https://www.reddit.com")
    user_agent: str = Field(default="ThoughtPolice/1.0.0")
    timeout: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=0)
    base_delay: float = Field(default=0.2, ge=0.0)
    backoff_factor: float = Field(default=2.0, ge=1.0)
    max_delay: float = Field(default=60.0, gt=0)

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v):
        if not v or not v.startswith(('http://', 'https://')):
            raise ValueError("base_url must be an http(s) URL")
        return v.rstrip('/')


class IngestionConfig(BaseModel):
    """Listing pagination bounds."""
    page_size: int = Field(default=100, gt=0, le=100)
    page_delay: float = Field(default=1.0, ge=0.0)
    max_comment_items: int = Field(default=10000, gt=0)
    max_comment_requests: int = Field(default=50, gt=0)
    max_post_items: int = Field(default=2000, gt=0)
    max_post_requests: int = Field(default=20, gt=0)


class AnalysisConfig(BaseModel):
    """Per-run analysis bounds."""
    max_comments: int = Field(default=5000, gt=0)
    max_posts: int = Field(default=1000, gt=0)
    max_age_days: int = Field(default=365, gt=0)
    batch_delay: float = Field(default=2.0, ge=0.0)
    analysis_timeout_seconds: Optional[float] = Field(default=None, gt=0)


class BudgetConfig(BaseModel):
    """Spend ceiling for scoring calls."""
    max_dollar: float = Field(default=100.0, gt=0)
    warning_threshold: float = Field(default=80.0, ge=0.0, le=100.0)


class CacheConfig(BaseModel):
    """Result cache bounds."""
    max_entries: int = Field(default=256, gt=0)
    ttl_seconds: Optional[float] = Field(default=None, gt=0)


class ScoringConfig(BaseModel):
    """Remote scoring service endpoint."""
    endpoint_url: str = ""
    api_key: str = ""
    timeout: float = Field(default=300.0, gt=0)


class AppConfig(BaseModel):
    """Main application configuration."""

    project_name: str = "ThoughtPolice"
    version: str = "1.0.0"

    http: HttpConfig = Field(default_factory=HttpConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    budget: BudgetConfig = Field(default_factory=BudgetConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)

    log_level: LogLevel = LogLevel.INFO
    structured_logging: bool = True
    verbose: bool = False

    def validate_configuration(self) -> List[str]:
        """Validate configuration and return any issues."""
        issues = []

        if not self.scoring.endpoint_url:
            issues.append("Scoring config: SCORING_ENDPOINT_URL is required")
        elif not self.scoring.endpoint_url.startswith(('http://', 'https://')):
            issues.append("Scoring config: endpoint_url must be an http(s) URL")

        if self.analysis.max_comments > self.ingestion.max_comment_items:
            issues.append(
                "Analysis config: max_comments exceeds ingestion max_comment_items"
            )
        if self.analysis.max_posts > self.ingestion.max_post_items:
            issues.append(
                "Analysis config: max_posts exceeds ingestion max_post_items"
            )

        return issues


_SECTIONS = ('http', 'ingestion', 'analysis', 'budget', 'cache', 'scoring')


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def _env_optional_float(name: str) -> Optional[float]:
    value = os.getenv(name, '').strip()
    return float(value) if value else None


class ConfigManager:
    """Unified configuration manager."""

    def __init__(self):
        self.config: Optional[AppConfig] = None
        self.logger = logging.getLogger(__name__)
        self._env_loaded = False
        self._yaml_loaded = False

    def load_from_env(self, env_file: Optional[str] = None) -> None:
        """Load configuration from environment variables."""
        if env_file and Path(env_file).exists():
            load_dotenv(env_file, override=True)
        else:
            load_dotenv()

        try:
            self.config = self._create_config_from_env()
        except (ValidationError, ValueError) as e:
            raise ConfigValidationError("environment", str(e)) from e

        self._env_loaded = True
        self.logger.info("Configuration loaded from environment variables")

    def load_from_yaml(self, yaml_file: str) -> None:
        """Load configuration from YAML file."""
        yaml_path = Path(yaml_file)
        if not yaml_path.exists():
            raise FileNotFoundError(f"YAML config file not found: {yaml_file}")

        with open(yaml_path, 'r') as f:
            yaml_data = yaml.safe_load(f) or {}

        try:
            if self.config:
                self.config = self._merge_yaml_config(self.config, yaml_data)
            else:
                self.config = AppConfig(**yaml_data)
        except ValidationError as e:
            raise ConfigValidationError("yaml", str(e), yaml_file) from e

        self._yaml_loaded = True
        self.logger.info(f"Configuration loaded from YAML file: {yaml_file}")

    def validate(self) -> None:
        """Validate the current configuration."""
        if not self.config:
            raise ConfigValidationError("config", "No configuration loaded")

        issues = self.config.validate_configuration()
        if issues:
            raise ConfigValidationError("validation", f"Configuration validation failed: {'; '.join(issues)}")

        self.logger.info("Configuration validation passed")

    def get_config(self) -> AppConfig:
        """Get the current configuration."""
        if not self.config:
            raise ConfigValidationError("config", "No configuration loaded")
        return self.config

    def _create_config_from_env(self) -> AppConfig:
        """Create configuration from environment variables."""
        config_data: Dict[str, Any] = {
            'log_level': LogLevel(os.getenv('LOG_LEVEL', 'INFO').upper()),
            'structured_logging': _env_bool('STRUCTURED_LOGGING', 'true'),
            'verbose': _env_bool('VERBOSE'),
        }

        config_data['http'] = HttpConfig(
            base_url=os.getenv('REDDIT_BASE_URL', 'https://www.reddit.com'),
            user_agent=os.getenv('REDDIT_USER_AGENT', 'ThoughtPolice/1.0.0'),
            timeout=float(os.getenv('HTTP_TIMEOUT', '30')),
            max_retries=int(os.getenv('HTTP_MAX_RETRIES', '3')),
        )

        config_data['ingestion'] = IngestionConfig(
            page_delay=float(os.getenv('INGESTION_PAGE_DELAY', '1.0')),
        )

        config_data['analysis'] = AnalysisConfig(
            max_comments=int(os.getenv('ANALYSIS_MAX_COMMENTS', '5000')),
            max_posts=int(os.getenv('ANALYSIS_MAX_POSTS', '1000')),
            max_age_days=int(os.getenv('ANALYSIS_MAX_AGE_DAYS', '365')),
            batch_delay=float(os.getenv('ANALYSIS_BATCH_DELAY', '2.0')),
            analysis_timeout_seconds=_env_optional_float('ANALYSIS_TIMEOUT_SECONDS'),
        )

        config_data['budget'] = BudgetConfig(
            max_dollar=float(os.getenv('BUDGET_MAX_DOLLAR', '100')),
            warning_threshold=float(os.getenv('BUDGET_WARNING_THRESHOLD', '80')),
        )

        config_data['cache'] = CacheConfig(
            max_entries=int(os.getenv('CACHE_MAX_ENTRIES', '256')),
            ttl_seconds=_env_optional_float('CACHE_TTL_SECONDS'),
        )

        config_data['scoring'] = ScoringConfig(
            endpoint_url=os.getenv('SCORING_ENDPOINT_URL', ''),
            api_key=os.getenv('SCORING_API_KEY', ''),
            timeout=float(os.getenv('SCORING_TIMEOUT', '300')),
        )

        return AppConfig(**config_data)

    def _merge_yaml_config(self, config: AppConfig, yaml_data: Dict[str, Any]) -> AppConfig:
        """Merge YAML sections over an existing config, field by field."""
        merged = config.model_dump()
        for key, value in yaml_data.items():
            if key in _SECTIONS and isinstance(value, dict):
                merged[key].update(value)
            else:
                merged[key] = value
        return AppConfig(**merged)


def load_config(
    env_file: Optional[str] = None,
    yaml_file: Optional[str] = None,
    validate: bool = True
) -> AppConfig:
    """Load configuration from the environment and an optional YAML file."""
    manager = ConfigManager()
    manager.load_from_env(env_file)

    if yaml_file:
        manager.load_from_yaml(yaml_file)

    if validate:
        manager.validate()
    return manager.get_config()
