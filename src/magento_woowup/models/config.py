"""Configuration management for the Magento to WoowUp sync."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from magento_woowup.models.data_models import RetryPolicy


class SyncConfig(BaseModel):
    """Sync configuration for one Magento account."""

    # Source connection
    host: str = Field(description="Magento store base URL")
    apiuser: str = Field(description="Magento API user")
    apikey: str = Field(description="Magento API key")
    version: int = Field(default=1, description="Magento API generation: 1 (generic call) or 2 (one method per op)")
    session_timeout: float = Field(default=300.0, description="Idle seconds before the session is renewed")
    user_agent: str = Field(default="magento-woowup-sync", description="User-Agent sent to the source API")

    # Store scoping
    stores: List[str] = Field(default_factory=list, description="Stores imported one after the other")
    store_id: Optional[str] = Field(default=None, description="Store filter for list calls")

    # Import rules
    status: List[str] = Field(default=["complete"], description="Importable order statuses")
    branch_name: str = Field(default="MAGENTO", description="Branch name attached to orders")
    customer_tag: str = Field(default="Magento", description="Tag attached to every customer")
    variations: List[str] = Field(default_factory=list, description="Product attributes sent as variations")
    categories: bool = Field(default=False, description="Sync category breadcrumbs")
    categories_field: str = Field(default="category_ids", description="Product field holding category ids")
    url_field: str = Field(default="url_path", description="Product field holding the store URL path")
    product_types: List[str] = Field(default=["simple"], description="Product types to import")
    filters: List[str] = Field(default_factory=list, description="Dotted paths of filter plugin classes")

    # Retry policy
    retry_mode: str = Field(default="filtered", description="'filtered' or 'always'")
    retry_fault_pattern: str = Field(default="not exists.", description="Fault text retried in filtered mode")
    retry_max_attempts: int = Field(default=3, description="Maximum attempts per remote call")
    retry_base: float = Field(default=2.0, description="Backoff base, sleeps base ** attempt seconds")

    # Destination
    woowup_api_key: str = Field(default="", description="WoowUp API key")
    woowup_base_url: str = Field(default="https://api.woowup.com/apiv3", description="WoowUp API base URL")
    connect_timeout: float = Field(default=5.0, description="HTTP connect timeout in seconds")
    read_timeout: float = Field(default=30.0, description="HTTP read timeout in seconds")

    # Logging / output
    log_level: str = Field(default="INFO", description="Logging level")
    output_directory: str = Field(default="out", description="Output directory for run summaries")
    output_filename: str = Field(default="summary.json", description="Output JSON filename")

    @field_validator('host', 'woowup_base_url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError(f"URL must start with http:// or https://, got: {v}")
        return v.rstrip('/')

    @field_validator('apiuser', 'apikey')
    @classmethod
    def validate_credentials(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Magento credentials must be specified")
        return v

    @field_validator('version')
    @classmethod
    def validate_version(cls, v: int) -> int:
        if v not in (1, 2):
            raise ValueError(f"version can be only 1 or 2, got: {v}")
        return v

    @field_validator('retry_mode')
    @classmethod
    def validate_retry_mode(cls, v: str) -> str:
        if v not in ("filtered", "always"):
            raise ValueError(f"retry_mode must be 'filtered' or 'always', got: {v}")
        return v

    @field_validator('retry_max_attempts')
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"retry_max_attempts must be positive, got: {v}")
        return v

    @field_validator('session_timeout', 'retry_base')
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"value must be positive, got: {v}")
        return v

    @field_validator('status')
    @classmethod
    def validate_status(cls, v: List[str]) -> List[str]:
        # an empty list falls back to the default status
        return v or ["complete"]

    @property
    def output_path(self) -> Path:
        """Get full output file path."""
        return Path(self.output_directory) / self.output_filename

    def retry_policy(self) -> RetryPolicy:
        """Build the retry policy described by this configuration."""
        if self.retry_mode == "always":
            return RetryPolicy.unconditional(
                base=self.retry_base,
                max_attempts=self.retry_max_attempts
            )
        return RetryPolicy.filtered(
            pattern=self.retry_fault_pattern,
            base=self.retry_base,
            max_attempts=self.retry_max_attempts
        )

    @staticmethod
    def env_overrides() -> Dict[str, Any]:
        """Collect configuration values from environment variables."""
        env_mappings = {
            "MAGENTO_HOST": "host",
            "MAGENTO_API_USER": "apiuser",
            "MAGENTO_API_KEY": "apikey",
            "MAGENTO_API_VERSION": "version",
            "SYNC_STORE_ID": "store_id",
            "WOOWUP_API_KEY": "woowup_api_key",
            "WOOWUP_BASE_URL": "woowup_base_url",
            "SYNC_LOG_LEVEL": "log_level",
        }

        overrides = {}
        for env_var, field_name in env_mappings.items():
            if env_var in os.environ:
                value = os.environ[env_var]
                if SyncConfig.model_fields[field_name].annotation == int:
                    overrides[field_name] = int(value)
                else:
                    overrides[field_name] = value

        return overrides


class ConfigManager:
    """Manages configuration loading with override precedence."""

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = config_file or Path("config/config.yaml")
        self._config: Optional[SyncConfig] = None

    def load_config(self, cli_overrides: Optional[Dict] = None) -> SyncConfig:
        """
        Load configuration with override precedence: CLI > ENV > YAML.

        Args:
            cli_overrides: Optional dictionary of CLI flag overrides

        Returns:
            Fully merged SyncConfig instance

        Raises:
            ValueError: If configuration validation fails
        """
        config_dict: Dict[str, Any] = {}

        if self.config_file.exists():
            with open(self.config_file, 'r') as f:
                yaml_config = yaml.safe_load(f)
                if yaml_config:
                    config_dict.update(yaml_config)

        config_dict.update(SyncConfig.env_overrides())

        if cli_overrides:
            # Filter out None values from CLI
            config_dict.update({k: v for k, v in cli_overrides.items() if v is not None})

        self._config = SyncConfig(**config_dict)
        return self._config

    @property
    def config(self) -> SyncConfig:
        """Get the loaded configuration."""
        if self._config is None:
            self._config = self.load_config()
        return self._config
