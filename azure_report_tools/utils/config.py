"""Configuration loading and management"""

import os
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..core.exceptions import ConfigurationError
from ..core.models import ReportConfiguration, RuleGrouping
from .logger import setup_logger

ENV_PREFIX = "AZURE_REPORT_TOOLS_"

DEFAULT_CONFIG_LOCATIONS = [
    "azure_report_tools.yml",
    "azure_report_tools.yaml",
    "~/.azure_report_tools.yml",
    "~/.config/azure_report_tools/config.yml",
]


class ConfigurationLoader:
    """Load report configuration from defaults, YAML, environment and overrides"""

    def __init__(self):
        self.logger = setup_logger(self.__class__.__name__)

    def load_configuration(
        self,
        config_file: Optional[str] = None,
        **overrides
    ) -> ReportConfiguration:
        """Merge configuration sources, later sources winning"""

        config_dict = asdict(ReportConfiguration())

        if config_file:
            file_config = self._load_from_file(config_file)
            if file_config:
                config_dict.update(file_config)
        else:
            default_config = self._load_default_config()
            if default_config:
                config_dict.update(default_config)

        config_dict.update(self._load_from_environment())

        # Only overrides the caller actually set
        config_dict.update({k: v for k, v in overrides.items() if v is not None})

        known_keys = {f.name for f in fields(ReportConfiguration)}
        unknown = sorted(set(config_dict) - known_keys)
        if unknown:
            self.logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")

        config = ReportConfiguration(**{k: v for k, v in config_dict.items() if k in known_keys})
        self._validate_configuration(config)
        return config

    def _load_from_file(self, config_file: str) -> Optional[Dict[str, Any]]:
        """Load configuration from YAML file"""

        config_path = Path(config_file).expanduser()
        if not config_path.exists():
            self.logger.warning(f"Configuration file not found: {config_file}")
            return None

        if config_path.suffix.lower() not in ('.yml', '.yaml'):
            self.logger.error(f"Unsupported config file format: {config_path.suffix}")
            return None

        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            self.logger.error(f"Failed to load configuration file {config_file}: {e}")
            return None

        if not isinstance(config_data, dict):
            self.logger.error(f"Configuration file {config_file} must contain a mapping")
            return None

        self.logger.info(f"Loaded configuration from: {config_file}")
        return self._flatten_config(config_data)

    def _load_default_config(self) -> Optional[Dict[str, Any]]:
        """Try to load from default configuration locations"""

        for location in DEFAULT_CONFIG_LOCATIONS:
            if os.path.exists(os.path.expanduser(location)):
                return self._load_from_file(location)
        return None

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration from environment variables"""

        env_config = {}

        env_mapping = {
            'SUBSCRIPTION_IDS': ('subscription_ids', self._parse_list),
            'EXCLUDED_SUBSCRIPTION_IDS': ('excluded_subscription_ids', self._parse_list),
            'OUTPUT_DIRECTORY': ('output_directory', str),
            'CSV_DELIMITER': ('csv_delimiter', str),
            'RETRY_INITIAL_DELAY': ('retry_initial_delay', float),
            'RETRY_MULTIPLIER': ('retry_multiplier', float),
            'RETRY_MAX_TOTAL_DELAY': ('retry_max_total_delay', float),
            'NSG_GROUPING': ('nsg_grouping', str),
            'NSG_INCLUDE_DEFAULT_RULES': ('nsg_include_default_rules', self._parse_bool),
            'SHARE_AGE_THRESHOLDS': ('share_age_thresholds', self._parse_int_list),
            'CURRENCY': ('currency', str),
        }

        for suffix, (config_key, parser) in env_mapping.items():
            env_var = ENV_PREFIX + suffix
            value = os.getenv(env_var)
            if value is not None:
                try:
                    env_config[config_key] = parser(value)
                    self.logger.debug(f"Loaded {config_key} from environment: {value}")
                except ValueError as e:
                    self.logger.warning(f"Failed to parse environment variable {env_var}={value}: {e}")

        return env_config

    def _flatten_config(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Flatten nested sections, e.g. retry.initial_delay -> retry_initial_delay"""

        flattened = {}

        def _flatten(obj, parent_key=''):
            if isinstance(obj, dict):
                for key, value in obj.items():
                    new_key = f"{parent_key}_{key}" if parent_key else key
                    _flatten(value, new_key)
            else:
                flattened[parent_key] = obj

        _flatten(config_data)
        return flattened

    def _parse_list(self, value: str) -> List[str]:
        """Parse comma-separated string into list"""
        return [item.strip() for item in value.split(',') if item.strip()]

    def _parse_int_list(self, value: str) -> List[int]:
        return [int(item) for item in self._parse_list(value)]

    def _parse_bool(self, value: str) -> bool:
        """Parse string into boolean"""
        return value.lower() in ('true', '1', 'yes', 'on', 'enabled')

    def _validate_configuration(self, config: ReportConfiguration) -> None:
        """Validate configuration values"""

        if len(config.csv_delimiter) != 1:
            raise ConfigurationError("CSV delimiter must be a single character")

        if config.retry_initial_delay <= 0:
            raise ConfigurationError("Retry initial delay must be positive")

        if config.retry_multiplier < 1.0:
            raise ConfigurationError("Retry multiplier must be at least 1.0")

        if config.retry_max_total_delay < 0:
            raise ConfigurationError("Retry total delay budget cannot be negative")

        valid_groupings = {g.value for g in RuleGrouping}
        if config.nsg_grouping not in valid_groupings:
            raise ConfigurationError(
                f"NSG grouping must be one of: {', '.join(sorted(valid_groupings))}"
            )

        thresholds = config.share_age_thresholds
        if not thresholds or any(t <= 0 for t in thresholds):
            raise ConfigurationError("Share age thresholds must be positive day counts")
        if list(thresholds) != sorted(set(thresholds)):
            raise ConfigurationError("Share age thresholds must be strictly ascending")

        overlap = set(config.subscription_ids) & set(config.excluded_subscription_ids)
        if overlap:
            self.logger.warning(
                f"Subscriptions both included and excluded will be skipped: {', '.join(sorted(overlap))}"
            )

        self.logger.debug("Configuration validation completed")


def create_sample_config(output_file: str = "azure_report_tools_sample.yml") -> str:
    """Write a sample configuration file and return its path"""

    sample_config = {
        'subscription_ids': [],
        'excluded_subscription_ids': [],
        'output_directory': '.',
        'csv_delimiter': ',',
        'currency': 'USD',
        'retry': {
            'initial_delay': 10.0,
            'multiplier': 1.5,
            'max_total_delay': 600.0,
        },
        'nsg': {
            'grouping': RuleGrouping.SUMMARY.value,
            'include_default_rules': False,
        },
        'share': {
            'age_thresholds': [30, 90, 180, 365, 730],
        },
    }

    output_path = Path(output_file)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        f.write("# Azure Report Tools Configuration\n")
        f.write("# Environment variables prefixed with AZURE_REPORT_TOOLS_ override these values\n\n")
        yaml.safe_dump(sample_config, f, default_flow_style=False, indent=2, sort_keys=False)

    return str(output_path)
