"""Configuration loader with YAML support and environment variable substitution."""

import copy
import os
import re
from typing import Any, Dict
from urllib.parse import urlparse

import yaml


DEFAULT_REQUIRED_MODULES = ['requests', 'urllib3']


class ConfigLoader:
    """Handles loading and validation of configuration files."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

    @classmethod
    def load(cls, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)

        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a dictionary")

        return cls._substitute_env_vars_recursive(config_data)

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Validate configuration for required fields and correct values.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ValueError: If validation fails
        """
        # Source service
        cls._validate_required_field(config, 'source.base_url')
        cls._validate_url(get_nested(config, 'source.base_url'), 'source.base_url')

        auth_type = get_nested(config, 'source.auth_type', 'basic')
        if auth_type == 'basic':
            cls._validate_required_field(config, 'source.username')
            cls._validate_required_field(config, 'source.password')
        elif auth_type == 'bearer':
            cls._validate_required_field(config, 'source.api_token')
        else:
            raise ValueError("source.auth_type must be 'basic' or 'bearer'")

        # Destination service: either a static token or client credentials
        cls._validate_required_field(config, 'destination.base_url')
        cls._validate_url(get_nested(config, 'destination.base_url'), 'destination.base_url')

        if not get_nested(config, 'destination.access_token'):
            cls._validate_required_field(config, 'destination.token_url')
            cls._validate_required_field(config, 'destination.client_id')
            cls._validate_required_field(config, 'destination.client_secret')
            cls._validate_url(get_nested(config, 'destination.token_url'), 'destination.token_url')

        required_modules = get_nested(config, 'destination.required_modules', DEFAULT_REQUIRED_MODULES)
        if not isinstance(required_modules, list) or not all(
            isinstance(name, str) and name for name in required_modules
        ):
            raise ValueError("destination.required_modules must be a list of module names")

        # Migration settings
        top_n = get_nested(config, 'migration.top_n', 10)
        if isinstance(top_n, bool) or not isinstance(top_n, int) or top_n < 1:
            raise ValueError("migration.top_n must be a positive integer")

        separator = get_nested(config, 'migration.path_separator', '\\')
        if not isinstance(separator, str) or not separator:
            raise ValueError("migration.path_separator must be a non-empty string")

        batch_label = get_nested(config, 'migration.batch_label')
        if batch_label is not None and not isinstance(batch_label, str):
            raise ValueError("migration.batch_label must be a string")

        # Report settings
        for flag in ('report.offer_open', 'report.write_json'):
            value = get_nested(config, flag, False)
            if not isinstance(value, bool):
                raise ValueError(f"{flag} must be a boolean")

        output_dir = get_nested(config, 'report.output_directory')
        if output_dir and os.path.exists(output_dir) and not os.path.isdir(output_dir):
            raise ValueError(f"report.output_directory '{output_dir}' is not a directory")

        # Transport settings
        timeout = get_nested(config, 'advanced.request_timeout', 30)
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError("advanced.request_timeout must be a positive number")

        max_retries = get_nested(config, 'advanced.max_retries', 3)
        if not isinstance(max_retries, int) or max_retries < 0:
            raise ValueError("advanced.max_retries must be a non-negative integer")

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Merge configuration file with CLI arguments.
        CLI arguments take precedence over config file values.

        Args:
            config: Base configuration dictionary
            args: CLI arguments with attributes matching config keys

        Returns:
            Merged configuration dictionary
        """
        merged = copy.deepcopy(config)

        for section in ('migration', 'report', 'logging'):
            if not isinstance(merged.get(section), dict):
                merged[section] = {}

        if getattr(args, 'batch_label', None):
            merged['migration']['batch_label'] = args.batch_label

        if getattr(args, 'dry_run', None) is not None:
            merged['migration']['dry_run'] = args.dry_run

        if getattr(args, 'top', None):
            merged['migration']['top_n'] = args.top

        if getattr(args, 'report_path', None):
            merged['report']['path'] = args.report_path

        if getattr(args, 'no_open', False):
            merged['report']['offer_open'] = False

        if getattr(args, 'log_file', None):
            merged['logging']['file'] = args.log_file

        if getattr(args, 'verbose', 0):
            merged['logging']['level'] = 'DEBUG'

        return merged

    @classmethod
    def _substitute_env_vars_recursive(cls, data: Any) -> Any:
        """Recursively substitute environment variables in data structure."""
        if isinstance(data, dict):
            return {key: cls._substitute_env_vars_recursive(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [cls._substitute_env_vars_recursive(item) for item in data]
        elif isinstance(data, str):
            return cls._substitute_env_vars(data)
        else:
            return data

    @classmethod
    def _substitute_env_vars(cls, value: str) -> str:
        """Substitute environment variables in a string value."""
        def replace_match(match):
            env_value = os.getenv(match.group(1))
            return env_value if env_value is not None else match.group(0)

        return cls.ENV_VAR_PATTERN.sub(replace_match, value)

    @staticmethod
    def _validate_required_field(config: dict, field: str) -> None:
        """Validate that a required field exists and has a value."""
        value = get_nested(config, field)
        if value is None or value == '':
            raise ValueError(f"Missing required configuration: {field}")

        if isinstance(value, str) and '${' in value:
            match = ConfigLoader.ENV_VAR_PATTERN.search(value)
            var_name = match.group(1) if match else value
            raise ValueError(
                f"Configuration field '{field}' contains unsubstituted environment variable: {value}. "
                f"Please set the {var_name} environment variable or provide a value in config file."
            )

    @staticmethod
    def _validate_url(url: str, field_name: str) -> None:
        """Validate URL format."""
        parsed = urlparse(url)
        if not parsed.scheme or parsed.scheme not in ['http', 'https']:
            raise ValueError(f"{field_name} must use http or https scheme: {url}")
        if not parsed.netloc:
            raise ValueError(f"{field_name} missing hostname: {url}")


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Safely retrieve nested configuration values using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "source.base_url")
        default: Default value if path doesn't exist

    Returns:
        Value at the nested path or default
    """
    value = config

    for key in path.split('.'):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


__all__ = ['ConfigLoader', 'get_nested', 'DEFAULT_REQUIRED_MODULES']
