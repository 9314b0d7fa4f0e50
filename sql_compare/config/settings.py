"""
Configuration loader for sql-compare

Reads settings from environment variables and an optional YAML file,
resolves connection strings stored in AWS Secrets Manager, and keeps
resolved secrets out of log output.
"""

import json
import logging
import os
from typing import Dict, Any, Optional

import boto3
import jsonschema
import yaml
from botocore.exceptions import BotoCoreError, ClientError

from sql_compare.database.connection import DEFAULT_ODBC_DRIVER, parse_connection_string
from sql_compare.exceptions import SqlCompareError

logger = logging.getLogger(__name__)


class ConfigurationError(SqlCompareError):
    """Exception raised for configuration-related errors."""

    pass


DEFAULT_CONFIG_FILE = "sql-compare.yaml"
DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_FILE_ENCODING = "utf-8"
# None lets boto3 fall back to AWS_DEFAULT_REGION / the AWS profile
DEFAULT_AWS_REGION: Optional[str] = None

# Connection string argument that names a secret instead of a server
SECRET_PREFIX = "secretsmanager:"

# Environment variable -> settings key
ENV_OVERRIDES = {
    "SQL_COMPARE_LOG_LEVEL": "log_level",
    "SQL_COMPARE_ODBC_DRIVER": "odbc_driver",
    "SQL_COMPARE_FILE_ENCODING": "file_encoding",
    "SQL_COMPARE_AWS_REGION": "aws_region",
}

SETTINGS_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "log_level": {
            "type": "string",
            "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        },
        "odbc_driver": {"type": "string", "minLength": 1},
        "file_encoding": {"type": "string", "minLength": 1},
        "aws_region": {"type": "string", "minLength": 1},
    },
}


class SecretRedactionFilter(logging.Filter):
    """
    Logging filter that redacts secret values from log records.
    Replaces secret substrings with ***REDACTED*** to prevent accidental leakage.
    """

    def __init__(self, secrets: Optional[Dict[str, Any]] = None):
        """
        Initialize filter with secrets to redact.

        Args:
            secrets: Dictionary of secrets to redact (values will be masked)
        """
        super().__init__()
        self.redacted_values: set[str] = set()
        if secrets:
            self.add_secrets(secrets)

    def add_secrets(self, obj: Any, max_depth: int = 5) -> None:
        """Recursively collect secret values from nested structures."""
        if max_depth <= 0:
            return

        if isinstance(obj, dict):
            for value in obj.values():
                self.add_secrets(value, max_depth - 1)
        elif isinstance(obj, (list, tuple)):
            for item in obj:
                self.add_secrets(item, max_depth - 1)
        elif isinstance(obj, str) and len(obj) > 3:
            # Only redact strings with meaningful length
            self.redacted_values.add(obj)

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and redact log record."""
        if not self.redacted_values:
            return True
        record.msg = self._redact_string(str(record.msg))
        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._redact_string(str(v)) for k, v in record.args.items()}
            else:
                record.args = tuple(self._redact_string(str(arg)) for arg in record.args)
        return True

    def _redact_string(self, text: str) -> str:
        """Redact all secret values from string."""
        # Longest first so a secret containing another is redacted whole
        for secret in sorted(self.redacted_values, key=len, reverse=True):
            if secret in text:
                text = text.replace(secret, "***REDACTED***")
        return text


class Settings:
    """
    Runtime settings for one sql-compare run.

    Precedence: environment variables, then the YAML config file, then defaults.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize Settings.

        Args:
            config_path: YAML config file (default: $SQL_COMPARE_CONFIG_FILE or
                sql-compare.yaml in the working directory, if present)

        Raises:
            ConfigurationError: If the config file is invalid
        """
        self.log_level = DEFAULT_LOG_LEVEL
        self.odbc_driver = DEFAULT_ODBC_DRIVER
        self.file_encoding = DEFAULT_FILE_ENCODING
        self.aws_region = DEFAULT_AWS_REGION
        self.redaction_filter = SecretRedactionFilter()
        self.secrets_client = None

        explicit = config_path or os.getenv("SQL_COMPARE_CONFIG_FILE")
        self.config_path = explicit or DEFAULT_CONFIG_FILE
        if explicit or os.path.exists(self.config_path):
            self._apply(self.load_config_file(self.config_path))

        overrides = {
            key: os.environ[env]
            for env, key in ENV_OVERRIDES.items()
            if os.environ.get(env)
        }
        if "log_level" in overrides:
            overrides["log_level"] = overrides["log_level"].upper()
        self._validate(overrides, "environment")
        self._apply(overrides)

    @staticmethod
    def load_config_file(path: str) -> Dict[str, Any]:
        """
        Load and validate the YAML config file.

        Args:
            path: Path to the YAML file

        Returns:
            Validated settings dictionary (empty for an empty file)

        Raises:
            ConfigurationError: If the file is missing, not YAML, or fails validation
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Config file not found: {path}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if content is None:
            logger.warning(f"Empty config file: {path}")
            return {}

        Settings._validate(content, path)
        logger.debug(f"Loaded settings from {path}")
        return content

    @staticmethod
    def _validate(values: Any, source: str) -> None:
        try:
            jsonschema.validate(instance=values, schema=SETTINGS_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ConfigurationError(f"Invalid settings in {source}: {e.message}") from e

    def _apply(self, values: Dict[str, Any]) -> None:
        for key, value in values.items():
            setattr(self, key, value)

    def _get_secrets_client(self):
        """Lazy initialize Secrets Manager client."""
        if self.secrets_client is None:
            self.secrets_client = boto3.client("secretsmanager", region_name=self.aws_region)
        return self.secrets_client

    def resolve_connection_string(self, value: str) -> str:
        """
        Resolve the connection string argument.

        "secretsmanager:<secret-id>" is looked up in AWS Secrets Manager; the
        secret is either a JSON object with a "connection_string" key or the
        raw connection string. Anything else is returned unchanged. A resolved
        connection string is registered for log redaction.

        Args:
            value: Connection string argument from the command line

        Returns:
            Connection string

        Raises:
            ConfigurationError: If the secret cannot be read
        """
        if not value.startswith(SECRET_PREFIX):
            return value

        secret_id = value[len(SECRET_PREFIX):].strip()
        if not secret_id:
            raise ConfigurationError("Secret id missing after 'secretsmanager:'")

        try:
            response = self._get_secrets_client().get_secret_value(SecretId=secret_id)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "ResourceNotFoundException":
                raise ConfigurationError(
                    f"Secret '{secret_id}' not found in Secrets Manager. "
                    f"Please verify the secret exists in region {self.aws_region or '(default)'}"
                ) from e
            raise ConfigurationError(
                f"Failed to retrieve secret '{secret_id}': {error_code}"
            ) from e
        except BotoCoreError as e:
            raise ConfigurationError(f"Failed to retrieve secret '{secret_id}': {e}") from e

        secret_string = response.get("SecretString")
        if not secret_string or not secret_string.strip():
            raise ConfigurationError(f"Secret '{secret_id}' has empty value")

        connection_string = secret_string.strip()
        if connection_string.startswith("{"):
            try:
                secret = json.loads(connection_string)
            except json.JSONDecodeError as e:
                raise ConfigurationError(
                    f"Secret '{secret_id}' contains invalid JSON: {str(e)}"
                ) from e
            connection_string = secret.get("connection_string") if isinstance(secret, dict) else None
            if not connection_string:
                raise ConfigurationError(
                    f"Secret '{secret_id}' missing required key 'connection_string'"
                )

        self.redaction_filter.add_secrets(connection_string)
        # Logged strings are rebuilt from the parsed keywords, not the raw secret
        for _, keyword_value in parse_connection_string(connection_string).values():
            self.redaction_filter.add_secrets([keyword_value, keyword_value.strip("{}")])
        return connection_string

    def setup_redaction_filter(self, namespace: str = "sql_compare") -> None:
        """
        Attach the redaction filter to the root handlers and to the handlers
        of every logger under `namespace`.
        """
        targets = [logging.getLogger()] + [
            logger_obj
            for name, logger_obj in logging.Logger.manager.loggerDict.items()
            if name.startswith(namespace) and isinstance(logger_obj, logging.Logger)
        ]
        for target in targets:
            for handler in target.handlers:
                if self.redaction_filter not in handler.filters:
                    handler.addFilter(self.redaction_filter)
