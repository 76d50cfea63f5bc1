"""
Configuration loader for the ANMC admin back office.

Reads deployment settings from environment variables and fetches API
credentials from AWS Secrets Manager with exponential backoff and log
redaction.
"""

import json
import logging
import os
import time
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from src.auth.permissions import PermissionPolicy
from src.utils.logger import add_handler_filter

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Exception raised for configuration-related errors."""

    pass


DEFAULT_ENVIRONMENT = "dev"
DEFAULT_REGION = "ap-southeast-2"
DEFAULT_TIMEZONE = "Australia/Sydney"
DEFAULT_MAX_INVENTORY = 700

# Secret NAME template; values are fetched from AWS Secrets Manager.
API_SECRET_TEMPLATE = "anmc/{environment}/api-credentials"  # nosec B105

REPO_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
PERMISSIONS_FILE = os.path.join(REPO_ROOT, "config", "permissions.yaml")
PERMISSIONS_SCHEMA_FILE = os.path.join(REPO_ROOT, "config", "permissions.schema.json")


class SecretRedactionFilter(logging.Filter):
    """
    Logging filter that redacts secret values from log records.
    Replaces secret substrings with ***REDACTED*** to prevent accidental leakage.
    """

    def __init__(self, secrets: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.secrets = secrets or {}
        self.redacted_values: set[str] = set()
        if self.secrets:
            self._extract_secret_values(self.secrets)

    def _extract_secret_values(self, obj: Any, max_depth: int = 5) -> None:
        """Recursively extract all secret values from nested structures."""
        if max_depth <= 0:
            return

        if isinstance(obj, dict):
            for value in obj.values():
                self._extract_secret_values(value, max_depth - 1)
        elif isinstance(obj, (list, tuple)):
            for item in obj:
                self._extract_secret_values(item, max_depth - 1)
        elif isinstance(obj, str) and len(obj) > 3:
            self.redacted_values.add(obj)

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self._redact_string(str(record.msg))
        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._redact_string(str(v)) for k, v in record.args.items()}
            elif isinstance(record.args, (list, tuple)):
                record.args = tuple(self._redact_string(str(arg)) for arg in record.args)
        return True

    def _redact_string(self, text: str) -> str:
        for secret in self.redacted_values:
            if secret in text:
                text = text.replace(secret, "***REDACTED***")
        return text


class Settings:
    """
    Environment-driven settings for the Lambda and admin scripts.

    Values are read when the instance is created, so tests can patch the
    environment before constructing one.
    """

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        env = os.environ if environ is None else environ

        self.environment = env.get("ENVIRONMENT", DEFAULT_ENVIRONMENT)
        self.region_name = env.get("AWS_REGION", DEFAULT_REGION)
        self.bookings_table = env.get("BOOKINGS_TABLE_NAME", f"anmc-bookings-{self.environment}")
        self.api_base_url = env.get("API_BASE_URL", "")
        self.timezone = env.get("ADMIN_TIMEZONE", DEFAULT_TIMEZONE)
        self.slack_enabled = env.get("SLACK_ENABLED", "false").lower() == "true"
        self.slack_webhook_url = env.get("SLACK_WEBHOOK_URL") or None
        self.use_local_secrets = env.get("USE_LOCAL_SECRETS_FILE", "false").lower() == "true"
        self.local_secrets_file = env.get("LOCAL_SECRETS_FILE_PATH", ".local/secrets.json")
        self.permissions_file = env.get("PERMISSIONS_FILE", PERMISSIONS_FILE)
        self.permissions_schema_file = env.get("PERMISSIONS_SCHEMA_FILE", PERMISSIONS_SCHEMA_FILE)

        raw_max = env.get("MAX_INVENTORY", str(DEFAULT_MAX_INVENTORY))
        try:
            self.max_inventory = int(raw_max)
        except ValueError as e:
            raise ConfigurationError(f"MAX_INVENTORY must be an integer, got {raw_max!r}") from e
        if self.max_inventory < 0:
            raise ConfigurationError("MAX_INVENTORY must not be negative")

    @property
    def table_names(self) -> Dict[str, str]:
        """Collection name -> DynamoDB table name."""
        return {"bookings": self.bookings_table}

    @property
    def api_secret_id(self) -> str:
        return API_SECRET_TEMPLATE.format(environment=self.environment)

    def is_slack_enabled(self) -> bool:
        return self.slack_enabled and bool(self.slack_webhook_url)

    @staticmethod
    def _get_secret_value(
        secret_id: str,
        region_name: str = DEFAULT_REGION,
        max_retries: int = 3,
        base_wait: float = 1.0,
    ) -> Dict[str, Any]:
        """
        Fetch secret from Secrets Manager with exponential backoff.

        Args:
            secret_id: Secret identifier in Secrets Manager
            region_name: AWS region holding the secret
            max_retries: Maximum number of retry attempts
            base_wait: Base wait time in seconds for exponential backoff

        Returns:
            Parsed secret JSON as dictionary

        Raises:
            ConfigurationError: If secret cannot be retrieved after retries
        """
        client = boto3.client("secretsmanager", region_name=region_name)

        for attempt in range(max_retries):
            try:
                response = client.get_secret_value(SecretId=secret_id)
                secret_string = response.get("SecretString")
                if not secret_string:
                    raise ConfigurationError(f"Secret {secret_id} has empty value")
                return json.loads(secret_string)
            except ClientError as e:
                error_code = e.response["Error"]["Code"]
                if error_code == "ResourceNotFoundException":
                    raise ConfigurationError(
                        f"Secret '{secret_id}' not found in Secrets Manager. "
                        f"Please verify the secret exists in region {region_name}"
                    ) from e
                if error_code in ["AccessDeniedException", "UnauthorizedOperation"]:
                    raise ConfigurationError(
                        f"Access denied to secret '{secret_id}'. "
                        f"Verify the execution role has secretsmanager:GetSecretValue permission"
                    ) from e
                if error_code == "DecryptionFailure":
                    raise ConfigurationError(
                        f"Failed to decrypt secret '{secret_id}'. Verify KMS key permissions"
                    ) from e
                if attempt < max_retries - 1:
                    wait_time = base_wait * (2**attempt)
                    logger.warning(
                        f"Transient error fetching secret {secret_id}: {error_code}. "
                        f"Retrying in {wait_time}s (attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(wait_time)
                else:
                    raise ConfigurationError(
                        f"Failed to retrieve secret '{secret_id}' after {max_retries} attempts: {error_code}"
                    ) from e
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Secret '{secret_id}' contains invalid JSON: {e}") from e
            except BotoCoreError as e:
                if attempt < max_retries - 1:
                    wait_time = base_wait * (2**attempt)
                    logger.warning(
                        f"Network error fetching secret {secret_id}: {e}. "
                        f"Retrying in {wait_time}s (attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(wait_time)
                else:
                    raise ConfigurationError(
                        f"Unexpected error retrieving secret '{secret_id}': {e}"
                    ) from e

        raise ConfigurationError(
            f"Failed to retrieve secret '{secret_id}' - exhausted all retry attempts"
        )

    @staticmethod
    def _load_from_local_file(filepath: str) -> Dict[str, Any]:
        """
        Load secrets from local JSON file for development.

        Raises:
            ConfigurationError: If file cannot be read or contains invalid JSON
        """
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"Local secrets file not found: {filepath}. "
                f"Use AWS Secrets Manager or set USE_LOCAL_SECRETS_FILE=true and LOCAL_SECRETS_FILE_PATH"
            ) from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Local secrets file contains invalid JSON: {e}") from e

    def load_api_credentials(self) -> Dict[str, Any]:
        """
        Load REST API credentials (bearer token etc.).

        Returns:
            Dictionary of credential values; 'api_token' is used as the
            bearer token for the record store and stats clients
        """
        if self.use_local_secrets:
            return self._load_from_local_file(self.local_secrets_file).get("api", {})
        return self._get_secret_value(self.api_secret_id, region_name=self.region_name)

    def load_permissions(self) -> PermissionPolicy:
        """
        Load the role policy from YAML, validated against its JSON schema.

        Raises:
            FileNotFoundError: If config files not found
            ValueError: If the policy is malformed or fails validation
        """
        return PermissionPolicy.from_file(self.permissions_file, self.permissions_schema_file)

    def setup_redaction_filter(self, logger_instance: logging.Logger) -> SecretRedactionFilter:
        """
        Attach a redaction filter holding the loaded API credentials.

        Credentials that cannot be loaded leave the filter empty.
        """
        try:
            secrets = self.load_api_credentials()
        except ConfigurationError as e:
            logger.warning(f"Redaction filter created without secrets: {e}")
            secrets = {}

        redaction_filter = SecretRedactionFilter(secrets)
        logger_instance.addFilter(redaction_filter)
        return redaction_filter


def setup_logging_redaction(settings: Optional[Settings] = None) -> SecretRedactionFilter:
    """
    Redact loaded secrets from every log line.

    Logger filters only see records logged on that logger, so the filter also
    goes on the root handlers and on each structured logger's handler.
    """
    root = logging.getLogger()
    redaction_filter = (settings or Settings()).setup_redaction_filter(root)
    for handler in root.handlers:
        handler.addFilter(redaction_filter)
    add_handler_filter(redaction_filter)
    return redaction_filter
