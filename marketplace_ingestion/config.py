"""
Configuration module for the marketplace import pipeline.

Reads environment variables and provides configuration values for the
PostgreSQL target, the marketplace API endpoints and the batch sizes used by
the bulk persistence engine.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List

from dotenv import load_dotenv

from marketplace_ingestion.platforms import Platform

AWS_INDICATORS = (
    "AWS_EXECUTION_ENV",
    "AWS_LAMBDA_FUNCTION_NAME",
    "ECS_CONTAINER_METADATA_URI",
)


def _load_dotenv_if_present(dotenv_path: Path) -> None:
    """
    Load a .env file when running locally.

    Existing environment variables always win over the file.

    Args:
        dotenv_path (Path): Location of the .env file.
    """
    if any(os.getenv(indicator) for indicator in AWS_INDICATORS):
        return
    if dotenv_path.exists():
        load_dotenv(dotenv_path=dotenv_path, override=False)


_load_dotenv_if_present(Path(__file__).parent.parent / ".env")


def _env_bool(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "y")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


class Config:
    """
    Configuration class that reads environment variables for the import pipeline.
    """

    # Database Configuration
    DB_HOST: str = os.getenv("DB_HOST", "")
    DB_PORT: int = _env_int("DB_PORT", 5432)
    DB_NAME: str = os.getenv("DB_NAME", "")
    DB_USER: str = os.getenv("DB_USER", "")
    DB_PASSWORD: str = os.getenv("DB_PASSWORD", "")
    DB_SECRET_ARN: str = os.getenv("DB_SECRET_ARN", "")
    DB_STATEMENT_TIMEOUT: str = os.getenv("DB_STATEMENT_TIMEOUT", "600s")
    DB_CONNECT_TIMEOUT: int = 10

    # API Configuration
    FACEBOOK_API_URL: str = os.getenv("FACEBOOK_API_URL", "")
    SHOPEE_API_URL: str = os.getenv("SHOPEE_API_URL", "")
    TIKTOK_API_URL: str = os.getenv("TIKTOK_API_URL", "")
    API_AUTH_HEADER: str = os.getenv("API_AUTH_HEADER", "")
    API_KEY: str = os.getenv("API_KEY", "")
    API_PAGE_SIZE: int = _env_int("API_PAGE_SIZE", 1000)
    API_MAX_RETRIES: int = _env_int("API_MAX_RETRIES", 5)
    API_TIMEOUT_SECONDS: int = 30

    # Platform switches
    FACEBOOK_ENABLED: bool = _env_bool("FACEBOOK_ENABLED")
    SHOPEE_ENABLED: bool = _env_bool("SHOPEE_ENABLED")
    TIKTOK_ENABLED: bool = _env_bool("TIKTOK_ENABLED")

    # Bulk persistence
    BULK_BATCH_SIZE: int = _env_int("BULK_BATCH_SIZE", 1000)
    KEY_CHUNK_SIZE: int = _env_int("KEY_CHUNK_SIZE", 1000)
    COMPOSITE_KEY_CHUNK_SIZE: int = _env_int("COMPOSITE_KEY_CHUNK_SIZE", 500)

    # Lazy-loaded secret cache
    _db_secret_cache: Dict[str, Any] = {}

    @classmethod
    def api_url(cls, platform: Platform) -> str:
        return {
            Platform.FACEBOOK: cls.FACEBOOK_API_URL,
            Platform.SHOPEE: cls.SHOPEE_API_URL,
            Platform.TIKTOK: cls.TIKTOK_API_URL,
        }[platform]

    @classmethod
    def is_enabled(cls, platform: Platform) -> bool:
        return {
            Platform.FACEBOOK: cls.FACEBOOK_ENABLED,
            Platform.SHOPEE: cls.SHOPEE_ENABLED,
            Platform.TIKTOK: cls.TIKTOK_ENABLED,
        }[platform]

    @classmethod
    def enabled_platforms(cls) -> List[Platform]:
        """Enabled platforms in fixed FACEBOOK, SHOPEE, TIKTOK order."""
        return [platform for platform in Platform if cls.is_enabled(platform)]

    @classmethod
    def _load_db_secret(cls) -> Dict[str, Any]:
        """
        Retrieve and cache the database secret from AWS Secrets Manager.

        Returns:
            Dict containing the secret payload.
        """
        if not cls._db_secret_cache:
            if not cls.DB_SECRET_ARN:
                raise ValueError("DB_SECRET_ARN environment variable is required")

            import boto3

            secrets_client = boto3.client("secretsmanager")
            try:
                response = secrets_client.get_secret_value(SecretId=cls.DB_SECRET_ARN)
                cls._db_secret_cache = json.loads(response["SecretString"])
            except Exception as e:
                raise ValueError(
                    f"Failed to retrieve database secret from Secrets Manager: {e}"
                )
        return cls._db_secret_cache

    @classmethod
    def get_db_connection_details(cls) -> Dict[str, Any]:
        """
        Provide psycopg2 connection details.

        Sourced from the Secrets Manager secret when DB_SECRET_ARN is set,
        otherwise from the DB_* variables.

        Returns:
            Dict containing host, port, database, user, and password.
        """
        if not cls.DB_SECRET_ARN:
            return {
                "host": cls.DB_HOST,
                "port": cls.DB_PORT,
                "database": cls.DB_NAME,
                "user": cls.DB_USER,
                "password": cls.DB_PASSWORD,
            }

        secret = cls._load_db_secret()

        required_keys = ["host", "port", "username", "password"]
        missing_keys = [key for key in required_keys if key not in secret]
        if missing_keys:
            raise ValueError(
                f"Database secret missing required keys: {', '.join(missing_keys)}"
            )

        database_name = secret.get("dbname") or secret.get("database")
        if not database_name:
            raise ValueError("Database secret must include either 'dbname' or 'database'")

        return {
            "host": secret["host"],
            "port": int(secret["port"]),
            "database": database_name,
            "user": secret["username"],
            "password": secret["password"],
        }

    @classmethod
    def validate(cls) -> None:
        """
        Validate that required configuration values are present.

        Raises:
            ValueError: If any required configuration is missing or invalid.
        """
        required_vars = []
        if not cls.DB_SECRET_ARN:
            required_vars += [
                ("DB_HOST", cls.DB_HOST),
                ("DB_NAME", cls.DB_NAME),
                ("DB_USER", cls.DB_USER),
                ("DB_PASSWORD", cls.DB_PASSWORD),
            ]
        for platform in cls.enabled_platforms():
            required_vars.append((f"{platform.value}_API_URL", cls.api_url(platform)))

        missing = [name for name, value in required_vars if not value]
        if missing:
            raise ValueError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        sizes = [
            ("API_PAGE_SIZE", cls.API_PAGE_SIZE),
            ("API_MAX_RETRIES", cls.API_MAX_RETRIES),
            ("BULK_BATCH_SIZE", cls.BULK_BATCH_SIZE),
            ("KEY_CHUNK_SIZE", cls.KEY_CHUNK_SIZE),
            ("COMPOSITE_KEY_CHUNK_SIZE", cls.COMPOSITE_KEY_CHUNK_SIZE),
        ]
        invalid = [name for name, value in sizes if value <= 0]
        if invalid:
            raise ValueError(f"Must be positive integers: {', '.join(invalid)}")
