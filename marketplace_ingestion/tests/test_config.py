"""
Unit tests for pipeline configuration.
"""

import importlib
import json
import os
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

import marketplace_ingestion.config as config_module
from marketplace_ingestion.platforms import Platform

VALID_ENV = {
    "DB_HOST": "localhost",
    "DB_NAME": "marketplace",
    "DB_USER": "loader",
    "DB_PASSWORD": "secret",
    "FACEBOOK_API_URL": "https://api.example.com/facebook",
    "SHOPEE_API_URL": "https://api.example.com/shopee",
    "TIKTOK_API_URL": "https://api.example.com/tiktok",
}

SECRET_ARN = "arn:aws:secretsmanager:ap-southeast-1:123456789012:secret:marketplace-db"


def _reload_config():
    """
    Reload the config module to ensure environment changes are picked up.
    """
    importlib.reload(config_module)
    return config_module.Config


@pytest.fixture(autouse=True)
def restore_config():
    yield
    importlib.reload(config_module)


class TestValidate:
    """Test configuration validation."""

    @patch.dict(os.environ, VALID_ENV, clear=True)
    def test_validate_config_success(self):
        Config = _reload_config()
        Config.validate()

    @patch.dict(os.environ, {}, clear=True)
    def test_validate_config_missing_required(self):
        Config = _reload_config()
        with pytest.raises(ValueError) as exc_info:
            Config.validate()

        error_msg = str(exc_info.value)
        assert "DB_HOST" in error_msg
        assert "FACEBOOK_API_URL" in error_msg

    @patch.dict(os.environ, {**VALID_ENV, "TIKTOK_API_URL": "", "TIKTOK_ENABLED": "false"}, clear=True)
    def test_disabled_platform_needs_no_url(self):
        Config = _reload_config()
        Config.validate()
        assert Config.enabled_platforms() == [Platform.FACEBOOK, Platform.SHOPEE]

    @patch.dict(os.environ, {**VALID_ENV, "BULK_BATCH_SIZE": "0"}, clear=True)
    def test_non_positive_sizes_rejected(self):
        Config = _reload_config()
        with pytest.raises(ValueError, match="Must be positive integers: BULK_BATCH_SIZE"):
            Config.validate()

    @patch.dict(os.environ, {**VALID_ENV, "DB_SECRET_ARN": SECRET_ARN, "DB_HOST": ""}, clear=True)
    def test_secret_replaces_db_variables(self):
        Config = _reload_config()
        Config.validate()


class TestEnvironmentParsing:
    @patch.dict(os.environ, {**VALID_ENV, "DB_PORT": "6543", "KEY_CHUNK_SIZE": "250"}, clear=True)
    def test_integers_parsed(self):
        Config = _reload_config()
        assert Config.DB_PORT == 6543
        assert Config.KEY_CHUNK_SIZE == 250

    @patch.dict(os.environ, {**VALID_ENV, "API_PAGE_SIZE": "lots"}, clear=True)
    def test_non_integer_rejected(self):
        with pytest.raises(ValueError, match="API_PAGE_SIZE must be an integer"):
            _reload_config()

    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        Config = _reload_config()
        assert Config.DB_PORT == 5432
        assert Config.BULK_BATCH_SIZE == 1000
        assert Config.COMPOSITE_KEY_CHUNK_SIZE == 500
        assert Config.enabled_platforms() == [Platform.FACEBOOK, Platform.SHOPEE, Platform.TIKTOK]


class TestConnectionDetails:
    """Test database connection details from variables or Secrets Manager."""

    @patch.dict(os.environ, VALID_ENV, clear=True)
    def test_details_from_environment(self):
        Config = _reload_config()
        assert Config.get_db_connection_details() == {
            "host": "localhost",
            "port": 5432,
            "database": "marketplace",
            "user": "loader",
            "password": "secret",
        }

    @patch.dict(os.environ, {"DB_SECRET_ARN": SECRET_ARN}, clear=True)
    @patch("boto3.client")
    def test_details_from_secret(self, mock_client):
        mock_secrets = MagicMock()
        mock_secrets.get_secret_value.return_value = {
            "SecretString": json.dumps({
                "host": "db.internal",
                "port": "5432",
                "username": "loader",
                "password": "pw",
                "dbname": "marketplace",
            })
        }
        mock_client.return_value = mock_secrets

        Config = _reload_config()
        details = Config.get_db_connection_details()

        assert details["host"] == "db.internal"
        assert details["port"] == 5432
        assert details["database"] == "marketplace"
        mock_client.assert_called_once_with("secretsmanager")

        # Cached after the first lookup
        Config.get_db_connection_details()
        mock_secrets.get_secret_value.assert_called_once()

    @patch.dict(os.environ, {"DB_SECRET_ARN": SECRET_ARN}, clear=True)
    @patch("boto3.client")
    def test_secret_missing_keys(self, mock_client):
        mock_client.return_value.get_secret_value.return_value = {
            "SecretString": json.dumps({"host": "db.internal", "port": 5432})
        }

        Config = _reload_config()
        with pytest.raises(ValueError, match="missing required keys: username, password"):
            Config.get_db_connection_details()

    @patch.dict(os.environ, {"DB_SECRET_ARN": SECRET_ARN}, clear=True)
    @patch("boto3.client")
    def test_secret_lookup_failure(self, mock_client):
        mock_client.return_value.get_secret_value.side_effect = ClientError(
            {"Error": {"Code": "ResourceNotFoundException"}}, "GetSecretValue"
        )

        Config = _reload_config()
        with pytest.raises(ValueError, match="Failed to retrieve database secret"):
            Config.get_db_connection_details()
