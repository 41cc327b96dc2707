"""
Unit tests for the Lambda entry point.
"""

import json
import re
from unittest.mock import patch

import pytest

from marketplace_ingestion.handler import lambda_handler
from marketplace_ingestion.models.results import ProcessingResult


@pytest.fixture
def mock_config():
    with patch("marketplace_ingestion.handler.Config") as config:
        yield config


@pytest.fixture
def mock_orchestrator():
    with patch("marketplace_ingestion.handler.ImportOrchestrator") as orchestrator_cls:
        yield orchestrator_cls


class TestLambdaHandler:
    def test_successful_pass(self, mock_config, mock_orchestrator):
        mock_orchestrator.return_value.run.return_value = ProcessingResult(
            total_processed=3, success_count=2, skipped_count=1
        )

        response = lambda_handler({"date": "2024-05-01"}, None)

        assert response["statusCode"] == 200
        body = json.loads(response["body"])
        assert body["date"] == "2024-05-01"
        assert body["result"]["totalProcessed"] == 3
        assert body["result"]["successCount"] == 2
        assert body["result"]["isSuccess"] is True
        mock_config.validate.assert_called_once()
        mock_orchestrator.return_value.run.assert_called_once_with("2024-05-01")

    def test_default_date_is_today(self, mock_config, mock_orchestrator):
        mock_orchestrator.return_value.run.return_value = ProcessingResult()

        response = lambda_handler({}, None)

        assert response["statusCode"] == 200
        (date,) = mock_orchestrator.return_value.run.call_args.args
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", date)

    def test_invalid_date_rejected(self, mock_config, mock_orchestrator):
        response = lambda_handler({"date": "05/01/2024"}, None)

        assert response["statusCode"] == 500
        assert "error" in json.loads(response["body"])
        mock_orchestrator.assert_not_called()

    def test_invalid_configuration(self, mock_config, mock_orchestrator):
        mock_config.validate.side_effect = ValueError("Missing required environment variables: DB_HOST")

        response = lambda_handler({"date": "2024-05-01"}, None)

        assert response["statusCode"] == 500
        assert json.loads(response["body"])["error"] == "Missing required environment variables: DB_HOST"
        mock_orchestrator.assert_not_called()
