"""
Unit tests for import pass orchestration.
"""

from unittest.mock import MagicMock, call, patch

import psycopg2
import pytest
import requests

from marketplace_ingestion.load.bulk_loader import PersistenceError
from marketplace_ingestion.models.entities import ENTITY_TYPES
from marketplace_ingestion.orchestrator import ImportOrchestrator, raw_order_id
from marketplace_ingestion.platforms import Platform


def _client(*pages):
    client = MagicMock()
    client.fetch_page.side_effect = list(pages)
    return client


def _repository_factory(failing_type=None, written=None):
    """TableRepository stand-in recording which entity types were written."""
    written = written if written is not None else []

    def factory(conn, spec):
        repo = MagicMock()
        if spec.entity_type == failing_type:
            repo.bulk_upsert.side_effect = PersistenceError(spec.table_name, "duplicate key value")
        else:
            repo.bulk_upsert.side_effect = lambda entities: written.append(spec.entity_type) or len(entities)
        return repo

    return factory


@pytest.fixture
def mock_repository():
    with patch("marketplace_ingestion.orchestrator.TableRepository") as repo_cls:
        yield repo_cls


class TestFetchOrders:
    def test_pages_until_short_page(self):
        client = _client([{"id": 1}, {"id": 2}], [{"id": 3}])
        orchestrator = ImportOrchestrator(
            platforms=[Platform.SHOPEE], client_factory=lambda platform: client, page_size=2
        )

        orders = orchestrator.fetch_orders(Platform.SHOPEE, "2024-05-01")

        assert orders == [{"id": 1}, {"id": 2}, {"id": 3}]
        assert client.fetch_page.call_args_list == [call("2024-05-01", 1, 2), call("2024-05-01", 2, 2)]
        client.close.assert_called_once()

    def test_client_closed_on_failure(self):
        client = MagicMock()
        client.fetch_page.side_effect = requests.exceptions.ConnectionError("down")
        orchestrator = ImportOrchestrator(platforms=[Platform.TIKTOK], client_factory=lambda platform: client)

        with pytest.raises(requests.exceptions.ConnectionError):
            orchestrator.fetch_orders(Platform.TIKTOK, "2024-05-01")

        client.close.assert_called_once()


class TestRun:
    def test_happy_path(self, mock_repository, fb123_order):
        written = []
        mock_repository.side_effect = _repository_factory(written=written)
        conn = MagicMock()
        orchestrator = ImportOrchestrator(
            platforms=[Platform.FACEBOOK],
            client_factory=lambda platform: _client([fb123_order, {}]),
            connection_factory=lambda: conn,
            page_size=10,
        )

        result = orchestrator.run("2024-05-01")

        assert result.total_processed == 2
        assert result.success_count == 1
        assert result.skipped_count == 1
        assert result.failed_count == 0
        assert result.errors == []
        assert written == [entity_type for entity_type in ENTITY_TYPES if entity_type != "sub_status"]
        conn.close.assert_called_once()

    def test_normalization_error_is_isolated(self, mock_repository):
        normalizer = MagicMock()
        normalizer.normalize.side_effect = ValueError("bad payload")
        connection_factory = MagicMock()
        orchestrator = ImportOrchestrator(
            platforms=[Platform.SHOPEE],
            client_factory=lambda platform: _client([{"order_id": "X1"}]),
            connection_factory=connection_factory,
            page_size=10,
        )

        with patch("marketplace_ingestion.orchestrator.get_normalizer", return_value=normalizer):
            result = orchestrator.run("2024-05-01")

        assert result.total_processed == 1
        assert result.failed_count == 1
        assert result.success_count == 0
        error = result.errors[0]
        assert (error.entity_type, error.entity_id, error.platform) == ("order", "X1", "SHOPEE")
        assert error.error_message == "bad payload"
        connection_factory.assert_not_called()

    def test_failed_entity_type_marks_its_orders(self, mock_repository, fb123_order):
        written = []
        mock_repository.side_effect = _repository_factory(failing_type="order_item", written=written)
        orchestrator = ImportOrchestrator(
            platforms=[Platform.FACEBOOK],
            client_factory=lambda platform: _client([fb123_order]),
            connection_factory=MagicMock,
            page_size=10,
        )

        result = orchestrator.run("2024-05-01")

        assert result.failed_count == 1
        assert result.success_count == 0
        assert len(result.errors) == 1
        assert result.errors[0].entity_type == "order_item"
        assert result.errors[0].entity_id == "BATCH"
        assert "order_status" in written
        assert "order_item" not in written

    def test_platform_fetch_failure_does_not_stop_others(self, mock_repository, shopee_order):
        mock_repository.side_effect = _repository_factory()
        clients = {
            Platform.FACEBOOK: MagicMock(**{"fetch_page.side_effect": requests.exceptions.ConnectionError("down")}),
            Platform.SHOPEE: _client([shopee_order]),
        }
        orchestrator = ImportOrchestrator(
            platforms=[Platform.FACEBOOK, Platform.SHOPEE],
            client_factory=clients.__getitem__,
            connection_factory=MagicMock,
            page_size=10,
        )

        result = orchestrator.run("2024-05-01")

        assert result.total_processed == 2
        assert result.success_count == 1
        assert result.failed_count == 1
        assert result.success_rate == 50.0
        assert result.failed_count <= result.total_processed
        assert result.errors[0].entity_type == "platform_fetch"
        assert result.errors[0].entity_id == "FACEBOOK"

    def test_connection_error_aborts_pass(self, mock_repository, fb123_order):
        orchestrator = ImportOrchestrator(
            platforms=[Platform.FACEBOOK],
            client_factory=lambda platform: _client([fb123_order]),
            connection_factory=MagicMock(side_effect=psycopg2.OperationalError("could not connect")),
            page_size=10,
        )

        with pytest.raises(psycopg2.OperationalError):
            orchestrator.run("2024-05-01")

    def test_no_orders_skips_database(self, mock_repository):
        connection_factory = MagicMock()
        orchestrator = ImportOrchestrator(
            platforms=[Platform.TIKTOK],
            client_factory=lambda platform: _client([]),
            connection_factory=connection_factory,
            page_size=10,
        )

        result = orchestrator.run("2024-05-01")

        assert result.total_processed == 0
        assert result.is_success
        connection_factory.assert_not_called()
        mock_repository.assert_not_called()


class TestRawOrderId:
    @pytest.mark.parametrize("raw, expected", [
        ({"data": {"id": 9001}}, "9001"),
        ({"shopee_data": {"order_detail": {"order_sn": "SN1"}}}, "SN1"),
        ({"tiktok_data": {"order_detail": {"id": "T1"}}}, "T1"),
        ({"orderId": "FB123"}, "FB123"),
        ({}, "UNKNOWN"),
        ("not a dict", "UNKNOWN"),
    ])
    def test_resolution(self, raw, expected):
        assert raw_order_id(raw) == expected
