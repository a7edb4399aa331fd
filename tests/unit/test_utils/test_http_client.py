"""
Tests for the BigQuery REST transport.
"""

import json

import httpx
import pytest

from src.providers.base import QueryError
from src.utils.http_client import BigQueryTransport, parse_query_response

QUERY_RESPONSE = {
    "kind": "bigquery#queryResponse",
    "jobComplete": True,
    "schema": {
        "fields": [
            {"name": "currency", "type": "STRING"},
            {"name": "net_cost", "type": "FLOAT"},
        ]
    },
    "rows": [
        {"f": [{"v": "USD"}, {"v": "123.45"}]},
        {"f": [{"v": "EUR"}, {"v": "1.5"}]},
    ],
    "totalRows": "2",
}


def make_transport(handler, **kwargs) -> BigQueryTransport:
    return BigQueryTransport(transport=httpx.MockTransport(handler), **kwargs)


class TestBigQueryTransport:
    """Test cases for BigQueryTransport.run_query."""

    @pytest.mark.asyncio
    async def test_run_query_request(self):
        """Test the request sent to the jobs.query endpoint."""
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["request"] = request
            return httpx.Response(200, json=QUERY_RESPONSE)

        transport = make_transport(handler, timeout=30)

        rows = await transport.run_query("my-billing-project", "SELECT 1", "token-123")

        request = captured["request"]
        assert request.method == "POST"
        assert str(request.url) == (
            "https://bigquery.googleapis.com/bigquery/v2/projects/my-billing-project/queries"
        )
        assert request.headers["Authorization"] == "Bearer token-123"
        body = json.loads(request.content)
        assert body == {"query": "SELECT 1", "useLegacySql": False, "timeoutMs": 30000}
        assert rows == [
            {"currency": "USD", "net_cost": "123.45"},
            {"currency": "EUR", "net_cost": "1.5"},
        ]

    @pytest.mark.asyncio
    async def test_custom_base_url(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.host == "bigquery.example.internal"
            return httpx.Response(200, json={"jobComplete": True})

        transport = make_transport(handler, base_url="https://bigquery.example.internal/v2/")

        assert await transport.run_query("p", "SELECT 1", "t") == []

    @pytest.mark.asyncio
    async def test_error_status_with_google_error_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                404,
                json={"error": {"code": 404, "message": "Not found: Dataset my-project:billing_export"}},
            )

        transport = make_transport(handler)

        with pytest.raises(QueryError) as exc_info:
            await transport.run_query("my-project", "SELECT 1", "t")

        assert exc_info.value.status_code == 404
        assert str(exc_info.value) == (
            "BigQuery API error: 404 Not Found - Not found: Dataset my-project:billing_export"
        )

    @pytest.mark.asyncio
    async def test_error_status_without_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, text="")

        transport = make_transport(handler)

        with pytest.raises(QueryError, match="^BigQuery API error: 401 Unauthorized$"):
            await transport.run_query("p", "SELECT 1", "t")

    @pytest.mark.asyncio
    async def test_non_json_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>proxy login</html>")

        transport = make_transport(handler)

        with pytest.raises(QueryError, match="non-JSON"):
            await transport.run_query("p", "SELECT 1", "t")

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = make_transport(handler)

        with pytest.raises(QueryError, match="BigQuery request failed"):
            await transport.run_query("p", "SELECT 1", "t")

    def test_verify_certificates_flag(self):
        assert BigQueryTransport().verify_certificates is True
        assert BigQueryTransport(verify_certificates=False).verify_certificates is False


class TestParseQueryResponse:
    """Test cases for jobs.query response parsing."""

    def test_no_rows(self):
        assert parse_query_response({"jobComplete": True, "totalRows": "0"}) == []

    def test_null_cells(self):
        data = {
            "schema": {"fields": [{"name": "currency"}, {"name": "net_cost"}]},
            "rows": [{"f": [{"v": "USD"}, {"v": None}]}],
        }

        assert parse_query_response(data) == [{"currency": "USD", "net_cost": None}]

    def test_incomplete_job(self):
        with pytest.raises(QueryError, match="did not complete"):
            parse_query_response({"jobComplete": False})

    @pytest.mark.parametrize(
        "data",
        [
            [],
            "rows",
            {"rows": [{"f": [{"v": "USD"}]}]},
            {"schema": ["currency"], "rows": [{"f": [{"v": "USD"}]}]},
            {"schema": {"fields": ["currency"]}, "rows": [{"f": [{"v": "USD"}]}]},
            {"schema": {"fields": [{"name": "currency"}]}, "rows": [{"cells": []}]},
        ],
    )
    def test_malformed_payloads(self, data):
        with pytest.raises(QueryError, match="Malformed"):
            parse_query_response(data)
