"""HTTP transport for BigQuery standard SQL queries"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from ..providers.base import QueryError

logger = logging.getLogger(__name__)

BIGQUERY_API = "https://bigquery.googleapis.com/bigquery/v2"


class QueryTransport(ABC):
    """Runs a query with a bearer token and returns named rows."""

    verify_certificates: bool = True

    @abstractmethod
    async def run_query(self, project_id: str, query: str, token: str) -> list[dict[str, Any]]:
        """
        Execute a query against the billing project.

        Args:
            project_id: Project the query job runs in
            query: Standard SQL text
            token: OAuth2 bearer token

        Returns:
            One dictionary per result row, keyed by column name

        Raises:
            QueryError: On non-success status or malformed payload
        """
        pass


class BigQueryTransport(QueryTransport):
    """BigQuery ``jobs.query`` REST client"""

    def __init__(
        self,
        verify_certificates: bool = True,
        timeout: float = 60,
        base_url: str = BIGQUERY_API,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.verify_certificates = verify_certificates
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self._transport = transport

        if not verify_certificates:
            logger.warning("TLS certificate verification is disabled for BigQuery requests")

    async def run_query(self, project_id: str, query: str, token: str) -> list[dict[str, Any]]:
        """POST the query and return its rows"""
        url = f"{self.base_url}/projects/{project_id}/queries"
        payload = {
            "query": query,
            "useLegacySql": False,
            "timeoutMs": int(self.timeout * 1000),
        }

        try:
            async with httpx.AsyncClient(
                verify=self.verify_certificates, timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    url,
                    json=payload,
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as e:
            raise QueryError(f"BigQuery request failed: {e}") from e

        if not resp.is_success:
            detail = _error_detail(resp)
            message = f"BigQuery API error: {resp.status_code} {resp.reason_phrase}"
            if detail:
                message = f"{message} - {detail}"
            raise QueryError(message, status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise QueryError("BigQuery API returned a non-JSON response", resp.status_code) from e

        rows = parse_query_response(data)
        logger.debug(f"BigQuery returned {len(rows)} rows")
        return rows


def parse_query_response(data: Any) -> list[dict[str, Any]]:
    """Convert a ``jobs.query`` response body into named rows.

    Cell values are returned as the raw strings BigQuery sends (or None);
    numeric conversion is left to the caller.
    """
    if not isinstance(data, dict):
        raise QueryError("Malformed BigQuery response: expected a JSON object")

    if data.get("jobComplete") is False:
        raise QueryError("BigQuery job did not complete before the timeout")

    rows = data.get("rows") or []
    if not rows:
        return []

    schema = data.get("schema")
    if not isinstance(schema, dict):
        raise QueryError("Malformed BigQuery response: rows without a schema")

    fields = schema.get("fields")
    if not isinstance(fields, list) or not fields:
        raise QueryError("Malformed BigQuery response: rows without a schema")
    if not all(isinstance(field, dict) for field in fields):
        raise QueryError("Malformed BigQuery response: schema field is not an object")

    names = [field.get("name") for field in fields]

    parsed = []
    for row in rows:
        cells = row.get("f") if isinstance(row, dict) else None
        if not isinstance(cells, list):
            raise QueryError("Malformed BigQuery response: row without cells")
        parsed.append(
            {
                name: cell.get("v") if isinstance(cell, dict) else None
                for name, cell in zip(names, cells)
            }
        )
    return parsed


def _error_detail(resp: httpx.Response) -> str | None:
    """Pull the error message out of a Google API error body, if present"""
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("message")
    return None
