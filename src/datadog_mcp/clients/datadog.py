"""
Datadog API client wrapper.

Provides a simplified interface to the Datadog REST API for metrics,
APM spans, the service catalog and dashboards.
"""

from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import quote

import httpx

from datadog_mcp.config import Settings, get_settings
from datadog_mcp.logging import get_logger
from datadog_mcp.models.apm import ServiceContact, ServiceInfo, ServiceLink, Span
from datadog_mcp.models.dashboards import (
    Dashboard,
    DashboardSummary,
    DashboardTemplateVariable,
    DashboardWidget,
)
from datadog_mcp.models.metrics import MetricPoint, MetricSeries

logger = get_logger(__name__)

SERVICE_DEFINITIONS_PAGE_SIZE = 100
MAX_SPAN_PAGE_SIZE = 1000


class DatadogClientError(Exception):
    """Base exception for Datadog client errors."""

    pass


class DatadogNotFoundError(DatadogClientError):
    """Requested resource does not exist."""

    pass


class DatadogQueryError(DatadogClientError):
    """Datadog rejected or failed to evaluate a query."""

    def __init__(
        self,
        message: str,
        query: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ):
        self.query = query
        self.start = start
        self.end = end
        if query is not None:
            message = f"{message} [query={query!r}"
            if start is not None and end is not None:
                message += f", from={start.isoformat()}, to={end.isoformat()}"
            message += "]"
        super().__init__(message)


def _parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 string or epoch milliseconds into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class DatadogClient:
    """
    Datadog API client wrapper.

    Authenticates every request with the configured API and application
    keys and converts responses into pydantic models.

    Args:
        settings: Optional settings override. Uses default settings if not provided.
        transport: Optional httpx transport (used by tests).

    Raises:
        DatadogClientError: If the API or application key is missing.

    Example:
        ```python
        client = DatadogClient()

        series = client.query_metrics(
            "avg:system.cpu.user{*} by {host}",
            start=datetime.now(timezone.utc) - timedelta(hours=1),
            end=datetime.now(timezone.utc),
        )
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self._settings = settings or get_settings()
        if not self._settings.has_credentials():
            raise DatadogClientError(
                "DD_API_KEY and DD_APP_KEY environment variables are required"
            )
        self._base_url = self._settings.api_base_url
        self._timeout = self._settings.request_timeout_seconds
        self._transport = transport

    def _get_headers(self) -> dict[str, str]:
        """Get HTTP headers including authentication."""
        return {
            "Accept": "application/json",
            "DD-API-KEY": self._settings.api_key,
            "DD-APPLICATION-KEY": self._settings.app_key,
        }

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Make a request to the Datadog API.

        Args:
            method: HTTP method.
            endpoint: API endpoint (e.g., '/api/v1/query').
            params: Query parameters.
            json: JSON request body.

        Returns:
            Parsed JSON response.

        Raises:
            DatadogNotFoundError: If the API returns 404.
            DatadogClientError: If the request fails for any other reason.
        """
        url = f"{self._base_url}{endpoint}"
        logger.debug("datadog_request", method=method, endpoint=endpoint)

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=self._get_headers(),
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            detail = self._error_detail(e.response)
            if status_code == 404:
                raise DatadogNotFoundError(f"Not found: {endpoint} - {detail}") from e
            raise DatadogClientError(
                f"Datadog API error: {status_code} - {detail}"
            ) from e
        except httpx.RequestError as e:
            raise DatadogClientError(
                f"Failed to connect to Datadog at {self._base_url}: {e}"
            ) from e
        except ValueError as e:
            raise DatadogClientError(f"Invalid JSON from Datadog: {e}") from e

        return data if isinstance(data, dict) else {"data": data}

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        """Extract Datadog's error messages from an error response."""
        try:
            body = response.json()
        except ValueError:
            return response.text
        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            return "; ".join(
                e if isinstance(e, str) else e.get("detail") or e.get("title") or str(e)
                for e in errors
            )
        return response.text

    # =========================================================================
    # Metrics
    # =========================================================================

    def query_metrics(
        self,
        query: str,
        start: datetime,
        end: datetime,
    ) -> list[MetricSeries]:
        """
        Query metric time series.

        Args:
            query: Datadog metric query (e.g., 'avg:system.cpu.user{*} by {host}').
            start: Start of the window.
            end: End of the window.

        Returns:
            List of MetricSeries, possibly empty.

        Raises:
            DatadogQueryError: If the query is rejected or cannot be run.
        """
        params = {
            "query": query,
            "from": int(start.timestamp()),
            "to": int(end.timestamp()),
        }
        try:
            data = self._make_request("GET", "/api/v1/query", params=params)
        except DatadogClientError as e:
            raise DatadogQueryError(str(e), query=query, start=start, end=end) from e

        if data.get("status") == "error":
            raise DatadogQueryError(
                f"Query failed: {data.get('error', 'Unknown error')}",
                query=query,
                start=start,
                end=end,
            )

        return [self._parse_series(s) for s in data.get("series") or []]

    @staticmethod
    def _parse_series(raw: dict[str, Any]) -> MetricSeries:
        """Convert a v1 query series into a MetricSeries."""
        points = []
        for point in raw.get("pointlist") or []:
            if len(point) >= 2 and point[0] is not None and point[1] is not None:
                points.append(
                    MetricPoint(
                        timestamp=datetime.fromtimestamp(point[0] / 1000, tz=timezone.utc),
                        value=float(point[1]),
                    )
                )

        unit = None
        units = raw.get("unit") or []
        if units and units[0] and units[0].get("name"):
            unit = units[0]["name"]

        return MetricSeries(
            metric=raw.get("metric") or raw.get("expression") or "query_result",
            tags=list(raw.get("tag_set") or []),
            unit=unit,
            data_points=points,
        )

    def list_active_metrics(
        self,
        start: datetime,
        host: str | None = None,
        tag_filter: str | None = None,
    ) -> list[str]:
        """
        List metrics that reported data since start.

        Args:
            start: Only metrics active since this time.
            host: Optional host name filter.
            tag_filter: Optional tag filter (e.g., 'env:production').

        Returns:
            Metric names.
        """
        params: dict[str, Any] = {"from": int(start.timestamp())}
        if host:
            params["host"] = host
        if tag_filter:
            params["tag_filter"] = tag_filter

        data = self._make_request("GET", "/api/v1/metrics", params=params)
        return list(data.get("metrics") or [])

    # =========================================================================
    # APM
    # =========================================================================

    def search_spans(
        self,
        query: str,
        start: datetime,
        end: datetime,
        limit: int = 50,
        cursor: str | None = None,
    ) -> tuple[list[Span], str | None]:
        """
        Search APM spans, newest first.

        Args:
            query: Span search query (e.g., 'service:web @http.status_code:500').
            start: Start of the window.
            end: End of the window.
            limit: Page size (1-1000).
            cursor: Continuation token from a previous page.

        Returns:
            Tuple of (spans, next_cursor). next_cursor is None on the last page.

        Raises:
            DatadogQueryError: If the search fails.
        """
        page: dict[str, Any] = {"limit": max(1, min(limit, MAX_SPAN_PAGE_SIZE))}
        if cursor:
            page["cursor"] = cursor

        body = {
            "data": {
                "attributes": {
                    "filter": {
                        "from": start.isoformat(),
                        "to": end.isoformat(),
                        "query": query,
                    },
                    "options": {"timezone": "UTC"},
                    "page": page,
                    "sort": "-timestamp",
                },
                "type": "search_request",
            }
        }

        try:
            data = self._make_request("POST", "/api/v2/spans/events/search", json=body)
        except DatadogClientError as e:
            raise DatadogQueryError(str(e), query=query, start=start, end=end) from e

        spans = [self._parse_span(item) for item in data.get("data") or []]
        next_cursor = ((data.get("meta") or {}).get("page") or {}).get("after")
        return spans, next_cursor or None

    @staticmethod
    def _parse_span(item: dict[str, Any]) -> Span:
        """Convert a span search hit into a Span."""
        attrs = item.get("attributes") or {}
        custom = attrs.get("custom") or {}

        started = _parse_timestamp(attrs.get("start_timestamp"))
        ended = _parse_timestamp(attrs.get("end_timestamp"))
        duration_ns = 0
        if started and ended:
            duration_ns = (ended - started) // timedelta(microseconds=1) * 1000
        elif isinstance(custom.get("duration"), (int, float)):
            duration_ns = int(custom["duration"])

        tags: dict[str, str] = {}
        if attrs.get("ingestion_reason"):
            tags["ingestion_reason"] = str(attrs["ingestion_reason"])
        if attrs.get("env"):
            tags["env"] = str(attrs["env"])
        if attrs.get("host"):
            tags["host"] = str(attrs["host"])

        resource = attrs.get("resource_name") or ""
        return Span(
            trace_id=str(attrs.get("trace_id") or ""),
            span_id=str(attrs.get("span_id") or item.get("id") or ""),
            parent_id=str(attrs["parent_id"]) if attrs.get("parent_id") else None,
            service=attrs.get("service") or "",
            name=attrs.get("operation_name") or custom.get("operation_name") or resource,
            resource=resource,
            type=attrs.get("type"),
            start=started,
            duration_ns=duration_ns,
            status="error" if custom.get("error") else "ok",
            tags=tags,
        )

    def list_service_definitions(self) -> list[ServiceInfo]:
        """
        List every service in the service catalog (schema v2.2).

        Pages through the catalog until a short page is returned.
        """
        services: list[ServiceInfo] = []
        page_number = 0
        while True:
            data = self._make_request(
                "GET",
                "/api/v2/services/definitions",
                params={
                    "schema_version": "v2.2",
                    "page[size]": SERVICE_DEFINITIONS_PAGE_SIZE,
                    "page[number]": page_number,
                },
            )
            items = data.get("data") or []
            services.extend(self._parse_service(item) for item in items)
            if len(items) < SERVICE_DEFINITIONS_PAGE_SIZE:
                break
            page_number += 1
        return services

    @staticmethod
    def _parse_service(item: dict[str, Any]) -> ServiceInfo:
        """Convert a service definition into a ServiceInfo."""
        schema = (item.get("attributes") or {}).get("schema") or {}
        return ServiceInfo(
            name=schema.get("dd-service") or item.get("id") or "",
            description=schema.get("description") or None,
            team=schema.get("team") or None,
            tier=schema.get("tier") or None,
            lifecycle=schema.get("lifecycle") or None,
            languages=list(schema.get("languages") or []),
            tags=list(schema.get("tags") or []),
            links=[
                ServiceLink(
                    name=link.get("name", ""),
                    type=link.get("type", ""),
                    url=link.get("url", ""),
                )
                for link in schema.get("links") or []
            ],
            contacts=[
                ServiceContact(
                    name=contact.get("name"),
                    type=contact.get("type", ""),
                    contact=contact.get("contact", ""),
                )
                for contact in schema.get("contacts") or []
            ],
        )

    # =========================================================================
    # Dashboards
    # =========================================================================

    def list_dashboards(
        self,
        filter_shared: bool = False,
        filter_deleted: bool = False,
    ) -> list[DashboardSummary]:
        """
        List dashboards.

        Args:
            filter_shared: Only shared dashboards.
            filter_deleted: Deleted dashboards instead of live ones.

        Returns:
            Dashboard summaries in the order Datadog returns them.
        """
        params: dict[str, Any] = {}
        if filter_shared:
            params["filter[shared]"] = "true"
        if filter_deleted:
            params["filter[deleted]"] = "true"

        data = self._make_request("GET", "/api/v1/dashboard", params=params)
        return [
            DashboardSummary(
                id=d.get("id", ""),
                title=d.get("title") or "",
                description=d.get("description") or None,
                layout_type=d.get("layout_type") or "",
                url=d.get("url") or None,
                author_handle=d.get("author_handle") or None,
                created_at=_parse_timestamp(d.get("created_at")),
                modified_at=_parse_timestamp(d.get("modified_at")),
                is_read_only=bool(d.get("is_read_only", False)),
            )
            for d in data.get("dashboards") or []
        ]

    def get_dashboard(self, dashboard_id: str) -> Dashboard:
        """
        Get a dashboard with its widgets and template variables.

        Raises:
            DatadogNotFoundError: If the dashboard does not exist.
            DatadogClientError: If dashboard_id is blank.
        """
        if not dashboard_id.strip():
            raise DatadogClientError("dashboard_id must not be empty")
        d = self._make_request("GET", f"/api/v1/dashboard/{quote(dashboard_id, safe='')}")

        widgets = []
        for w in d.get("widgets") or []:
            definition = w.get("definition") or {}
            widgets.append(
                DashboardWidget(
                    id=w.get("id"),
                    type=definition.get("type") or "widget",
                    title=definition.get("title") or None,
                )
            )

        template_variables = [
            DashboardTemplateVariable(
                name=tv.get("name", ""),
                prefix=tv.get("prefix") or None,
                default=tv.get("default") or None,
                available_values=list(tv.get("available_values") or []),
            )
            for tv in d.get("template_variables") or []
        ]

        return Dashboard(
            id=d.get("id") or dashboard_id,
            title=d.get("title") or "",
            description=d.get("description") or None,
            layout_type=d.get("layout_type") or "",
            url=d.get("url") or None,
            author_handle=d.get("author_handle") or None,
            author_name=d.get("author_name") or None,
            created_at=_parse_timestamp(d.get("created_at")),
            modified_at=_parse_timestamp(d.get("modified_at")),
            is_read_only=bool(d.get("is_read_only", False)),
            tags=list(d.get("tags") or []),
            widgets=widgets,
            template_variables=template_variables,
        )
