"""Async Azure DevOps REST client used by the MCP handlers.

Wraps httpx.AsyncClient with the Azure DevOps specifics:
- Basic authentication with a Personal Access Token (PAT)
- HTTPS only, so the PAT never travels in plaintext
- PAT redaction in every error message that could reach a client or log
- batching of work item fetches to the 200-ID per-call limit
"""
import base64
import json
import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from devops_core.config import AzureDevOpsConfig, Settings

logger = logging.getLogger("devops-mcp.client")

MAX_ERROR_BODY_LENGTH = 1000
JSON_PATCH_CONTENT_TYPE = "application/json-patch+json"


class AzureDevOpsAPIError(Exception):
    """Raised when Azure DevOps answers with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def sanitize_pat(text: str, pat: Optional[str]) -> str:
    """Redact a PAT, raw or in its Basic-auth base64 form, from ``text``."""
    if not pat or not text:
        return text

    sanitized = text.replace(pat, "[PAT_REDACTED]")
    encoded = base64.b64encode(f":{pat}".encode("utf-8")).decode("ascii")
    return sanitized.replace(encoded, "[PAT_BASE64_REDACTED]")


class AzureDevOpsClient:
    """Client for one Azure DevOps project.

    Use as an async context manager so the underlying connection pool is
    closed:

        async with AzureDevOpsClient(config, settings) as client:
            ids = await client.run_wiql("SELECT [System.Id] FROM WorkItems", top=50)
    """

    def __init__(
        self,
        config: AzureDevOpsConfig,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.settings = settings
        self._pat = config.pat.get_secret_value()

        self.base_url = f"{config.organization_url}/{quote(config.project)}/_apis"
        if not self.base_url.startswith("https://"):
            raise AzureDevOpsAPIError(
                "Security error: Refusing to send authenticated requests over a non-HTTPS URL. "
                "All Azure DevOps API requests must use HTTPS to protect PAT tokens."
            )

        token = base64.b64encode(f":{self._pat}".encode("utf-8")).decode("ascii")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=settings.request_timeout,
            headers={
                "Authorization": f"Basic {token}",
                "Accept": "application/json",
            },
            transport=transport,
        )

    async def __aenter__(self) -> "AzureDevOpsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def project(self) -> str:
        return self.config.project

    @property
    def organization_url(self) -> str:
        return self.config.organization_url

    def sanitize(self, text: str) -> str:
        """Redact this client's PAT from ``text``."""
        return sanitize_pat(text, self._pat)

    async def request(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        params: Optional[dict] = None,
        json_patch: bool = False,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Args:
            method: HTTP method
            endpoint: Path below ``{organization}/{project}/_apis``
            body: JSON-serializable request body
            params: Query parameters; api-version defaults to the configured one
            json_patch: Send the body as application/json-patch+json

        Raises:
            AzureDevOpsAPIError: On a non-2xx response
            httpx.RequestError: On network failures
        """
        query = {"api-version": self.settings.api_version}
        query.update(params or {})

        headers = {}
        content = None
        if body is not None:
            content = json.dumps(body)
            headers["Content-Type"] = JSON_PATCH_CONTENT_TYPE if json_patch else "application/json"

        response = await self._client.request(method, endpoint, params=query, content=content, headers=headers)

        if not response.is_success:
            detail = self.sanitize(response.text)
            if len(detail) > MAX_ERROR_BODY_LENGTH:
                detail = detail[:MAX_ERROR_BODY_LENGTH] + "... [truncated]"
            logger.error(f"{method} {endpoint} failed with HTTP {response.status_code}")
            raise AzureDevOpsAPIError(f"HTTP {response.status_code}: {detail}", status_code=response.status_code)

        if not response.content:
            return {}
        return response.json()

    async def run_wiql(self, query: str, top: int) -> list[int]:
        """Run a WIQL query and return the matching work item IDs in order."""
        result = await self.request("POST", "/wit/wiql", body={"query": query}, params={"$top": top})
        ids = [item["id"] for item in result.get("workItems") or []]
        logger.info(f"WIQL query matched {len(ids)} work items (top={top})")
        return ids

    async def fetch_work_items_by_ids(self, ids: list[int], fields: Optional[list[str]] = None) -> dict:
        """Fetch work items by ID, batching to the per-call ID limit.

        Returns:
            {"count": n, "value": [records...]} in the order Azure DevOps returns them
        """
        batch_size = self.settings.fetch_batch_size
        work_items: list = []

        for start in range(0, len(ids), batch_size):
            batch = ids[start:start + batch_size]
            params = {"ids": ",".join(str(work_item_id) for work_item_id in batch)}
            if fields:
                params["fields"] = ",".join(fields)

            result = await self.request("GET", "/wit/workitems", params=params)
            work_items.extend(result.get("value") or [])

        if len(ids) > batch_size:
            logger.info(f"Fetched {len(work_items)} work items in batches of {batch_size}")

        return {"count": len(work_items), "value": work_items}

    def work_item_url(self, work_item_id: int) -> str:
        """API URL of a work item, as used in relation links."""
        return f"{self.base_url}/wit/workItems/{work_item_id}"
