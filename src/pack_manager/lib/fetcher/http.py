"""Fetch manifests over HTTP(S) using httpx.

The manifest URL is ``<repo_key>/<ref or "main">/<manifest_filename>``,
which matches raw-content hosts such as ``raw.githubusercontent.com``.
"""

import httpx
from loguru import logger

from pack_manager.lib.fetcher.base import FetchResult, content_hash, failure

DEFAULT_REF = "main"


class HttpFetcher:
    """Fetcher that downloads manifest files from a raw-content host.

    Args:
        timeout: Request timeout in seconds.
        manifest_filename: Manifest file name at the repository root.
        transport: Optional httpx transport, for tests or custom routing.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        manifest_filename: str = "manifest.yml",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.manifest_filename = manifest_filename
        self._transport = transport

    def manifest_url(self, repo_key: str, ref: str | None = None) -> str:
        return f"{repo_key.rstrip('/')}/{ref or DEFAULT_REF}/{self.manifest_filename}"

    async def fetch(self, repo_key: str, *, ref: str | None = None) -> FetchResult:
        url = self.manifest_url(repo_key, ref)
        logger.info("Fetching manifest from {}", url)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True, transport=self._transport
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("Manifest request to {} failed: {}", url, exc)
            return failure(0, f"request failed: {exc}", ref=ref)

        if not response.is_success:
            return failure(response.status_code, f"unexpected HTTP status {response.status_code}", ref=ref)

        body = response.text
        if not body.strip():
            return failure(response.status_code, "manifest body is empty", ref=ref)

        content_id = response.headers.get("etag") or content_hash(body)
        return FetchResult(ok=True, status_code=response.status_code, body=body, content_id=content_id, ref=ref)
