"""Client for the quality server's issue search API."""

from __future__ import annotations

import json
import logging
import os
from typing import Callable, Dict, List, Optional
from urllib.parse import urlencode

from pydantic import ValidationError

from ..config import RemediationConfig
from ..errors import NetworkError
from ..findings import Finding, IssuePage

__all__ = ["PAGE_SIZE", "IssueBatch", "SonarQubeClient"]

LOGGER = logging.getLogger(__name__)

PAGE_SIZE = 100

Transport = Callable[[str, Dict[str, str]], str]


class IssueBatch(List[Finding]):
    """Findings from one issue query, remembering the server-side ``total``."""

    def __init__(self, findings: List[Finding], total: int) -> None:
        super().__init__(findings)
        self.total = max(total, len(findings))

    @property
    def truncated(self) -> bool:
        return self.total > len(self)


class SonarQubeClient:
    """Fetch unresolved findings for the configured project in a single page.

    The query is bounded to :data:`PAGE_SIZE` results and never paginates;
    ``IssueBatch.total`` reports how many findings the server actually holds.
    """

    def __init__(
        self,
        config: RemediationConfig,
        *,
        transport: Optional[Transport] = None,
        timeout: float = 30.0,
    ) -> None:
        self._config = config
        timeout_override = os.getenv("SONAR_TIMEOUT")
        if timeout_override:
            try:
                parsed = float(timeout_override)
                if parsed > 0:
                    timeout = parsed
            except ValueError:
                pass
        self._timeout = timeout
        self._transport = transport or self._http_transport

    def build_url(self) -> str:
        """Return the issue search URL for the configured project and filters."""
        params = {
            "componentKeys": self._config.project_key,
            "types": ",".join(self._config.types),
            "resolved": "true" if self._config.resolved else "false",
            "severities": ",".join(self._config.severities),
            "ps": str(PAGE_SIZE),
        }
        return f"{self._config.sonar_url}/api/issues/search?{urlencode(params, safe=',')}"

    def fetch(self) -> IssueBatch:
        """Fetch findings, raising ``ConfigError`` or ``NetworkError`` on failure."""
        self._config.require_credentials()

        url = self.build_url()
        headers = {
            "Authorization": f"Bearer {self._config.sonar_token}",
            "Accept": "application/json",
        }
        LOGGER.info("Fetching findings for %s", self._config.project_key)
        try:
            raw = self._transport(url, headers)
        except NetworkError:
            raise
        except Exception as error:
            raise NetworkError(f"Issue query failed: {error}") from error

        batch = self._parse(raw)
        if batch.truncated:
            LOGGER.warning(
                "Server reports %d findings; only the first %d were fetched",
                batch.total,
                len(batch),
            )
        return batch

    @staticmethod
    def _parse(raw: str) -> IssueBatch:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as error:
            raise NetworkError(f"Issue query returned invalid JSON: {error}") from error
        if not isinstance(payload, dict):
            raise NetworkError("Issue query returned an unexpected payload shape.")
        try:
            page = IssuePage.model_validate(payload)
        except ValidationError as error:
            raise NetworkError(f"Issue query payload did not validate: {error}") from error
        return IssueBatch(list(page.issues), page.total)

    def _http_transport(self, url: str, headers: Dict[str, str]) -> str:
        """Default transport issuing a GET request via ``urllib``."""
        import urllib.error
        import urllib.request

        request = urllib.request.Request(url, headers=headers, method="GET")
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                raw = response.read()
                status = getattr(response, "status", 200)
        except TimeoutError as error:  # pragma: no cover - network-dependent
            raise NetworkError("Issue query timed out.") from error
        except urllib.error.HTTPError as error:  # pragma: no cover - network-dependent
            message = error.read().decode("utf-8", errors="ignore")
            raise NetworkError(f"HTTP {error.code}: {message}") from error
        except urllib.error.URLError as error:  # pragma: no cover - network-dependent
            raise NetworkError(f"Failed to reach {self._config.sonar_url}: {error.reason}") from error

        if status >= 400:
            raise NetworkError(f"Unexpected HTTP status {status}")
        return raw.decode("utf-8")
