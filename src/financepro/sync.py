"""Client for the spreadsheet-backed sync endpoint.

The endpoint is a Google Apps Script web app that stores the whole ledger
as one JSON document: POST replaces it, GET returns it.
"""

import asyncio
import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

import requests

from financepro.config import DEFAULT_SYNC_TIMEOUT
from financepro.errors import FormatError, PreconditionError, SyncTimeoutError, TransportError
from financepro.models import FinancialData
from financepro.schema import decode_financial_data

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Upper bound on establishing the connection; reads use the full timeout
CONNECT_TIMEOUT = 10.0


class PushOutcome(Enum):
    """What is known about a push once it returns."""

    # The endpoint answered with a success status (and body, if any).
    CONFIRMED = "confirmed"
    # The request was delivered without a transport error; the response
    # was not inspected, so the server may still have rejected it.
    BEST_EFFORT = "best_effort"


@dataclass
class PushResult:
    """Result of pushing the ledger to the sync endpoint."""

    outcome: PushOutcome
    status_code: int | None = None

    @property
    def confirmed(self) -> bool:
        """True only if the endpoint acknowledged the data."""
        return self.outcome is PushOutcome.CONFIRMED


class SyncClient:
    """
    Pushes and pulls the full ledger to and from one endpoint.

    The client keeps no state between calls beyond its HTTP session: every
    push and pull is independent and never retried. ``push``/``pull`` are
    coroutines that run the blocking HTTP call in a worker thread, bounded
    by ``timeout``.
    """

    def __init__(
        self,
        url: str | None,
        timeout: float = DEFAULT_SYNC_TIMEOUT,
        confirm: bool = False,
    ) -> None:
        """
        Initialize client.

        Args:
            url: Endpoint URL (None or empty means sync is not configured)
            timeout: Seconds before a request is abandoned
            confirm: Inspect push responses instead of assuming delivery is success
        """
        self.url = (url or "").strip()
        self.timeout = timeout
        self.confirm = confirm
        self._session = requests.Session()
        self._session.headers.update({
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    def close(self) -> None:
        """Release the HTTP session."""
        self._session.close()

    def _require_url(self) -> str:
        if not self.url:
            raise PreconditionError(
                "Sync URL not configured. Set it with 'financepro config --sync-url URL'."
            )
        return self.url

    @property
    def request_timeout(self) -> tuple[float, float]:
        """The (connect, read) timeout passed to requests."""
        return (min(CONNECT_TIMEOUT, self.timeout), self.timeout)

    def _request(self, method: str, json: dict[str, Any] | None = None) -> requests.Response:
        """Make a request, mapping transport failures to TransportError."""
        url = self._require_url()
        try:
            return self._session.request(method, url, json=json, timeout=self.request_timeout)
        except requests.Timeout as e:
            raise SyncTimeoutError(f"Sync endpoint timed out after {self.timeout:g}s") from e
        except requests.RequestException as e:
            raise TransportError(f"Could not reach sync endpoint: {e}") from e

    def push_blocking(self, data: FinancialData) -> PushResult:
        """Send the full snapshot to the endpoint (blocking).

        Raises:
            PreconditionError: If no URL is configured
            TransportError: On network failure, or a rejected push in confirm mode
        """
        response = self._request("POST", json=data.to_dict())

        if not self.confirm:
            logger.info("Pushed ledger to %s (best effort)", self.url)
            return PushResult(outcome=PushOutcome.BEST_EFFORT)

        if not response.ok:
            raise TransportError(f"Sync endpoint rejected push: HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("result", "success") != "success":
            raise TransportError(f"Sync endpoint rejected push: {body.get('result')}")

        logger.info("Pushed ledger to %s (HTTP %d)", self.url, response.status_code)
        return PushResult(outcome=PushOutcome.CONFIRMED, status_code=response.status_code)

    def pull_blocking(self) -> FinancialData:
        """Fetch the full snapshot from the endpoint (blocking).

        Raises:
            PreconditionError: If no URL is configured
            TransportError: On network failure or a non-success status
            FormatError: If the body is not a valid ledger document
        """
        response = self._request("GET")

        if not response.ok:
            raise TransportError(
                f"Error fetching data from sync endpoint: HTTP {response.status_code}"
            )

        try:
            raw = response.json()
        except ValueError as e:
            raise FormatError("Response is not valid JSON", self.url) from e

        data = decode_financial_data(raw, source=self.url)
        logger.info(
            "Pulled %d expenses, %d incomes, %d CDTs from %s",
            len(data.expenses),
            len(data.incomes),
            len(data.cdts),
            self.url,
        )
        return data

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        # Precondition is checked before any thread or socket is touched
        self._require_url()
        # A private executor so asyncio.run() never joins an abandoned request
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="financepro-sync")
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(executor, func, *args), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            logger.warning("Sync endpoint %s timed out after %gs", self.url, self.timeout)
            raise SyncTimeoutError(f"Sync endpoint timed out after {self.timeout:g}s") from e
        finally:
            executor.shutdown(wait=False)

    async def push(self, data: FinancialData) -> PushResult:
        """Send the full snapshot to the endpoint."""
        return await self._run(self.push_blocking, data)

    async def pull(self) -> FinancialData:
        """Fetch the full snapshot from the endpoint."""
        return await self._run(self.pull_blocking)
