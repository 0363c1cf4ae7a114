"""
Merit distribution client.

Wraps the partner distribution endpoint that credits merits to wallet
addresses. Calls are made once; the caller decides whether a failure is
fatal.
"""
from typing import Any, Dict, List, Optional, TypedDict

import httpx

from dao_backend.config.settings import RewardSettings
from dao_backend.exceptions import RewardDispatchError
from dao_backend.utils.logger import logger

DISTRIBUTE_PATH = "/partner/api/v1/distribute"


class MeritDistribution(TypedDict):
    address: str
    amount: str


class RewardDispatcher:
    """
    HTTP client for the merit distribution API.

    Provides authentication headers, response handling and context
    manager support around a single ``httpx.Client``.
    """

    def __init__(self, settings: RewardSettings, client: Optional[httpx.Client] = None):
        """
        Initialize the dispatcher.

        Args:
            settings: Base URL, API key and timeout for the distribution API
            client: Optional pre-built client (used by tests)
        """
        self.base_url = settings.base_url.rstrip("/")
        self.client = client or httpx.Client(
            base_url=self.base_url,
            timeout=settings.timeout_seconds,
            headers=self._get_headers(settings.api_key),
        )

    def _get_headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def _handle_response(self, response: httpx.Response) -> Dict[str, Any]:
        """
        Parse the response and raise if the API rejected the distribution.

        Raises:
            RewardDispatchError: If the API returns an error status
        """
        try:
            data = response.json()
        except ValueError:
            data = {"error": "Failed to parse response", "raw": response.text}

        if response.status_code >= 400:
            error_msg = "Unknown error"
            if isinstance(data, dict):
                error_msg = data.get("message") or data.get("error") or error_msg
            raise RewardDispatchError(
                f"Merit distribution failed ({response.status_code}): {error_msg}",
                status_code=response.status_code,
            )

        return data

    def distribute_merits(
        self,
        distribution_id: str,
        description: str,
        distributions: List[MeritDistribution],
    ) -> Dict[str, Any]:
        """
        Credit merits to every address in ``distributions``.

        Args:
            distribution_id: Idempotency key understood by the partner API
            description: Human readable reason shown on the receipt
            distributions: Address/amount pairs, amounts as integer strings

        Returns:
            The distribution receipt returned by the API
        """
        expected_total = sum(int(item["amount"]) for item in distributions)
        payload = {
            "id": distribution_id,
            "description": description,
            "distributions": distributions,
            "create_missing_accounts": True,
            "expected_total": str(expected_total),
        }
        logger.info(
            "Distributing %d merits to %d addresses (id=%s)",
            expected_total, len(distributions), distribution_id,
        )
        try:
            response = self.client.post(DISTRIBUTE_PATH, json=payload)
        except httpx.HTTPError as e:
            raise RewardDispatchError(f"Merit distribution request failed: {e}") from e
        return self._handle_response(response)

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
