"""
Async client for the Replicate predictions API.

Resolves a model's latest version and runs a prediction to completion by
polling, returning the first output URL.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = {"succeeded", "failed", "canceled"}


class ReplicateAPIError(RuntimeError):
    """Raised when the Replicate API cannot be contacted or returns an error."""


class ReplicateClient:
    """HTTP client for Replicate model lookups and predictions."""

    def __init__(
            self,
            api_token: str,
            base_url: str = "https://api.replicate.com/v1",
            poll_interval: float = 1.0,
            timeout: float = 30.0,
            client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_token = api_token
        self._base_url = base_url.rstrip("/")
        self._poll_interval = poll_interval
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._lock:
            if self._client is None:
                if not self._api_token:
                    raise ReplicateAPIError("REPLICATE_API_TOKEN environment variable must be set")
                self._client = httpx.AsyncClient(
                    base_url=self._base_url,
                    timeout=self._timeout,
                    headers={"Authorization": f"Bearer {self._api_token}"},
                )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        async with self._lock:
            if self._client is not None and self._owns_client:
                await self._client.aclose()
                self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        client = await self._ensure_client()
        try:
            response = await client.request(method, path, **kwargs)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise ReplicateAPIError(f"Replicate request {method} {path} failed: {exc}") from exc
        except ValueError as exc:
            raise ReplicateAPIError(f"Replicate returned invalid JSON for {method} {path}") from exc

        if not isinstance(data, dict):
            raise ReplicateAPIError(f"Replicate returned unexpected payload for {method} {path}")
        return data

    async def get_latest_version(self, model_identifier: str) -> str:
        """
        Look up the latest version id of ``owner/name``.

        Raises:
            ReplicateAPIError: If the model has no usable version
        """
        owner, _, name = model_identifier.partition("/")
        if not owner or not name:
            raise ReplicateAPIError(f"Model identifier must look like owner/name: {model_identifier!r}")

        data = await self._request("GET", f"/models/{owner}/{name}")
        version_id = (data.get("latest_version") or {}).get("id")
        if not version_id:
            raise ReplicateAPIError(f"Could not find a valid version for model {model_identifier}")
        return version_id

    async def run_prediction(self, version: str, model_input: dict[str, Any]) -> str:
        """
        Create a prediction and wait until it finishes.

        Returns:
            The first output reference (an image URL)

        Raises:
            ReplicateAPIError: If the prediction fails, is canceled or has no output
        """
        prediction = await self._request("POST", "/predictions", json={"version": version, "input": model_input})
        prediction_id = prediction.get("id")
        if not prediction_id:
            raise ReplicateAPIError("Replicate did not return a prediction id")

        logger.info(f"Replicate prediction {prediction_id} created")
        try:
            while prediction.get("status") not in TERMINAL_STATUSES:
                await asyncio.sleep(self._poll_interval)
                prediction = await self._request("GET", f"/predictions/{prediction_id}")
        except asyncio.CancelledError:
            await self._cancel_prediction(prediction_id)
            raise

        status = prediction.get("status")
        if status != "succeeded":
            raise ReplicateAPIError(
                f"Replicate prediction {prediction_id} ended with status {status}: {prediction.get('error')}"
            )

        return self._first_output(prediction.get("output"), prediction_id)

    async def _cancel_prediction(self, prediction_id: str) -> None:
        """Ask Replicate to stop a prediction nobody is waiting for anymore."""
        try:
            await self._request("POST", f"/predictions/{prediction_id}/cancel")
            logger.info(f"Replicate prediction {prediction_id} canceled")
        except ReplicateAPIError as exc:
            logger.warning(f"Could not cancel Replicate prediction {prediction_id}: {exc}")

    @staticmethod
    def _first_output(output: Any, prediction_id: str) -> str:
        if isinstance(output, list):
            output = output[0] if output else None
        if not isinstance(output, str) or not output.strip():
            raise ReplicateAPIError(f"Replicate prediction {prediction_id} produced no output")
        return output.strip()
