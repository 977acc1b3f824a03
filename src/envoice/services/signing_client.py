"""
LaFactura.co REST client.

All calls are JSON POSTs authenticated with the account's basic-auth
credentials. The service reports business rejections with non-2xx codes and a
JSON body, so any JSON body is handed to the response schemas; only network
failures and unreadable bodies raise.
"""

import asyncio
from typing import Any, Dict, Optional

import requests
from loguru import logger
from requests.auth import HTTPBasicAuth

from envoice.exceptions import SigningProtocolError, SigningTransportError
from envoice.models.account import Account
from envoice.models.signing_responses import RangesResult, StatusResult, SubmitResult

STATUS_ENDPOINT = "invoice/"
GENERAL_ENDPOINT = "general/"


class LaFacturaClient:
    """Client for the LaFactura.co signing service."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout
        self._session = session or requests.Session()

    def _post_json(self, account: Account, endpoint: str, payload: Dict[str, Any]) -> Any:
        url = self.base_url + endpoint
        try:
            response = self._session.post(
                url,
                json=payload,
                auth=HTTPBasicAuth(account.signing_user, account.signing_password),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SigningTransportError(endpoint, original_exception=e) from e

        try:
            return response.json()
        except ValueError as e:
            if response.status_code >= 500:
                # Gateway/server failures without a JSON body are transient
                raise SigningTransportError(
                    endpoint, original_exception=requests.HTTPError(response=response)
                ) from e
            raise SigningProtocolError(
                endpoint,
                f"non-JSON response (HTTP {response.status_code})",
                details={"http_status": response.status_code},
            ) from e

    async def _post(self, account: Account, endpoint: str, payload: Dict[str, Any]) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, self._post_json, account, endpoint, payload
        )

    async def submit(
        self, account: Account, endpoint: str, payload: Dict[str, Any]
    ) -> SubmitResult:
        """
        Submit a document payload.

        Args:
            account: Account whose signing credentials are used
            endpoint: Path relative to the base URL (``invoice/``, ``creditNote/``)
            payload: Request body built by the kind's payload builder

        Returns:
            SubmitResult; ``accepted`` tells acceptance from business rejection
        """
        body = await self._post(account, endpoint, payload)
        result = SubmitResult.from_body(endpoint, body)
        logger.debug(
            f"Submit to {endpoint} answered {result.status_code}: {result.status_text}"
        )
        return result

    async def verify_status(self, account: Account, external_code: str) -> StatusResult:
        """Ask for the finalisation state of an accepted document."""
        body = await self._post(
            account, STATUS_ENDPOINT, {"verifyStatus": {"tascode": external_code}}
        )
        return StatusResult.from_body(STATUS_ENDPOINT, body)

    async def get_ranges(self, account: Account) -> RangesResult:
        body = await self._post(
            account, GENERAL_ENDPOINT, {"getRanges": {"mode": "active", "type": "all"}}
        )
        return RangesResult.from_body(GENERAL_ENDPOINT, body)

    async def get_prefix(self, account: Account, range_type: str) -> str:
        """Active numbering prefix for a document type; empty when none is configured."""
        ranges = await self.get_ranges(account)
        return ranges.prefix_for(range_type)

    def _download(self, url: str) -> bytes:
        try:
            response = self._session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise SigningTransportError(url, original_exception=e) from e
        return response.content

    async def download(self, url: str) -> bytes:
        """Fetch the signed artifact published at ``url``."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._download, url)
