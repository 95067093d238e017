"""
AAD HTTP Client

Talks to the AAD v1 token and device-code endpoints and to the Resource
Manager tenant listing.
"""

from typing import Any, Dict, Optional
import httpx
import structlog

from .interface import IAADClient

logger = structlog.get_logger(__name__)


SECRET_FIELDS = frozenset({
    "access_token",
    "refresh_token",
    "id_token",
    "code",
    "device_code",
    "code_verifier",
    "client_secret",
})


def redact(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of ``payload`` with token-bearing fields masked, for logging"""
    return {
        key: "<redacted>" if key in SECRET_FIELDS and value else value
        for key, value in payload.items()
    }


class AADClient(IAADClient):
    """httpx-based client for the AAD endpoints"""

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def post_form(self, url: str, data: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        async with self._client() as client:
            response = await client.post(url, data=data, headers=headers)

        body = self._parse_body(response)
        logger.debug(
            "AAD form post",
            url=url,
            request=redact(data),
            status_code=response.status_code,
            response=redact(body),
        )
        return body

    async def get_json(self, url: str, bearer_token: str) -> Dict[str, Any]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {bearer_token}",
        }
        async with self._client() as client:
            response = await client.get(url, headers=headers)

        if response.is_error:
            logger.error("AAD request failed", url=url, status_code=response.status_code)
        response.raise_for_status()

        result: Dict[str, Any] = response.json()
        logger.debug("AAD get", url=url, status_code=response.status_code)
        return result

    @staticmethod
    def _parse_body(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            return body

        if response.is_error:
            return {
                "error": "http_error",
                "error_description": f"HTTP {response.status_code} with a non-JSON body",
            }
        return {}
