"""
AAD Client Interface

Defines contract for the HTTP transport used against the AAD endpoints
"""

from abc import ABC, abstractmethod
from typing import Any, Dict


class IAADClient(ABC):
    """Interface for AAD HTTP clients"""

    @abstractmethod
    async def post_form(self, url: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST form-encoded data and return the JSON body.

        Never raises on HTTP status: the body's ``error`` field is the only
        failure signal.

        Args:
            url: Endpoint URL
            data: Form fields

        Returns:
            Parsed response body
        """
        pass

    @abstractmethod
    async def get_json(self, url: str, bearer_token: str) -> Dict[str, Any]:
        """
        GET a JSON document with a bearer token.

        Raises:
            httpx.HTTPError: On transport failure or non-2xx status
        """
        pass
