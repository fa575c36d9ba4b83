"""
Base Service Client for Internal Microservice Communication

Base class for the HTTP clients services use to call each other;
internal service authentication is attached automatically.
"""

import httpx
import logging
from typing import Optional, Dict, Any
from abc import ABC

logger = logging.getLogger(__name__)


class BaseServiceClient(ABC):
    """
    Microservice client base class

    Handles:
    1. Endpoint lookup from ServiceConfig
    2. Internal service authentication headers
    3. HTTP client lifecycle
    4. Timeouts

    Example:
        class CartClient(BaseServiceClient):
            service_name = "cart_service"
            url_setting = "cart_service_url"

            async def get_cart(self, user_id: str):
                response = await self.get(f"/api/v1/cart/{user_id}")
                return response.json()
    """

    # Subclasses define these
    service_name: str = None  # e.g. "notification_service"
    url_setting: str = None   # ServiceConfig attribute holding the base URL

    def __init__(
        self,
        base_url: Optional[str] = None,
        use_internal_auth: bool = True,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize service client

        Args:
            base_url: Service base URL (looked up from settings when omitted)
            use_internal_auth: Attach internal service auth headers
            timeout: Request timeout in seconds
            http_client: Pre-built client (tests inject a mock transport)
        """
        if not self.service_name:
            raise ValueError(f"{self.__class__.__name__} must define 'service_name'")

        if base_url:
            self.base_url = base_url.rstrip('/')
        else:
            self.base_url = self._discover_service()

        default_headers = self._build_default_headers(use_internal_auth)

        self.client = http_client or httpx.AsyncClient(
            timeout=timeout,
            headers=default_headers
        )

        logger.debug(
            f"Initialized {self.service_name} client: {self.base_url} "
            f"(internal_auth={'enabled' if use_internal_auth else 'disabled'})"
        )

    def _discover_service(self) -> str:
        """Look up the service base URL from ServiceConfig"""
        from core.config import get_settings
        services = get_settings().services
        url = getattr(services, self.url_setting, None) if self.url_setting else None
        if not url:
            raise ValueError(f"No base URL configured for {self.service_name}")
        return url.rstrip('/')

    def _build_default_headers(self, use_internal_auth: bool) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"campquest-internal-client/{self.service_name}"
        }

        if use_internal_auth:
            from core.internal_service_auth import InternalServiceAuth
            headers.update(InternalServiceAuth.get_internal_service_headers())

        return headers

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()
        logger.debug(f"Closed {self.service_name} client")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ========================================
    # HTTP helpers
    # ========================================

    async def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        return await self.client.get(url, params=params, headers=headers)

    async def post(
        self,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        return await self.client.post(url, json=json, headers=headers)

    async def delete(
        self,
        path: str,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        return await self.client.delete(url, headers=headers)

    async def health_check(self) -> bool:
        """Whether the peer service answers /health"""
        try:
            response = await self.get("/health")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"{self.service_name} health check failed: {e}")
            return False


__all__ = ["BaseServiceClient"]
