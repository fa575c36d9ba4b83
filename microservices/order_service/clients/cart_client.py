"""
Cart Service Client for Order Service
"""

import httpx
import logging
from typing import List

from core.service_client_base import BaseServiceClient

from ..models import CartItem

logger = logging.getLogger(__name__)


class CartClient(BaseServiceClient):
    """Client for cart_service"""

    service_name = "cart_service"
    url_setting = "cart_service_url"

    async def get_cart(self, user_id: str) -> List[CartItem]:
        """
        Items in the user's cart.

        Raises httpx.HTTPError when the cart service cannot be read; an
        order must not be placed from a cart we could not see.
        """
        response = await self.get(f"/api/v1/cart/{user_id}")
        if response.status_code == 404:
            return []
        response.raise_for_status()

        data = response.json()
        items = data.get("items", []) if isinstance(data, dict) else data
        return [CartItem(**item) for item in items]

    async def clear_cart(self, user_id: str) -> bool:
        """Empty the user's cart"""
        try:
            response = await self.delete(f"/api/v1/cart/{user_id}")
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.error(f"Error clearing cart for {user_id}: {e}")
            return False
