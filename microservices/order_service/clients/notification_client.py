"""
Notification Service Client for Order Service
"""

import httpx
import logging
from typing import Any, Dict

from core.service_client_base import BaseServiceClient

from ..models import Order

logger = logging.getLogger(__name__)


class NotificationClient(BaseServiceClient):
    """Client for notification_service"""

    service_name = "notification_service"
    url_setting = "notification_service_url"

    async def _send(self, payload: Dict[str, Any]) -> bool:
        try:
            response = await self.post("/api/v1/notifications/send", json=payload)
            response.raise_for_status()
            return True
        except httpx.HTTPStatusError as e:
            logger.error(f"Notification rejected: {e.response.status_code} {payload.get('template_id')}")
            return False
        except httpx.HTTPError as e:
            logger.error(f"Error sending notification {payload.get('template_id')}: {e}")
            return False

    async def notify_low_stock(self, product_id: str, product_name: str, current_quantity: int) -> bool:
        """Alert admins that a product is running low"""
        return await self._send({
            "type": "email",
            "template_id": "low_stock_alert",
            "subject": f"Low Stock Alert - {product_name}",
            "variables": {
                "product_id": product_id,
                "product_name": product_name,
                "current_quantity": current_quantity,
            },
            "priority": "high",
            "metadata": {"audience": "admins"},
            "tags": ["inventory", "low_stock"],
        })

    async def notify_order_created(self, order: Order) -> bool:
        """Send the order confirmation to the customer"""
        delivery = order.delivery_details
        return await self._send({
            "type": "email",
            "recipient_id": order.user_id,
            "recipient_email": delivery.email if delivery else None,
            "template_id": "order_confirmation",
            "subject": f"Order Confirmation - {order.order_number}",
            "variables": {
                "order_id": order.order_id,
                "order_number": order.order_number,
                "order_type": order.order_type.value,
                "total_amount": str(order.total_amount),
                "currency": order.currency,
                "items": [
                    {"name": line.name, "quantity": line.quantity, "subtotal": str(line.subtotal)}
                    for line in order.line_items
                ],
            },
            "tags": ["order", "confirmation"],
        })
