"""
NATS JetStream Client for Python Microservices

Provides event-driven communication between the commerce services
on top of nats-py JetStream.
"""

import json
import logging
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, TYPE_CHECKING

import nats
from nats.errors import Error as NATSError
from nats.js.errors import Error as JetStreamError

if TYPE_CHECKING:
    from core.config_manager import ConfigManager


class DecimalEncoder(json.JSONEncoder):
    """Custom JSON encoder that handles Decimal types"""
    def default(self, obj):
        if isinstance(obj, Decimal):
            return str(obj)
        return super().default(obj)


logger = logging.getLogger(__name__)


class EventType(Enum):
    """Event types published by the commerce services"""

    # Order Events
    ORDER_CREATED = "order.created"
    ORDER_CANCELED = "order.canceled"
    ORDER_STATUS_CHANGED = "order.status_changed"

    # Inventory Events
    INVENTORY_LOW_STOCK = "inventory.low_stock"


class ServiceSource(Enum):
    """Service sources"""

    ORDER_SERVICE = "order_service"
    INVENTORY_SERVICE = "inventory_service"
    NOTIFICATION_SERVICE = "notification_service"
    CART_SERVICE = "cart_service"
    GATEWAY = "api_gateway"


class Event:
    """Event model"""

    def __init__(
        self,
        event_type: EventType,
        source: ServiceSource,
        data: Dict[str, Any],
        subject: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ):
        self.id = str(uuid.uuid4())
        self.type = event_type.value
        self.source = source.value
        self.data = data
        self.subject = subject
        self.timestamp = datetime.utcnow().isoformat()
        self.metadata = metadata or {}
        self.version = "1.0.0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "source": self.source,
            "subject": self.subject,
            "timestamp": self.timestamp,
            "data": self.data,
            "metadata": self.metadata,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        event = cls.__new__(cls)
        event.id = data.get("id")
        event.type = data.get("type")
        event.source = data.get("source")
        event.subject = data.get("subject")
        event.timestamp = data.get("timestamp")
        event.data = data.get("data", {})
        event.metadata = data.get("metadata", {})
        event.version = data.get("version", "1.0.0")
        return event


class NATSEventBus:
    """
    NATS JetStream event bus.

    Streams are derived from the event type prefix:
    - order.* -> ORDER stream
    - inventory.* -> INVENTORY stream
    """

    def __init__(
        self,
        service_name: str,
        config: Optional["ConfigManager"] = None,
    ):
        """
        Initialize NATS Event Bus.

        Args:
            service_name: Name of the service (used as the connection name)
            config: Optional ConfigManager instance for endpoint lookup
        """
        from core.config_manager import ConfigManager

        self.service_name = service_name

        if config is None:
            config = ConfigManager(service_name)

        self.servers = config.settings.infrastructure.nats_servers
        self._nc = None
        self._js = None
        self._streams_ready: set = set()

        logger.info(f"NATS EventBus initialized: {self.servers}")

    async def connect(self):
        """Connect to NATS and open a JetStream context"""
        try:
            self._nc = await nats.connect(servers=[self.servers], name=self.service_name)
            self._js = self._nc.jetstream()
            logger.info(f"Connected to NATS as {self.service_name}")
        except (NATSError, OSError) as e:
            logger.error(f"Failed to connect to NATS at {self.servers}: {e}")
            raise

    async def publish_event(self, event: Event) -> bool:
        """
        Publish an event to NATS JetStream.

        The event type doubles as the subject (e.g. "order.created").
        """
        if not self.is_connected:
            logger.error("Not connected to NATS")
            return False

        try:
            subject = event.type
            data = json.dumps(event.to_dict(), cls=DecimalEncoder).encode()
            stream_name = self._get_stream_name_for_event(event.type)

            if stream_name not in self._streams_ready:
                subject_prefix = event.type.split('.')[0]
                try:
                    await self._js.add_stream(name=stream_name, subjects=[f"{subject_prefix}.>"])
                except JetStreamError as e:
                    logger.debug(f"Stream creation note: {e}")
                self._streams_ready.add(stream_name)

            ack = await self._js.publish(subject, data)
            logger.info(f"Published event {event.type} [{event.id}] to stream {ack.stream}, seq={ack.seq}")
            return True

        except (NATSError, JetStreamError, OSError) as e:
            logger.error(f"Failed to publish event {event.id}: {e}")
            return False

    def _get_stream_name_for_event(self, event_type: str) -> str:
        return event_type.split('.')[0].upper()

    async def close(self):
        """Drain and close the NATS connection"""
        if self._nc is not None:
            await self._nc.drain()
            self._nc = None
            self._js = None
        logger.info("Disconnected from NATS")

    @property
    def is_connected(self) -> bool:
        """Check if connected to NATS"""
        return self._nc is not None and self._nc.is_connected


# Singleton instance
_event_bus: Optional[NATSEventBus] = None


async def get_event_bus(
    service_name: str,
    config: Optional["ConfigManager"] = None,
) -> NATSEventBus:
    """
    Get or create event bus instance.

    Args:
        service_name: Name of the service using the event bus
        config: Optional ConfigManager instance

    Returns:
        NATSEventBus instance
    """
    global _event_bus

    if _event_bus is None:
        bus = NATSEventBus(service_name=service_name, config=config)
        await bus.connect()
        _event_bus = bus

    return _event_bus
