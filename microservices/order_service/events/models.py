"""
Order Service Event Models

Pydantic models for events published by order service
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime


class OrderCreatedEvent(BaseModel):
    """Event published when order is placed"""
    order_id: str
    order_number: str
    user_id: str
    order_type: str
    total_amount: str
    currency: str = "USD"
    line_items: List[Dict[str, Any]] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class OrderCanceledEvent(BaseModel):
    """Event published when order is cancelled and its stock restored"""
    order_id: str
    order_number: str
    user_id: str
    order_type: str
    total_amount: str
    cancelled_by: str
    cancellation_reason: Optional[str] = None
    restored: List[Dict[str, Any]] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class OrderStatusChangedEvent(BaseModel):
    """Event published when an admin moves an order along"""
    order_id: str
    order_number: str
    user_id: str
    old_status: str
    new_status: str
    tracking_number: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class LowStockEvent(BaseModel):
    """Event published when an order leaves a product at or below threshold"""
    product_id: str
    product_kind: str
    product_name: str
    current_quantity: int
    threshold: int
    order_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
