"""
Order Service Data Models

Pydantic models for order placement, the order ledger, and API payloads.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum

from microservices.inventory_service.models import ProductKind, StockAdjustment


class OrderStatus(str, Enum):
    """Order status enumeration"""
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class OrderType(str, Enum):
    """Order type enumeration"""
    SALES = "sales"
    RENTAL = "rental"
    PACKAGE = "package"


class PaymentStatus(str, Enum):
    """Payment status enumeration"""
    PENDING = "pending"
    VERIFICATION_PENDING = "verification_pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    """Payment method enumeration"""
    CARD = "card"
    PAYPAL = "paypal"
    CASH = "cash"
    SLIP = "slip"


class ActorRole(str, Enum):
    """Caller role supplied by the gateway"""
    CUSTOMER = "customer"
    ADMIN = "admin"


# Line Items

class OrderLineItemRequest(BaseModel):
    """Line item as submitted by the caller"""
    product_id: str = Field(..., min_length=1, description="Product ID")
    product_kind: ProductKind = Field(..., description="sellable, rentable or package")
    quantity: int = Field(..., gt=0, description="Units requested")
    rental_days: Optional[int] = Field(None, gt=0, description="Rental length for rentable items")
    unit_price: Optional[Decimal] = Field(None, ge=0, description="Package price (package items only)")
    name: Optional[str] = Field(None, description="Package name (package items only)")


class OrderLineItem(BaseModel):
    """Line item snapshot stored on the order"""
    model_config = {"frozen": True}

    product_id: str
    product_kind: ProductKind
    name: str
    quantity: int = Field(..., gt=0)
    unit_price: Decimal
    rental_days: Optional[int] = None
    subtotal: Decimal


class PaymentInfo(BaseModel):
    """Payment details captured at checkout"""
    method: PaymentMethod = Field(..., description="Payment method")
    transaction_id: Optional[str] = Field(None, description="Processor transaction reference")
    tax: Optional[Decimal] = Field(None, ge=0, description="Explicit tax; default rate applies when omitted")
    shipping_cost: Optional[Decimal] = Field(None, ge=0, description="Shipping cost, 0 when omitted")


class DeliveryDetails(BaseModel):
    """Delivery contact and address"""
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    notes: Optional[str] = None


# Core Order Model

class Order(BaseModel):
    """Core order model"""
    order_id: str
    order_number: str
    user_id: str
    order_type: OrderType
    line_items: List[OrderLineItem]
    subtotal: Decimal
    tax: Decimal
    shipping_cost: Decimal
    total_amount: Decimal
    currency: str = "USD"
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: PaymentMethod
    transaction_id: Optional[str] = None
    delivery_details: Optional[DeliveryDetails] = None
    notes: Optional[str] = None
    tracking_number: Optional[str] = None
    admin_notes: Optional[str] = None
    cancel_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    cancelled_at: Optional[datetime] = None


# Request Models

class PlaceOrderRequest(BaseModel):
    """Place order request"""
    line_items: List[OrderLineItemRequest] = Field(default_factory=list, description="Items to order")
    payment: PaymentInfo = Field(..., description="Payment details")
    delivery_details: Optional[DeliveryDetails] = Field(None, description="Delivery contact and address")
    notes: Optional[str] = Field(None, description="Customer notes")


class CartOrderRequest(BaseModel):
    """Place an order from the caller's cart"""
    payment: PaymentInfo
    delivery_details: Optional[DeliveryDetails] = None
    notes: Optional[str] = None


class OrderCancelRequest(BaseModel):
    """Cancel order request"""
    reason: Optional[str] = Field(None, description="Cancellation reason")


class OrderStatusUpdateRequest(BaseModel):
    """Admin status update request"""
    status: OrderStatus
    tracking_number: Optional[str] = None
    admin_notes: Optional[str] = None
    payment_status: Optional[PaymentStatus] = None
    reason: Optional[str] = Field(None, description="Used when the new status is cancelled")


class DeliveryDetailsUpdateRequest(DeliveryDetails):
    """Customer delivery edit; omitted fields keep their value"""

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        if v is not None and "@" not in v:
            raise ValueError("Invalid email address")
        return v


# Cart Store

class CartItem(BaseModel):
    """Item held by the cart service"""
    product_id: str
    product_kind: ProductKind
    quantity: int = Field(default=1, gt=0)
    rental_days: Optional[int] = Field(default=1, gt=0)
    price: Optional[Decimal] = None


# Response Models

class OrderResponse(BaseModel):
    """Order response model"""
    success: bool
    order: Optional[Order] = None
    message: str
    error_code: Optional[str] = None
    stock_adjustments: List[StockAdjustment] = Field(default_factory=list)


class OrderListResponse(BaseModel):
    """Order list response"""
    orders: List[Order]
    count: int
    limit: int
    offset: int
    has_next: bool


class OrderStatusBreakdown(BaseModel):
    """Order count and amount for one status"""
    status: OrderStatus
    count: int
    total_amount: Decimal


class UserOrderStatsResponse(BaseModel):
    """Customer order summary"""
    success: bool = True
    user_id: str
    total_orders: int = 0
    total_spent: Decimal = Decimal("0.00")
    currency: str = "USD"
    status_breakdown: List[OrderStatusBreakdown] = Field(default_factory=list)


class OrderServiceStatus(BaseModel):
    """Order service status response"""
    service: str = "order_service"
    status: str = "operational"
    port: int = 8210
    version: str = "1.0.0"
    database_connected: bool
    event_bus_connected: bool = False
    timestamp: Optional[datetime] = None
