from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, validator

PAYMENT_METHODS = ("CARD", "CASH")
PAYMENT_STATUSES = ("PENDING", "PAID")


class MenuCreate(BaseModel):
    name: str
    category: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @validator("name", "category")
    def validate_text(cls, v: str) -> str:
        if not v or len(v.strip()) == 0:
            raise ValueError("Field cannot be empty")
        return v.strip()


class MenuUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class MenuResponse(BaseModel):
    menu_id: str
    name: str
    category: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FoodCreate(BaseModel):
    name: str
    price: Decimal
    food_image: str
    menu_id: str

    @validator("name")
    def validate_name(cls, v: str) -> str:
        if not v or len(v.strip()) < 2:
            raise ValueError("Food name must be at least 2 characters")
        if len(v) > 100:
            raise ValueError("Food name cannot exceed 100 characters")
        return v.strip()

    @validator("price")
    def validate_price(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Price must be greater than 0")
        return v


class FoodUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[Decimal] = None
    food_image: Optional[str] = None
    menu_id: Optional[str] = None

    @validator("price")
    def validate_price(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is not None and v <= 0:
            raise ValueError("Price must be greater than 0")
        return v


class FoodResponse(BaseModel):
    food_id: str
    name: str
    price: Decimal
    food_image: str
    menu_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderCreate(BaseModel):
    table_id: Optional[str] = None
    order_date: Optional[datetime] = None


class OrderUpdate(BaseModel):
    table_id: Optional[str] = None


class OrderResponse(BaseModel):
    order_id: str
    order_date: datetime
    table_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderItemCreate(BaseModel):
    food_id: str
    quantity: int
    unit_price: Optional[Decimal] = None

    @validator("quantity")
    def validate_quantity(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Quantity must be greater than 0")
        return v


class OrderItemPack(BaseModel):
    table_id: Optional[str] = None
    order_items: List[OrderItemCreate]


class OrderItemUpdate(BaseModel):
    quantity: Optional[int] = None
    unit_price: Optional[Decimal] = None
    food_id: Optional[str] = None

    @validator("quantity")
    def validate_quantity(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("Quantity must be greater than 0")
        return v


class OrderItemResponse(BaseModel):
    order_item_id: str
    order_id: str
    food_id: str
    quantity: int
    unit_price: Decimal
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ComposedOrderResponse(BaseModel):
    order_id: str
    order_item_ids: List[str]


class ItemView(BaseModel):
    """One joined line item row; food fields are None when the food is gone."""
    amount: Optional[Decimal] = None
    food_name: Optional[str] = None
    food_image: Optional[str] = None
    table_number: Optional[int] = None
    table_id: Optional[str] = None
    order_id: Optional[str] = None
    price: Optional[Decimal] = None
    quantity: Optional[int] = None


class OrderView(BaseModel):
    payment_due: Decimal
    total_count: int
    table_number: Optional[int] = None
    order_items: List[ItemView]
    # true only for an existing order that has no items yet
    is_empty: bool = False


class InvoiceCreate(BaseModel):
    order_id: str
    payment_method: Optional[str] = None
    payment_status: Optional[str] = None

    @validator("payment_method")
    def validate_payment_method(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in PAYMENT_METHODS:
            raise ValueError("Payment method must be either 'CARD' or 'CASH'")
        return v

    @validator("payment_status")
    def validate_payment_status(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in PAYMENT_STATUSES:
            raise ValueError("Payment status must be either 'PENDING' or 'PAID'")
        return v


class InvoiceUpdate(BaseModel):
    payment_method: Optional[str] = None
    payment_status: Optional[str] = None

    @validator("payment_method")
    def validate_payment_method(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in PAYMENT_METHODS:
            raise ValueError("Payment method must be either 'CARD' or 'CASH'")
        return v

    @validator("payment_status")
    def validate_payment_status(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in PAYMENT_STATUSES:
            raise ValueError("Payment status must be either 'PENDING' or 'PAID'")
        return v


class InvoiceResponse(BaseModel):
    invoice_id: str
    order_id: str
    payment_method: Optional[str] = None
    payment_status: str
    payment_due_date: datetime
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InvoiceView(BaseModel):
    invoice_id: str
    payment_method: str
    order_id: str
    payment_status: str
    payment_due: Decimal
    table_number: Optional[int] = None
    payment_due_date: datetime
    order_details: List[ItemView]


class UserCreate(BaseModel):
    first_name: str
    last_name: str
    email: str
    phone: str
    password: str

    @validator("first_name", "last_name")
    def validate_name(cls, v: str) -> str:
        if not v or len(v.strip()) < 2:
            raise ValueError("Name must be at least 2 characters")
        if len(v) > 100:
            raise ValueError("Name cannot exceed 100 characters")
        return v.strip()

    @validator("email")
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("Invalid email address")
        return v

    @validator("phone")
    def validate_phone(cls, v: str) -> str:
        if not v or len(v.strip()) == 0:
            raise ValueError("Phone cannot be empty")
        return v.strip()

    @validator("password")
    def validate_password(cls, v: str) -> str:
        if not v or len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v


class UserLogin(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    user_id: str
    first_name: str
    last_name: str
    email: str
    phone: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AuthResponse(UserResponse):
    """Returned by signup, login and refresh only; never listed"""
    token: str
    refresh_token: str


class TokenRefresh(BaseModel):
    refresh_token: str


class FoodPage(BaseModel):
    total_count: int
    food_items: List[FoodResponse]


class MenuPage(BaseModel):
    total_count: int
    menus: List[MenuResponse]


class UserPage(BaseModel):
    total_count: int
    users: List[UserResponse]


class OrderPage(BaseModel):
    total_count: int
    orders: List[OrderResponse]


class OrderItemPage(BaseModel):
    total_count: int
    order_items: List[OrderItemResponse]


class InvoicePage(BaseModel):
    total_count: int
    invoices: List[InvoiceResponse]
