"""
Database Schemas for the Storefront

Each Pydantic model represents a MongoDB collection. The collection name is the lowercase of the class name.

- User -> "user"
- Product -> "product"
- Category -> "category"
- Slider -> "slider"
- Cart -> "cart"
- Order -> "order"
- Message -> "message"

created_at / updated_at are stamped by database.create_document.
"""
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, EmailStr

Role = Literal["buyer", "admin"]
OrderStatusName = Literal["pending", "processing", "shipped", "delivered", "cancelled"]
MessageType = Literal["chat", "contact_form"]


class User(BaseModel):
    username: str = Field(..., min_length=1, description="Unique login name")
    email: EmailStr = Field(..., description="Email address, stored lowercased")
    password_hash: str = Field(..., description="Hashed password")
    role: Role = Field("buyer", description="Access role")


class Product(BaseModel):
    name: str = Field(..., min_length=1, description="Product name")
    description: str = Field(..., description="Product description")
    price: float = Field(..., ge=0, description="Unit price")
    image: str = Field(..., description="Image URL or storage reference")
    category: str = Field(..., description="Category name (not a reference)")
    stock: int = Field(0, ge=0, description="Sellable units")
    featured: bool = Field(False, description="Shown on the home page")


class Category(BaseModel):
    name: str = Field(..., min_length=1, description="Unique category name")
    description: str = Field(..., description="Category description")


class Slider(BaseModel):
    title: str
    description: str
    image: str
    button_text: str
    button_link: str
    active: bool = True
    order: int = 0


class CartItem(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)


class Cart(BaseModel):
    user_id: str
    items: List[CartItem] = []


class OrderItem(BaseModel):
    """Snapshot of a cart line at checkout; later product edits do not touch it."""
    product_id: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)
    name: str


class Order(BaseModel):
    user_id: str
    items: List[OrderItem]
    total: float
    shipping_address: str
    payment_method: str = "cash_on_delivery"
    status: OrderStatusName = Field("pending", description="Order status")


class ContactFormData(BaseModel):
    subject: str
    original_message: str


class Message(BaseModel):
    text: str
    sender_id: str
    sender_email: str
    sender_name: str
    is_admin: bool = False
    conversation_id: str
    message_type: MessageType = "chat"
    contact_form_data: Optional[ContactFormData] = None
