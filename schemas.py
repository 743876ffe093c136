"""
Request and response bodies for the Storefront API

Bodies:
- RegisterRequest / LoginRequest: account endpoints
- UserOut / UserProfile: user projections returned to clients
- ProductOut: catalog rows
- CartItem / CheckoutRequest: checkout payload (camelCase on the wire)
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List


class RegisterRequest(BaseModel):
    name: Optional[str] = Field(None, description="Full name")
    email: Optional[EmailStr] = Field(None, description="Email address")
    phone: Optional[str] = Field(None, description="Phone number")
    password: Optional[str] = Field(None, description="Plaintext password")


class LoginRequest(BaseModel):
    # same normalisation as RegisterRequest so stored and looked-up emails match
    email: Optional[EmailStr] = None
    password: Optional[str] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str


class UserProfile(UserOut):
    phone: Optional[str] = None
    role: Optional[str] = None


class ProductOut(BaseModel):
    """Known catalog columns; any other column of the products table passes through."""
    model_config = ConfigDict(from_attributes=True, extra="allow")

    id: int
    name: Optional[str] = None
    price: Optional[float] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    category: Optional[str] = None
    stock: Optional[int] = None


class CartItem(BaseModel):
    id: int = Field(..., description="Product id")
    name: str = Field(..., description="Product name at checkout time")
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0, description="Unit price")


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    phone: Optional[str] = None
    payment_method: Optional[str] = None
    cart_items: Optional[List[CartItem]] = None
    total_amount: Optional[float] = Field(None, ge=0)

    def missing_fields(self) -> List[str]:
        required = ["name", "email", "address", "city", "postal_code", "phone", "payment_method"]
        missing = [field for field in required if not getattr(self, field)]
        if self.total_amount is None:
            missing.append("total_amount")
        return missing
