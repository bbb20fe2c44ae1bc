from enum import Enum
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import List, Literal, Optional


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3)
    email: EmailStr
    password: str = Field(min_length=8)
    first_name: str = ""
    last_name: str = ""


class UserOut(BaseModel):
    id: str
    username: str
    email: EmailStr
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = ""
    orders_count: int = 0
    total_spent: float = 0.0


class LoginResponse(BaseModel):
    token: str
    user: UserOut


class Product(BaseModel):
    id: int
    name: str
    price: float = Field(ge=0)
    category: str
    description: str = ""
    image: Optional[str] = None
    variants: List[str] = []


class CartItem(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    variant: Optional[str] = None
    unit_price: float = Field(ge=0)
    name: str = ""
    image: Optional[str] = None


class AddToCartRequest(BaseModel):
    product_id: int
    quantity: int = 1
    variant: Optional[str] = None


class UpdateCartRequest(BaseModel):
    quantity: int


class PricingResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    subtotal: float
    shipping: float
    total: float


class CartView(BaseModel):
    items: List[CartItem]
    count: int
    pricing: PricingResult


class PaymentMethod(str, Enum):
    credit = "credit"
    paypal = "paypal"
    apple = "apple"


class ShippingAddress(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str = Field(min_length=2)
    last_name: str = Field(min_length=2)
    email: EmailStr
    phone: str = Field(min_length=10)
    address: str = Field(min_length=5)
    city: str = Field(min_length=2)
    state: str = Field(min_length=2)
    zip: str = Field(min_length=5)
    country: str = Field(min_length=2)


class CustomerForm(ShippingAddress):
    payment_method: PaymentMethod

    def shipping_address(self) -> ShippingAddress:
        return ShippingAddress(**self.model_dump(exclude={"payment_method"}))


class OrderItem(BaseModel):
    product_id: int
    name: str
    price: float
    quantity: int = Field(gt=0)
    variant: Optional[str] = None
    image: Optional[str] = None


class OrderPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: float
    status: Literal["pending"] = "pending"
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    items: List[OrderItem]


class OrderOut(BaseModel):
    id: str
    username: str
    items: List[OrderItem]
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    subtotal: float
    shipping: float
    total: float
    status: str
    created_at: str


class ValidationResponse(BaseModel):
    valid: bool
    field_errors: dict = {}


class CheckoutResponse(BaseModel):
    order: OrderOut
    redirect: Optional[str] = None
    redirect_delay: float = 0.0
    notices: List[dict] = []
