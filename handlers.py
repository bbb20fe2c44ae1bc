from fastapi import APIRouter, Body, Cookie, Depends, Header, HTTPException, Query, Response
from typing import Optional
import logging
import uuid

import utils
from cart import CartStore, WishlistStore
from checkout import CheckoutOrchestrator
from errors import (
    CartLineNotFoundError,
    EmptyCartError,
    FormValidationError,
    InvalidQuantityError,
    OrderRejectedError,
    OrderSubmissionError,
    StoreError,
    SubmissionInProgressError,
    UnknownProductError,
    UnknownVariantError,
)
from models import LoginRequest, LoginResponse, RegisterRequest, UserOut, Product
from models import AddToCartRequest, UpdateCartRequest, CartView, OrderPayload, OrderOut
from models import CheckoutResponse, ValidationResponse
from orders import LocalOrderClient, create_order_record
from validation import prefill_form, validate_form

router = APIRouter()
logger = logging.getLogger(__name__)

# usernames with a checkout currently waiting on order creation
_inflight_checkouts: set = set()


def current_user(x_token: Optional[str] = Header(None), session: Optional[str] = Cookie(None)) -> dict:
    return utils.require_user(x_token, session)


def _http_error(e: StoreError) -> HTTPException:
    if isinstance(e, (UnknownProductError, CartLineNotFoundError)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (UnknownVariantError, InvalidQuantityError, OrderRejectedError, EmptyCartError)):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, SubmissionInProgressError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, FormValidationError):
        return HTTPException(status_code=422, detail={"message": str(e), "field_errors": e.field_errors})
    if isinstance(e, OrderSubmissionError):
        return HTTPException(status_code=502, detail=f"order could not be placed: {e}")
    return HTTPException(status_code=500, detail=str(e))


def _cart_view(store: CartStore) -> dict:
    items = store.items()
    return {
        "items": items,
        "count": sum(i.quantity for i in items),
        "pricing": store.pricing(),
    }


# accounts

@router.post("/register", response_model=UserOut, status_code=201)
async def register(payload: RegisterRequest):
    """Create a shopper account. Username and email must both be unused."""
    data = utils.load_data()
    users = data.setdefault("users", {})
    if payload.username in users:
        raise HTTPException(status_code=409, detail="username already taken")
    if any(u.get("email") == payload.email for u in users.values()):
        raise HTTPException(status_code=409, detail="email already registered")

    user = {
        "id": f"u-{uuid.uuid4().hex[:8]}",
        "username": payload.username,
        "email": payload.email,
        "password": payload.password,
        "first_name": payload.first_name,
        "last_name": payload.last_name,
        "cart": [],
        "wishlist": [],
        "orders_count": 0,
        "total_spent": 0.0,
    }
    users[payload.username] = user
    utils.save_data(data)
    logger.info("registered user %s", payload.username)
    return utils.public_user(user)


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, response: Response):
    """Login endpoint.

    Accepts JSON {"email": "...", "password": "..."} and returns an auth token
    in the `X-Token` header, the `session` cookie and the JSON body.

    Example:
    POST /login
    {
      "email": "alex@quicktest.com",
      "password": "11111111"
    }
    """
    user = utils.authenticate(payload.email, payload.password)
    if user is None:
        raise HTTPException(status_code=401, detail="invalid email or password")

    token = utils.create_token_for_user(user)
    # In case if jwt.encode returns bytes in some PyJWT versions
    if isinstance(token, bytes):
        token = token.decode()
    response.headers["X-Token"] = token
    response.set_cookie(utils.SESSION_COOKIE, token, httponly=True, samesite="lax", max_age=utils.JWT_EXP_DELTA_SECONDS)

    return LoginResponse(token=token, user=UserOut(**utils.public_user(user)))


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(utils.SESSION_COOKIE)
    return {"success": True}


@router.get("/me", response_model=UserOut)
async def me(user: dict = Depends(current_user)):
    return utils.public_user(user)


@router.get("/me/orders", response_model=list[OrderOut])
async def my_orders(user: dict = Depends(current_user)):
    """Order history of the current user, newest first."""
    data = utils.load_data()
    orders = [o for o in data.get("orders", []) if o.get("username") == user["username"]]
    return list(reversed(orders))


# catalog

@router.get("/products", response_model=list[Product])
async def list_products(category: Optional[str] = Query(None)):
    """List the catalog. `?category=` narrows it to one category (case-insensitive)."""
    data = utils.load_data()
    products = data.get("products", [])
    if category:
        products = [p for p in products if p.get("category", "").lower() == category.lower()]
    return products


@router.get("/products/{product_id}", response_model=Product)
async def get_product(product_id: int):
    product = utils.find_product(utils.load_data(), product_id)
    if not product:
        raise HTTPException(status_code=404, detail="product not found")
    return product


# cart

@router.get("/cart", response_model=CartView)
async def view_cart(user: dict = Depends(current_user)):
    """View expanded cart: line items with resolved prices, item count and pricing."""
    return _cart_view(CartStore(user["username"]))


@router.post("/cart/add", response_model=CartView)
async def add_to_cart(payload: AddToCartRequest, user: dict = Depends(current_user)):
    """Add item to user's cart.

    Body: {"product_id": int, "quantity": int, "variant": str | null}
    Merges quantity into an existing line with the same product and variant.
    """
    store = CartStore(user["username"])
    try:
        store.add(payload.product_id, payload.quantity, payload.variant)
    except StoreError as e:
        raise _http_error(e)
    return _cart_view(store)


@router.patch("/cart/{product_id}", response_model=CartView)
async def update_cart_line(product_id: int, payload: UpdateCartRequest, variant: Optional[str] = Query(None), user: dict = Depends(current_user)):
    """Set the quantity of a cart line. Quantity 0 removes the line."""
    store = CartStore(user["username"])
    try:
        store.update(product_id, payload.quantity, variant)
    except StoreError as e:
        raise _http_error(e)
    return _cart_view(store)


@router.delete("/cart/{product_id}", response_model=CartView)
async def remove_cart_line(product_id: int, variant: Optional[str] = Query(None), user: dict = Depends(current_user)):
    store = CartStore(user["username"])
    try:
        store.remove(product_id, variant)
    except StoreError as e:
        raise _http_error(e)
    return _cart_view(store)


@router.delete("/cart", response_model=CartView)
async def clear_cart(user: dict = Depends(current_user)):
    store = CartStore(user["username"])
    store.clear()
    return _cart_view(store)


# wishlist

@router.get("/wishlist", response_model=list[Product])
async def view_wishlist(user: dict = Depends(current_user)):
    return WishlistStore(user["username"]).products()


@router.post("/wishlist/{product_id}", response_model=list[Product])
async def add_to_wishlist(product_id: int, user: dict = Depends(current_user)):
    store = WishlistStore(user["username"])
    try:
        store.add(product_id)
    except StoreError as e:
        raise _http_error(e)
    return store.products()


@router.delete("/wishlist/{product_id}", response_model=list[Product])
async def remove_from_wishlist(product_id: int, user: dict = Depends(current_user)):
    store = WishlistStore(user["username"])
    store.remove(product_id)
    return store.products()


@router.post("/wishlist/{product_id}/move-to-cart", response_model=CartView)
async def move_to_cart(product_id: int, user: dict = Depends(current_user)):
    """Move one unit of a wishlisted product into the cart."""
    store = CartStore(user["username"])
    try:
        store.move_from_wishlist(product_id)
    except StoreError as e:
        raise _http_error(e)
    return _cart_view(store)


# checkout

@router.get("/checkout")
async def checkout_page(user: dict = Depends(current_user)):
    """Everything the checkout page needs: a prefilled form, the cart and its pricing."""
    store = CartStore(user["username"])
    view = _cart_view(store)
    return {
        "form": prefill_form(user),
        "cart": CartView(**view),
        "can_submit": bool(view["items"]),
    }


@router.post("/checkout/validate", response_model=ValidationResponse)
async def checkout_validate(draft: dict = Body(...), user: dict = Depends(current_user)):
    """Re-run the form rules on a draft. Called on every field change."""
    result = validate_form(draft)
    return {"valid": result.valid, "field_errors": result.field_errors}


@router.post("/checkout", response_model=CheckoutResponse, status_code=201)
async def checkout(draft: dict = Body(...), user: dict = Depends(current_user), idempotency_key: Optional[str] = Header(None)):
    """Place an order from the current cart and the submitted shipping/payment form.

    On success the cart is cleared and the response tells the client where to
    go next (`redirect`) and how long to wait (`redirect_delay`). Resubmitting
    with the same `Idempotency-Key` header never creates a second order.
    """
    username = user["username"]
    if username in _inflight_checkouts:
        raise HTTPException(status_code=409, detail="checkout already in progress")

    notices = []
    redirects = []
    orchestrator = CheckoutOrchestrator(
        cart=CartStore(username),
        create_order=LocalOrderClient(username),
        notify=lambda kind, message: notices.append({"kind": kind, "message": message}),
        navigate=redirects.append,
        redirect_delay=0,
        idempotency_key=idempotency_key,
    )
    _inflight_checkouts.add(username)
    try:
        order = await orchestrator.submit(draft)
    except StoreError as e:
        raise _http_error(e)
    finally:
        _inflight_checkouts.discard(username)

    return {
        "order": order,
        "redirect": redirects[-1] if redirects else None,
        "redirect_delay": utils.CHECKOUT_REDIRECT_DELAY,
        "notices": notices,
    }


# orders

@router.post("/orders", response_model=OrderOut, status_code=201)
async def create_order(payload: OrderPayload, user: dict = Depends(current_user), idempotency_key: Optional[str] = Header(None)):
    """Create an order from a payload. The total must match the items plus shipping."""
    data = utils.load_data()
    try:
        order = create_order_record(data, user, payload, idempotency_key)
    except StoreError as e:
        raise _http_error(e)
    utils.save_data(data)
    return order


@router.get("/orders/{order_id}", response_model=OrderOut)
async def get_order(order_id: str, user: dict = Depends(current_user)):
    data = utils.load_data()
    order = next((o for o in data.get("orders", []) if o.get("id") == order_id), None)
    if not order or order.get("username") != user["username"]:
        raise HTTPException(status_code=404, detail="order not found")
    return order
