import datetime
import logging
from typing import Optional

import httpx

import utils
from errors import OrderClientError, OrderRejectedError
from models import OrderPayload
from pricing import shipping_for

logger = logging.getLogger(__name__)


def _line_signature(items) -> list:
    return sorted((i["product_id"], i.get("variant") or "", i["quantity"]) for i in items)


def create_order_record(data: dict, user: dict, payload: OrderPayload, idempotency_key: Optional[str] = None) -> dict:
    """Persist an order built from ``payload`` into ``data`` (caller saves).

    A key already used by this user returns the order it created, provided
    the payload carries the same lines and total; a different payload under a
    spent key is rejected. Item prices must match the catalog and the total
    must match catalog pricing plus shipping.
    """
    username = user["username"]
    orders = data.setdefault("orders", [])
    if idempotency_key:
        existing = next((o for o in orders if o.get("username") == username and o.get("idempotency_key") == idempotency_key), None)
        if existing:
            same_lines = _line_signature(existing["items"]) == _line_signature(i.model_dump() for i in payload.items)
            if not same_lines or abs(existing["total"] - payload.total) > 0.005:
                raise OrderRejectedError(f"idempotency key {idempotency_key} was already used for a different order")
            logger.info("replayed order %s for key %s", existing["id"], idempotency_key)
            return existing

    if not payload.items:
        raise OrderRejectedError("order has no items")
    for item in payload.items:
        product = utils.find_product(data, item.product_id)
        if not product:
            raise OrderRejectedError(f"product {item.product_id} not found")
        if abs(product["price"] - item.price) > 0.005:
            raise OrderRejectedError(f"price {item.price} for product {item.product_id} does not match catalog ({product['price']})")
    subtotal = round(sum(i.price * i.quantity for i in payload.items), 2)
    shipping = shipping_for(subtotal)
    total = round(subtotal + shipping, 2)
    if abs(total - payload.total) > 0.005:
        raise OrderRejectedError(f"total {payload.total} does not match items ({total})")

    order_id = f"order-{username}-{len(orders) + 1}"
    order = {
        "id": order_id,
        "username": username,
        "items": [i.model_dump() for i in payload.items],
        "shipping_address": payload.shipping_address.model_dump(),
        "payment_method": payload.payment_method.value,
        "subtotal": subtotal,
        "shipping": shipping,
        "total": total,
        "status": payload.status,
        "created_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "idempotency_key": idempotency_key,
    }
    orders.append(order)

    record = data["users"][username]
    record["orders_count"] = record.get("orders_count", 0) + 1
    record["total_spent"] = round(record.get("total_spent", 0.0) + total, 2)
    logger.info("created order %s for %s (total %.2f)", order_id, username, total)
    return order


class LocalOrderClient:
    """Order-creation collaborator that writes straight to the data store."""

    def __init__(self, username: str):
        self.username = username

    async def __call__(self, payload: OrderPayload, idempotency_key: Optional[str] = None) -> dict:
        try:
            data = utils.load_data()
            user = data["users"][self.username]
            order = create_order_record(data, user, payload, idempotency_key)
            utils.save_data(data)
        except (OrderRejectedError, KeyError, OSError) as e:
            raise OrderClientError(str(e)) from e
        return order


class HttpOrderClient:
    """Order-creation collaborator that POSTs to a storefront's ``/orders`` endpoint."""

    def __init__(self, base_url: str, token: str, timeout: float = utils.ORDER_TIMEOUT_SECONDS, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url
        self.token = token
        self.timeout = timeout
        self.transport = transport

    async def __call__(self, payload: OrderPayload, idempotency_key: Optional[str] = None) -> dict:
        headers = {"X-Token": self.token}
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            try:
                resp = await client.post("/orders", json=payload.model_dump(mode="json"), headers=headers)
            except httpx.HTTPError as e:
                raise OrderClientError(f"order request failed: {e}") from e
        if resp.is_error:
            try:
                body = resp.json()
                detail = body.get("detail") if isinstance(body, dict) else body
            except ValueError:
                detail = resp.text
            raise OrderClientError(f"order rejected ({resp.status_code}): {detail}")
        return resp.json()
