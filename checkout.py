"""Order submission for the checkout page.

A :class:`CheckoutOrchestrator` lives for one checkout session. It checks the
cart and the form, builds the order payload, hands it to an order-creation
collaborator and, once the order is acknowledged and the cart cleared, sends
the shopper to their account page.

Collaborators are injected:

- ``cart``: has ``items()``, ``pricing()`` and ``clear()``. ``clear`` may be a
  coroutine function.
- ``create_order``: ``async (payload, idempotency_key) -> order``. It raises
  on failure.
- ``notify``: ``(kind, message)``, where kind is one of success, warning or
  error.
- ``navigate``: ``(path)``.
"""

import asyncio
import inspect
import logging
import uuid
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from errors import EmptyCartError, FormValidationError, OrderSubmissionError, SubmissionInProgressError
from models import CartItem, CustomerForm, OrderItem, OrderPayload, PricingResult
from pricing import compute_pricing
from validation import validate_form

logger = logging.getLogger(__name__)

ACCOUNT_PATH = "/account"
DEFAULT_REDIRECT_DELAY = 2.0

Notifier = Callable[[str, str], None]
Navigator = Callable[[str], None]


class CheckoutState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def build_order_payload(items: List[CartItem], form: CustomerForm, pricing: PricingResult) -> OrderPayload:
    return OrderPayload(
        total=pricing.total,
        status="pending",
        shipping_address=form.shipping_address(),
        payment_method=form.payment_method,
        items=[
            OrderItem(
                product_id=item.product_id,
                name=item.name,
                price=item.unit_price,
                quantity=item.quantity,
                variant=item.variant,
                image=item.image,
            )
            for item in items
        ],
    )


class CheckoutOrchestrator:
    def __init__(
        self,
        cart,
        create_order: Callable[..., Awaitable],
        notify: Notifier,
        navigate: Navigator,
        redirect_delay: float = DEFAULT_REDIRECT_DELAY,
        sleep: Callable[[float], Awaitable] = asyncio.sleep,
        idempotency_key: Optional[str] = None,
    ):
        self.cart = cart
        self.create_order = create_order
        self.notify = notify
        self.navigate = navigate
        self.redirect_delay = redirect_delay
        self.sleep = sleep
        # One key per session, reused on retries until an order is acknowledged.
        self.idempotency_key = idempotency_key or uuid.uuid4().hex
        self.state = CheckoutState.IDLE
        self.order = None
        self.last_error: Optional[Exception] = None

    @property
    def can_submit(self) -> bool:
        return self.state is CheckoutState.IDLE and bool(self.cart.items())

    def _transition(self, state: CheckoutState):
        logger.debug("checkout %s: %s -> %s", self.idempotency_key, self.state.value, state.value)
        self.state = state

    async def submit(self, draft: dict):
        """Submit the cart with the given form draft.

        Raises EmptyCartError or FormValidationError before any order call,
        OrderSubmissionError when the order could not be placed, and
        SubmissionInProgressError while a previous submit is still running.
        """
        if self.state is CheckoutState.SUBMITTING:
            raise SubmissionInProgressError()

        items = self.cart.items()
        if not items:
            self.notify("warning", "Your cart is empty. Add some products before checking out.")
            raise EmptyCartError()

        result = validate_form(draft)
        if not result.valid:
            self.notify("error", "Please correct the highlighted fields.")
            raise FormValidationError(result.field_errors)

        self._transition(CheckoutState.SUBMITTING)
        try:
            payload = build_order_payload(items, result.form, compute_pricing(items))
            order = await self.create_order(payload, self.idempotency_key)
            cleared = self.cart.clear()
            if inspect.isawaitable(cleared):
                await cleared
        except Exception as e:
            self.last_error = e
            self._transition(CheckoutState.FAILED)
            logger.warning("order submission failed: %s", e)
            self.notify("error", "We couldn't place your order. Please try again.")
            self._transition(CheckoutState.IDLE)
            raise OrderSubmissionError(str(e)) from e

        self.order = order
        self.last_error = None
        self._transition(CheckoutState.SUCCEEDED)
        # the acknowledged key is spent; a later cart gets a fresh one
        self.idempotency_key = uuid.uuid4().hex
        self.notify("success", "Order placed successfully!")
        await self.sleep(self.redirect_delay)
        self.navigate(ACCOUNT_PATH)
        return order
