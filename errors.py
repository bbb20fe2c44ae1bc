from typing import Dict


class StoreError(Exception):
    """Base class for storefront domain errors."""


# cart

class UnknownProductError(StoreError):
    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"product {product_id} not found")


class UnknownVariantError(StoreError):
    def __init__(self, product_id: int, variant: str):
        self.product_id = product_id
        self.variant = variant
        super().__init__(f"product {product_id} has no variant {variant!r}")


class InvalidQuantityError(StoreError):
    def __init__(self, quantity: int):
        self.quantity = quantity
        super().__init__("quantity must be > 0")


class CartLineNotFoundError(StoreError):
    def __init__(self, product_id: int, variant=None):
        self.product_id = product_id
        self.variant = variant
        super().__init__(f"product {product_id} is not in the cart")


# checkout

class CheckoutError(StoreError):
    pass


class EmptyCartError(CheckoutError):
    def __init__(self):
        super().__init__("cart is empty")


class FormValidationError(CheckoutError):
    def __init__(self, field_errors: Dict[str, str]):
        self.field_errors = field_errors
        super().__init__(f"invalid fields: {', '.join(sorted(field_errors))}")


class OrderSubmissionError(CheckoutError):
    pass


class SubmissionInProgressError(CheckoutError):
    def __init__(self):
        super().__init__("an order submission is already in progress")


# orders

class OrderClientError(StoreError):
    """Raised by an order-creation collaborator when the order was not acknowledged."""


class OrderRejectedError(StoreError):
    pass
