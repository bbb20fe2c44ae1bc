import logging
from typing import List, Optional

import utils
from errors import CartLineNotFoundError, InvalidQuantityError, UnknownProductError, UnknownVariantError
from models import CartItem, PricingResult, Product
from pricing import compute_pricing

logger = logging.getLogger(__name__)


def _same_line(line: dict, product_id: int, variant: Optional[str]) -> bool:
    return line.get("product_id") == product_id and line.get("variant") == variant


class CartStore:
    """Cart of a single user, persisted on the user's record in the data store.

    Stored lines only carry product_id, quantity and variant. Prices are
    resolved from the catalog whenever the cart is read.
    """

    def __init__(self, username: str):
        self.username = username

    def _load(self):
        data = utils.load_data()
        user = data.get("users", {}).get(self.username)
        if user is None:
            raise KeyError(f"unknown user {self.username}")
        return data, user.setdefault("cart", [])

    def _save(self, data, cart):
        data["users"][self.username]["cart"] = cart
        utils.save_data(data)

    def items(self) -> List[CartItem]:
        data, cart = self._load()
        lines = []
        for line in cart:
            product = utils.find_product(data, line["product_id"])
            if not product: # product was removed from the catalog
                continue
            lines.append(CartItem(
                product_id=product["id"],
                quantity=line["quantity"],
                variant=line.get("variant"),
                unit_price=product["price"],
                name=product["name"],
                image=product.get("image"),
            ))
        return lines

    def count(self) -> int:
        return sum(item.quantity for item in self.items())

    def is_empty(self) -> bool:
        return not self.items()

    def pricing(self) -> PricingResult:
        return compute_pricing(self.items())

    def add(self, product_id: int, quantity: int = 1, variant: Optional[str] = None) -> List[dict]:
        """Add a product to the cart, merging quantity into an existing (product, variant) line."""
        if quantity <= 0:
            raise InvalidQuantityError(quantity)
        data, cart = self._load()
        product = utils.find_product(data, product_id)
        if not product:
            raise UnknownProductError(product_id)
        variants = product.get("variants") or []
        if variant is not None and variant not in variants:
            raise UnknownVariantError(product_id, variant)

        existing = next((line for line in cart if _same_line(line, product_id, variant)), None)
        if existing:
            existing["quantity"] += quantity
        else:
            cart.append({"product_id": product_id, "quantity": quantity, "variant": variant})
        self._save(data, cart)
        return cart

    def update(self, product_id: int, quantity: int, variant: Optional[str] = None) -> List[dict]:
        """Set the quantity of a line. A quantity of 0 removes it."""
        if quantity < 0:
            raise InvalidQuantityError(quantity)
        data, cart = self._load()
        existing = next((line for line in cart if _same_line(line, product_id, variant)), None)
        if existing is None:
            raise CartLineNotFoundError(product_id, variant)
        if quantity == 0:
            cart.remove(existing)
        else:
            existing["quantity"] = quantity
        self._save(data, cart)
        return cart

    def remove(self, product_id: int, variant: Optional[str] = None) -> List[dict]:
        data, cart = self._load()
        remaining = [line for line in cart if not _same_line(line, product_id, variant)]
        if len(remaining) == len(cart):
            raise CartLineNotFoundError(product_id, variant)
        self._save(data, remaining)
        return remaining

    def clear(self) -> None:
        data, _ = self._load()
        self._save(data, [])
        logger.info("cleared cart for %s", self.username)

    def move_from_wishlist(self, product_id: int) -> List[dict]:
        wishlist = WishlistStore(self.username)
        if product_id not in wishlist.product_ids():
            raise UnknownProductError(product_id)
        cart = self.add(product_id, 1)
        wishlist.remove(product_id)
        return cart


class WishlistStore:
    def __init__(self, username: str):
        self.username = username

    def _load(self):
        data = utils.load_data()
        user = data.get("users", {}).get(self.username)
        if user is None:
            raise KeyError(f"unknown user {self.username}")
        return data, user.setdefault("wishlist", [])

    def product_ids(self) -> List[int]:
        _, wishlist = self._load()
        return list(wishlist)

    def products(self) -> List[Product]:
        data, wishlist = self._load()
        found = (utils.find_product(data, pid) for pid in wishlist)
        return [Product(**p) for p in found if p]

    def add(self, product_id: int) -> List[int]:
        data, wishlist = self._load()
        if not utils.find_product(data, product_id):
            raise UnknownProductError(product_id)
        if product_id not in wishlist:
            wishlist.append(product_id)
            utils.save_data(data)
        return wishlist

    def remove(self, product_id: int) -> List[int]:
        data, wishlist = self._load()
        if product_id in wishlist:
            wishlist.remove(product_id)
            utils.save_data(data)
        return wishlist
