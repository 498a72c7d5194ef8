import logging
import uuid
from typing import List

from database import PopulateDirective, RecordStore
from errors import ConflictError, NotFoundError, ValidationError
from schemas import CartItemIn, WishlistItemIn

logger = logging.getLogger(__name__)

WITH_PRODUCT = [PopulateDirective(field="product_id", table="products", alias="product")]


def _require_product(store: RecordStore, product_id: str) -> dict:
    product = store.fetch_one("products", product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


# Cart

def add_to_cart(store: RecordStore, user_id: str, item: CartItemIn) -> None:
    _require_product(store, item.product_id)
    key = {"user_id": user_id, "product_id": item.product_id}
    line = store.fetch_one("cart", key)
    if line:
        store.update_live("cart", line["id"], {"quantity": line["quantity"] + item.quantity})
    else:
        store.create("cart", {"id": str(uuid.uuid4()), **key, "quantity": item.quantity})


def get_cart(store: RecordStore, user_id: str) -> List[dict]:
    return store.fetch_many("cart", {"user_id": user_id}, populate=WITH_PRODUCT)


def update_cart_item(store: RecordStore, user_id: str, item: CartItemIn) -> None:
    key = {"user_id": user_id, "product_id": item.product_id}
    if not store.update_live("cart", key, {"quantity": item.quantity}):
        raise NotFoundError("Product not found in cart")


def remove_from_cart(store: RecordStore, user_id: str, product_id: str) -> bool:
    return store.soft_delete_one("cart", {"user_id": user_id, "product_id": product_id})


def clear_cart(store: RecordStore, user_id: str) -> bool:
    lines = store.fetch_many("cart", {"user_id": user_id})
    return store.soft_delete_many("cart", [line["id"] for line in lines])


# Wishlist

def add_to_wishlist(store: RecordStore, user_id: str, item: WishlistItemIn) -> None:
    _require_product(store, item.product_id)
    key = {"user_id": user_id, "product_id": item.product_id}
    if store.fetch_one("wishlist", key):
        raise ConflictError("Product already in wishlist")
    store.create("wishlist", {
        "id": str(uuid.uuid4()),
        **key,
        "note": item.note,
        "priority": item.priority,
    })


def get_wishlist(store: RecordStore, user_id: str) -> List[dict]:
    return store.fetch_many("wishlist", {"user_id": user_id}, populate=WITH_PRODUCT)


def update_wishlist_item(store: RecordStore, user_id: str, item: WishlistItemIn) -> None:
    changes = item.model_dump(include={"note", "priority"}, exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")
    key = {"user_id": user_id, "product_id": item.product_id}
    if not store.update_live("wishlist", key, changes):
        raise NotFoundError("Product not found in wishlist")


def remove_from_wishlist(store: RecordStore, user_id: str, product_id: str) -> bool:
    return store.soft_delete_one("wishlist", {"user_id": user_id, "product_id": product_id})
