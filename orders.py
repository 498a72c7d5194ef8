"""
Orders: checkout, admin listing, status changes and stats.

Line items are snapshotted into the order row as JSON at checkout time so
later product edits do not rewrite order history.
"""

import json
import logging
import secrets
import string
import time
import uuid
from datetime import datetime
from typing import Any, List, Optional

from database import PopulateDirective, RecordStore
from errors import NotFoundError, ValidationError
from notifications import Mailer, notify_new_order
from schemas import Checkout, OrderStatusUpdate
from shopping import clear_cart

logger = logging.getLogger(__name__)

STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
WITH_USER = [PopulateDirective(field="user_id", table="users", alias="user")]

_BASE36 = string.digits + string.ascii_uppercase


def generate_order_number() -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


def decode_items(raw: Any) -> List[dict]:
    if isinstance(raw, list):
        return raw
    if not raw:
        return []
    try:
        items = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Could not parse order_items: %r", raw)
        return []
    return items if isinstance(items, list) else []


def format_date(value: Any) -> Optional[str]:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, datetime):
        return value.strftime("%b %d, %Y, %I:%M %p")
    return None


def summarize_order(order: dict) -> dict:
    """Flatten an order row into what the admin / account tables display."""
    items = decode_items(order.get("order_items"))
    return {
        "id": order["order_number"],
        "customer": order["customer_name"],
        "email": order["customer_email"],
        "products": ", ".join(str(i.get("productName")) for i in items) if items else "No products",
        "total": f"${float(order.get('total_amount') or 0):.2f}",
        "status": (order.get("status") or "").capitalize(),
        "date": format_date(order.get("created_at")),
        "payment": (order.get("payment_status") or "").capitalize(),
        "orderData": order,
    }


def create_order(store: RecordStore, checkout: Checkout, mailer: Optional[Mailer] = None) -> dict:
    items = []
    total_amount = 0.0
    for line in checkout.cart:
        product = store.fetch_one("products", line.productId)
        if not product:
            raise NotFoundError(f"Product not found: {line.productId}")
        price = float(product.get("price") or 0)
        line_total = price * line.quantity
        total_amount += line_total
        items.append({
            "productId": line.productId,
            "productName": product["name"],
            "quantity": line.quantity,
            "price": price,
            "total": line_total,
            "productDetails": product.get("details"),
            "productImage": product.get("image"),
        })

    order_id = str(uuid.uuid4())
    order = {
        "id": order_id,
        "user_id": checkout.userId,
        "order_number": generate_order_number(),
        "customer_name": f"{checkout.firstName} {checkout.lastName}",
        "customer_email": checkout.email,
        "customer_phone": checkout.phoneNumber,
        "shipping_address": checkout.address,
        "apartment": checkout.apartment,
        "street": checkout.street,
        "city": checkout.city,
        "state": checkout.state,
        "total_amount": round(total_amount, 2),
        "status": "pending",
        "payment_status": "pending",
        "order_items": json.dumps(items),
        "notes": "Order created from cart checkout",
    }
    store.create("orders", order)
    clear_cart(store, checkout.userId)
    logger.info("Order %s created for user %s", order["order_number"], checkout.userId)

    if mailer is not None:
        notify_new_order(mailer, order, items)

    return {"orderId": order_id, "orderNumber": order["order_number"], "totalAmount": order["total_amount"]}


def list_orders(store: RecordStore) -> List[dict]:
    orders = store.fetch_many("orders", populate=WITH_USER, order_by="created_at DESC")
    for o in orders:
        if o.get("user"):
            o["user"].pop("password", None)
    return [summarize_order(o) for o in orders]


def list_user_orders(store: RecordStore, user_id: str) -> List[dict]:
    orders = store.fetch_many("orders", {"user_id": user_id}, order_by="created_at DESC")
    return [summarize_order(o) for o in orders]


def get_order(store: RecordStore, order_number: str, user_id: Optional[str] = None) -> dict:
    lookup = {"order_number": order_number}
    if user_id is not None:
        lookup["user_id"] = user_id
    order = store.fetch_one("orders", lookup)
    if not order:
        raise NotFoundError("Order not found")
    order["order_items"] = decode_items(order.get("order_items"))
    return order


def update_order_status(store: RecordStore, order_number: str, payload: OrderStatusUpdate) -> None:
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise ValidationError("Nothing to update: give status and/or payment_status")
    if not store.update_live("orders", {"order_number": order_number}, changes):
        raise NotFoundError("Order not found")
    logger.info("Order %s updated: %s", order_number, changes)


def order_stats(store: RecordStore) -> dict:
    orders = store.fetch_many("orders")
    stats = {
        "totalOrders": len(orders),
        "totalSales": round(sum(float(o.get("total_amount") or 0) for o in orders), 2),
    }
    for status in STATUSES:
        stats[f"{status}Orders"] = sum(1 for o in orders if o.get("status") == status)
    return stats
