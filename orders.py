"""
Order lifecycle: checkout, status changes and stock reconciliation.

An order is created from the caller's cart in status ``pending`` and moves
between pending, processing, shipped, delivered and cancelled. Product.stock
always reflects the units held by orders that are not cancelled:

* checkout takes stock for every line (all lines or none),
* moving an order into ``cancelled`` gives the stock back,
* a cancelled order is frozen, except for an explicit admin reactivation,
  which takes the stock again (all lines or none) before leaving
  ``cancelled``.

Stock is taken with a conditional update (``stock >= quantity``) so check
and decrement cannot be split by a concurrent request. Status changes are
claimed with a compare-and-swap on the current status; only the request that
wins the swap applies stock side effects.
"""
import math
from datetime import timedelta
from enum import Enum
from typing import Dict, List, Optional

from pymongo import ReturnDocument

from auth import is_admin
from carts import clear_cart, get_cart
from catalog import find_product_by_id, increment_stock, take_stock
from config import ORDER_RETENTION_DAYS
from database import create_document, get_db, object_id, serialize, utcnow
from errors import (
    ConcurrentModification,
    Forbidden,
    InsufficientStock,
    NotFound,
    TerminalStateViolation,
    ValidationError,
)
from logging_config import get_logger
from schemas import Order as OrderSchema, OrderItem

logger = get_logger(__name__)

PENDING = "pending"
PROCESSING = "processing"
SHIPPED = "shipped"
DELIVERED = "delivered"
CANCELLED = "cancelled"

STATUSES = (PENDING, PROCESSING, SHIPPED, DELIVERED, CANCELLED)

DEFAULT_PAYMENT_METHOD = "cash_on_delivery"


class StockEffect(Enum):
    NONE = "none"
    RESTORE = "restore"
    RESERVE = "reserve"
    REJECT = "reject"


# (order is cancelled, target is cancelled) -> stock side effect
TRANSITIONS = {
    (False, False): StockEffect.NONE,
    (False, True): StockEffect.RESTORE,
    (True, False): StockEffect.RESERVE,
    (True, True): StockEffect.REJECT,
}


def plan_transition(current: str, target: str, reactivate: bool = False) -> StockEffect:
    """Look up the stock effect of moving from `current` to `target`.

    Leaving ``cancelled`` is only allowed when the caller asks for a
    reactivation explicitly.
    """
    if target not in STATUSES:
        raise ValidationError("Invalid status")
    effect = TRANSITIONS[(current == CANCELLED, target == CANCELLED)]
    if effect is StockEffect.REJECT:
        raise TerminalStateViolation()
    if effect is StockEffect.RESERVE and not reactivate:
        raise TerminalStateViolation()
    return effect


# Stock

def reserve_lines(lines: List[dict]) -> None:
    """Take stock for every line, or for none of them."""
    taken = []
    for line in lines:
        if take_stock(line["product_id"], line["quantity"]) is not None:
            taken.append(line)
            continue
        release_lines(taken)
        product = find_product_by_id(line["product_id"])
        if product is None:
            raise NotFound(f"Product {line.get('name', line['product_id'])} not found")
        raise InsufficientStock(product.get("name"), product.get("stock", 0), line["quantity"])


def release_lines(lines: List[dict]) -> None:
    for line in lines:
        if increment_stock(line["product_id"], line["quantity"]) is None:
            # Deleted products have nothing to give stock back to
            logger.warning("stock_restore_skipped", product_id=line["product_id"], quantity=line["quantity"])


# Presentation

def _user_summary(user_id: str, cache: Dict[str, Optional[dict]]) -> Optional[dict]:
    if user_id not in cache:
        doc = None
        try:
            doc = get_db()["user"].find_one({"_id": object_id(user_id)})
        except NotFound:
            pass
        cache[user_id] = {"id": str(doc["_id"]), "username": doc.get("username"), "email": doc.get("email")} if doc else None
    return cache[user_id]


def present(order: dict, cache: Optional[Dict[str, Optional[dict]]] = None) -> dict:
    """Serialize an order with its owner resolved for display."""
    data = serialize(order)
    data["user"] = _user_summary(order["user_id"], cache if cache is not None else {})
    return data


def _load(order_id: str) -> dict:
    order = get_db()["order"].find_one({"_id": object_id(order_id, "Order")})
    if not order:
        raise NotFound("Order not found")
    return order


# Commands

def create_order(user: dict, shipping_address: str, payment_method: Optional[str] = None) -> dict:
    if not shipping_address or not str(shipping_address).strip():
        raise ValidationError("Shipping address is required")

    cart = get_cart(user["id"])
    if not cart or not cart.get("items"):
        raise ValidationError("Cart is empty")

    lines = []
    for item in cart["items"]:
        product = find_product_by_id(item["product_id"])
        if not product:
            raise NotFound(f"Product {item['product_id']} not found")
        lines.append(
            OrderItem(
                product_id=str(product["_id"]),
                quantity=int(item["quantity"]),
                price=float(product.get("price", 0)),
                name=product.get("name"),
            ).model_dump()
        )

    total = sum(line["price"] * line["quantity"] for line in lines)

    reserve_lines(lines)
    order = OrderSchema(
        user_id=user["id"],
        items=lines,
        total=total,
        shipping_address=str(shipping_address).strip(),
        payment_method=payment_method or DEFAULT_PAYMENT_METHOD,
    )
    try:
        order_id = create_document("order", order)
    except Exception:
        release_lines(lines)
        raise

    clear_cart(user["id"])
    logger.info("order_created", order_id=order_id, user_id=user["id"], total=total, lines=len(lines))
    return present(_load(order_id))


def transition_status(order: dict, new_status: str, reactivate: bool = False) -> dict:
    """Move a loaded order to `new_status`, applying the stock effect of the move."""
    effect = plan_transition(order["status"], new_status, reactivate=reactivate)
    items = order.get("items", [])

    if effect is StockEffect.RESERVE:
        reserve_lines(items)

    updated = get_db()["order"].find_one_and_update(
        {"_id": order["_id"], "status": order["status"]},
        {"$set": {"status": new_status, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        if effect is StockEffect.RESERVE:
            release_lines(items)
        raise ConcurrentModification()

    if effect is StockEffect.RESTORE:
        release_lines(items)

    logger.info(
        "order_status_changed",
        order_id=str(order["_id"]),
        previous=order["status"],
        status=new_status,
        stock_effect=effect.value,
    )
    return updated


def cancel_order(order_id: str, user: dict) -> dict:
    """Owner cancellation, only while the order is still pending."""
    order = _load(order_id)
    if order["user_id"] != user["id"]:
        raise Forbidden()
    if order["status"] == CANCELLED:
        raise TerminalStateViolation("Order is already cancelled")
    if order["status"] != PENDING:
        raise ValidationError("Order cannot be cancelled at this stage")
    return present(transition_status(order, CANCELLED))


def admin_cancel_order(order_id: str) -> dict:
    order = _load(order_id)
    if order["status"] == DELIVERED:
        raise ValidationError("Cannot cancel a delivered order")
    if order["status"] == CANCELLED:
        raise TerminalStateViolation("Order is already cancelled")
    return present(transition_status(order, CANCELLED))


def update_order_status(order_id: str, new_status: str, reactivate: bool = False) -> dict:
    if new_status not in STATUSES:
        raise ValidationError("Invalid status")
    return present(transition_status(_load(order_id), new_status, reactivate=reactivate))


# Queries

def get_order(order_id: str, user: dict) -> dict:
    order = _load(order_id)
    if order["user_id"] != user["id"] and not is_admin(user):
        raise Forbidden()
    return present(order)


def list_user_orders(user_id: str) -> List[dict]:
    cache = {}
    cursor = get_db()["order"].find({"user_id": user_id}).sort([("created_at", -1), ("_id", -1)])
    return [present(o, cache) for o in cursor]


def list_orders(status: Optional[str] = None, page: int = 1, limit: int = 10) -> dict:
    query = {}
    if status and status != "all":
        if status not in STATUSES:
            raise ValidationError("Invalid status")
        query["status"] = status
    orders = get_db()["order"]
    total = orders.count_documents(query)
    cursor = orders.find(query).sort([("created_at", -1), ("_id", -1)]).skip((page - 1) * limit).limit(limit)
    cache = {}
    return {
        "orders": [present(o, cache) for o in cursor],
        "total_pages": math.ceil(total / limit),
        "current_page": page,
        "total": total,
    }


def order_stats() -> dict:
    orders = get_db()["order"]
    revenue = list(orders.aggregate([
        {"$match": {"status": {"$ne": CANCELLED}}},
        {"$group": {"_id": None, "total": {"$sum": "$total"}}},
    ]))
    cache = {}
    recent = orders.find().sort([("created_at", -1), ("_id", -1)]).limit(5)
    return {
        "total_orders": orders.count_documents({}),
        "pending_orders": orders.count_documents({"status": PENDING}),
        "total_revenue": revenue[0]["total"] if revenue else 0,
        "recent_orders": [present(o, cache) for o in recent],
    }


def sweep_cancelled_orders(now=None, retention_days: int = ORDER_RETENTION_DAYS) -> int:
    """Delete cancelled orders untouched for longer than the retention window."""
    cutoff = (now or utcnow()) - timedelta(days=retention_days)
    result = get_db()["order"].delete_many({"status": CANCELLED, "updated_at": {"$lt": cutoff}})
    logger.info("cancelled_orders_swept", deleted=result.deleted_count, cutoff=cutoff.isoformat())
    return result.deleted_count
