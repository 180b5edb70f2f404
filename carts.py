from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from auth import get_current_user
from catalog import find_product_by_id
from database import create_document, get_db, utcnow
from errors import NotFound
from schemas import Cart as CartSchema

router = APIRouter(prefix="/api/cart", tags=["cart"])


class AddToCart(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)


class UpdateQuantity(BaseModel):
    quantity: int = Field(..., ge=1)


def get_cart(user_id: str) -> Optional[dict]:
    return get_db()["cart"].find_one({"user_id": user_id})


def clear_cart(user_id: str) -> None:
    get_db()["cart"].update_one({"user_id": user_id}, {"$set": {"items": [], "updated_at": utcnow()}})


def _set_items(cart: dict, items: list) -> None:
    get_db()["cart"].update_one({"_id": cart["_id"]}, {"$set": {"items": items, "updated_at": utcnow()}})


def cart_view(user_id: str) -> dict:
    """Cart lines joined with current product data; lines whose product vanished are skipped."""
    cart = get_cart(user_id)
    if not cart:
        return {"items": [], "total": 0}
    items = []
    total = 0.0
    for it in cart.get("items", []):
        prod = find_product_by_id(it["product_id"])
        if not prod:
            continue
        price = float(prod.get("price", 0))
        quantity = int(it.get("quantity", 1))
        subtotal = price * quantity
        total += subtotal
        items.append({
            "product_id": str(prod["_id"]),
            "name": prod.get("name"),
            "image": prod.get("image"),
            "price": price,
            "stock": prod.get("stock", 0),
            "quantity": quantity,
            "subtotal": subtotal,
        })
    return {"items": items, "total": total}


@router.get("")
def read_cart(user: dict = Depends(get_current_user)):
    return cart_view(user["id"])


@router.post("/add")
def add_to_cart(payload: AddToCart, user: dict = Depends(get_current_user)):
    uid = user["id"]
    pid = payload.product_id
    if not find_product_by_id(pid):
        raise NotFound("Product not found")
    cart = get_cart(uid)
    if not cart:
        create_document("cart", CartSchema(user_id=uid, items=[{"product_id": pid, "quantity": payload.quantity}]))
    else:
        items = cart.get("items", [])
        for it in items:
            if it["product_id"] == pid:
                it["quantity"] += payload.quantity
                break
        else:
            items.append({"product_id": pid, "quantity": payload.quantity})
        _set_items(cart, items)
    return cart_view(uid)


@router.put("/items/{product_id}")
def update_cart_item(product_id: str, payload: UpdateQuantity, user: dict = Depends(get_current_user)):
    cart = get_cart(user["id"])
    items = cart.get("items", []) if cart else []
    line = next((it for it in items if it["product_id"] == product_id), None)
    if line is None:
        raise NotFound("Item not found in cart")
    line["quantity"] = payload.quantity
    _set_items(cart, items)
    return cart_view(user["id"])


@router.delete("/items/{product_id}")
def remove_cart_item(product_id: str, user: dict = Depends(get_current_user)):
    cart = get_cart(user["id"])
    items = cart.get("items", []) if cart else []
    remaining = [it for it in items if it["product_id"] != product_id]
    if len(remaining) == len(items):
        raise NotFound("Item not found in cart")
    _set_items(cart, remaining)
    return cart_view(user["id"])


@router.delete("")
def empty_cart(user: dict = Depends(get_current_user)):
    clear_cart(user["id"])
    return {"items": [], "total": 0}
