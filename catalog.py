"""
Catalog store: products and categories.

Product.stock has exactly two writers: the admin product edit below and the
order engine, which goes through take_stock / increment_stock.
"""
import re
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from auth import require_admin
from database import create_document, get_db, get_documents, object_id, serialize, utcnow
from errors import NotFound, ValidationError
from logging_config import get_logger
from schemas import Category as CategorySchema, Product as ProductSchema

logger = get_logger(__name__)

router = APIRouter(prefix="/api/products", tags=["products"])


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str
    price: float = Field(..., ge=0)
    image: str
    category: str
    stock: int = Field(0, ge=0)
    featured: bool = False


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    image: Optional[str] = None
    category: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    featured: Optional[bool] = None


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str


# Store operations used by carts and orders

def _oid(product_id) -> Optional[ObjectId]:
    if isinstance(product_id, ObjectId):
        return product_id
    try:
        return ObjectId(str(product_id))
    except (InvalidId, TypeError):
        return None


def find_product_by_id(product_id) -> Optional[dict]:
    oid = _oid(product_id)
    if oid is None:
        return None
    return get_db()["product"].find_one({"_id": oid})


def increment_stock(product_id, delta: int) -> Optional[dict]:
    """Atomic $inc on Product.stock; returns the updated product or None if it is gone."""
    oid = _oid(product_id)
    if oid is None:
        return None
    return get_db()["product"].find_one_and_update(
        {"_id": oid},
        {"$inc": {"stock": delta}, "$set": {"updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )


def take_stock(product_id, quantity: int) -> Optional[dict]:
    """Decrement stock only if at least `quantity` units remain.

    Check and decrement happen in one conditional update, so two concurrent
    buyers can never both take the last unit. Returns None when the product
    is missing or short.
    """
    oid = _oid(product_id)
    if oid is None:
        return None
    return get_db()["product"].find_one_and_update(
        {"_id": oid, "stock": {"$gte": quantity}},
        {"$inc": {"stock": -quantity}, "$set": {"updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )


# Products

@router.get("")
def list_products(category: Optional[str] = None, featured: Optional[str] = None, search: Optional[str] = None):
    query = {}
    if category and category != "all":
        query["category"] = category
    if featured == "true":
        query["featured"] = True
    if search:
        pattern = re.escape(search)
        query["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]
    return serialize(get_documents("product", query, sort=[("created_at", -1)]))


@router.get("/featured")
def featured_products():
    return serialize(get_documents("product", {"featured": True}, sort=[("created_at", -1)], limit=8))


@router.get("/categories/all")
def list_categories():
    return serialize(get_documents("category", sort=[("name", 1)]))


@router.post("/categories", status_code=201)
def create_category(payload: CategoryCreate, admin: dict = Depends(require_admin)):
    name = payload.name.strip()
    categories = get_db()["category"]
    if categories.find_one({"name": name}):
        raise ValidationError("Category already exists")
    try:
        category_id = create_document("category", CategorySchema(name=name, description=payload.description.strip()))
    except DuplicateKeyError:
        raise ValidationError("Category already exists")
    return serialize(categories.find_one({"_id": ObjectId(category_id)}))


@router.get("/{product_id}")
def get_product(product_id: str):
    product = find_product_by_id(product_id)
    if not product:
        raise NotFound("Product not found")
    return serialize(product)


@router.post("", status_code=201)
def create_product(payload: ProductCreate, admin: dict = Depends(require_admin)):
    product_id = create_document("product", ProductSchema(**payload.model_dump()))
    logger.info("product_created", product_id=product_id, stock=payload.stock)
    return serialize(find_product_by_id(product_id))


@router.put("/{product_id}")
def update_product(product_id: str, payload: ProductUpdate, admin: dict = Depends(require_admin)):
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    changes["updated_at"] = utcnow()
    product = get_db()["product"].find_one_and_update(
        {"_id": object_id(product_id, "Product")},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if not product:
        raise NotFound("Product not found")
    if "stock" in changes:
        logger.info("product_stock_set", product_id=product_id, stock=changes["stock"])
    return serialize(product)


@router.delete("/{product_id}")
def delete_product(product_id: str, admin: dict = Depends(require_admin)):
    result = get_db()["product"].delete_one({"_id": object_id(product_id, "Product")})
    if not result.deleted_count:
        raise NotFound("Product not found")
    return {"detail": "Product deleted successfully"}
