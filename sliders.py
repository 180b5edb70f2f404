"""Home page sliders (banners)."""
from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from pymongo import ReturnDocument

from auth import require_admin
from database import create_document, get_db, get_documents, object_id, serialize, utcnow
from errors import NotFound
from schemas import Slider as SliderSchema

router = APIRouter(prefix="/api/sliders", tags=["sliders"])


class SliderCreate(BaseModel):
    title: str
    description: str
    image: str
    button_text: str
    button_link: str
    active: bool = True
    order: int = 0


class SliderUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    button_text: Optional[str] = None
    button_link: Optional[str] = None
    active: Optional[bool] = None
    order: Optional[int] = None


class SliderOrder(BaseModel):
    order: int


def _update(slider_id: str, changes: dict) -> dict:
    changes["updated_at"] = utcnow()
    slider = get_db()["slider"].find_one_and_update(
        {"_id": object_id(slider_id, "Slider")},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if not slider:
        raise NotFound("Slider not found")
    return serialize(slider)


@router.get("")
def list_sliders():
    return serialize(get_documents("slider", sort=[("order", 1), ("created_at", -1)]))


@router.get("/active")
def active_sliders():
    return serialize(get_documents("slider", {"active": True}, sort=[("order", 1)]))


@router.post("", status_code=201)
def create_slider(payload: SliderCreate, admin: dict = Depends(require_admin)):
    slider_id = create_document("slider", SliderSchema(**payload.model_dump()))
    return serialize(get_db()["slider"].find_one({"_id": ObjectId(slider_id)}))


@router.put("/{slider_id}")
def update_slider(slider_id: str, payload: SliderUpdate, admin: dict = Depends(require_admin)):
    return _update(slider_id, payload.model_dump(exclude_unset=True, exclude_none=True))


@router.patch("/{slider_id}/order")
def reorder_slider(slider_id: str, payload: SliderOrder, admin: dict = Depends(require_admin)):
    return _update(slider_id, {"order": payload.order})


@router.delete("/{slider_id}")
def delete_slider(slider_id: str, admin: dict = Depends(require_admin)):
    result = get_db()["slider"].delete_one({"_id": object_id(slider_id, "Slider")})
    if not result.deleted_count:
        raise NotFound("Slider not found")
    return {"detail": "Slider deleted successfully"}
