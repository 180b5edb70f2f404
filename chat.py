"""
Support chat and contact form messages.

Messages are grouped by conversation_id: a signed-in user's id, guest-<email>
for guest chats, or contact-<email>-<ms> for each contact form submission.
"""
import re
import time
from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from auth import get_current_user, is_admin, require_admin
from database import create_document, get_db, get_documents, serialize
from errors import Forbidden, ValidationError
from schemas import ContactFormData, Message as MessageSchema

router = APIRouter(prefix="/api/chat", tags=["chat"])

email_regex = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class SendMessage(BaseModel):
    text: Optional[str] = None
    conversation_id: Optional[str] = None
    is_admin_reply: bool = False


class GuestMessage(BaseModel):
    text: Optional[str] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    is_contact_form: bool = False
    subject: Optional[str] = None


def _save(message: MessageSchema) -> dict:
    message_id = create_document("message", message)
    return serialize(get_db()["message"].find_one({"_id": ObjectId(message_id)}))


def conversations() -> list:
    """Latest message and message count per conversation, most recent first."""
    summary = {}
    for msg in get_documents("message", sort=[("created_at", -1), ("_id", -1)]):
        cid = msg["conversation_id"]
        if cid not in summary:
            summary[cid] = {"conversation_id": cid, "last_message": serialize(msg), "message_count": 0}
        summary[cid]["message_count"] += 1
    return list(summary.values())


@router.get("/conversations")
def list_conversations(admin: dict = Depends(require_admin)):
    return conversations()


@router.get("/conversation/{conversation_id}")
def conversation_messages(conversation_id: str, user: dict = Depends(get_current_user)):
    messages = get_documents("message", {"conversation_id": conversation_id}, sort=[("created_at", 1), ("_id", 1)])
    if messages:
        first = messages[0]
        participant = first["sender_id"] == user["id"] or conversation_id == user["id"] or is_admin(user)
        if not participant:
            raise Forbidden()
    return serialize(messages)


@router.post("/message", status_code=201)
def send_message(body: SendMessage, user: dict = Depends(get_current_user)):
    if not body.text or not body.text.strip():
        raise ValidationError("Message text is required")
    message = MessageSchema(
        text=body.text.strip(),
        sender_id=user["id"],
        sender_email=user["email"],
        sender_name=user["username"],
        is_admin=body.is_admin_reply or is_admin(user),
        conversation_id=body.conversation_id or user["id"],
    )
    return _save(message)


@router.post("/guest-message", status_code=201)
def send_guest_message(body: GuestMessage):
    if not body.text or not body.text.strip() or not body.guest_name or not body.guest_email:
        raise ValidationError("All fields are required")
    if not email_regex.match(body.guest_email):
        raise ValidationError("Invalid email format")

    text = body.text.strip()
    if body.is_contact_form:
        conversation_id = f"contact-{body.guest_email}-{int(time.time() * 1000)}"
    else:
        conversation_id = f"guest-{body.guest_email}"

    contact_form_data = None
    if body.is_contact_form and body.subject:
        contact_form_data = ContactFormData(subject=body.subject, original_message=text)
        # Shorter preview line for the admin inbox
        text = f"Contact: {body.subject}"

    message = MessageSchema(
        text=text,
        sender_id="guest",
        sender_email=body.guest_email,
        sender_name=body.guest_name,
        conversation_id=conversation_id,
        message_type="contact_form" if body.is_contact_form else "chat",
        contact_form_data=contact_form_data,
    )
    return _save(message)


@router.get("/guest-conversation/{email}")
def guest_conversation(email: str):
    query = {"$or": [
        {"conversation_id": f"guest-{email}"},
        {"sender_email": email, "message_type": "contact_form"},
    ]}
    return serialize(get_documents("message", query, sort=[("created_at", 1), ("_id", 1)]))


@router.delete("/conversation/{conversation_id}")
def delete_conversation(conversation_id: str, admin: dict = Depends(require_admin)):
    result = get_db()["message"].delete_many({"conversation_id": conversation_id})
    return {"detail": "Conversation deleted successfully", "deleted_count": result.deleted_count}
