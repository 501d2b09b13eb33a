"""Pydantic schemas for messages, the inbox and the email composer."""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional

DEFAULT_CONTENT = "<p>Hi,</p>"


class SenderInfo(BaseModel):
    name: str
    username: str
    role: str


class MessageRead(BaseModel):
    id: int
    sender_id: int
    subject: str
    content: str
    is_read: bool = False
    recipient_email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    sender: Optional[SenderInfo] = None


class Recipient(BaseModel):
    id: int
    header: str
    email: str


class ComposeForm(BaseModel):
    subject: Optional[str] = None
    content: Optional[str] = None
    recipient_email: Optional[str] = None


class ComposerState(BaseModel):
    subject: str
    content: str
    recipient_email: str
    recipients: list[Recipient]
    loading: bool
    sending: bool
    recipient_field_available: bool
