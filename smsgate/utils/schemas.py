"""Pydantic models for the HTTP surfaces of both processes."""
from typing import List, Optional

from pydantic import BaseModel


class SmsRequestModel(BaseModel):
    # Optional so that missing fields reach SendRequest validation and get a 400
    phoneNumber: Optional[str] = None
    message: Optional[str] = None


class SmsResponseModel(BaseModel):
    result: str


class MessageWithStatusModel(BaseModel):
    message: str
    status: str


class UserMessagesModel(BaseModel):
    user_id: str
    messages: List[MessageWithStatusModel]
    count: int


class BlocklistEntryModel(BaseModel):
    phoneNumber: str
    blocked: bool
