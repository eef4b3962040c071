from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.notep_api.models import CONTENT_MAX_LENGTH, ID_MAX, TITLE_MAX_LENGTH


# Users

class UserCredentials(BaseModel):
    """Request model for signup and login"""
    email: str = Field(..., description="User email, stored exactly as given")
    password: str = Field(..., description="Plaintext password")


class UserResponse(BaseModel):
    """Account id returned after signup or login"""
    id: int


# Notes

class NoteRequest(BaseModel):
    """Create or update note request; the owner id travels with every call"""
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[int] = Field(None, alias="userId", ge=1, le=ID_MAX, description="Owning account id")
    title: str = Field(..., max_length=TITLE_MAX_LENGTH)
    content: str = Field("", max_length=CONTENT_MAX_LENGTH, description="Note content")


class NoteResponse(BaseModel):
    """Note response model"""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    user_id: int = Field(..., alias="userId")
    title: str
    content: str
    timestamp: int = Field(..., description="Last write, milliseconds since the epoch")


class MessageResponse(BaseModel):
    message: str
