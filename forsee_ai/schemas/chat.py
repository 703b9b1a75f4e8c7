"""
Schemas for the /api/chat endpoint.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ChatTurn(BaseModel):
    """
    One prior turn of the conversation.

    Either 'content' or provider-style 'parts' ([{"text": ...}]) carries the text.
    """
    role: str = Field(..., description="'user', or 'assistant'/'model' for replies")
    content: Optional[str] = None
    parts: Optional[List[Dict[str, Any]]] = None


class ChatRequest(BaseModel):
    """Request body for /api/chat."""
    message: str
    history: Optional[List[ChatTurn]] = None


class ChatResponse(BaseModel):
    """Response model for the /api/chat endpoint."""
    response: str = Field(..., description="Model reply text")
