"""
Pydantic schemas for request/response validation.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant"]


class ChatTurn(BaseModel):
    """A single turn in the conversation sent by the client."""
    role: Role
    content: str


class ChatBody(BaseModel):
    """Request body for a streamed chat turn."""
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId", description="Owner identity")
    messages: List[ChatTurn] = Field(..., min_length=1, description="Conversation so far, oldest first")
    images: Optional[List[str]] = Field(None, description="Image data URLs attached to the last user turn")


class IngestResult(BaseModel):
    """Outcome of one upload."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    is_image: bool = Field(False, alias="isImage")
    file_name: str = Field(..., alias="fileName")
    file_type: str = Field(..., alias="fileType")
    data_url: Optional[str] = Field(None, alias="base64")
    document_id: Optional[str] = Field(None, alias="documentId")
    total_chunks: int = Field(0, alias="totalChunks")
    success_count: int = Field(0, alias="successCount")
    fail_count: int = Field(0, alias="failCount")
    warning_count: int = Field(0, alias="warningCount")
    extracted_text: Optional[str] = Field(None, alias="extractedText")
