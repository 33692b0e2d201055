"""
Pydantic models for model output validation
"""
from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from enum import Enum


class PatchAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class FilePatch(BaseModel):
    """A proposed file-level change awaiting human review"""
    file: str = Field(..., min_length=1)
    action: PatchAction
    content: Optional[str] = None

    @model_validator(mode="after")
    def _content_matches_action(self):
        if self.action == PatchAction.DELETE:
            self.content = None
        elif self.content is None:
            raise ValueError(f"content is required for {self.action.value} on {self.file}")
        return self

    @property
    def size_bytes(self) -> int:
        return len(self.content.encode("utf-8")) if self.content else 0


class ModelResponse(BaseModel):
    """One-shot model answer: reasoning plus the patches it proposes"""
    reasoning: str = ""
    patches: List[FilePatch] = Field(default_factory=list)
