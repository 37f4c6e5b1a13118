"""Pydantic request schemas for API endpoints."""
from pydantic import BaseModel, StrictStr, field_validator


class AskRequest(BaseModel):
    message: StrictStr

    class Config:
        # Front-ends send extra fields (player name, locale); they are ignored.
        extra = "ignore"

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be blank")
        return value
