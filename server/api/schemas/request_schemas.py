"""API request schemas"""
from pydantic import BaseModel, Field, field_validator


class MenuSelectionRequest(BaseModel):
    value: str = Field(..., min_length=1, max_length=64)


class TextInputRequest(BaseModel):
    text: str = Field(..., max_length=2000)

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text must not be empty")
        return v


class OptionSelectionRequest(BaseModel):
    # Multi-select prompts send comma-joined values, e.g. "1,3"
    value: str = Field(..., min_length=1, max_length=256)
