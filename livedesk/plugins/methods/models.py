from typing import Any

from pydantic import BaseModel, Field


class MethodCallRequest(BaseModel):
    params: list[Any] = Field(default_factory=list)
    id: str | None = Field(None, description="Echoed back to correlate responses.")

    class Config:
        json_schema_extra = {
            "example": {
                "id": "1",
                "params": ["visitor-token", "company", "Acme", True],
            }
        }
