from pydantic import BaseModel, ConfigDict, Field

ROOM_SCOPE = "room"
VISITOR_SCOPE = "visitor"


class CustomField(BaseModel):
    """A livechat custom field definition, keyed by its field name."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., alias="_id")
    scope: str = VISITOR_SCOPE
    label: str | None = None
    visibility: str | None = None
    regexp: str | None = None
