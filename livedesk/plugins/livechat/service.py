from typing import Any

from structlog import get_logger

from .models import ROOM_SCOPE
from .repository import CustomFieldRepository, RoomRepository, VisitorRepository

logger = get_logger(__name__)


class LivechatService:
    def __init__(
        self,
        custom_fields: CustomFieldRepository,
        rooms: RoomRepository,
        visitors: VisitorRepository,
    ):
        self.custom_fields = custom_fields
        self.rooms = rooms
        self.visitors = visitors

    async def set_custom_field(
        self, token: str, key: str, value: Any, overwrite: bool = True
    ) -> bool:
        """
        Stores a custom field value on the visitor's open room or on the
        visitor, depending on the field's scope. Unknown keys are accepted
        and ignored.
        """
        custom_field = await self.custom_fields.find_by_id(key)
        if not custom_field:
            logger.debug("Ignoring unknown livechat custom field", key=key)
            return True

        if custom_field.scope == ROOM_SCOPE:
            return await self.rooms.update_livechat_data_by_token(
                token, key, value, overwrite
            )
        return await self.visitors.update_livechat_data_by_token(
            token, key, value, overwrite
        )
