"""Remote methods exposed by the livechat plugin."""

from typing import Any

from livedesk.utils.methods import MethodContext, methods

from .repository import CustomFieldRepository, RoomRepository, VisitorRepository
from .service import LivechatService


def build_livechat_service(ctx: MethodContext) -> LivechatService:
    db = ctx.database
    return LivechatService(
        CustomFieldRepository(db["livechat_custom_field"]),
        RoomRepository(db["rooms"]),
        VisitorRepository(db["livechat_visitor"]),
    )


@methods.method("livechat:setCustomField")
async def set_custom_field(
    ctx: MethodContext, token: str, key: str, value: Any, overwrite: bool = True
) -> bool:
    return await build_livechat_service(ctx).set_custom_field(
        token, key, value, overwrite
    )
