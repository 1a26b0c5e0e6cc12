from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts the client's camelCase keys as well as snake_case names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageSendRequest(CamelModel):
    """Request schema for sending a direct message."""
    from_user: Optional[str] = None
    to_user: Optional[str] = None
    message: Optional[str] = None


class MarkReadRequest(CamelModel):
    """Request schema for marking a conversation as read."""
    username: Optional[str] = None
    other_user: Optional[str] = None


class UsernameRequest(CamelModel):
    """Body carrying the acting username for ownership checks."""
    username: Optional[str] = None
