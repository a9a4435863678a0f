# ticketing/schemas/token.py
from pydantic import BaseModel

from ticketing.schemas.user import UserRole


class TokenPayload(BaseModel):
    sub: str  # "sub" is the standard claim for subject (user ID)
    role: UserRole
    exp: int  # Standard claim for expiration time

    model_config = {"use_enum_values": True}
