from pydantic import BaseModel


class TokenPayload(BaseModel):
    sub: str  # external_id of the user
    exp: int
    iat: int | None = None
