from pydantic import BaseModel


class TokenPayload(BaseModel):
    sub: str  # profile id
    email: str | None = None
    exp: int
    type: str = "access"
