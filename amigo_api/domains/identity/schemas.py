from pydantic import BaseModel, Field

from amigo_api.domains.users.schemas import UserOut


class RequestCodeIn(BaseModel):
    phone: str = Field(min_length=1)
    purpose: str | None = None


class RequestCodeOut(BaseModel):
    ok: bool = True
    message: str
    dev_hint_code: str


class VerifyIn(BaseModel):
    phone: str = Field(min_length=1)
    code: str = Field(min_length=1)
    nickname: str | None = None


class VerifyOut(BaseModel):
    token_type: str = "Bearer"
    access_token: str
    expires_in: int
    user: UserOut
