from pydantic import BaseModel


class LoginRequest(BaseModel):
    username: str
    password: str
    auto_login: bool = False


class LoginResponse(BaseModel):
    token: str


class CurrentUserResponse(BaseModel):
    name: str
