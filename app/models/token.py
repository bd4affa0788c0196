# app/models/token.py
from pydantic import BaseModel

from app.models.user import User


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AuthResponse(Token):
    user: User.Response
