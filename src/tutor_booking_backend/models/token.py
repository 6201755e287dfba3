'''
Token API Models
'''
from pydantic import BaseModel, EmailStr
from datetime import datetime

from ..database.db_enums import UserRole


class Token(BaseModel):
    access_token: str
    token_type: str
    role: UserRole
    expires_in: int  # seconds


class TokenPayload(BaseModel):
    sub: EmailStr  # the user's email
    role: str
    exp: datetime
