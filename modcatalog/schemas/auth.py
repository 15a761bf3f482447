from pydantic import BaseModel, Field, field_validator

from ..core.validation import is_valid_email, is_valid_username

class UserCreate(BaseModel):
    username: str
    password: str = Field(..., min_length=6, max_length=50)
    email: str

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str) -> str:
        if not is_valid_username(value):
            raise ValueError(
                "Username may only contain letters, digits, underscores and Chinese characters, 2-20 long"
            )
        return value

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        if not is_valid_email(value):
            raise ValueError("Invalid email address")
        return value

class UserLogin(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1, max_length=50)

class AdminLogin(UserLogin):
    pass

class UserResponse(BaseModel):
    id: int
    username: str
    email: str

class UserWithToken(UserResponse):
    token: str

class AuthResponse(BaseModel):
    message: str
    user: UserWithToken

class VerifyResponse(BaseModel):
    user: UserResponse

class AdminWithToken(BaseModel):
    id: int
    username: str
    token: str

class AdminAuthResponse(BaseModel):
    message: str
    admin: AdminWithToken
