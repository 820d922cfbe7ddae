from pydantic import BaseModel, EmailStr

class User(BaseModel):
    """Identity of the caller, taken from the auth backend's access token"""
    id: str
    email: EmailStr
