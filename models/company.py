from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

from models.flight import format_tail_number

class CompanyBase(BaseModel):
    name: str = Field(..., min_length=1)
    contact: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None

class Company(CompanyBase):
    id: str = Field(alias="_id")
    created_by: str
    created_at: datetime
    updated_at: datetime

    class Config:
        populate_by_name = True

class CompanyTailCreate(BaseModel):
    tail_number: str = Field(..., min_length=1)

    @field_validator("tail_number")
    @classmethod
    def _tail_upper(cls, v):
        v = format_tail_number(v)
        if not v:
            raise ValueError("Tail number is required")
        return v

class CompanyTail(BaseModel):
    id: str = Field(alias="_id")
    company_id: str
    tail_number: str
    created_at: datetime

    class Config:
        populate_by_name = True

class CompanySave(CompanyBase):
    """Company fields plus the full list of registered tails"""
    tails: List[str] = Field(default_factory=list)


COMPANIES_INDEXES = [
    {
        "keys": [("name", 1)],
        "name": "companies_name"
    },
    {
        "keys": [("created_by", 1)],
        "name": "companies_created_by"
    }
]

COMPANY_TAILS_INDEXES = [
    {
        "keys": [("company_id", 1), ("tail_number", 1)],
        "unique": True,
        "name": "company_tail_unique"
    },
    {
        "keys": [("tail_number", 1)],
        "name": "company_tails_tail_number"
    }
]
