# receivables/models/customers.py

from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class CustomerOut(BaseModel):
    id: int
    company_name: str
    aliases: List[str] = Field(default_factory=list)
    business_number: Optional[str] = None
    representative_name: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True

    def names(self) -> List[str]:
        """Company name followed by aliases, blanks dropped."""
        return [n for n in [self.company_name, *self.aliases] if n]


class CustomerCreate(BaseModel):
    company_name: str = Field(..., min_length=1)
    aliases: List[str] = Field(default_factory=list)
    business_number: Optional[str] = None
    representative_name: Optional[str] = None
    address: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    notes: Optional[str] = None


class AliasIn(BaseModel):
    alias: str = Field(..., min_length=1)


class CustomerSuggestion(BaseModel):
    id: int
    company_name: str
    matched_name: str
