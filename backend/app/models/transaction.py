from sqlalchemy import Column, Integer, Numeric, String, DateTime, Date, JSON, ForeignKey
from app.db.db import Base
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import relationship
from datetime import datetime, date, UTC
from decimal import Decimal


def _utc_now_naive() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class TransactionRecord(Base):
    __tablename__ = "transactions"
    id = Column(Integer, primary_key=True, index=True)
    person_id = Column(Integer, ForeignKey("people.id", ondelete="CASCADE"), nullable=True)
    date = Column(Date, default=date.today, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    merchant = Column(String, nullable=False, default="")
    categories = Column(JSON, nullable=False, default=list)
    description = Column(String, nullable=False, default="")
    created_date = Column(DateTime, default=_utc_now_naive, nullable=False)

    person = relationship("Person", back_populates="transactions")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "person_id": self.person_id,
            "date": self.date.isoformat(),
            "amount": float(self.amount),
            "merchant": self.merchant or "",
            "categories": list(self.categories or []),
            "description": self.description or "",
        }


# Create Pydantic models for Transaction
class TransactionCreate(BaseModel):
    """Transaction creation request"""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
    person_id: int | None = Field(default=None, alias="personId")
    amount: Decimal
    merchant: str = ""
    categories: list[str] = Field(default_factory=list)
    description: str = ""
    transaction_date: date | None = Field(default=None, alias="date")  # YYYY-MM-DD, defaults to today if omitted

    @field_validator("amount")
    @classmethod
    def amount_positive(cls, v):
        if v <= 0:
            raise ValueError("amount must be greater than 0")
        return v

    @field_validator("merchant", "description")
    @classmethod
    def strip_text(cls, v):
        return v.strip()

    @field_validator("categories")
    @classmethod
    def normalize_categories(cls, v):
        labels = []
        for label in v:
            label = label.strip().lower()
            if label and label not in labels:
                labels.append(label)
        return labels

    @field_validator("transaction_date", mode="before")
    @classmethod
    def set_transaction_date(cls, v):
        return date.today() if v is None else v


class TransactionRequest(BaseModel):
    """Wrapper for API contract - POST/PUT body"""
    transaction: TransactionCreate

