from sqlalchemy import Column, Integer, String, DateTime
from app.db.db import Base
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy.orm import relationship
from datetime import datetime, UTC


def _utc_now_naive() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class Person(Base):
    __tablename__ = "people"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    created_date = Column(DateTime, default=_utc_now_naive, nullable=False)

    # Offers and transactions belong to a person; deleting the person removes them
    offers = relationship("OfferRecord", back_populates="person", cascade="all, delete-orphan")
    transactions = relationship("TransactionRecord", back_populates="person", cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        """Convert Person instance to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "created_date": self.created_date.isoformat() if self.created_date else None,
        }


# Pydantic Models for Request/Response Validation
class PersonCreate(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    name: str

    @field_validator("name")
    @classmethod
    def name_required(cls, v):
        if not v or len(v.strip()) == 0:
            raise ValueError("name is required")
        return v.strip()

