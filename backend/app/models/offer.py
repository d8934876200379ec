from sqlalchemy import Column, Integer, Numeric, String, DateTime, Date, Boolean, JSON, Enum as SAEnum, ForeignKey
from app.db.db import Base
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy.orm import relationship
from datetime import datetime, date, UTC
from enum import Enum as PyEnum
from decimal import Decimal


class OfferType(PyEnum):
    Spending = "spending"
    Transactions = "transactions"
    PercentBack = "percent-back"
    Combo = "combo"


def _utc_now_naive() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def _money(value) -> float | None:
    return float(value) if value is not None else None


class OfferRecord(Base):
    __tablename__ = "offers"
    id = Column(Integer, primary_key=True, index=True)
    person_id = Column(Integer, ForeignKey("people.id", ondelete="CASCADE"), nullable=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    type = Column(SAEnum(OfferType), nullable=False, default=OfferType.Spending)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    spending_target = Column(Numeric(10, 2), nullable=True)
    transaction_target = Column(Integer, nullable=True)
    min_transaction = Column(Numeric(10, 2), nullable=True)
    categories = Column(JSON, nullable=False, default=list)
    reward = Column(Numeric(10, 2), nullable=False, default=0)
    bonus_reward = Column(Numeric(10, 2), nullable=True)
    # list of {"threshold": float, "reward": float}
    tiers = Column(JSON, nullable=False, default=list)
    percent_back = Column(Numeric(5, 2), nullable=True)
    max_back = Column(Numeric(10, 2), nullable=True)
    min_spend_threshold = Column(Numeric(10, 2), nullable=True)
    monthly_tracking = Column(Boolean, default=False, nullable=False)
    created_date = Column(DateTime, default=_utc_now_naive, nullable=False)

    person = relationship("Person", back_populates="offers")

    def to_dict(self) -> dict:
        """Convert OfferRecord instance to the stored JSON record shape."""
        return {
            "id": self.id,
            "person_id": self.person_id,
            "name": self.name,
            "description": self.description or "",
            "type": self.type.value if self.type else None,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "spending_target": _money(self.spending_target),
            "transaction_target": self.transaction_target,
            "min_transaction": _money(self.min_transaction),
            "categories": list(self.categories or []),
            "reward": _money(self.reward) or 0.0,
            "bonus_reward": _money(self.bonus_reward),
            "tiers": list(self.tiers or []),
            "percent_back": _money(self.percent_back),
            "max_back": _money(self.max_back),
            "min_spend_threshold": _money(self.min_spend_threshold),
            "monthly_tracking": bool(self.monthly_tracking),
        }


# Pydantic Models for Request/Response Validation
class TierSchema(BaseModel):
    threshold: Decimal
    reward: Decimal

    @field_validator("threshold")
    @classmethod
    def threshold_positive(cls, v):
        if v <= 0:
            raise ValueError("threshold must be greater than 0")
        return v

    @field_validator("reward")
    @classmethod
    def reward_not_negative(cls, v):
        if v < 0:
            raise ValueError("reward must not be negative")
        return v


class OfferCreate(BaseModel):
    """Offer creation request"""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
    person_id: int | None = Field(default=None, alias="personId")
    name: str
    description: str = ""
    type: OfferType = OfferType.Spending
    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")
    spending_target: Decimal | None = Field(default=None, alias="spendingTarget")
    transaction_target: int | None = Field(default=None, alias="transactionTarget")
    min_transaction: Decimal | None = Field(default=None, alias="minTransaction")
    categories: list[str] = Field(default_factory=list)
    reward: Decimal = Decimal("0")
    bonus_reward: Decimal | None = Field(default=None, alias="bonusReward")
    tiers: list[TierSchema] = Field(default_factory=list)
    percent_back: Decimal | None = Field(default=None, alias="percentBack")
    max_back: Decimal | None = Field(default=None, alias="maxBack")
    min_spend_threshold: Decimal | None = Field(default=None, alias="minSpendThreshold")
    monthly_tracking: bool = Field(default=False, alias="monthlyTracking")

    @field_validator("name")
    @classmethod
    def name_required(cls, v):
        if not v or len(v.strip()) == 0:
            raise ValueError("name is required")
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

    @field_validator("spending_target", "min_transaction", "bonus_reward", "percent_back", "max_back")
    @classmethod
    def amount_positive(cls, v, info):
        if v is not None and v <= 0:
            raise ValueError(f"{info.field_name} must be greater than 0")
        return v

    @field_validator("transaction_target")
    @classmethod
    def count_positive(cls, v):
        if v is not None and v <= 0:
            raise ValueError("transaction_target must be greater than 0")
        return v

    @field_validator("reward", "min_spend_threshold")
    @classmethod
    def amount_not_negative(cls, v, info):
        if v is not None and v < 0:
            raise ValueError(f"{info.field_name} must not be negative")
        return v

    @field_validator("tiers")
    @classmethod
    def sort_tiers(cls, v):
        return sorted(v, key=lambda t: t.threshold)

    @model_validator(mode="after")
    def window_ordered(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self

    def to_record_fields(self) -> dict:
        """Column values for OfferRecord (JSON columns hold plain floats)."""
        fields = self.model_dump(exclude={"tiers"})
        fields["tiers"] = [
            {"threshold": float(t.threshold), "reward": float(t.reward)} for t in self.tiers
        ]
        return fields


class OfferRequest(BaseModel):
    """Wrapper for API contract - POST/PUT body"""
    offer: OfferCreate

