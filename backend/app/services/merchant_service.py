from collections import Counter
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.transaction import TransactionRecord


class MerchantService:
    """Merchant autocomplete support derived from the ledger."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _rows(self, person_id: Optional[int]) -> List[TransactionRecord]:
        query = self.db.query(TransactionRecord)
        if person_id is not None:
            query = query.filter(TransactionRecord.person_id == person_id)
        return query.all()

    def list_merchants(self, person_id: Optional[int]) -> List[str]:
        """Unique merchant names (case-insensitive), first spelling kept, sorted."""
        seen = {}
        for row in self._rows(person_id):
            name = (row.merchant or "").strip()
            if name and name.lower() not in seen:
                seen[name.lower()] = name
        return sorted(seen.values(), key=str.lower)

    def most_common_category(self, person_id: Optional[int], merchant: str) -> Optional[str]:
        """
        Category most often recorded for the merchant, or None.
        Ties go to the alphabetically first category.
        """
        wanted = merchant.strip().lower()
        counts = Counter()
        for row in self._rows(person_id):
            if (row.merchant or "").strip().lower() == wanted:
                counts.update(row.categories or [])
        if not counts:
            return None
        return min(counts, key=lambda category: (-counts[category], category))
