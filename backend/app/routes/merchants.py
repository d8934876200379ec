from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from app.dependencies.security import optional_person_id
from app.dependencies.services import get_merchant_service
from app.services.merchant_service import MerchantService

router = APIRouter(prefix="/api/v1/merchants", tags=["merchants"])


@router.get("")
def list_merchants(
    person_id: Optional[int] = Depends(optional_person_id),
    service: MerchantService = Depends(get_merchant_service),
) -> Dict[str, Any]:
    return {"merchants": service.list_merchants(person_id)}


@router.get("/{merchant}/category")
def get_most_common_category(
    merchant: str,
    person_id: Optional[int] = Depends(optional_person_id),
    service: MerchantService = Depends(get_merchant_service),
) -> Dict[str, Any]:
    """Category to prefill when the merchant is typed again; null if unknown."""
    return {"merchant": merchant, "category": service.most_common_category(person_id, merchant)}
