"""
Receipt assignment API endpoints
"""
from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from hearth.api.deps import get_current_user, get_db
from hearth.application.household_access import HouseholdAuthorizationService
from hearth.application.receipts import (
    AssignReceiptItemsUseCase,
    GetReceiptAssignmentsQuery,
    ItemAssignmentRequest,
    ReceiptAssignmentResult,
    resolve_rates,
)
from hearth.domain.apportionment import MemberShare
from hearth.domain.errors import NotFoundError
from hearth.infrastructure.db.models import User
from hearth.infrastructure.repositories.receipts import ReceiptRepository
from hearth.utils.validation import validate_rate


router = APIRouter(prefix="/api/v1/receipts", tags=["receipts"])


# === Request/Response models ===

class MemberShareRequest(BaseModel):
    member_id: int
    quantity: Decimal = Decimal("1")


class ItemAssignmentBody(BaseModel):
    item_id: int
    assignments: list[MemberShareRequest]


class AssignReceiptRequest(BaseModel):
    service_charge_rate: str | None = None  # fraction, e.g. "0.10"
    tax_rate: str | None = None  # GST fraction, e.g. "0.09"
    apply_service_charge: bool = False  # use the standard rate when no explicit rate
    apply_gst: bool = False
    items: list[ItemAssignmentBody]

    @field_validator("service_charge_rate", "tax_rate")
    @classmethod
    def validate_rates(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return str(validate_rate(v))


class AllocationResponse(BaseModel):
    member_id: int
    assigned_quantity: str
    base_amount: str
    service_charge_amount: str
    gst_amount: str
    total_amount: str


class ItemAllocationsResponse(BaseModel):
    item_id: int
    item_name: str
    quantity: int
    total_price: str
    allocations: list[AllocationResponse]


class MemberTotalResponse(BaseModel):
    member_id: int
    base_amount: str
    service_charge_amount: str
    gst_amount: str
    total_amount: str
    item_ids: list[int]


class ReceiptAssignmentsResponse(BaseModel):
    receipt_id: int
    household_id: int
    status: str
    total_amount: str
    items: list[ItemAllocationsResponse]
    member_totals: list[MemberTotalResponse]


# === Helpers ===

def _authorize_receipt(db: Session, receipt_id: int, user: User) -> None:
    """404 for an unknown receipt, 403 when the user is not in its household"""
    receipt = ReceiptRepository(db).get_receipt(receipt_id)
    if receipt is None:
        raise NotFoundError(f"Receipt {receipt_id} not found")
    HouseholdAuthorizationService(db).ensure_member(user.id, receipt.household_id)


def _to_response(result: ReceiptAssignmentResult) -> ReceiptAssignmentsResponse:
    return ReceiptAssignmentsResponse(
        receipt_id=result.receipt_id,
        household_id=result.household_id,
        status=result.status,
        total_amount=str(result.total_amount),
        items=[
            ItemAllocationsResponse(
                item_id=entry.item_id,
                item_name=entry.item_name,
                quantity=entry.quantity,
                total_price=str(entry.total_price),
                allocations=[
                    AllocationResponse(
                        member_id=a.member_id,
                        assigned_quantity=str(a.assigned_quantity),
                        base_amount=str(a.base_amount),
                        service_charge_amount=str(a.service_charge_amount),
                        gst_amount=str(a.gst_amount),
                        total_amount=str(a.total_amount),
                    )
                    for a in entry.allocations
                ],
            )
            for entry in result.items
        ],
        member_totals=[
            MemberTotalResponse(
                member_id=t.member_id,
                base_amount=str(t.base_amount),
                service_charge_amount=str(t.service_charge_amount),
                gst_amount=str(t.gst_amount),
                total_amount=str(t.total_amount),
                item_ids=t.item_ids,
            )
            for t in result.member_totals
        ],
    )


# === Endpoints ===

@router.post("/{receipt_id}/assignments", response_model=ReceiptAssignmentsResponse)
def assign_receipt_items(
    receipt_id: int,
    req: AssignReceiptRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Split receipt items between household members"""
    _authorize_receipt(db, receipt_id, user)

    service_charge_rate, tax_rate = resolve_rates(
        service_charge_rate=req.service_charge_rate,
        tax_rate=req.tax_rate,
        apply_service_charge=req.apply_service_charge,
        apply_gst=req.apply_gst,
    )
    item_assignments = [
        ItemAssignmentRequest(
            item_id=item.item_id,
            shares=[MemberShare(member_id=s.member_id, assigned_quantity=s.quantity) for s in item.assignments],
        )
        for item in req.items
    ]

    result = AssignReceiptItemsUseCase(db).execute(
        receipt_id=receipt_id,
        item_assignments=item_assignments,
        service_charge_rate=service_charge_rate,
        tax_rate=tax_rate,
        actor_user_id=user.id,
    )
    return _to_response(result)


@router.get("/{receipt_id}/assignments", response_model=ReceiptAssignmentsResponse)
def get_receipt_assignments(
    receipt_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Items of a receipt with their stored allocations"""
    _authorize_receipt(db, receipt_id, user)
    return _to_response(GetReceiptAssignmentsQuery(db).execute(receipt_id))
