"""
Receipt assignment use cases - split receipt items between household members

Process (one transaction):
1. Load the receipt, the referenced items and members (row locks)
2. Apportion every item (validation happens before any write)
3. Replace each item's assignment rows (delete, then insert)
4. Move each member's expenditure by (new aggregate - previous aggregate)
   of the replaced items, so re-sending the same split changes nothing
5. Confirm the receipt; after commit publish ReceiptScanned the first time

Authorization (is the caller in the receipt's household?) is checked by
HouseholdAuthorizationService before this use case runs.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Sequence

from sqlalchemy.orm import Session

from hearth.application.event_dispatch import EventDispatcher, get_dispatcher
from hearth.application.expenditure import record_expenditure
from hearth.config import Settings, get_settings
from hearth.domain.apportionment import (
    Allocation,
    ItemLine,
    MemberShare,
    MemberTotals,
    aggregate_by_member,
    apportion,
)
from hearth.domain.errors import NotFoundError, ValidationError
from hearth.domain.events import ReceiptScanned
from hearth.domain.receipt import RECEIPT_STATUS_CONFIRMED
from hearth.infrastructure.db.concurrency import run_with_optimistic_retry
from hearth.infrastructure.db.models import Receipt, ReceiptItemAssignment
from hearth.infrastructure.repositories.members import HouseholdMemberRepository
from hearth.infrastructure.repositories.receipts import ReceiptRepository
from hearth.utils.clock import local_tz, utcnow
from hearth.utils.money import ZERO, format_money, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemAssignmentRequest:
    """How one receipt item is split: (member, quantity) shares."""
    item_id: int
    shares: Sequence[MemberShare]


@dataclass
class ItemAllocations:
    item_id: int
    item_name: str
    quantity: int
    total_price: Decimal
    allocations: list[Allocation] = field(default_factory=list)


@dataclass
class ReceiptAssignmentResult:
    receipt_id: int
    household_id: int
    status: str
    items: list[ItemAllocations]
    member_totals: list[MemberTotals]
    newly_confirmed: bool = False

    @property
    def total_amount(self) -> Decimal:
        return sum((t.total_amount for t in self.member_totals), ZERO)


def resolve_rates(
    service_charge_rate=None,
    tax_rate=None,
    apply_service_charge: bool = False,
    apply_gst: bool = False,
    settings: Settings | None = None,
) -> tuple[Decimal, Decimal]:
    """
    Pick the rates for an assignment

    An explicit rate wins; otherwise the flag selects the configured standard
    rate (DEFAULT_SERVICE_CHARGE_RATE / DEFAULT_GST_RATE); otherwise 0.
    """
    settings = settings or get_settings()
    if service_charge_rate is not None:
        sc_rate = to_decimal(service_charge_rate)
    elif apply_service_charge:
        sc_rate = to_decimal(settings.DEFAULT_SERVICE_CHARGE_RATE)
    else:
        sc_rate = Decimal("0")

    if tax_rate is not None:
        gst_rate = to_decimal(tax_rate)
    elif apply_gst:
        gst_rate = to_decimal(settings.DEFAULT_GST_RATE)
    else:
        gst_rate = Decimal("0")

    if sc_rate < 0 or gst_rate < 0:
        raise ValidationError("Service charge and tax rates cannot be negative")
    return sc_rate, gst_rate


class AssignReceiptItemsUseCase:
    """
    Use case: assign receipt items to household members

    Re-assignment is idempotent with respect to member expenditure: the
    previously recorded aggregate of the replaced items is subtracted before
    the new one is added.
    """

    def __init__(self, db: Session, dispatcher: EventDispatcher | None = None,
                 settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.dispatcher = dispatcher or get_dispatcher()
        self.receipts = ReceiptRepository(db)
        self.members = HouseholdMemberRepository(db)

    def execute(
        self,
        receipt_id: int,
        item_assignments: Sequence[ItemAssignmentRequest],
        service_charge_rate=Decimal("0"),
        tax_rate=Decimal("0"),
        actor_user_id: int | None = None,
        now: datetime | None = None,
    ) -> ReceiptAssignmentResult:
        """
        Assign items and update member expenditure

        Args:
            receipt_id: receipt ID
            item_assignments: per-item shares; items not listed keep their
                current assignments
            service_charge_rate: fraction, e.g. Decimal("0.10")
            tax_rate: GST fraction, charged on base + service charge
            actor_user_id: who assigns (logged only)
            now: timestamp override (tests)

        Returns:
            ReceiptAssignmentResult with per-item allocations and per-member
            totals of the items in this call

        Raises:
            NotFoundError: receipt, item or member not found (or not in the
                receipt's household)
            ValidationError: empty request, duplicate item, invalid shares
        """
        now = now or utcnow()
        if not item_assignments:
            raise ValidationError("No item assignments given")
        item_ids = [request.item_id for request in item_assignments]
        if len(set(item_ids)) != len(item_ids):
            raise ValidationError("Each receipt item can appear only once per assignment")

        sc_rate = to_decimal(service_charge_rate)
        gst_rate = to_decimal(tax_rate)

        result = run_with_optimistic_retry(
            self.db,
            lambda: self._assign(receipt_id, item_assignments, sc_rate, gst_rate, now),
            description=f"receipt {receipt_id} assignment",
        )

        logger.info(
            "Receipt %d: %d item(s) assigned to %d member(s), total %s (by user %s)",
            receipt_id, len(result.items), len(result.member_totals),
            format_money(result.total_amount), actor_user_id,
        )

        if result.newly_confirmed:
            receipt = self.receipts.get_receipt(receipt_id)
            self.dispatcher.publish(
                self.db, ReceiptScanned(user_id=receipt.user_id, household_id=receipt.household_id)
            )

        return result

    def _assign(self, receipt_id: int, item_assignments: Sequence[ItemAssignmentRequest],
                sc_rate: Decimal, gst_rate: Decimal, now: datetime) -> ReceiptAssignmentResult:
        receipt = self.receipts.get_receipt(receipt_id, for_update=True)
        if receipt is None:
            raise NotFoundError(f"Receipt {receipt_id} not found")

        item_ids = [request.item_id for request in item_assignments]
        items = self.receipts.get_items(receipt.id, item_ids)
        missing_items = [item_id for item_id in item_ids if item_id not in items]
        if missing_items:
            raise NotFoundError(f"Receipt items not found on receipt {receipt_id}: {missing_items}")

        previous: dict[int, Decimal] = defaultdict(lambda: ZERO)
        for row in self.receipts.list_assignments(item_ids):
            previous[row.household_member_id] += to_decimal(row.total_amount)

        requested_members = {share.member_id for request in item_assignments for share in request.shares}
        members = self._load_members(receipt, requested_members, set(previous))

        # Compute everything first: a ValidationError leaves nothing written
        computed: list[ItemAllocations] = []
        for request in item_assignments:
            item = items[request.item_id]
            allocations = apportion(
                ItemLine(quantity=item.quantity, total_price=to_decimal(item.total_price), item_id=item.id),
                request.shares,
                sc_rate,
                gst_rate,
            )
            computed.append(ItemAllocations(
                item_id=item.id,
                item_name=item.item_name,
                quantity=item.quantity,
                total_price=item.total_price,
                allocations=allocations,
            ))

        self.receipts.delete_assignments(item_ids)
        self.receipts.add_assignments([
            ReceiptItemAssignment(
                receipt_item_id=entry.item_id,
                household_member_id=allocation.member_id,
                assigned_quantity=allocation.assigned_quantity,
                base_amount=allocation.base_amount,
                service_charge_amount=allocation.service_charge_amount,
                gst_amount=allocation.gst_amount,
                total_amount=allocation.total_amount,
                created_at=now,
            )
            for entry in computed
            for allocation in entry.allocations
        ])

        totals = aggregate_by_member((entry.item_id, entry.allocations) for entry in computed)
        tz = local_tz(self.settings.TIMEZONE)
        for member_id in sorted(set(totals) | set(previous)):
            new_amount = totals[member_id].total_amount if member_id in totals else ZERO
            delta = new_amount - previous[member_id]
            if delta == 0 and member_id not in totals:
                continue
            record_expenditure(members[member_id], delta, new_amount, now, tz)

        newly_confirmed = receipt.status != RECEIPT_STATUS_CONFIRMED
        receipt.status = RECEIPT_STATUS_CONFIRMED
        receipt.updated_at = now
        self.db.flush()

        return ReceiptAssignmentResult(
            receipt_id=receipt.id,
            household_id=receipt.household_id,
            status=receipt.status,
            items=computed,
            member_totals=list(totals.values()),
            newly_confirmed=newly_confirmed,
        )

    def _load_members(self, receipt: Receipt, member_ids: set[int], previous_ids: set[int]):
        """
        Lock the requested members and the holders of replaced allocations
        in one ID-ordered query; only the requested ones are validated.
        """
        members = self.members.get_many(member_ids | previous_ids, for_update=True)
        missing = sorted(
            member_id for member_id in member_ids
            if member_id not in members or members[member_id].household_id != receipt.household_id
        )
        if missing:
            raise NotFoundError(
                f"Household members not found in household {receipt.household_id}: {missing}"
            )
        return members


class GetReceiptAssignmentsQuery:
    """Read back a receipt's items, stored allocations and per-member totals"""

    def __init__(self, db: Session):
        self.db = db
        self.receipts = ReceiptRepository(db)

    def execute(self, receipt_id: int) -> ReceiptAssignmentResult:
        receipt = self.receipts.get_receipt(receipt_id)
        if receipt is None:
            raise NotFoundError(f"Receipt {receipt_id} not found")

        items = self.receipts.list_items(receipt.id)
        rows_by_item: dict[int, list[Allocation]] = defaultdict(list)
        for row in self.receipts.list_assignments([item.id for item in items]):
            rows_by_item[row.receipt_item_id].append(Allocation(
                member_id=row.household_member_id,
                assigned_quantity=to_decimal(row.assigned_quantity),
                base_amount=to_decimal(row.base_amount),
                service_charge_amount=to_decimal(row.service_charge_amount),
                gst_amount=to_decimal(row.gst_amount),
                total_amount=to_decimal(row.total_amount),
            ))

        entries = [
            ItemAllocations(
                item_id=item.id,
                item_name=item.item_name,
                quantity=item.quantity,
                total_price=item.total_price,
                allocations=rows_by_item.get(item.id, []),
            )
            for item in items
        ]
        totals = aggregate_by_member((entry.item_id, entry.allocations) for entry in entries)
        return ReceiptAssignmentResult(
            receipt_id=receipt.id,
            household_id=receipt.household_id,
            status=receipt.status,
            items=entries,
            member_totals=list(totals.values()),
        )
