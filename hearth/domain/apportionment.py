"""
Receipt item apportionment - pure functions, no database access.

Splits one receipt line between household members and applies service charge
and GST to each share:

    base           = round(total_price * assigned_qty / quantity, 2)
    service_charge = round(base * service_charge_rate, 2)
    gst            = round((base + service_charge) * tax_rate, 2)
    total          = base + service_charge + gst

GST is charged on the post-service-charge amount. Every rounding step uses
ROUND_HALF_EVEN. Because each share is rounded on its own, the shares can
drift a few cents from the line's grand total. The difference is booked on
the share with the largest assigned quantity (first one on ties); a shortfall
larger than that share spills over to the next one, so no amount goes
negative and

    sum(share.total) == round(assigned_value * (1 + sc_rate) * (1 + tax_rate), 2)

holds exactly.
"""
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Sequence

from hearth.domain.errors import ValidationError
from hearth.utils.money import ZERO, quantize_money, to_decimal

# Fractional splits (1/3 + 1/3 + 1/3) never add up exactly
QUANTITY_EPSILON = Decimal("0.000001")


@dataclass(frozen=True)
class ItemLine:
    """The parts of a receipt item the engine needs."""
    quantity: int
    total_price: Decimal
    item_id: int | None = None


@dataclass(frozen=True)
class MemberShare:
    """Requested share: how many units of the item a member takes."""
    member_id: int
    assigned_quantity: Decimal


@dataclass
class Allocation:
    member_id: int
    assigned_quantity: Decimal
    base_amount: Decimal
    service_charge_amount: Decimal
    gst_amount: Decimal
    total_amount: Decimal


@dataclass
class MemberTotals:
    """Per-member sum of allocations across several items."""
    member_id: int
    base_amount: Decimal = ZERO
    service_charge_amount: Decimal = ZERO
    gst_amount: Decimal = ZERO
    total_amount: Decimal = ZERO
    item_ids: list[int] = field(default_factory=list)

    def add(self, allocation: Allocation, item_id: int | None = None) -> None:
        self.base_amount += allocation.base_amount
        self.service_charge_amount += allocation.service_charge_amount
        self.gst_amount += allocation.gst_amount
        self.total_amount += allocation.total_amount
        if item_id is not None:
            self.item_ids.append(item_id)


def _validate(item: ItemLine, shares: Sequence[MemberShare],
              service_charge_rate: Decimal, tax_rate: Decimal) -> Decimal:
    """Check preconditions and return the summed assigned quantity."""
    if item.quantity < 1:
        raise ValidationError(f"Item quantity must be at least 1, got {item.quantity}")
    if item.total_price < 0:
        raise ValidationError(f"Item total price cannot be negative, got {item.total_price}")
    if not shares:
        raise ValidationError("At least one member assignment is required")
    if service_charge_rate < 0 or tax_rate < 0:
        raise ValidationError("Service charge and tax rates cannot be negative")

    seen: set[int] = set()
    assigned = Decimal("0")
    for share in shares:
        if share.assigned_quantity <= 0:
            raise ValidationError(
                f"Assigned quantity for member {share.member_id} must be positive"
            )
        if share.member_id in seen:
            raise ValidationError(f"Member {share.member_id} is assigned twice to the same item")
        seen.add(share.member_id)
        assigned += share.assigned_quantity

    if assigned > item.quantity + QUANTITY_EPSILON:
        raise ValidationError(
            f"Assigned quantity {assigned.normalize()} exceeds item quantity {item.quantity}"
        )
    return assigned


def item_grand_total(item: ItemLine, assigned_quantity: Decimal,
                     service_charge_rate, tax_rate) -> Decimal:
    """
    Grand total of the assigned part of an item, charges included.

    A quantity within QUANTITY_EPSILON of the item quantity counts as the whole
    item, so a fully assigned line always yields
    round(total_price * (1 + sc) * (1 + tax), 2).
    """
    sc_rate = to_decimal(service_charge_rate)
    gst_rate = to_decimal(tax_rate)
    if abs(assigned_quantity - item.quantity) <= QUANTITY_EPSILON:
        value = item.total_price
    else:
        value = item.total_price * assigned_quantity / item.quantity
    return quantize_money(value * (1 + sc_rate) * (1 + gst_rate))


def apportion(item: ItemLine, shares: Sequence[MemberShare],
              service_charge_rate=Decimal("0"), tax_rate=Decimal("0")) -> list[Allocation]:
    """
    Compute each member's allocation for one receipt item.

    Args:
        item: quantity and total price of the line
        shares: non-empty list of (member, assigned quantity), in input order
        service_charge_rate: fraction, e.g. Decimal("0.10")
        tax_rate: fraction applied after service charge, e.g. Decimal("0.09")

    Returns:
        One Allocation per share, same order as `shares`

    Raises:
        ValidationError: empty shares, non-positive or duplicate shares,
            over-assigned quantity, negative rates

    Example:
        >>> apportion(ItemLine(quantity=3, total_price=Decimal("10.00")),
        ...           [MemberShare(1, Decimal(1)), MemberShare(2, Decimal(1)),
        ...            MemberShare(3, Decimal(1))])
        totals 3.34 / 3.33 / 3.33
    """
    sc_rate = to_decimal(service_charge_rate)
    gst_rate = to_decimal(tax_rate)
    shares = [
        MemberShare(s.member_id, to_decimal(s.assigned_quantity)) for s in shares
    ]
    assigned = _validate(item, shares, sc_rate, gst_rate)

    allocations: list[Allocation] = []
    for share in shares:
        base = quantize_money(item.total_price * share.assigned_quantity / item.quantity)
        service_charge = quantize_money(base * sc_rate)
        gst = quantize_money((base + service_charge) * gst_rate)
        allocations.append(Allocation(
            member_id=share.member_id,
            assigned_quantity=share.assigned_quantity,
            base_amount=base,
            service_charge_amount=service_charge,
            gst_amount=gst,
            total_amount=base + service_charge + gst,
        ))

    residual = item_grand_total(item, assigned, sc_rate, gst_rate) - sum(
        (a.total_amount for a in allocations), ZERO
    )
    if residual:
        _book_residual(allocations, shares, residual)

    return allocations


def _book_residual(allocations: list[Allocation], shares: Sequence[MemberShare],
                   residual: Decimal) -> None:
    """
    Move the rounding residual onto the allocations.

    Shares are visited by assigned quantity, largest first (input order on
    ties). A surplus lands entirely on the first one. A shortfall is taken
    cent by cent from each share's base until it reaches zero, then from the
    next share; charges are only touched once every base is used up.
    """
    # sorted() is stable, so equal quantities keep input order
    order = sorted(range(len(shares)), key=lambda i: -shares[i].assigned_quantity)
    if residual > 0:
        target = allocations[order[0]]
        target.base_amount += residual
        target.total_amount += residual
        return

    remaining = -residual
    for part in ("base_amount", "service_charge_amount", "gst_amount"):
        for i in order:
            allocation = allocations[i]
            taken = min(remaining, getattr(allocation, part))
            if taken <= 0:
                continue
            setattr(allocation, part, getattr(allocation, part) - taken)
            allocation.total_amount -= taken
            remaining -= taken
            if not remaining:
                return


def split_evenly(member_ids: Sequence[int], quantity: int) -> list[MemberShare]:
    """
    Equal shares of `quantity` units between members.

    The shares are full-precision decimals (1/3 = 0.3333...), which the
    engine's epsilon treats as a complete assignment.
    """
    if not member_ids:
        raise ValidationError("Cannot split an item between zero members")
    each = Decimal(quantity) / len(member_ids)
    return [MemberShare(member_id, each) for member_id in member_ids]


def aggregate_by_member(
    allocations_per_item: Iterable[tuple[int | None, Sequence[Allocation]]],
) -> "OrderedDict[int, MemberTotals]":
    """
    Sum allocations of several items per member (first-seen member order).

    Args:
        allocations_per_item: (item_id, allocations) pairs
    """
    totals: "OrderedDict[int, MemberTotals]" = OrderedDict()
    for item_id, allocations in allocations_per_item:
        for allocation in allocations:
            member_totals = totals.setdefault(
                allocation.member_id, MemberTotals(member_id=allocation.member_id)
            )
            member_totals.add(allocation, item_id)
    return totals
