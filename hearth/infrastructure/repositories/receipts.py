"""
Receipt repository - receipts, their items and item assignments

Loading an item's assignments and deleting them are explicit calls; nothing
relies on ORM relationship loading.
"""
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from hearth.infrastructure.db.models import Receipt, ReceiptItem, ReceiptItemAssignment


class ReceiptRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_receipt(self, receipt_id: int, for_update: bool = False) -> Optional[Receipt]:
        """
        Get a receipt by ID

        Args:
            receipt_id: receipt ID
            for_update: lock the row (SELECT ... FOR UPDATE) so concurrent
                assignments of the same receipt are serialized

        Returns:
            Receipt or None
        """
        query = self.db.query(Receipt).filter(Receipt.id == receipt_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    def list_items(self, receipt_id: int) -> List[ReceiptItem]:
        return (
            self.db.query(ReceiptItem)
            .filter(ReceiptItem.receipt_id == receipt_id)
            .order_by(ReceiptItem.line_number.asc(), ReceiptItem.id.asc())
            .all()
        )

    def get_items(self, receipt_id: int, item_ids: Iterable[int]) -> dict[int, ReceiptItem]:
        """
        Items of this receipt among `item_ids`, keyed by ID

        IDs that do not exist or belong to another receipt are simply absent
        from the result.
        """
        ids = list(item_ids)
        if not ids:
            return {}
        rows = (
            self.db.query(ReceiptItem)
            .filter(ReceiptItem.receipt_id == receipt_id, ReceiptItem.id.in_(ids))
            .all()
        )
        return {row.id: row for row in rows}

    def list_assignments(self, item_ids: Sequence[int]) -> List[ReceiptItemAssignment]:
        if not item_ids:
            return []
        return (
            self.db.query(ReceiptItemAssignment)
            .filter(ReceiptItemAssignment.receipt_item_id.in_(list(item_ids)))
            .order_by(ReceiptItemAssignment.receipt_item_id.asc(), ReceiptItemAssignment.id.asc())
            .all()
        )

    def delete_assignments(self, item_ids: Sequence[int]) -> int:
        """
        Delete every assignment row of the given items

        Returns:
            number of deleted rows
        """
        if not item_ids:
            return 0
        deleted = (
            self.db.query(ReceiptItemAssignment)
            .filter(ReceiptItemAssignment.receipt_item_id.in_(list(item_ids)))
            .delete(synchronize_session="fetch")
        )
        self.db.flush()
        return deleted

    def add_assignments(self, rows: Sequence[ReceiptItemAssignment]) -> None:
        self.db.add_all(rows)
        self.db.flush()
