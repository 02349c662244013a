"""Repository for payment receipts."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from app.models.payment import Payment
from app.repositories.base_repository import BaseRepository


class PaymentRepository(BaseRepository[Payment]):
    def __init__(self, db: Session) -> None:
        super().__init__(db, Payment)

    def get_by_order_id(self, order_id: str) -> Optional[Payment]:
        return self.find_one_by(order_id=order_id)
