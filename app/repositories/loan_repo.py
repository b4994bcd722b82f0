from typing import List, Iterable, Tuple
from datetime import date, timedelta
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.models.loan_models import Loan, Equipment, User
from app.core.errors import QueueStoreError

class LoanRepository:
    """Read access to equipment loans for reminder generation"""
    
    def __init__(self, db: Session, outstanding_statuses: Iterable[str]):
        self.db = db
        self.outstanding_statuses = list(outstanding_statuses)
    
    def _outstanding_query(self):
        return self.db.query(Loan.user_id, Equipment.name).join(
            Equipment, Equipment.id == Loan.equipment_id
        ).join(
            User, User.id == Loan.user_id
        ).filter(
            Loan.status.in_(self.outstanding_statuses),
            User.is_active.is_(True)
        )
    
    def overdue_loans(self, today: date) -> List[Tuple[int, str]]:
        """(user_id, item name) for outstanding loans due strictly before today"""
        try:
            return [
                (user_id, name) for user_id, name in
                self._outstanding_query().filter(
                    Loan.due_date < today
                ).order_by(Loan.due_date.asc(), Loan.id.asc()).all()
            ]
        except SQLAlchemyError as e:
            self.db.rollback()
            raise QueueStoreError("Failed to fetch overdue loans", {"error": str(e)}) from e
    
    def due_soon_loans(self, today: date, days: int = 2) -> List[Tuple[int, str]]:
        """(user_id, item name) for outstanding loans due within [today, today + days]"""
        try:
            return [
                (user_id, name) for user_id, name in
                self._outstanding_query().filter(
                    Loan.due_date >= today,
                    Loan.due_date <= today + timedelta(days=days)
                ).order_by(Loan.due_date.asc(), Loan.id.asc()).all()
            ]
        except SQLAlchemyError as e:
            self.db.rollback()
            raise QueueStoreError("Failed to fetch loans due soon", {"error": str(e)}) from e
