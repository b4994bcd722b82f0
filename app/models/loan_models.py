from sqlalchemy import String, Boolean, Date, ForeignKey, Index
from sqlalchemy.orm import relationship, Mapped, mapped_column
from datetime import date
from typing import Optional, List
from app.models.shared_models import BaseModel
import enum

class LoanStatus(str, enum.Enum):
    """Status of an equipment loan."""
    REQUESTED = "requested"
    BORROWED = "borrowed"
    OVERDUE = "overdue"
    RETURNED = "returned"
    CANCELLED = "cancelled"

class User(BaseModel):
    """Platform user who can borrow equipment and receive push notifications."""
    __tablename__ = "users"
    
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    
    loans: Mapped[List["Loan"]] = relationship(back_populates="user")
    push_subscriptions = relationship("PushSubscription", back_populates="user", cascade="all, delete-orphan")
    
    def __repr__(self):
        return f"<User(id={self.id}, name='{self.name}', active={self.is_active})>"

class Equipment(BaseModel):
    """A lendable piece of equipment."""
    __tablename__ = "equipment"
    
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    
    def __repr__(self):
        return f"<Equipment(id={self.id}, name='{self.name}')>"

class Loan(BaseModel):
    """A borrow record linking a user to a piece of equipment until its due date."""
    __tablename__ = "loans"
    
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    equipment_id: Mapped[int] = mapped_column(ForeignKey("equipment.id"), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=LoanStatus.REQUESTED.value, nullable=False)
    
    user: Mapped["User"] = relationship(back_populates="loans")
    equipment: Mapped["Equipment"] = relationship()
    
    __table_args__ = (
        Index('idx_loan_status_due', 'status', 'due_date'),
        Index('idx_loan_user_id', 'user_id'),
    )
    
    def __repr__(self):
        return f"<Loan(id={self.id}, user_id={self.user_id}, due={self.due_date}, status='{self.status}')>"
