"""
Database models for LendShelf.
"""

from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, JSON, Text, CheckConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class UserModel(Base):
    """Ledger-relevant projection of a user account."""
    __tablename__ = "users"
    
    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    
    # Counters are only ever incremented
    points = Column(Integer, nullable=False, default=0)
    books_shared = Column(Integer, nullable=False, default=0)
    books_borrowed = Column(Integer, nullable=False, default=0)
    
    created_at = Column(DateTime, default=datetime.utcnow)
    
    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_users_points"),
        CheckConstraint("books_shared >= 0", name="ck_users_books_shared"),
        CheckConstraint("books_borrowed >= 0", name="ck_users_books_borrowed"),
    )


class LedgerFailureModel(Base):
    """A point award that was not applied after its book transition committed."""
    __tablename__ = "ledger_failures"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    book_id = Column(String(64))
    event = Column(String(32), nullable=False)  # "upload", "approve"
    delta = Column(JSON, nullable=False)
    reason = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
