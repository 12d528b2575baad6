from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    String,
    TIMESTAMP,
    Text,
)
from sqlalchemy.orm import relationship

from app.core.database import Base


def utc_now():
    return datetime.now(timezone.utc)


# =========================
# Account
# =========================
class Account(Base):
    """
    A money source owned by one user:
    - bank account
    - wallet
    - card synced through Plaid
    """

    __tablename__ = "accounts"

    id = Column(String, primary_key=True)
    plaid_id = Column(String, nullable=True)
    name = Column(String, nullable=False)
    user_id = Column(String, nullable=False, index=True)

    transactions = relationship(
        "Transaction",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


# =========================
# Category
# =========================
class Category(Base):
    __tablename__ = "categories"

    id = Column(String, primary_key=True)
    plaid_id = Column(String, nullable=True)
    name = Column(String, nullable=False)
    user_id = Column(String, nullable=False, index=True)

    transactions = relationship("Transaction", back_populates="category")


# =========================
# Transaction
# =========================
class Transaction(Base):
    """
    A single money movement.

    Amounts are integer cents, negative for expenses. Ownership is derived
    through the account, which is why generated queries join accounts to
    filter by user.
    """

    __tablename__ = "transactions"

    id = Column(String, primary_key=True)
    amount = Column(Integer, nullable=False)
    payee = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    date = Column(TIMESTAMP(timezone=True), nullable=False)

    account_id = Column(
        String,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category_id = Column(
        String,
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    account = relationship("Account", back_populates="transactions")
    category = relationship("Category", back_populates="transactions")


# =========================
# Chat message (append-only transcript)
# =========================
class ChatMessage(Base):
    """
    One turn of an AI chat conversation.

    A conversation is not stored on its own: it is every message sharing a
    conversation_id, owned by the user_id on those messages.
    """

    __tablename__ = "chat_messages"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    conversation_id = Column(String, nullable=False, index=True)
    role = Column(String, nullable=False)  # user | assistant
    content = Column(Text, nullable=False)

    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utc_now,
    )
