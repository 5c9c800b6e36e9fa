from sqlalchemy import TIMESTAMP, Column, ForeignKey, Numeric, String, Uuid

from eminent_bank.db.session import Base


class Customer(Base):
    __tablename__ = "customers"

    customer_id = Column(Uuid, primary_key=True)
    # Identity-provider user id; joins a session to its customer row
    user_uuid = Column(Uuid, unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(100))
    last_name = Column(String(100))
    # bcrypt hash, only read by the local identity provider
    password_hash = Column(String(255), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True))


class Account(Base):
    __tablename__ = "accounts"

    account_id = Column(Uuid, primary_key=True)
    account_number = Column(String(20), unique=True, nullable=False)
    customer_id = Column(Uuid, ForeignKey("customers.customer_id"), nullable=False, index=True)
    account_type = Column(String(20), nullable=False)
    balance = Column(Numeric(15, 2), nullable=False, default=0)
    nickname = Column(String(100), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True))
    updated_at = Column(TIMESTAMP(timezone=True))


class Transaction(Base):
    __tablename__ = "transactions"

    transaction_id = Column(Uuid, primary_key=True)
    initiator_account_id = Column(Uuid, ForeignKey("accounts.account_id"), nullable=False, index=True)
    receiver_account_number = Column(String(20), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    purpose = Column(String(255))
    type_of_transfer = Column(String(50), nullable=False)
    idempotency_key = Column(String(64), unique=True, nullable=False)
    transfer_datetime = Column(TIMESTAMP(timezone=True), nullable=False)
