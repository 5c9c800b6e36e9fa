"""Pytest configuration and fixtures."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Tuple
from uuid import UUID, uuid4

import bcrypt
import pytest

from eminent_bank.clients.identity_client import IdentityClient, IdentityUser
from eminent_bank.db.ledger import SqlAlchemyLedger
from eminent_bank.db.models import Account, Customer
from eminent_bank.db.session import create_all, create_engine, create_session_factory
from eminent_bank.exceptions import IdentityProviderError, InvalidCredentialsError, InvalidTokenError

ALICE_PASSWORD = "alice-pass"
BOB_PASSWORD = "bob-pass"


@dataclass
class SeededBank:
    alice: IdentityUser
    bob: IdentityUser
    alice_customer_id: UUID
    bob_customer_id: UUID
    alice_checking: UUID
    alice_savings: UUID
    bob_checking: UUID


class FakeIdentityClient(IdentityClient):
    """In-memory identity provider: tokens map to users, emails to passwords."""

    def __init__(self) -> None:
        self.tokens: Dict[str, IdentityUser] = {}
        self.passwords: Dict[str, str] = {}
        self.verify_calls: List[Tuple[str, str]] = []
        self.unavailable = False
        self.closed = False

    def add_user(self, user: IdentityUser, password: str, token: str) -> None:
        self.tokens[token] = user
        self.passwords[user.email] = password

    async def get_user(self, access_token: str) -> IdentityUser:
        user = self.tokens.get(access_token)
        if user is None:
            raise InvalidTokenError("Session expired or invalid. Please log in.")
        return user

    async def verify_password(self, email: str, password: str) -> None:
        self.verify_calls.append((email, password))
        if self.unavailable:
            raise IdentityProviderError("Service unavailable")
        if self.passwords.get(email) != password:
            raise InvalidCredentialsError("Invalid login credentials")

    async def close(self) -> None:
        self.closed = True


def _hash(password: str) -> str:
    # Low cost factor keeps the suite fast
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'bank.db'}"


@pytest.fixture
async def engine(database_url):
    engine = create_engine(database_url)
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
async def bank(session_factory) -> SeededBank:
    """
    Two customers:
      alice: checking 1000.00 (1000000001), savings "Rainy Day" 100.00 (1000000002)
      bob:   checking 50.00 (2000000001)
    """
    now = datetime.now(timezone.utc)
    alice = IdentityUser(user_id=uuid4(), email="alice@example.com")
    bob = IdentityUser(user_id=uuid4(), email="bob@example.com")
    seeded = SeededBank(
        alice=alice,
        bob=bob,
        alice_customer_id=uuid4(),
        bob_customer_id=uuid4(),
        alice_checking=uuid4(),
        alice_savings=uuid4(),
        bob_checking=uuid4(),
    )
    async with session_factory() as db:
        async with db.begin():
            db.add_all(
                [
                    Customer(
                        customer_id=seeded.alice_customer_id,
                        user_uuid=alice.user_id,
                        email=alice.email,
                        first_name="Alice",
                        last_name="Archer",
                        password_hash=_hash(ALICE_PASSWORD),
                        created_at=now,
                    ),
                    Customer(
                        customer_id=seeded.bob_customer_id,
                        user_uuid=bob.user_id,
                        email=bob.email,
                        first_name="Bob",
                        last_name="Baker",
                        password_hash=_hash(BOB_PASSWORD),
                        created_at=now,
                    ),
                ]
            )
            await db.flush()
            db.add_all(
                [
                    Account(
                        account_id=seeded.alice_checking,
                        account_number="1000000001",
                        customer_id=seeded.alice_customer_id,
                        account_type="checking",
                        balance=Decimal("1000.00"),
                        created_at=now,
                        updated_at=now,
                    ),
                    Account(
                        account_id=seeded.alice_savings,
                        account_number="1000000002",
                        customer_id=seeded.alice_customer_id,
                        account_type="savings",
                        balance=Decimal("100.00"),
                        nickname="Rainy Day",
                        created_at=now + timedelta(seconds=1),
                        updated_at=now,
                    ),
                    Account(
                        account_id=seeded.bob_checking,
                        account_number="2000000001",
                        customer_id=seeded.bob_customer_id,
                        account_type="checking",
                        balance=Decimal("50.00"),
                        created_at=now,
                        updated_at=now,
                    ),
                ]
            )
    return seeded


@pytest.fixture
def ledger(session_factory) -> SqlAlchemyLedger:
    return SqlAlchemyLedger(session_factory)


@pytest.fixture
def identity(bank) -> FakeIdentityClient:
    client = FakeIdentityClient()
    client.add_user(bank.alice, ALICE_PASSWORD, "alice-token")
    client.add_user(bank.bob, BOB_PASSWORD, "bob-token")
    return client
