"""
Pytest configuration and fixtures per i test di incassi e chiusure cassa.

I test girano su un database SQLite temporaneo (aiosqlite), uno per test,
e sostituiscono il registro fatture esterno con un registro in memoria.
"""

import os

# Impostazioni di test: vanno definite prima di importare freight_cash
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./freight_cash_test.db")
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("BUSINESS_TIMEZONE", "Europe/London")

import datetime
import uuid
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from freight_cash.core.exceptions import BusinessValidationError, NotFoundError
from freight_cash.models import Base, Payment
from freight_cash.schemas.bill import BillClient, BillStatus, BillTotals, LedgerBill
from freight_cash.services.denomination_service import DenominationEngine

COLLECTOR = "driver-001"
OTHER_COLLECTOR = "driver-002"


# ============================================================
# Fixtures per Database
# ============================================================


@pytest.fixture
async def db_engine(tmp_path):
    """Engine su un file SQLite dedicato al singolo test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Sessione database reale su SQLite."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def engine() -> DenominationEngine:
    return DenominationEngine.for_currency("GBP")


# ============================================================
# Registro fatture in memoria
# ============================================================


def make_bill(
    bill_id: str = "bill-1",
    balance: str = "50.00",
    total: Optional[str] = None,
    status: BillStatus = BillStatus.PENDING,
    number: str = "INV-0001",
    client_name: str = "Acme Haulage Ltd",
) -> LedgerBill:
    total_value = Decimal(total or balance)
    balance_value = Decimal(balance)
    return LedgerBill(
        id=bill_id,
        number=number,
        status=status,
        totals=BillTotals(
            total=total_value,
            paid=total_value - balance_value,
            balance=balance_value,
        ),
        client=BillClient(name=client_name),
    )


class FakeBillLedger:
    """Registro fatture in memoria con la stessa interfaccia di BillLedgerClient."""

    def __init__(self, *bills: LedgerBill) -> None:
        self.bills = {bill.id: bill for bill in bills}
        self.posted: list[tuple[str, Decimal, str]] = []
        self.fail_post: Optional[Exception] = None

    def add(self, bill: LedgerBill) -> None:
        self.bills[bill.id] = bill

    async def get_bill(self, bill_id: str) -> LedgerBill:
        if bill_id not in self.bills:
            raise NotFoundError(
                f"Fattura {bill_id} non trovata",
                error_code="BILL_NOT_FOUND",
                extra={"billId": bill_id},
            )
        return self.bills[bill_id]

    async def post_payment(
        self,
        bill_id: str,
        amount: Decimal,
        payment_method: str,
        payment_details: Optional[str] = None,
    ) -> LedgerBill:
        if self.fail_post is not None:
            raise self.fail_post
        bill = await self.get_bill(bill_id)
        if amount > bill.balance:
            raise BusinessValidationError(
                "Importo oltre il saldo", error_code="BILL_PAYMENT_REJECTED"
            )
        balance = bill.balance - amount
        updated = bill.model_copy(
            update={
                "status": BillStatus.PAID if balance == 0 else BillStatus.PARTIAL,
                "totals": BillTotals(
                    total=bill.totals.total,
                    paid=bill.totals.paid + amount,
                    balance=balance,
                ),
            }
        )
        self.bills[bill_id] = updated
        self.posted.append((bill_id, amount, payment_method))
        return updated

    async def list_outstanding_bills(self, collector_id: str) -> list[LedgerBill]:
        return [bill for bill in self.bills.values() if bill.is_payable]

    async def close(self) -> None:
        pass


@pytest.fixture
def ledger() -> FakeBillLedger:
    return FakeBillLedger(
        make_bill("bill-1", "50.00"),
        make_bill("bill-2", "40.00", number="INV-0002"),
        make_bill("bill-paid", "0.00", total="75.00", status=BillStatus.PAID),
    )


# ============================================================
# Helper per inserire pagamenti storici
# ============================================================


def london_noon(day: datetime.date) -> datetime.datetime:
    """Mezzogiorno UTC: stessa giornata contabile a Londra tutto l'anno."""
    return datetime.datetime(day.year, day.month, day.day, 12, 0, tzinfo=datetime.timezone.utc)


async def add_payment(
    db: AsyncSession,
    day: datetime.date,
    amount: str,
    method: str = "cash",
    collector_id: str = COLLECTOR,
    bill_id: Optional[str] = None,
) -> Payment:
    """Inserisce direttamente un pagamento datato (senza passare dal registro)."""
    payment = Payment(
        id=uuid.uuid4(),
        collector_id=collector_id,
        bill_id=bill_id or f"bill-{uuid.uuid4().hex[:8]}",
        amount=Decimal(amount),
        payment_method=method,
        payment_date=london_noon(day),
        business_date=day,
    )
    db.add(payment)
    await db.commit()
    await db.refresh(payment)
    return payment
