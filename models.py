# models.py
from typing import Any, Dict, Literal, Optional
from datetime import date, datetime, timezone
from decimal import Decimal
from sqlmodel import SQLModel, Field

PaymentType = Literal["subscription", "contract"]
SaleKind = Literal["subscription", "contract"]

CONTRACT_ACTIVE = "active"
CONTRACT_CANCELLED = "cancelled"  # fully paid
CONTRACT_VOIDED = "voided"  # annulled by hand
CONTRACT_TERMINAL = (CONTRACT_CANCELLED, CONTRACT_VOIDED)


def utcnow() -> datetime:
  return datetime.now(timezone.utc)


def Money(default: Any = ..., **kwargs: Any) -> Any:
  return Field(default, max_digits=12, decimal_places=2, **kwargs)


class Client(SQLModel, table=True):
  id: str = Field(primary_key=True, index=True)  # CLI-001
  name: str
  tax_id: Optional[str] = None  # RTN
  email: Optional[str] = None
  phone: Optional[str] = None
  created_at: datetime = Field(default_factory=utcnow)


class Project(SQLModel, table=True):
  id: str = Field(primary_key=True, index=True)  # PRJ-001
  name: str
  description: Optional[str] = None
  created_at: datetime = Field(default_factory=utcnow)


class SubscriptionBase(SQLModel):
  client_ref: str = Field(index=True)
  project_ref: str = Field(index=True)
  monthly_amount: Decimal = Money()
  next_due_date: Optional[date] = None  # start of the next unpaid cycle
  billing_day_of_month: Optional[int] = None
  is_active: bool = True


class Subscription(SubscriptionBase, table=True):
  id: Optional[int] = Field(default=None, primary_key=True)
  created_at: datetime = Field(default_factory=utcnow)
  version: int = 0


class SubscriptionRead(SubscriptionBase):
  id: int
  created_at: datetime
  due_amount: Optional[Decimal] = None


class ContractBase(SQLModel):
  client_ref: str = Field(index=True)
  project_ref: str = Field(index=True)
  total_amount: Decimal = Money()
  initial_payment: Decimal = Money(Decimal("0"))
  installment_count: int = 1  # display only
  next_due_date: Optional[date] = None  # schedule hint, not enforced
  status: str = CONTRACT_ACTIVE  # active|cancelled|voided


class Contract(ContractBase, table=True):
  id: Optional[int] = Field(default=None, primary_key=True)
  created_at: datetime = Field(default_factory=utcnow)
  version: int = 0


class ContractRead(ContractBase):
  id: int
  created_at: datetime
  paid_so_far: Decimal
  remaining_balance: Decimal
  installment_amount: Decimal


class Payment(SQLModel, table=True):
  """Ledger entry. Rows are only ever inserted."""
  id: Optional[int] = Field(default=None, primary_key=True)
  created_at: datetime = Field(default_factory=utcnow)
  type: str = Field(index=True)  # subscription|contract
  reference_id: int = Field(index=True)
  client_ref: str
  project_ref: str
  amount: Decimal = Money()


class AccountMovement(SQLModel, table=True):
  """Account statement row. Denormalized, never used to compute balances."""
  id: Optional[int] = Field(default=None, primary_key=True)
  client_ref: str = Field(index=True)
  project_ref: str = Field(index=True)
  type: str  # subscription|contract
  amount: Decimal = Money()
  balance_after: Decimal = Money()
  note: str = ""
  created_at: datetime = Field(default_factory=utcnow)


class BusinessInfo(SQLModel):
  business_name: str = ""
  owner: str = ""
  address: str = ""
  phone: str = ""
  tax_id: str = ""


class BusinessConfig(BusinessInfo, table=True):
  id: Optional[int] = Field(default=None, primary_key=True)
  void_key: Optional[str] = None


class BusinessConfigUpdate(BusinessInfo):
  void_key: Optional[str] = None


class PaymentRequest(SQLModel):
  type: PaymentType
  reference_id: Optional[int] = None
  amount: Decimal
  next_due_date: Optional[date] = None  # contracts only


class PaymentReceipt(SQLModel):
  payment: Payment
  receipt: Dict[str, Any] = Field(default_factory=dict)


class SaleRequest(SQLModel):
  kind: SaleKind = "subscription"
  client_ref: Optional[str] = None
  project_ref: Optional[str] = None
  total_amount: Decimal = Money(Decimal("0"))
  initial_payment: Decimal = Money(Decimal("0"))
  installment_count: int = Field(default=1, ge=1)
  monthly_amount: Optional[Decimal] = Money(None)
  billing_day_of_month: Optional[int] = Field(default=None, ge=1, le=31)


class VoidRequest(SQLModel):
  key: str


class ScheduleUpdate(SQLModel):
  next_due_date: Optional[date] = None
