# balances.py
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from billing_dates import as_date, months_elapsed_since
from models import Contract, Payment, Subscription

# Remaining balances within this distance of zero count as paid off.
EPSILON = Decimal("0.005")
CENT = Decimal("0.01")


def as_decimal(value) -> Decimal:
  if isinstance(value, Decimal):
    return value
  return Decimal(str(value if value is not None else 0))


def to_money(value) -> Decimal:
  return as_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def due_amount(sub: Subscription, today: date) -> Decimal:
  """Collection floor: one fee per started cycle, 0 before the due date."""
  monthly = as_decimal(sub.monthly_amount)
  if sub.next_due_date is None:
    return monthly
  if as_date(sub.next_due_date) > as_date(today):
    return Decimal("0")
  months = months_elapsed_since(sub.next_due_date, today)
  return monthly * max(1, months)


def paid_so_far(contract: Contract, payments: Iterable[Payment]) -> Decimal:
  total = Decimal("0")
  for p in payments:
    if p.type == "contract" and p.reference_id == contract.id:
      total += as_decimal(p.amount)
  return total


def remaining_balance(contract: Contract, payments: Iterable[Payment]) -> Decimal:
  return (
    as_decimal(contract.total_amount)
    - as_decimal(contract.initial_payment)
    - paid_so_far(contract, payments)
  )


def is_paid_off(balance: Decimal) -> bool:
  return abs(balance) <= EPSILON


def exceeds_balance(amount: Decimal, balance: Decimal) -> bool:
  return amount > balance + EPSILON


def installment_amount(contract: Contract) -> Decimal:
  """Nominal amount per installment, shown to users but never enforced."""
  count = max(1, contract.installment_count or 1)
  financed = as_decimal(contract.total_amount) - as_decimal(contract.initial_payment)
  return to_money(financed / count)
