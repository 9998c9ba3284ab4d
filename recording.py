# recording.py
import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

import balances
import statements
import store
from billing_dates import next_cycle_date
from errors import BillingError, PersistenceError, ValidationError
from models import (
  CONTRACT_ACTIVE,
  CONTRACT_CANCELLED,
  Payment,
  PaymentReceipt,
  PaymentRequest,
)
from receipts import build_receipt_data

logger = logging.getLogger(__name__)

PAYMENT_TYPES = ("subscription", "contract")


def check_amount(value: Any) -> Decimal:
  try:
    amount = balances.as_decimal(value)
  except (InvalidOperation, ValueError, TypeError):
    raise ValidationError("Enter a valid amount")
  if not amount.is_finite() or amount <= 0:
    raise ValidationError("Enter a valid amount")
  if amount != balances.to_money(amount):
    raise ValidationError("Amount cannot have fractions of a cent")
  return amount


def _collect_subscription(
  session: Session, sub_id: int, amount: Decimal, today: date
) -> Tuple[Payment, Dict[str, Any]]:
  sub = store.get_subscription(session, sub_id)
  if not sub.is_active:
    raise ValidationError(f"Subscription {sub_id} is paused")

  floor = balances.due_amount(sub, today)
  if amount < floor:
    raise ValidationError(f"Amount must be at least {floor:.2f}")

  version = sub.version
  new_due = next_cycle_date(sub.next_due_date, sub.billing_day_of_month, today)
  payment = store.insert_payment(session, Payment(
    type="subscription",
    reference_id=sub.id,
    client_ref=sub.client_ref,
    project_ref=sub.project_ref,
    amount=amount,
  ))
  store.update_subscription(session, sub, version, next_due_date=new_due)
  return payment, {"amount_due": floor, "next_due_date": new_due}


def _collect_contract(
  session: Session, contract_id: int, amount: Decimal, next_due: Optional[date]
) -> Tuple[Payment, Dict[str, Any]]:
  contract = store.get_contract(session, contract_id)
  if contract.status != CONTRACT_ACTIVE:
    raise ValidationError(f"Contract {contract_id} is {contract.status}")

  before = balances.remaining_balance(
    contract, store.list_ledger(session, "contract", contract.id)
  )
  if balances.exceeds_balance(amount, before):
    raise ValidationError(
      f"Amount cannot be greater than the remaining balance of {before:.2f}"
    )

  version = contract.version
  payment = store.insert_payment(session, Payment(
    type="contract",
    reference_id=contract.id,
    client_ref=contract.client_ref,
    project_ref=contract.project_ref,
    amount=amount,
  ))
  after = balances.remaining_balance(
    contract, store.list_ledger(session, "contract", contract.id)
  )

  values: Dict[str, Any] = {}
  if balances.is_paid_off(after):
    values["status"] = CONTRACT_CANCELLED
  if next_due is not None:
    values["next_due_date"] = next_due
  store.update_contract(session, contract, version, **values)
  return payment, {
    "amount_due": before,
    "next_due_date": values.get("next_due_date", contract.next_due_date),
    "balance_before": before,
    "balance_after": max(Decimal("0"), after),
    "status": values.get("status", CONTRACT_ACTIVE),
  }


def record_payment(session: Session, req: PaymentRequest, today: date) -> PaymentReceipt:
  """Validate a collection and commit it with the entity update, or roll everything back."""
  if req.type not in PAYMENT_TYPES:
    raise ValidationError("Select the payment type")
  if req.reference_id is None:
    raise ValidationError(f"Select a {req.type}")
  amount = check_amount(req.amount)

  try:
    if req.type == "subscription":
      payment, extra = _collect_subscription(session, req.reference_id, amount, today)
    else:
      payment, extra = _collect_contract(session, req.reference_id, amount, req.next_due_date)
  except BillingError:
    session.rollback()
    raise
  except SQLAlchemyError as exc:
    session.rollback()
    logger.error("%s payment against %s not recorded: %s", req.type, req.reference_id, exc)
    raise PersistenceError(str(exc)) from exc
  store.commit(session)
  session.refresh(payment)
  logger.info(
    "recorded %s payment %s of %s against %s",
    payment.type, payment.id, payment.amount, payment.reference_id,
  )

  statements.record_best_effort(
    session,
    client_ref=payment.client_ref,
    project_ref=payment.project_ref,
    type=payment.type,
    amount=payment.amount,
    balance_after=extra.get("balance_after", Decimal("0")),
    note=statements.NOTE_PAYMENT,
  )
  receipt = build_receipt_data(session, payment, extra)
  session.refresh(payment)
  return PaymentReceipt(payment=payment, receipt=receipt)
