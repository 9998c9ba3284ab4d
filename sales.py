# sales.py
import hmac
import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Union

from sqlmodel import Session

import statements
import store
from balances import as_decimal, is_paid_off, to_money
from billing_dates import first_due_date
from errors import NotFoundError, ValidationError
from models import (
  CONTRACT_ACTIVE,
  CONTRACT_CANCELLED,
  CONTRACT_TERMINAL,
  CONTRACT_VOIDED,
  Contract,
  SaleRequest,
  Subscription,
)

logger = logging.getLogger(__name__)


def _check_parties(session: Session, req: SaleRequest) -> None:
  if not req.project_ref:
    raise ValidationError("Select a project")
  if not req.client_ref:
    raise ValidationError("Select a client")
  if not store.get_client(session, req.client_ref):
    raise NotFoundError(f"Client {req.client_ref} not found")
  if not store.get_project(session, req.project_ref):
    raise NotFoundError(f"Project {req.project_ref} not found")


def create_sale(session: Session, req: SaleRequest, today: date) -> Union[Subscription, Contract]:
  """Finalize a sale as a subscription or a contract."""
  _check_parties(session, req)
  initial = as_decimal(req.initial_payment)
  total = as_decimal(req.total_amount)
  count = req.installment_count or 1
  if initial < 0:
    raise ValidationError("Initial payment cannot be negative")

  if req.kind == "subscription":
    monthly = as_decimal(req.monthly_amount) if req.monthly_amount else to_money(total / count)
    if monthly <= 0:
      raise ValidationError("Monthly amount must be greater than 0")
    sub = Subscription(
      client_ref=req.client_ref,
      project_ref=req.project_ref,
      monthly_amount=monthly,
      billing_day_of_month=req.billing_day_of_month,
      next_due_date=first_due_date(req.billing_day_of_month, today),
    )
    session.add(sub)
    store.commit(session)
    session.refresh(sub)
    logger.info("subscription %s created for client %s", sub.id, sub.client_ref)
    if initial > 0:
      statements.record_best_effort(
        session,
        client_ref=sub.client_ref,
        project_ref=sub.project_ref,
        type="subscription",
        amount=initial,
        balance_after=Decimal("0"),
        note=statements.NOTE_INITIAL_PAYMENT,
      )
    return sub

  if total <= 0:
    raise ValidationError("Total amount must be greater than 0")
  if initial > total:
    raise ValidationError("Initial payment cannot exceed the total amount")
  contract = Contract(
    client_ref=req.client_ref,
    project_ref=req.project_ref,
    total_amount=total,
    initial_payment=initial,
    installment_count=count,
    status=CONTRACT_CANCELLED if is_paid_off(total - initial) else CONTRACT_ACTIVE,
  )
  session.add(contract)
  store.commit(session)
  session.refresh(contract)
  logger.info("contract %s created for client %s", contract.id, contract.client_ref)

  statements.record_best_effort(
    session,
    client_ref=contract.client_ref,
    project_ref=contract.project_ref,
    type="contract",
    amount=total,
    balance_after=total,
    note=statements.NOTE_CONTRACT_ACQUIRED,
  )
  if initial > 0:
    statements.record_best_effort(
      session,
      client_ref=contract.client_ref,
      project_ref=contract.project_ref,
      type="contract",
      amount=initial,
      balance_after=total - initial,
      note=statements.NOTE_INITIAL_PAYMENT,
    )
  return contract


def set_subscription_active(session: Session, sub_id: int, active: bool) -> Subscription:
  sub = store.get_subscription(session, sub_id)
  if sub.is_active != active:
    store.update_subscription(session, sub, sub.version, is_active=active)
    store.commit(session)
    logger.info("subscription %s %s", sub_id, "resumed" if active else "paused")
  session.refresh(sub)
  return sub


def void_contract(session: Session, contract_id: int, key: str) -> Contract:
  config = store.get_business_config(session)
  if not config or not config.void_key:
    raise ValidationError("No void key is configured")
  if not hmac.compare_digest(key.encode(), config.void_key.encode()):
    raise ValidationError("Incorrect key")

  contract = store.get_contract(session, contract_id)
  if contract.status in CONTRACT_TERMINAL:
    raise ValidationError(f"Contract {contract_id} is already {contract.status}")
  store.update_contract(session, contract, contract.version, status=CONTRACT_VOIDED)
  store.commit(session)
  session.refresh(contract)
  logger.warning("contract %s voided", contract_id)
  return contract


def set_contract_schedule(session: Session, contract_id: int, next_due: Optional[date]) -> Contract:
  """Change the informational next-due hint of a contract."""
  contract = store.get_contract(session, contract_id)
  store.update_contract(session, contract, contract.version, next_due_date=next_due)
  store.commit(session)
  session.refresh(contract)
  return contract
