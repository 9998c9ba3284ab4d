# statements.py
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from models import AccountMovement

logger = logging.getLogger(__name__)

NOTE_CONTRACT_ACQUIRED = "CONTRACT ACQUIRED"
NOTE_INITIAL_PAYMENT = "INITIAL PAYMENT"
NOTE_PAYMENT = "PAYMENT"


def append_movement(
  session: Session,
  client_ref: str,
  project_ref: str,
  type: str,
  amount: Decimal,
  balance_after: Decimal,
  note: str,
) -> AccountMovement:
  row = AccountMovement(
    client_ref=client_ref,
    project_ref=project_ref,
    type=type,
    amount=amount,
    balance_after=balance_after,
    note=note,
  )
  session.add(row)
  session.commit()
  session.refresh(row)
  return row


def record_best_effort(session: Session, **fields) -> Optional[AccountMovement]:
  """Append a statement row without failing the operation that caused it."""
  try:
    return append_movement(session, **fields)
  except SQLAlchemyError:
    session.rollback()
    logger.exception(
      "account movement %r not recorded for client=%s project=%s",
      fields.get("note"), fields.get("client_ref"), fields.get("project_ref"),
    )
    return None


def list_movements(
  session: Session,
  client_ref: Optional[str] = None,
  project_ref: Optional[str] = None,
) -> List[AccountMovement]:
  stmt = select(AccountMovement)
  if client_ref:
    stmt = stmt.where(AccountMovement.client_ref == client_ref)
  if project_ref:
    stmt = stmt.where(AccountMovement.project_ref == project_ref)
  stmt = stmt.order_by(AccountMovement.created_at, AccountMovement.id)
  return list(session.exec(stmt).all())
