# store.py
from typing import Any, List, Optional, Type, Union

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from errors import ConflictError, NotFoundError, PersistenceError
from models import BusinessConfig, Client, Contract, Payment, Project, Subscription

Versioned = Union[Subscription, Contract]


def get_subscription(session: Session, sub_id: int) -> Subscription:
  sub = session.get(Subscription, sub_id)
  if not sub:
    raise NotFoundError(f"Subscription {sub_id} not found")
  return sub


def get_contract(session: Session, contract_id: int) -> Contract:
  contract = session.get(Contract, contract_id)
  if not contract:
    raise NotFoundError(f"Contract {contract_id} not found")
  return contract


def get_client(session: Session, client_id: str) -> Optional[Client]:
  return session.get(Client, client_id)


def get_project(session: Session, project_id: str) -> Optional[Project]:
  return session.get(Project, project_id)


def get_business_config(session: Session) -> Optional[BusinessConfig]:
  return session.exec(select(BusinessConfig).order_by(BusinessConfig.id)).first()


def list_ledger(session: Session, type: str, reference_id: int) -> List[Payment]:
  stmt = (
    select(Payment)
    .where(Payment.type == type, Payment.reference_id == reference_id)
    .order_by(Payment.id)
  )
  return list(session.exec(stmt).all())


def list_contract_payments(session: Session, contract_ids: List[int]) -> List[Payment]:
  if not contract_ids:
    return []
  stmt = select(Payment).where(
    Payment.type == "contract", Payment.reference_id.in_(contract_ids)
  )
  return list(session.exec(stmt).all())


def insert_payment(session: Session, payment: Payment) -> Payment:
  session.add(payment)
  try:
    session.flush()
  except SQLAlchemyError as exc:
    raise PersistenceError(str(exc)) from exc
  return payment


def _conditional_update(session: Session, obj: Versioned, expected_version: int, **values: Any) -> None:
  """UPDATE guarded by the version read at validation time; ConflictError when it moved."""
  model: Type[Versioned] = type(obj)
  stmt = (
    update(model)
    .where(model.id == obj.id, model.version == expected_version)
    .values(version=expected_version + 1, **values)
  )
  try:
    result = session.connection().execute(stmt)
  except SQLAlchemyError as exc:
    raise PersistenceError(str(exc)) from exc
  if result.rowcount != 1:
    raise ConflictError(
      f"{model.__name__} {obj.id} was modified by another operation, retry"
    )
  session.expire(obj)


def update_subscription(session: Session, sub: Subscription, expected_version: int, **values: Any) -> None:
  _conditional_update(session, sub, expected_version, **values)


def update_contract(session: Session, contract: Contract, expected_version: int, **values: Any) -> None:
  _conditional_update(session, contract, expected_version, **values)


def commit(session: Session) -> None:
  """Commit, turning store failures into PersistenceError after rolling back."""
  try:
    session.commit()
  except SQLAlchemyError as exc:
    session.rollback()
    raise PersistenceError(str(exc)) from exc
