# billing_route.py
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

import balances
import sales
import statements
import store
from db import get_session
from errors import (
  BillingError,
  ConflictError,
  CorruptScheduleError,
  NotFoundError,
  PersistenceError,
  ValidationError,
)
from models import (
  AccountMovement,
  BusinessConfig,
  BusinessConfigUpdate,
  BusinessInfo,
  Client,
  Contract,
  ContractRead,
  Payment,
  PaymentRequest,
  Project,
  SaleRequest,
  ScheduleUpdate,
  Subscription,
  SubscriptionRead,
  VoidRequest,
)
from recording import record_payment

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["billing"])

HTTP_STATUS = [
  (ValidationError, 422),
  (CorruptScheduleError, 422),
  (NotFoundError, 404),
  (ConflictError, 409),
  (PersistenceError, 503),
]

def get_today() -> date:
  return date.today()

def _http_error(exc: BillingError) -> HTTPException:
  for cls, status in HTTP_STATUS:
    if isinstance(exc, cls):
      return HTTPException(status_code=status, detail=str(exc))
  return HTTPException(status_code=400, detail=str(exc))

def _match(q: str, *values: Optional[str]) -> bool:
  ql = q.strip().lower()
  return any(ql in (v or "").lower() for v in values)

def _subscription_view(sub: Subscription, today: date) -> SubscriptionRead:
  try:
    due: Optional[Decimal] = balances.due_amount(sub, today)
  except CorruptScheduleError:
    logger.warning("subscription %s has an unreadable schedule (%s)", sub.id, sub.next_due_date)
    due = None
  return SubscriptionRead(**sub.model_dump(), due_amount=due)

def _contract_view(contract: Contract, ledger: List[Payment]) -> ContractRead:
  return ContractRead(
    **contract.model_dump(),
    paid_so_far=balances.paid_so_far(contract, ledger),
    remaining_balance=balances.remaining_balance(contract, ledger),
    installment_amount=balances.installment_amount(contract),
  )

@router.get("/clients", response_model=List[Client])
def list_clients(q: Optional[str] = None, session: Session = Depends(get_session)):
  rows = session.exec(select(Client)).all()
  if not q:
    return rows
  return [r for r in rows if _match(q, r.id, r.name, r.tax_id, r.email)]

@router.post("/clients", response_model=Client)
def create_client(c: Client, session: Session = Depends(get_session)):
  exists = session.get(Client, c.id)
  if exists:
    raise HTTPException(status_code=409, detail="Client id already exists")
  session.add(c)
  session.commit()
  session.refresh(c)
  return c

@router.get("/projects", response_model=List[Project])
def list_projects(q: Optional[str] = None, session: Session = Depends(get_session)):
  rows = session.exec(select(Project)).all()
  if not q:
    return rows
  return [r for r in rows if _match(q, r.id, r.name)]

@router.post("/projects", response_model=Project)
def create_project(p: Project, session: Session = Depends(get_session)):
  exists = session.get(Project, p.id)
  if exists:
    raise HTTPException(status_code=409, detail="Project id already exists")
  session.add(p)
  session.commit()
  session.refresh(p)
  return p

@router.post("/sales")
def create_sale(req: SaleRequest, session: Session = Depends(get_session), today: date = Depends(get_today)):
  try:
    created = sales.create_sale(session, req, today)
  except BillingError as exc:
    raise _http_error(exc)
  session.refresh(created)
  if isinstance(created, Subscription):
    return {"ok": True, "kind": "subscription", "subscription": _subscription_view(created, today)}
  ledger = store.list_ledger(session, "contract", created.id)
  return {"ok": True, "kind": "contract", "contract": _contract_view(created, ledger)}

@router.get("/subscriptions", response_model=List[SubscriptionRead])
def list_subscriptions(
  q: Optional[str] = None,
  active: Optional[bool] = None,
  session: Session = Depends(get_session),
  today: date = Depends(get_today),
):
  rows = session.exec(select(Subscription).order_by(Subscription.created_at.desc())).all()
  if active is not None:
    rows = [r for r in rows if r.is_active == active]
  if q:
    rows = [r for r in rows if _match(q, r.client_ref, r.project_ref)]
  return [_subscription_view(r, today) for r in rows]

@router.get("/subscriptions/{sub_id}/due")
def subscription_due(sub_id: int, session: Session = Depends(get_session), today: date = Depends(get_today)):
  try:
    sub = store.get_subscription(session, sub_id)
    due = balances.due_amount(sub, today)
  except BillingError as exc:
    raise _http_error(exc)
  return {
    "subscription_id": sub_id,
    "monthly_amount": sub.monthly_amount,
    "next_due_date": sub.next_due_date,
    "due_amount": due,
    "is_active": sub.is_active,
  }

@router.post("/subscriptions/{sub_id}/pause", response_model=Subscription)
def pause_subscription(sub_id: int, session: Session = Depends(get_session)):
  try:
    return sales.set_subscription_active(session, sub_id, False)
  except BillingError as exc:
    raise _http_error(exc)

@router.post("/subscriptions/{sub_id}/resume", response_model=Subscription)
def resume_subscription(sub_id: int, session: Session = Depends(get_session)):
  try:
    return sales.set_subscription_active(session, sub_id, True)
  except BillingError as exc:
    raise _http_error(exc)

@router.get("/contracts", response_model=List[ContractRead])
def list_contracts(
  q: Optional[str] = None,
  status: Optional[str] = None,
  session: Session = Depends(get_session),
):
  rows = session.exec(select(Contract).order_by(Contract.created_at.desc())).all()
  if status:
    rows = [r for r in rows if r.status == status]
  if q:
    rows = [r for r in rows if _match(q, r.client_ref, r.project_ref)]
  ledger = store.list_contract_payments(session, [r.id for r in rows])
  return [_contract_view(r, ledger) for r in rows]

@router.get("/contracts/{contract_id}/balance", response_model=ContractRead)
def contract_balance(contract_id: int, session: Session = Depends(get_session)):
  try:
    contract = store.get_contract(session, contract_id)
  except BillingError as exc:
    raise _http_error(exc)
  return _contract_view(contract, store.list_ledger(session, "contract", contract_id))

@router.post("/contracts/{contract_id}/void", response_model=Contract)
def void_contract(contract_id: int, body: VoidRequest, session: Session = Depends(get_session)):
  try:
    return sales.void_contract(session, contract_id, body.key)
  except BillingError as exc:
    raise _http_error(exc)

@router.put("/contracts/{contract_id}/schedule", response_model=Contract)
def set_contract_schedule(contract_id: int, body: ScheduleUpdate, session: Session = Depends(get_session)):
  try:
    return sales.set_contract_schedule(session, contract_id, body.next_due_date)
  except BillingError as exc:
    raise _http_error(exc)

@router.post("/payments")
def collect_payment(req: PaymentRequest, session: Session = Depends(get_session), today: date = Depends(get_today)):
  try:
    result = record_payment(session, req, today)
  except BillingError as exc:
    raise _http_error(exc)
  return {"ok": True, "payment": result.payment, "receipt": result.receipt}

@router.get("/payments", response_model=List[Payment])
def list_payments(
  type: Optional[str] = None,
  reference_id: Optional[int] = None,
  session: Session = Depends(get_session),
):
  stmt = select(Payment)
  if type:
    stmt = stmt.where(Payment.type == type)
  if reference_id is not None:
    stmt = stmt.where(Payment.reference_id == reference_id)
  return session.exec(stmt.order_by(Payment.created_at.desc(), Payment.id.desc())).all()

@router.get("/statements", response_model=List[AccountMovement])
def list_statements(
  client_ref: Optional[str] = None,
  project_ref: Optional[str] = None,
  session: Session = Depends(get_session),
):
  return statements.list_movements(session, client_ref, project_ref)

@router.get("/config", response_model=BusinessInfo)
def get_config(session: Session = Depends(get_session)):
  config = store.get_business_config(session)
  return config or BusinessInfo()

@router.put("/config", response_model=BusinessInfo)
def update_config(body: BusinessConfigUpdate, session: Session = Depends(get_session)):
  config = store.get_business_config(session) or BusinessConfig()
  for key, value in body.model_dump(exclude_unset=True).items():
    setattr(config, key, value)
  session.add(config)
  session.commit()
  session.refresh(config)
  return config

@router.post("/seed")
def seed_if_empty(session: Session = Depends(get_session), today: date = Depends(get_today)):
  # Seed only if DB is empty
  any_client = session.exec(select(Client)).first()
  if any_client:
    return {"ok": True, "seeded": False}

  session.add_all([
    Client(id="CLI-001", name="Apex Retail", tax_id="08019001234567", email="billing@apex.example"),
    Client(id="CLI-002", name="BlueSky Logistics", tax_id="08019007654321"),
  ])
  session.add_all([
    Project(id="PRJ-001", name="Point of sale"),
    Project(id="PRJ-002", name="Fleet tracking"),
  ])
  session.add(BusinessConfig(business_name="Demo Software", owner="Demo Owner", void_key="1234"))
  session.commit()

  try:
    sales.create_sale(session, SaleRequest(
      kind="subscription", client_ref="CLI-001", project_ref="PRJ-001",
      monthly_amount=Decimal("1500"), billing_day_of_month=today.day,
    ), today)
    sales.create_sale(session, SaleRequest(
      kind="contract", client_ref="CLI-002", project_ref="PRJ-002",
      total_amount=Decimal("60000"), initial_payment=Decimal("15000"), installment_count=6,
    ), today)
  except BillingError as exc:
    raise _http_error(exc)
  return {"ok": True, "seeded": True}
