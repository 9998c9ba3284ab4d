# receipts.py
import logging
from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

import store
from models import BusinessInfo, Payment

logger = logging.getLogger(__name__)

TITLES = {
  "subscription": "Subscription payment receipt",
  "contract": "Contract payment receipt",
}


def _display_fields(session: Session, payment: Payment) -> Dict[str, Any]:
  # best effort: falls back to the raw references
  business = BusinessInfo()
  client = {"id": payment.client_ref, "name": payment.client_ref, "tax_id": None}
  project = {"id": payment.project_ref, "name": payment.project_ref}
  try:
    config = store.get_business_config(session)
    if config:
      business = BusinessInfo(**config.model_dump(exclude={"id", "void_key"}))
    c = store.get_client(session, payment.client_ref)
    if c:
      client.update(name=c.name, tax_id=c.tax_id)
    p = store.get_project(session, payment.project_ref)
    if p:
      project["name"] = p.name
  except SQLAlchemyError:
    session.rollback()
    logger.exception("receipt display fields unavailable for payment %s", payment.id)
  return {"business": business.model_dump(), "client": client, "project": project}


def build_receipt_data(session: Session, payment: Payment, extra: Dict[str, Any]) -> Dict[str, Any]:
  data: Dict[str, Any] = {
    "receipt_number": payment.id,
    "title": TITLES.get(payment.type, "Payment receipt"),
    "issued_at": payment.created_at,
    "type": payment.type,
    "reference_id": payment.reference_id,
    "amount_due": extra.get("amount_due", payment.amount),
    "amount_paid": payment.amount,
    "next_due_date": extra.get("next_due_date"),
  }
  if payment.type == "contract":
    data["balance_before"] = extra.get("balance_before")
    data["balance_after"] = extra.get("balance_after")
    data["status"] = extra.get("status")
  data.update(_display_fields(session, payment))
  return data
