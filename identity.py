"""The identify operation: validate, normalize, then match and reconcile atomically."""
import logging
from typing import Optional, Union

from config import get_settings
from contact_store import ContactStore
from db_models import ConsolidatedIdentity
from db_setup import get_db_connection, transaction
from errors import ValidationError
from matcher import find_candidates
from reconciler import reconcile

logger = logging.getLogger(__name__)


def normalize_email(email: Optional[str]) -> Optional[str]:
    if email is None:
        return None
    return email.strip().lower() or None


def normalize_phone(phone: Optional[Union[str, int]]) -> Optional[str]:
    if phone is None:
        return None
    return str(phone).strip() or None


def identify(
    email: Optional[str],
    phone_number: Optional[Union[str, int]],
    *,
    db_path: Optional[str] = None,
) -> ConsolidatedIdentity:
    email = normalize_email(email)
    phone = normalize_phone(phone_number)
    if not email and not phone:
        raise ValidationError("Email or phoneNumber is required")

    conn = get_db_connection(db_path or get_settings().db.path)
    try:
        # lookup, unification, insert and re-read form one atomic unit
        with transaction(conn):
            store = ContactStore(conn)
            candidates = find_candidates(store, email, phone)
            result = reconcile(store, email, phone, candidates)
    finally:
        conn.close()

    logger.debug(f"Identified contact {result.primary_id} ({len(result.secondary_ids)} secondaries)")
    return result
