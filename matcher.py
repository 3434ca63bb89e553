import logging
from typing import List, Optional

from contact_store import ContactStore
from db_models import Contact

logger = logging.getLogger(__name__)


def find_candidates(store: ContactStore, email: Optional[str], phone: Optional[str]) -> List[Contact]:
    """Every stored contact sharing the email or the phone number.

    Inputs must already be normalized; a None value never matches.
    """
    contacts = store.query_by_email_or_phone(email, phone)
    logger.debug(f"Found {len(contacts)} candidates for email={email!r} phone={phone!r}")
    return contacts
