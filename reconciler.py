"""Merge matched contacts into a single cluster and report its identity.

A cluster is a two-level tree: one primary and every contact whose linkedId
points at it. Unifying two clusters demotes the younger primary and re-points
all of its children in one step, so no multi-hop chains ever exist.
"""
import logging
from typing import List, Optional

from contact_store import ContactStore
from db_models import ConsolidatedIdentity, Contact, LinkPrecedence
from errors import InconsistentStateError

logger = logging.getLogger(__name__)


def effective_primary_id(contact: Contact) -> int:
    if contact.linkPrecedence == LinkPrecedence.PRIMARY:
        return contact.id
    return contact.linkedId


def unify_clusters(store: ContactStore, primary_ids) -> int:
    """Fold every listed cluster into the oldest one and return its primary id.

    Age is createdAt, ties broken by the lower id.
    """
    ordered = [contact_id for contact_id, _ in store.query_creation_times(primary_ids)]
    if not ordered:
        raise InconsistentStateError(f"None of the primaries {sorted(primary_ids)} exist")

    survivor_id = ordered[0]
    for demoted_id in ordered[1:]:
        store.update_contact_linkage(demoted_id, LinkPrecedence.SECONDARY, survivor_id)
        moved = store.repoint_secondaries(demoted_id, survivor_id)
        logger.info(
            f"Demoted primary {demoted_id} under {survivor_id}, relinked {moved} secondaries",
            extra={"contact_id": demoted_id, "primary_id": survivor_id},
        )
    return survivor_id


def _primary_first(values: List[str], own: Optional[str]) -> List[str]:
    if own and own in values:
        values.remove(own)
        values.insert(0, own)
    return values


def consolidate(store: ContactStore, primary_id: int) -> ConsolidatedIdentity:
    members = store.query_cluster_members(primary_id)
    primary = next((c for c in members if c.id == primary_id), None)
    if primary is None:
        raise InconsistentStateError(f"Primary contact {primary_id} missing from its own cluster")

    emails: List[str] = []
    phones: List[str] = []
    for contact in members:
        if contact.email and contact.email not in emails:
            emails.append(contact.email)
        if contact.phoneNumber and contact.phoneNumber not in phones:
            phones.append(contact.phoneNumber)

    return ConsolidatedIdentity(
        primary_id=primary_id,
        emails=_primary_first(emails, primary.email),
        phone_numbers=_primary_first(phones, primary.phoneNumber),
        secondary_ids=[c.id for c in members if c.id != primary_id],
    )


def reconcile(
    store: ContactStore,
    email: Optional[str],
    phone: Optional[str],
    candidates: List[Contact],
) -> ConsolidatedIdentity:
    """Attach (email, phone) to the identity the candidates belong to.

    Must run inside the caller's transaction so the demotions, the insert and
    the final re-read commit together.
    """
    if not candidates:
        contact_id = store.insert_contact(email, phone, None, LinkPrecedence.PRIMARY)
        logger.info(f"Created primary contact {contact_id}")
        return ConsolidatedIdentity(
            primary_id=contact_id,
            emails=[email] if email else [],
            phone_numbers=[phone] if phone else [],
            secondary_ids=[],
        )

    primary_ids = {effective_primary_id(c) for c in candidates} - {None}
    survivor_id = unify_clusters(store, primary_ids)

    email_known = any(c.email == email for c in candidates)
    phone_known = any(c.phoneNumber == phone for c in candidates)
    if (email and not email_known) or (phone and not phone_known):
        contact_id = store.insert_contact(email, phone, survivor_id, LinkPrecedence.SECONDARY)
        logger.info(f"Created secondary contact {contact_id} under {survivor_id}")

    return consolidate(store, survivor_id)
