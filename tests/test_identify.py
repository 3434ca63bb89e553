import logging
import threading

import pytest

import contact_store
from db_models import LinkPrecedence
from db_setup import init_db
from errors import StorageError, ValidationError
from identity import identify, normalize_email, normalize_phone


@pytest.mark.parametrize("email, phone", [(None, None), ("", ""), ("   ", "  ")])
def test_requires_email_or_phone(email, phone, contact_count):
    with pytest.raises(ValidationError):
        identify(email, phone)
    assert contact_count() == 0


def test_normalization():
    assert normalize_email("  Marty.McFly@HillValley.EDU ") == "marty.mcfly@hillvalley.edu"
    assert normalize_email(" ") is None
    assert normalize_phone(" 123456 ") == "123456"
    assert normalize_phone(123456) == "123456"
    assert normalize_phone(None) is None


def test_inputs_are_normalized_before_matching(store):
    first = identify("  Doc@HillValley.edu", 123456)
    second = identify("doc@hillvalley.edu", "123456 ")

    assert second == first
    assert store.get_contact(first.primary_id).email == "doc@hillvalley.edu"
    assert store.get_contact(first.primary_id).phoneNumber == "123456"


def test_repeated_lookup_is_idempotent(seed, contact_count):
    seed("doc@hillvalley.edu", "123456")

    first = identify("doc@hillvalley.edu", "123456")
    second = identify("doc@hillvalley.edu", "123456")

    assert first == second
    assert contact_count() == 1


def test_explicit_db_path_overrides_configured(tmp_path, contact_count):
    other = tmp_path / "other.db"
    init_db(str(other))

    identify("doc@hillvalley.edu", None, db_path=str(other))

    assert contact_count() == 0


def test_failed_reconciliation_rolls_back(store, seed, monkeypatch):
    older = seed("george@hillvalley.edu", "919191", minutes=0)
    younger = seed("biff@hillvalley.edu", "717171", minutes=10)

    def broken(self, primary_id):
        raise StorageError("disk I/O error")

    monkeypatch.setattr(contact_store.ContactStore, "query_cluster_members", broken)

    with pytest.raises(StorageError):
        identify("george@hillvalley.edu", "717171")

    demoted = store.get_contact(younger)
    assert demoted.linkPrecedence == LinkPrecedence.PRIMARY
    assert demoted.linkedId is None
    assert store.get_contact(older).linkPrecedence == LinkPrecedence.PRIMARY


def test_store_failures_surface_as_storage_error(tmp_path):
    with pytest.raises(StorageError):
        identify("doc@hillvalley.edu", None, db_path=str(tmp_path / "missing" / "contacts.db"))


def _run_concurrently(calls):
    barrier = threading.Barrier(len(calls))
    results, errors = [None] * len(calls), []

    def worker(index, args):
        barrier.wait()
        try:
            results[index] = identify(*args)
        except Exception as e:  # surfaced through the assertion below
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(i, args)) for i, args in enumerate(calls)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert errors == []
    return results


def test_concurrent_unification_demotes_once(store, seed, contact_count, caplog):
    older = seed("george@hillvalley.edu", "919191", minutes=0)
    younger = seed("biff@hillvalley.edu", "717171", minutes=10)

    with caplog.at_level(logging.INFO, logger="reconciler"):
        results = _run_concurrently([("george@hillvalley.edu", "717171")] * 2)

    demotions = [r for r in caplog.records if r.getMessage().startswith("Demoted primary")]
    assert len(demotions) == 1
    assert results[0] == results[1]
    assert results[0].primary_id == older
    assert results[0].secondary_ids == [younger]
    assert contact_count() == 2
    assert store.get_contact(younger).linkedId == older


def test_concurrent_new_customer_creates_one_row(contact_count):
    results = _run_concurrently([("marty@hillvalley.edu", "555000")] * 4)

    assert contact_count() == 1
    assert len({r.primary_id for r in results}) == 1
