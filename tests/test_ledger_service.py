import threading
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import sessionmaker

from database import build_engine, init_db
from models import ActionType, Note, NoteTransaction
from services import ledger_service
from services.errors import ChainConflict, StorageUnavailable
from services.ledger_service import (
     GENESIS_HASH,
     FailureKind,
     TransactionEvent,
     append_transaction,
     compute_linkage_hash,
     get_tail,
     list_transactions,
     serialize_link_input,
     verify_chain,
     verify_full_chain,
     verify_transaction,
)


T1 = datetime(2026, 1, 31, 10, 30, 0, 123456)


def _event(note_id, action=ActionType.UPDATE_NOTE, content_after="text", wallet="addr_1"):
     return TransactionEvent(
          note_id=note_id,
          action_type=action,
          content_before=None,
          content_after=content_after,
          metadata="test event",
          wallet_address=wallet,
     )


def _append_many(db, note_id, count):
     entries = []
     for i in range(count):
          entries.append(append_transaction(db, _event(note_id, content_after=f"v{i}")))
     db.commit()
     return entries


# ---------------------------------------------------------------------------
# Linkage hash
# ---------------------------------------------------------------------------

def test_genesis_is_68_zeros():
     assert GENESIS_HASH == "0" * 68


def test_serialized_input_field_order():
     payload = serialize_link_input(GENESIS_HASH, 1, ActionType.CREATE_NOTE, T1, "hello")
     assert payload == f"{GENESIS_HASH}|1|CREATE_NOTE|2026-01-31T10:30:00.123456|hello"


def test_missing_content_after_hashes_as_empty_string():
     assert serialize_link_input("ab", 3, ActionType.DELETE_NOTE, T1, None).endswith("|DELETE_NOTE|2026-01-31T10:30:00.123456|")
     assert compute_linkage_hash("ab", 3, ActionType.DELETE_NOTE, T1, None) == \
          compute_linkage_hash("ab", 3, ActionType.DELETE_NOTE, T1, "")


def test_whole_second_timestamps_keep_microseconds():
     payload = serialize_link_input("ab", 1, ActionType.CREATE_NOTE, datetime(2026, 1, 1), "x")
     assert "2026-01-01T00:00:00.000000" in payload


def test_link_is_deterministic():
     first = compute_linkage_hash(GENESIS_HASH, 1, ActionType.CREATE_NOTE, T1, "hello")
     second = compute_linkage_hash(GENESIS_HASH, 1, ActionType.CREATE_NOTE, T1, "hello")
     assert first == second
     assert len(first) == 64


@pytest.mark.parametrize("changed", [
     ("f" * 64, 1, ActionType.CREATE_NOTE, T1, "hello"),
     (GENESIS_HASH, 2, ActionType.CREATE_NOTE, T1, "hello"),
     (GENESIS_HASH, 1, ActionType.UPDATE_NOTE, T1, "hello"),
     (GENESIS_HASH, 1, ActionType.CREATE_NOTE, T1 + timedelta(microseconds=1), "hello"),
     (GENESIS_HASH, 1, ActionType.CREATE_NOTE, T1, "hello!"),
])
def test_changing_any_component_changes_hash(changed):
     base = compute_linkage_hash(GENESIS_HASH, 1, ActionType.CREATE_NOTE, T1, "hello")
     assert compute_linkage_hash(*changed) != base


def test_delimiter_keeps_note_id_and_action_apart():
     # Without a separator "1" + "2..." and "12" + "..." could concatenate identically
     a = serialize_link_input("ab", 1, ActionType.CREATE_NOTE, T1, "2x")
     b = serialize_link_input("ab", 12, ActionType.CREATE_NOTE, T1, "x")
     assert a != b


# ---------------------------------------------------------------------------
# Append / tail / ordering
# ---------------------------------------------------------------------------

def test_empty_ledger_has_no_tail(db):
     assert get_tail(db) is None
     assert ledger_service.get_previous_hash(db) == GENESIS_HASH


def test_first_append_links_to_genesis(db, note):
     entry = append_transaction(db, _event(note.id, ActionType.CREATE_NOTE, "hello"))
     db.commit()

     assert entry.id is not None
     assert entry.previous_hash == GENESIS_HASH
     assert entry.linkage_hash == compute_linkage_hash(
          GENESIS_HASH, note.id, ActionType.CREATE_NOTE, entry.occurred_at, "hello"
     )
     assert entry.details == "test event"
     assert entry.wallet_address == "addr_1"


def test_create_then_update_scenario(db, note):
     r1 = append_transaction(db, _event(note.id, ActionType.CREATE_NOTE, "hello"))
     r2 = append_transaction(db, _event(note.id, ActionType.UPDATE_NOTE, "hello world"))
     db.commit()

     h1 = compute_linkage_hash(GENESIS_HASH, note.id, ActionType.CREATE_NOTE, r1.occurred_at, "hello")
     h2 = compute_linkage_hash(h1, note.id, ActionType.UPDATE_NOTE, r2.occurred_at, "hello world")
     assert r1.linkage_hash == h1
     assert r2.previous_hash == h1
     assert r2.linkage_hash == h2
     assert r2.occurred_at >= r1.occurred_at

     result = verify_chain([r1, r2])
     assert result.valid
     assert result.checked == 2


def test_tail_is_latest_append(db, note):
     entries = _append_many(db, note.id, 3)
     assert get_tail(db).id == entries[-1].id


def test_occurred_at_never_decreases(db, note, monkeypatch):
     first = append_transaction(db, _event(note.id))
     monkeypatch.setattr(ledger_service, "_utcnow", lambda: first.occurred_at - timedelta(hours=1))
     second = append_transaction(db, _event(note.id, content_after="later"))
     db.commit()

     assert second.occurred_at == first.occurred_at
     # Same timestamp: append order breaks the tie
     assert get_tail(db).id == second.id
     assert second.previous_hash == first.linkage_hash
     assert verify_full_chain(db).valid


def test_list_transactions_direction(db, note):
     entries = _append_many(db, note.id, 4)
     ids = [entry.id for entry in entries]

     assert [e.id for e in list_transactions(db, descending=False)] == ids
     assert [e.id for e in list_transactions(db, descending=True)] == ids[::-1]


def test_list_transactions_filters(db, note):
     append_transaction(db, _event(note.id, wallet="addr_a"))
     append_transaction(db, _event(note.id, wallet="addr_b"))
     append_transaction(db, _event(note.id + 1, wallet="addr_a"))
     db.commit()

     assert len(list_transactions(db, descending=True, wallet_address="addr_a")) == 2
     assert len(list_transactions(db, descending=True, note_id=note.id)) == 2
     assert len(list_transactions(db, descending=True, wallet_address="addr_a", note_id=note.id)) == 1


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------

def test_empty_chain_is_valid(db):
     result = verify_full_chain(db)
     assert result.valid
     assert result.checked == 0
     assert result.position is None


@pytest.mark.parametrize("count", [1, 2, 7])
def test_appended_chain_verifies(db, note, count):
     _append_many(db, note.id, count)
     result = verify_full_chain(db)
     assert result.valid
     assert result.checked == count


@pytest.mark.parametrize("field, value", [
     ("content_after", "forged"),
     ("action_type", ActionType.DELETE_NOTE),
])
def test_tampered_record_reports_hash_mismatch(db, note, field, value):
     _append_many(db, note.id, 4)
     target = list_transactions(db, descending=False)[2]
     setattr(target, field, value)
     db.commit()
     db.expire_all()

     result = verify_full_chain(db)

     assert not result.valid
     assert result.kind == FailureKind.HASH_MISMATCH
     assert result.position == 2
     assert result.checked == 2
     assert result.transaction_id == target.id


@pytest.mark.parametrize("shift", [
     datetime(2020, 1, 1) - datetime(2026, 1, 1),
     timedelta(days=1),
])
def test_moved_timestamp_is_blamed_on_the_edited_record(db, note, shift):
     entries = _append_many(db, note.id, 4)
     entries[2].occurred_at = entries[2].occurred_at + shift
     db.commit()

     # Backdating or forward-dating reorders occurred_at but not append order
     result = verify_full_chain(db)
     assert not result.valid
     assert result.kind == FailureKind.HASH_MISMATCH
     assert result.position == 2
     assert result.transaction_id == entries[2].id

     single = verify_transaction(db, entries[2].id)
     assert single.kind == FailureKind.HASH_MISMATCH
     assert single.position == 2
     assert verify_transaction(db, entries[3].id).valid


def test_tampered_occurred_at_in_place_is_hash_mismatch(db, note):
     r1, r2, r3 = _append_many(db, note.id, 3)
     r2.occurred_at = r2.occurred_at + timedelta(microseconds=1)

     result = verify_chain([r1, r2, r3])
     assert result.kind == FailureKind.HASH_MISMATCH
     assert result.position == 1


def test_swapped_hashes_fail_at_first_record(db, note):
     r1 = append_transaction(db, _event(note.id, ActionType.CREATE_NOTE, "hello"))
     r2 = append_transaction(db, _event(note.id, ActionType.UPDATE_NOTE, "hello world"))
     db.commit()

     r1.linkage_hash, r2.linkage_hash = r2.linkage_hash, r1.linkage_hash
     result = verify_chain([r1, r2])

     assert not result.valid
     assert result.position == 0
     assert result.kind == FailureKind.HASH_MISMATCH


def test_missing_record_reports_broken_link(db, note):
     r1, r2, r3 = _append_many(db, note.id, 3)

     result = verify_chain([r1, r3])
     assert not result.valid
     assert result.position == 1
     assert result.kind == FailureKind.BROKEN_LINK
     assert result.transaction_id == r3.id


def test_first_record_must_link_to_genesis(db, note):
     _, r2 = _append_many(db, note.id, 2)
     result = verify_chain([r2])
     assert result.kind == FailureKind.BROKEN_LINK
     assert result.position == 0


def test_verification_stops_at_first_failure(db, note):
     entries = _append_many(db, note.id, 4)
     entries[1].content_after = "forged"
     entries[3].content_after = "forged too"

     result = verify_chain(entries)
     assert result.position == 1
     assert result.checked == 1


def test_verify_single_transaction(db, note):
     entries = _append_many(db, note.id, 3)

     result = verify_transaction(db, entries[1].id)
     assert result.valid
     assert result.position == 1

     entries[2].content_after = "forged"
     db.commit()
     result = verify_transaction(db, entries[2].id)
     assert not result.valid
     assert result.kind == FailureKind.HASH_MISMATCH
     assert result.position == 2

     assert verify_transaction(db, 9999) is None


# ---------------------------------------------------------------------------
# Failures and races
# ---------------------------------------------------------------------------

def test_storage_unavailable_on_tail_read(db, note, monkeypatch):
     def broken_query(*args, **kwargs):
          raise OperationalError("SELECT", {}, Exception("database is locked"))

     monkeypatch.setattr(db, "query", broken_query)
     with pytest.raises(StorageUnavailable):
          append_transaction(db, _event(note.id))


def test_storage_unavailable_leaves_no_record(db, note, monkeypatch):
     def broken_flush(*args, **kwargs):
          raise OperationalError("INSERT", {}, Exception("disk I/O error"))

     monkeypatch.setattr(db, "flush", broken_flush)
     with pytest.raises(StorageUnavailable):
          append_transaction(db, _event(note.id))
     monkeypatch.undo()
     db.rollback()

     assert db.query(NoteTransaction).count() == 0


def test_forced_race_on_same_tail_has_one_winner(db, note, monkeypatch):
     winner = append_transaction(db, _event(note.id, ActionType.CREATE_NOTE, "hello"))
     db.commit()

     # The losing writer read the tail before the winner's record existed
     monkeypatch.setattr(ledger_service, "get_tail", lambda session: None)
     with pytest.raises(ChainConflict):
          append_transaction(db, _event(note.id, ActionType.UPDATE_NOTE, "other"))
     db.rollback()

     rows = db.query(NoteTransaction).all()
     assert [row.id for row in rows] == [winner.id]
     assert rows[0].previous_hash == GENESIS_HASH


def test_concurrent_appends_never_fork(tmp_path):
     engine = build_engine(f"sqlite:///{tmp_path / 'race.db'}")
     init_db(engine)
     Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
     with Session() as session:
          note = Note(title="race", content="race", priority="Medium", is_active=True)
          session.add(note)
          session.commit()
          note_id = note.id

     outcomes = []
     start = threading.Barrier(6)

     def writer(i):
          session = Session()
          try:
               start.wait()
               append_transaction(session, _event(note_id, content_after=f"writer {i}"))
               session.commit()
               outcomes.append("ok")
          except (ChainConflict, StorageUnavailable, IntegrityError, OperationalError):
               session.rollback()
               outcomes.append("rejected")
          finally:
               session.close()

     threads = [threading.Thread(target=writer, args=(i,)) for i in range(6)]
     for thread in threads:
          thread.start()
     for thread in threads:
          thread.join()

     with Session() as session:
          rows = list_transactions(session, descending=False)
          previous_hashes = [row.previous_hash for row in rows]
          assert len(previous_hashes) == len(set(previous_hashes))
          assert len(rows) == outcomes.count("ok") >= 1
          assert verify_full_chain(session).valid
     engine.dispose()


def test_append_accepts_action_type_as_plain_string(db, note):
     entry = append_transaction(db, TransactionEvent(note_id=note.id, action_type="CREATE_NOTE", content_after="hello"))
     db.commit()

     assert entry.action_type == ActionType.CREATE_NOTE
     assert entry.linkage_hash == compute_linkage_hash(
          GENESIS_HASH, note.id, ActionType.CREATE_NOTE, entry.occurred_at, "hello"
     )
     assert verify_full_chain(db).valid
