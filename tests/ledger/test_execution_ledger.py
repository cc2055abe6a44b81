"""
Tests for the execution ledger and its journal.
"""

import json
import os

import pytest

from chugsplash.ledger.journal import JOURNAL_FILENAME, LedgerJournal
from chugsplash.ledger.ledger import ExecutionLedger
from chugsplash.ledger.models import LedgerEntryType
from chugsplash.ledger.signing import Ed25519LedgerSigner, Ed25519LedgerVerifier
from chugsplash.protocol.errors import (
    AlreadyExecutedError,
    BundleAlreadyActiveError,
    LedgerIntegrityError,
    NoActiveBundleError,
    ValidationError,
)
from chugsplash.protocol.types import ZERO_HASH

OWNER = "0x" + "a1" * 20
OTHER = "0x" + "b2" * 20
ROOT = "0x" + "11" * 32


@pytest.fixture
def ledger_dir(tmp_path):
    return str(tmp_path / "ledger")


def _open(ledger_dir, owner=OWNER, **kwargs):
    return ExecutionLedger.open(owner, directory=ledger_dir, sync=False, **kwargs)


class TestLedgerTransitions:
    def test_new_ledger_is_empty(self):
        ledger = ExecutionLedger.open(OWNER)

        assert ledger.owner == OWNER
        assert ledger.current_root == ZERO_HASH
        assert ledger.current_size == 0
        assert ledger.commitment is None
        assert not ledger.has_active_bundle()

    def test_new_ledger_needs_owner(self):
        with pytest.raises(ValidationError):
            ExecutionLedger.open()

    def test_owner_is_normalized(self):
        ledger = ExecutionLedger.open("0x" + "A1" * 20)
        assert ledger.owner == OWNER

    def test_approve_and_complete(self):
        ledger = ExecutionLedger.open(OWNER)
        ledger.approve(ROOT, 2)

        assert ledger.has_active_bundle()
        assert not ledger.record_execution(1)
        assert ledger.is_executed(1)
        assert ledger.record_execution(0)

        # Completion clears the commitment
        assert not ledger.has_active_bundle()
        assert ledger.current_root == ZERO_HASH
        assert ledger.current_size == 0
        assert not ledger.is_executed(1)

    def test_approve_while_active(self):
        ledger = ExecutionLedger.open(OWNER)
        ledger.approve(ROOT, 2)

        with pytest.raises(BundleAlreadyActiveError):
            ledger.approve("0x" + "22" * 32, 1)

    @pytest.mark.parametrize("size", [0, -1, True, "3"])
    def test_approve_rejects_bad_size(self, size):
        ledger = ExecutionLedger.open(OWNER)

        with pytest.raises(ValidationError):
            ledger.approve(ROOT, size)
        assert not ledger.has_active_bundle()

    def test_approve_rejects_zero_root(self):
        ledger = ExecutionLedger.open(OWNER)

        with pytest.raises(ValidationError):
            ledger.approve(ZERO_HASH, 1)

    def test_record_requires_active_bundle(self):
        ledger = ExecutionLedger.open(OWNER)

        with pytest.raises(NoActiveBundleError):
            ledger.record_execution(0)

    def test_record_twice(self):
        ledger = ExecutionLedger.open(OWNER)
        ledger.approve(ROOT, 2)
        ledger.record_execution(0)

        with pytest.raises(AlreadyExecutedError):
            ledger.record_execution(0)

    def test_record_out_of_range(self):
        ledger = ExecutionLedger.open(OWNER)
        ledger.approve(ROOT, 2)

        with pytest.raises(ValidationError):
            ledger.record_execution(2)

    def test_cancel(self):
        ledger = ExecutionLedger.open(OWNER)
        ledger.approve(ROOT, 3)
        ledger.record_execution(0)
        ledger.cancel()

        assert not ledger.has_active_bundle()
        assert ledger.executed_count == 0

        with pytest.raises(NoActiveBundleError, match="cannot cancel"):
            ledger.cancel()

    def test_snapshot(self):
        ledger = ExecutionLedger.open(OWNER)
        ledger.approve(ROOT, 3)
        ledger.record_execution(2)

        snapshot = ledger.snapshot()

        assert snapshot["owner"] == OWNER
        assert snapshot["bundleHash"] == ROOT
        assert snapshot["bundleSize"] == 3
        assert snapshot["executed"] == [2]
        assert snapshot["active"] is True
        assert snapshot["journalEntries"] == 3

    def test_history_types(self):
        ledger = ExecutionLedger.open(OWNER)
        ledger.set_owner(OTHER)
        ledger.approve(ROOT, 1)
        ledger.record_execution(0)

        assert [e.entry_type for e in ledger.history()] == [
            LedgerEntryType.LEDGER_INITIALIZED,
            LedgerEntryType.OWNER_SET,
            LedgerEntryType.BUNDLE_APPROVED,
            LedgerEntryType.ACTION_EXECUTED,
        ]


class TestLedgerRecovery:
    def test_reopen_replays_state(self, ledger_dir):
        ledger = _open(ledger_dir)
        ledger.set_owner(OTHER)
        ledger.approve(ROOT, 3)
        ledger.record_execution(1)

        recovered = _open(ledger_dir, owner=None)

        assert recovered.owner == OTHER
        assert recovered.current_root == ROOT
        assert recovered.current_size == 3
        assert recovered.is_executed(1)
        assert recovered.executed_count == 1

        with pytest.raises(AlreadyExecutedError):
            recovered.record_execution(1)

    def test_reopen_ignores_owner_argument(self, ledger_dir):
        _open(ledger_dir)

        recovered = _open(ledger_dir, owner=OTHER)

        assert recovered.owner == OWNER
        assert recovered.journal.entry_count == 1

    def test_completed_bundle_stays_cleared(self, ledger_dir):
        ledger = _open(ledger_dir)
        ledger.approve(ROOT, 1)
        ledger.record_execution(0)

        recovered = _open(ledger_dir)

        assert not recovered.has_active_bundle()
        assert recovered.current_root == ZERO_HASH

    def test_journal_resumes_chain(self, ledger_dir):
        _open(ledger_dir).approve(ROOT, 2)

        recovered = _open(ledger_dir)
        recovered.record_execution(0)

        ok, reason = recovered.journal.verify_integrity()
        assert ok, reason
        assert [e.seq for e in recovered.history()] == [1, 2, 3]

    def test_tampered_payload_detected(self, ledger_dir):
        _open(ledger_dir).approve(ROOT, 2)

        path = f"{ledger_dir}/{JOURNAL_FILENAME}"
        with open(path, "r", encoding="utf-8") as f:
            lines = f.readlines()
        entry = json.loads(lines[1])
        entry["payload"]["size"] = 1
        lines[1] = json.dumps(entry) + "\n"
        with open(path, "w", encoding="utf-8") as f:
            f.writelines(lines)

        with pytest.raises(LedgerIntegrityError):
            _open(ledger_dir)

    def test_truncated_line_detected(self, ledger_dir):
        _open(ledger_dir).approve(ROOT, 2)

        path = f"{ledger_dir}/{JOURNAL_FILENAME}"
        with open(path, "a", encoding="utf-8") as f:
            f.write('{"seq": 3, "entry_')

        with pytest.raises(LedgerIntegrityError):
            _open(ledger_dir)


class TestJournalSigning:
    def test_signed_entries_verify(self, ledger_dir):
        signer = Ed25519LedgerSigner.generate()
        verifier = Ed25519LedgerVerifier.for_signer(signer)

        ledger = _open(ledger_dir, signer=signer, verifier=verifier)
        ledger.approve(ROOT, 1)

        assert all(e.is_signed for e in ledger.history())
        ok, reason = ledger.journal.verify_integrity(verifier)
        assert ok, reason

        recovered = _open(ledger_dir, signer=signer, verifier=verifier)
        assert recovered.current_root == ROOT

    def test_unsigned_journal_rejected_by_verifier(self, ledger_dir):
        _open(ledger_dir).approve(ROOT, 1)

        verifier = Ed25519LedgerVerifier.for_signer(Ed25519LedgerSigner.generate())

        with pytest.raises(LedgerIntegrityError, match="not signed"):
            _open(ledger_dir, verifier=verifier)

    def test_wrong_key_rejected(self, ledger_dir):
        _open(ledger_dir, signer=Ed25519LedgerSigner.generate())

        verifier = Ed25519LedgerVerifier.for_signer(Ed25519LedgerSigner.generate())

        with pytest.raises(LedgerIntegrityError):
            _open(ledger_dir, verifier=verifier)

    def test_signer_pem_roundtrip(self, tmp_path):
        signer = Ed25519LedgerSigner.generate()
        key_file = tmp_path / "ledger.pem"
        key_file.write_bytes(signer.export_private_pem())

        loaded = Ed25519LedgerSigner.from_pem_file(str(key_file))

        assert loaded.key_id == signer.key_id

        verifier = Ed25519LedgerVerifier()
        assert verifier.trust(signer.public_key) == signer.key_id
        assert verifier.verify(b"data", loaded.sign(b"data"), signer.key_id)

    def test_in_memory_journal_chains(self):
        journal = LedgerJournal(sync=False)
        first = journal.append(LedgerEntryType.LEDGER_INITIALIZED, {"owner": OWNER})
        second = journal.append(LedgerEntryType.OWNER_SET, {"previous_owner": OWNER, "new_owner": OTHER})

        assert journal.path is None
        assert first.prev_hash is None
        assert second.prev_hash == first.entry_hash
        assert journal.verify_integrity() == (True, None)

    def test_bad_key_file(self, tmp_path):
        key_file = tmp_path / "ledger.pem"
        key_file.write_bytes(b"not a key")

        with pytest.raises(ValidationError):
            Ed25519LedgerSigner.from_pem_file(str(key_file))


class TestJournalWriteFailure:
    def test_failed_fsync_leaves_no_entry(self, ledger_dir, fail_next_fsync):
        ledger = ExecutionLedger.open(OWNER, directory=ledger_dir, sync=True)
        ledger.approve(ROOT, 2)
        path = os.path.join(ledger_dir, JOURNAL_FILENAME)
        size_before = os.path.getsize(path)

        fail_next_fsync()
        with pytest.raises(OSError):
            ledger.record_execution(0)

        assert os.path.getsize(path) == size_before
        assert not ledger.is_executed(0)
        assert ledger.journal.entry_count == 2

        # The chain continues at the next seq and still replays
        ledger.record_execution(1)
        recovered = _open(ledger_dir)

        assert not recovered.is_executed(0)
        assert recovered.is_executed(1)
        assert [e.seq for e in recovered.history()] == [1, 2, 3]
