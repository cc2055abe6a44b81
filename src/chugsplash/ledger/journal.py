"""
Ledger Journal - append-only, hash-chained record of every ledger transition.

Rules:
- Entries are JSONL, one per line, never rewritten
- Each entry carries the hash of its predecessor
- Writes are fsynced before returning unless sync is disabled (tests)
- With no path, entries are kept in memory with identical chaining
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from chugsplash.protocol.errors import LedgerIntegrityError
from chugsplash.utils.timestamps import now_iso

from .models import LedgerEntry, LedgerEntryType, LedgerSigner, LedgerVerifier

logger = logging.getLogger(__name__)

JOURNAL_FILENAME = "ledger.jsonl"


class LedgerJournal:
    """
    Hash-chained journal of ledger entries.

    Thread-safe for appends. Resumes seq and chain from an existing file.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        *,
        sync: bool = True,
        signer: Optional[LedgerSigner] = None,
    ) -> None:
        self._path = Path(path) if path is not None else None
        self._sync = sync
        self._signer = signer
        self._lock = threading.Lock()
        self._entries: List[LedgerEntry] = []
        self._seq = 0
        self._last_hash: Optional[str] = None

        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._entries = self._load()
            if self._entries:
                self._seq = self._entries[-1].seq
                self._last_hash = self._entries[-1].entry_hash

    @classmethod
    def in_directory(
        cls,
        directory: str,
        *,
        sync: bool = True,
        signer: Optional[LedgerSigner] = None,
    ) -> "LedgerJournal":
        return cls(str(Path(directory) / JOURNAL_FILENAME), sync=sync, signer=signer)

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def entry_count(self) -> int:
        return self._seq

    def _load(self) -> List[LedgerEntry]:
        if self._path is None or not self._path.exists():
            return []

        entries: List[LedgerEntry] = []
        with open(self._path, "r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError as e:
                    raise LedgerIntegrityError(f"Corrupted journal line {line_no}: {e}")
                entries.append(LedgerEntry.from_dict(data))
        return entries

    def _write_line(self, entry: LedgerEntry) -> None:
        """
        Write one entry line, truncating it away again if the write or the
        fsync fails, so the file never holds an entry the chain rejected.
        """
        data = (json.dumps(entry.to_dict(), ensure_ascii=False, sort_keys=True) + "\n").encode("utf-8")
        with open(self._path, "ab", buffering=0) as f:
            fd = f.fileno()
            start = os.fstat(fd).st_size
            try:
                f.write(data)
                if self._sync:
                    os.fsync(fd)
            except OSError:
                try:
                    os.ftruncate(fd, start)
                    if self._sync:
                        os.fsync(fd)
                except OSError:
                    logger.exception("Could not truncate journal back to %d bytes", start)
                raise

    def append(self, entry_type: LedgerEntryType, payload: Dict[str, Any]) -> LedgerEntry:
        """
        Append an entry. The entry is durable once this returns.

        Raises:
            OSError: If the write fails; the chain and the file are left untouched
        """
        with self._lock:
            entry = LedgerEntry(
                seq=self._seq + 1,
                timestamp_iso=now_iso(),
                entry_type=entry_type,
                payload=payload,
                prev_hash=self._last_hash,
            )
            entry.entry_hash = entry.compute_hash()
            if self._signer is not None:
                entry.sign(self._signer)

            if self._path is not None:
                self._write_line(entry)

            # Chain advances only after the write succeeded
            self._seq = entry.seq
            self._last_hash = entry.entry_hash
            self._entries.append(entry)

            logger.debug("Journal append seq=%d type=%s", entry.seq, entry_type.value)
            return entry

    def entries(self) -> List[LedgerEntry]:
        with self._lock:
            return list(self._entries)

    def verify_integrity(self, verifier: Optional[LedgerVerifier] = None) -> Tuple[bool, Optional[str]]:
        """
        Verify hash chain (and signatures, when a verifier is given).

        Returns (True, None) if valid, (False, reason) if corrupt.
        """
        prev_hash = None
        expected_seq = 1
        for entry in self.entries():
            if entry.seq != expected_seq:
                return False, f"Sequence gap at seq={entry.seq} (expected {expected_seq})"
            if entry.prev_hash != prev_hash:
                return False, f"Hash chain broken at seq={entry.seq}"
            if entry.entry_hash != entry.compute_hash():
                return False, f"Entry hash mismatch at seq={entry.seq}"
            if verifier is not None:
                if not entry.is_signed:
                    return False, f"Entry seq={entry.seq} is not signed"
                try:
                    valid = entry.verify_signature(verifier)
                except LedgerIntegrityError as e:
                    return False, str(e)
                if not valid:
                    return False, f"Invalid signature at seq={entry.seq}"
            prev_hash = entry.entry_hash
            expected_seq += 1

        return True, None
