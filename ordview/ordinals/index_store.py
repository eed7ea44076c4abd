"""Read access to the confirmed inscription index.

:class:`InscriptionIndex` is the contract the view assembler and materializer
consume. :class:`SQLiteInscriptionIndex` is a lightweight local implementation
used by the CLI and the tests; it also exposes the write helpers needed to load
blocks, transactions, and numbered inscriptions into it.
"""

from __future__ import annotations

import json
import sqlite3
import threading
from pathlib import Path
from typing import Any, Iterable, List, Optional

from ordview.errors import IndexLookupError
from ordview.model import (
    Block,
    Inscription,
    InscriptionEntry,
    InscriptionId,
    OutPoint,
    SatPoint,
    Transaction,
)


class InscriptionIndex:
    """Interface for the confirmed-chain inscription index."""

    def get_block_by_height(self, height: int) -> Optional[Block]:
        raise NotImplementedError

    def get_block_by_hash(self, block_hash: str) -> Optional[Block]:
        raise NotImplementedError

    def get_latest_block_hash(self) -> Optional[str]:
        raise NotImplementedError

    def get_block_height(self, block_hash: str) -> Optional[int]:
        raise NotImplementedError

    def get_inscription_entry(self, inscription_id: InscriptionId) -> Optional[InscriptionEntry]:
        raise NotImplementedError

    def get_inscription_by_id(self, inscription_id: InscriptionId) -> Optional[Inscription]:
        raise NotImplementedError

    def get_inscription_satpoint_by_id(self, inscription_id: InscriptionId) -> Optional[SatPoint]:
        raise NotImplementedError

    def get_inscription_id_by_number(self, number: int) -> Optional[InscriptionId]:
        raise NotImplementedError

    def get_transaction(self, txid: str) -> Optional[Transaction]:
        raise NotImplementedError

    def get_inscriptions_on_output(self, outpoint: OutPoint) -> List[InscriptionId]:
        raise NotImplementedError

    def get_latest_inscriptions(self, count: int, cursor: Optional[int] = None) -> List[InscriptionId]:
        """Return up to ``count`` ids by descending number, starting at ``cursor`` when given."""

        raise NotImplementedError


class SQLiteInscriptionIndex(InscriptionIndex):
    """Confirmed index persisted to a local SQLite database."""

    DEFAULT_DB_PATH = Path.home() / ".ordview" / "index.sqlite"

    def __init__(self, db_path: str | Path | None = None) -> None:
        if db_path is not None and str(db_path) == ":memory:":
            self.db_path: Path | None = None
            target = ":memory:"
        else:
            self.db_path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            target = str(self.db_path)
        self.conn = sqlite3.connect(target, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._init_schema()

    def _init_schema(self) -> None:
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS blocks (
                    height INTEGER PRIMARY KEY,
                    hash TEXT NOT NULL UNIQUE
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS transactions (
                    txid TEXT PRIMARY KEY,
                    block_height INTEGER,
                    position INTEGER,
                    body TEXT NOT NULL
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS inscriptions (
                    inscription_id TEXT PRIMARY KEY,
                    txid TEXT NOT NULL,
                    envelope_index INTEGER NOT NULL,
                    number INTEGER NOT NULL UNIQUE,
                    height INTEGER NOT NULL,
                    fee INTEGER NOT NULL,
                    timestamp INTEGER NOT NULL,
                    sat INTEGER,
                    content_type BLOB,
                    body BLOB,
                    location_txid TEXT,
                    location_vout INTEGER,
                    location_offset INTEGER
                )
                """
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_transactions_block ON transactions(block_height, position)"
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_inscriptions_location ON inscriptions(location_txid, location_vout)"
            )
            self.conn.commit()

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "SQLiteInscriptionIndex":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - convenience
        self.close()

    def _fetch(self, sql: str, params: Iterable[Any] = ()) -> List[sqlite3.Row]:
        try:
            with self._lock:
                cursor = self.conn.cursor()
                cursor.execute(sql, tuple(params))
                return cursor.fetchall()
        except sqlite3.Error as exc:
            raise IndexLookupError(f"Index query failed: {exc}") from exc

    def _fetch_one(self, sql: str, params: Iterable[Any] = ()) -> Optional[sqlite3.Row]:
        rows = self._fetch(sql, params)
        return rows[0] if rows else None

    # Writes ---------------------------------------------------------------

    def add_block(self, block: Block) -> None:
        if block.height is None:
            raise ValueError("Blocks stored in the index need a height")
        with self._lock:
            cursor = self.conn.cursor()
            try:
                # Re-adding a height replaces every transaction stored under it.
                cursor.execute("DELETE FROM transactions WHERE block_height = ?", (block.height,))
                cursor.execute(
                    "INSERT OR REPLACE INTO blocks (height, hash) VALUES (?, ?)",
                    (block.height, block.hash),
                )
                for position, transaction in enumerate(block.transactions):
                    cursor.execute(
                        "INSERT OR REPLACE INTO transactions (txid, block_height, position, body) VALUES (?, ?, ?, ?)",
                        (transaction.txid, block.height, position, json.dumps(transaction.to_dict())),
                    )
            except Exception:
                self.conn.rollback()
                raise
            self.conn.commit()

    def add_transaction(self, transaction: Transaction) -> None:
        """Store a transaction that is not (yet) attached to an indexed block."""

        with self._lock:
            self.conn.execute(
                "INSERT OR REPLACE INTO transactions (txid, block_height, position, body) VALUES (?, NULL, NULL, ?)",
                (transaction.txid, json.dumps(transaction.to_dict())),
            )
            self.conn.commit()

    def add_inscription(
        self,
        inscription_id: InscriptionId,
        entry: InscriptionEntry,
        inscription: Inscription,
        satpoint: SatPoint | None,
    ) -> None:
        with self._lock:
            self.conn.execute(
                """
                INSERT OR REPLACE INTO inscriptions (
                    inscription_id, txid, envelope_index, number, height, fee, timestamp, sat,
                    content_type, body, location_txid, location_vout, location_offset
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(inscription_id),
                    inscription_id.txid,
                    inscription_id.index,
                    entry.number,
                    entry.height,
                    entry.fee,
                    entry.timestamp,
                    entry.sat,
                    inscription.content_type,
                    inscription.body,
                    satpoint.outpoint.txid if satpoint else None,
                    satpoint.outpoint.vout if satpoint else None,
                    satpoint.offset if satpoint else None,
                ),
            )
            self.conn.commit()

    # Reads ----------------------------------------------------------------

    def _load_block(self, row: Optional[sqlite3.Row]) -> Optional[Block]:
        if row is None:
            return None
        tx_rows = self._fetch(
            "SELECT body FROM transactions WHERE block_height = ? ORDER BY position",
            (row["height"],),
        )
        transactions = tuple(Transaction.from_dict(json.loads(tx["body"])) for tx in tx_rows)
        return Block(hash=row["hash"], height=row["height"], transactions=transactions)

    def get_block_by_height(self, height: int) -> Optional[Block]:
        return self._load_block(self._fetch_one("SELECT height, hash FROM blocks WHERE height = ?", (height,)))

    def get_block_by_hash(self, block_hash: str) -> Optional[Block]:
        return self._load_block(self._fetch_one("SELECT height, hash FROM blocks WHERE hash = ?", (block_hash,)))

    def get_latest_block_hash(self) -> Optional[str]:
        row = self._fetch_one("SELECT hash FROM blocks ORDER BY height DESC LIMIT 1")
        return row["hash"] if row else None

    def get_block_height(self, block_hash: str) -> Optional[int]:
        row = self._fetch_one("SELECT height FROM blocks WHERE hash = ?", (block_hash,))
        return row["height"] if row else None

    def get_inscription_entry(self, inscription_id: InscriptionId) -> Optional[InscriptionEntry]:
        row = self._fetch_one(
            "SELECT number, height, fee, timestamp, sat FROM inscriptions WHERE inscription_id = ?",
            (str(inscription_id),),
        )
        if row is None:
            return None
        return InscriptionEntry(
            number=row["number"],
            height=row["height"],
            fee=row["fee"],
            timestamp=row["timestamp"],
            sat=row["sat"],
        )

    def get_inscription_by_id(self, inscription_id: InscriptionId) -> Optional[Inscription]:
        row = self._fetch_one(
            "SELECT content_type, body FROM inscriptions WHERE inscription_id = ?",
            (str(inscription_id),),
        )
        if row is None:
            return None
        return Inscription(
            body=bytes(row["body"]) if row["body"] is not None else None,
            content_type=bytes(row["content_type"]) if row["content_type"] is not None else None,
        )

    def get_inscription_satpoint_by_id(self, inscription_id: InscriptionId) -> Optional[SatPoint]:
        row = self._fetch_one(
            "SELECT location_txid, location_vout, location_offset FROM inscriptions WHERE inscription_id = ?",
            (str(inscription_id),),
        )
        if row is None or row["location_txid"] is None:
            return None
        return SatPoint(
            outpoint=OutPoint(txid=row["location_txid"], vout=row["location_vout"]),
            offset=row["location_offset"],
        )

    def get_inscription_id_by_number(self, number: int) -> Optional[InscriptionId]:
        row = self._fetch_one("SELECT txid, envelope_index FROM inscriptions WHERE number = ?", (number,))
        if row is None:
            return None
        return InscriptionId(txid=row["txid"], index=row["envelope_index"])

    def get_transaction(self, txid: str) -> Optional[Transaction]:
        row = self._fetch_one("SELECT body FROM transactions WHERE txid = ?", (txid,))
        if row is None:
            return None
        return Transaction.from_dict(json.loads(row["body"]))

    def get_inscriptions_on_output(self, outpoint: OutPoint) -> List[InscriptionId]:
        rows = self._fetch(
            """
            SELECT txid, envelope_index FROM inscriptions
            WHERE location_txid = ? AND location_vout = ?
            ORDER BY location_offset, number
            """,
            (outpoint.txid, outpoint.vout),
        )
        return [InscriptionId(txid=row["txid"], index=row["envelope_index"]) for row in rows]

    def get_latest_inscriptions(self, count: int, cursor: Optional[int] = None) -> List[InscriptionId]:
        if cursor is None:
            rows = self._fetch(
                "SELECT txid, envelope_index FROM inscriptions ORDER BY number DESC LIMIT ?",
                (count,),
            )
        else:
            rows = self._fetch(
                "SELECT txid, envelope_index FROM inscriptions WHERE number <= ? ORDER BY number DESC LIMIT ?",
                (cursor, count),
            )
        return [InscriptionId(txid=row["txid"], index=row["envelope_index"]) for row in rows]


__all__ = ["InscriptionIndex", "SQLiteInscriptionIndex"]
