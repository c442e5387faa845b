"""Scan blocks, transactions or single inputs fetched over RPC."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from ortty.envelope import EnvelopeScanConfig
from ortty.inscription import InscriptionId, InscriptionRecord, Transaction, extract_all, extract_one
from ortty.transaction import TransactionFormatError, transaction_from_rpc

logger = logging.getLogger(__name__)

BLOCK_HASH_LENGTH = 64


class ScanError(RuntimeError):
    """Raised when a scan request is incomplete or inconsistent."""


class ScanMode(str, Enum):
    BLOCK = "block"
    TRANSACTION = "transaction"
    INPUT = "input"


def resolve_scan_mode(
    block: Optional[str], txid: Optional[str], input_index: Optional[int]
) -> ScanMode:
    """Pick a scan mode from the identifiers supplied.

    A block alone scans the whole block; a transaction (optionally located by
    its block, for nodes without ``txindex``) scans every input; adding an
    input index restricts the scan to that input.
    """

    if txid and input_index is not None:
        return ScanMode.INPUT
    if txid:
        return ScanMode.TRANSACTION
    if block and input_index is None:
        return ScanMode.BLOCK
    raise ScanError("Scan mode requires: Block, Transaction (+Block), or Transaction+Input (+Block)")


def resolve_block_hash(rpc, block: str) -> str:
    """Accept either a block hash or a decimal height.

    A 64 character value is always a hash, even when every nibble is a digit.
    """

    block = block.strip()
    if len(block) != BLOCK_HASH_LENGTH and block.isdigit():
        return rpc.getblockhash(int(block))
    return block


def scan_block_json(
    block_json: Dict[str, Any], config: EnvelopeScanConfig | None = None
) -> List[InscriptionRecord]:
    """Extract inscriptions from every transaction of a verbosity-2 block."""

    block_id = block_json.get("hash") or block_json.get("height")
    records: List[InscriptionRecord] = []
    for tx_json in block_json.get("tx", []):
        try:
            tx = transaction_from_rpc(tx_json)
        except TransactionFormatError as exc:
            logger.warning("Skipping transaction in block %s: %s", block_id, exc)
            continue
        records.extend(extract_all(tx, config))
    logger.debug("Block %s carried %d inscription(s)", block_id, len(records))
    return records


def scan_block(rpc, block: str, config: EnvelopeScanConfig | None = None) -> List[InscriptionRecord]:
    block_hash = resolve_block_hash(rpc, block)
    block_json = rpc.getblock(block_hash, verbosity=2)
    return scan_block_json(block_json, config)


def fetch_transaction(rpc, txid: str, block: Optional[str] = None) -> Transaction:
    blockhash = resolve_block_hash(rpc, block) if block else None
    tx_json = rpc.getrawtransaction(txid, True, blockhash)
    return transaction_from_rpc(tx_json)


def scan_transaction(
    rpc, txid: str, block: Optional[str] = None, config: EnvelopeScanConfig | None = None
) -> List[InscriptionRecord]:
    return extract_all(fetch_transaction(rpc, txid, block), config)


def scan_input(
    rpc,
    txid: str,
    input_index: int,
    block: Optional[str] = None,
    config: EnvelopeScanConfig | None = None,
) -> List[InscriptionRecord]:
    return extract_one(fetch_transaction(rpc, txid, block), input_index, config)


def fetch_inscription(
    rpc, inscription_id: InscriptionId, config: EnvelopeScanConfig | None = None
) -> List[InscriptionRecord]:
    """Return every inscription carried by the input an identifier points at."""

    return scan_input(rpc, inscription_id.txid, inscription_id.index, config=config)


def scan(
    rpc,
    *,
    block: Optional[str] = None,
    txid: Optional[str] = None,
    input_index: Optional[int] = None,
    config: EnvelopeScanConfig | None = None,
) -> List[InscriptionRecord]:
    mode = resolve_scan_mode(block, txid, input_index)
    logger.debug("Scanning in %s mode", mode.value)
    if mode is ScanMode.BLOCK:
        return scan_block(rpc, block, config)
    if mode is ScanMode.TRANSACTION:
        return scan_transaction(rpc, txid, block, config)
    return scan_input(rpc, txid, input_index, block, config)
