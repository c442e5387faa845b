"""Adapters from node transaction structures to :class:`ortty.inscription.Transaction`."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from bitcoin.core import CTransaction, b2lx
from bitcoin.core.serialize import SerializationError

from ortty.inscription import Transaction, TransactionInput

logger = logging.getLogger(__name__)

TAPROOT_ANNEX_PREFIX = 0x50


class TransactionFormatError(ValueError):
    """Raised when node transaction data cannot be interpreted."""


def tapscript_from_witness(stack: Sequence[bytes]) -> Optional[bytes]:
    """Select the tapscript leaf from a script-path witness stack (BIP341).

    With at least two elements and a last element starting with ``0x50`` the
    last element is an annex and is ignored. The script is then the element
    right before the control block.
    """

    length = len(stack)
    if length == 0:
        return None
    last = stack[-1]
    if length >= 2 and last[:1] == bytes([TAPROOT_ANNEX_PREFIX]):
        position_from_end = 3
    else:
        position_from_end = 2
    if length < position_from_end:
        return None
    return bytes(stack[length - position_from_end])


def _input_from_witness(stack: Sequence[bytes]) -> TransactionInput:
    witness = [bytes(item) for item in stack]
    return TransactionInput(witness=witness, tapscript=tapscript_from_witness(witness))


def transaction_from_rpc(tx_json: Dict[str, Any]) -> Transaction:
    """Build a :class:`Transaction` from verbose ``getrawtransaction`` JSON.

    Block JSON fetched with ``getblock`` verbosity 2 embeds the same shape for
    every transaction.
    """

    txid = tx_json.get("txid") or tx_json.get("hash")
    if not isinstance(txid, str) or not txid:
        raise TransactionFormatError("Transaction JSON is missing a txid")

    inputs: List[TransactionInput] = []
    for position, vin in enumerate(tx_json.get("vin", [])):
        witness_hex = vin.get("txinwitness") or []
        try:
            stack = [bytes.fromhex(item) for item in witness_hex]
        except (TypeError, ValueError) as exc:
            raise TransactionFormatError(
                f"Witness of input {position} in {txid} is not valid hex"
            ) from exc
        inputs.append(_input_from_witness(stack))

    return Transaction(txid=txid, inputs=inputs)


def transaction_from_hex(raw_hex: str) -> Transaction:
    """Deserialize a raw (segwit-aware) transaction hex string."""

    try:
        raw = bytes.fromhex(raw_hex.strip())
        ctx = CTransaction.deserialize(raw)
    except (SerializationError, ValueError) as exc:
        raise TransactionFormatError(f"Could not deserialize transaction: {exc}") from exc

    witnesses = list(ctx.wit.vtxinwit)
    inputs: List[TransactionInput] = []
    for position in range(len(ctx.vin)):
        stack: Sequence[bytes] = ()
        if position < len(witnesses):
            stack = witnesses[position].scriptWitness.stack
        inputs.append(_input_from_witness(stack))

    txid = b2lx(ctx.GetTxid())
    logger.debug("Deserialized transaction %s with %d inputs", txid, len(inputs))
    return Transaction(txid=txid, inputs=inputs)
