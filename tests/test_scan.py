from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from bitcoin.core.script import OP_0, OP_CHECKSIG, OP_ENDIF, OP_IF, CScript

from ortty.inscription import InputNotFoundError, InscriptionId
from ortty.scan import (
    ScanError,
    ScanMode,
    fetch_inscription,
    resolve_block_hash,
    resolve_scan_mode,
    scan,
    scan_block,
    scan_block_json,
)

BLOCK_HASH = "00" * 4 + "11" * 28
CONTROL_BLOCK_HEX = "c1" + "02" * 32


def _witness(*payloads: bytes) -> list[str]:
    parts: list = [b"\x11" * 32, OP_CHECKSIG]
    for payload in payloads:
        parts.extend([OP_0, OP_IF, b"ord", b"\x01", b"text/plain", b"", payload, OP_ENDIF])
    return ["aa" * 64, bytes(CScript(parts)).hex(), CONTROL_BLOCK_HEX]


def _tx_json(txid: str, *witnesses: list[str]) -> dict:
    return {"txid": txid, "vin": [{"txinwitness": witness} for witness in witnesses]}


TX_A = _tx_json("0a" * 32, _witness(b"alpha"), _witness(b"beta", b"gamma"))
TX_BAD = _tx_json("0b" * 32, ["not-hex"])
TX_MALFORMED = _tx_json("0c" * 32, ["aa", "4d01", CONTROL_BLOCK_HEX], _witness(b"delta"))


@dataclass
class StubRPC:
    block: dict
    transactions: dict[str, dict] = field(default_factory=dict)
    calls: list[tuple] = field(default_factory=list)

    def getblockhash(self, height: int) -> str:
        self.calls.append(("getblockhash", height))
        assert height == self.block["height"]
        return self.block["hash"]

    def getblock(self, block_hash: str, verbosity: int = 2) -> dict:
        self.calls.append(("getblock", block_hash, verbosity))
        assert block_hash == self.block["hash"]
        return self.block

    def getrawtransaction(self, txid: str, verbose: bool = True, blockhash: str | None = None) -> dict:
        self.calls.append(("getrawtransaction", txid, verbose, blockhash))
        return self.transactions[txid]


def _rpc() -> StubRPC:
    block = {"hash": BLOCK_HASH, "height": 840000, "tx": [TX_A, TX_BAD, TX_MALFORMED]}
    transactions = {tx["txid"]: tx for tx in (TX_A, TX_MALFORMED)}
    return StubRPC(block=block, transactions=transactions)


@pytest.mark.parametrize(
    "block, txid, input_index, expected",
    [
        ("840000", None, None, ScanMode.BLOCK),
        (BLOCK_HASH, "0a" * 32, None, ScanMode.TRANSACTION),
        (None, "0a" * 32, None, ScanMode.TRANSACTION),
        (BLOCK_HASH, "0a" * 32, 1, ScanMode.INPUT),
    ],
)
def test_resolve_scan_mode(block, txid, input_index, expected) -> None:
    assert resolve_scan_mode(block, txid, input_index) is expected


@pytest.mark.parametrize("block, input_index", [(None, None), (None, 2), (BLOCK_HASH, 2)])
def test_resolve_scan_mode_rejects_incomplete_requests(block, input_index) -> None:
    with pytest.raises(ScanError):
        resolve_scan_mode(block, None, input_index)


def test_scan_block_by_height_skips_bad_transactions_and_inputs() -> None:
    rpc = _rpc()

    records = scan_block(rpc, "840000")

    assert [(r.txid[:2], r.input_index, r.intra_input_index, r.payload) for r in records] == [
        ("0a", 0, 0, b"alpha"),
        ("0a", 1, 0, b"beta"),
        ("0a", 1, 1, b"gamma"),
        ("0c", 1, 0, b"delta"),
    ]
    assert rpc.calls[0] == ("getblockhash", 840000)
    assert rpc.calls[1] == ("getblock", BLOCK_HASH, 2)


def test_scan_block_json_without_transactions() -> None:
    assert scan_block_json({"hash": BLOCK_HASH, "tx": []}) == []


def test_scan_transaction_passes_block_hash() -> None:
    rpc = _rpc()

    records = scan(rpc, block=BLOCK_HASH, txid="0a" * 32)

    assert [r.payload for r in records] == [b"alpha", b"beta", b"gamma"]
    assert rpc.calls == [("getrawtransaction", "0a" * 32, True, BLOCK_HASH)]


def test_scan_input_restricts_to_one_input() -> None:
    records = scan(_rpc(), txid="0a" * 32, input_index=1)

    assert [r.payload for r in records] == [b"beta", b"gamma"]


def test_scan_input_out_of_range() -> None:
    with pytest.raises(InputNotFoundError):
        scan(_rpc(), txid="0a" * 32, input_index=7)


def test_fetch_inscription_resolves_input_index() -> None:
    records = fetch_inscription(_rpc(), InscriptionId("0a" * 32, 0))

    assert len(records) == 1
    assert records[0].content.text == "alpha"
    assert str(records[0].inscription_id) == f"{'0a' * 32}i0"


def test_all_digit_block_hash_is_not_a_height() -> None:
    rpc = _rpc()
    digit_hash = "1" * 64

    assert resolve_block_hash(rpc, digit_hash) == digit_hash
    assert resolve_block_hash(rpc, " 840000 ") == BLOCK_HASH
    assert rpc.calls == [("getblockhash", 840000)]
