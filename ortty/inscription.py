"""Inscription records assembled from transaction witnesses.

The functions here tie the pieces together: a transaction input's tapscript
is decoded, its envelopes extracted and classified, and each one is wrapped
in an :class:`InscriptionRecord` carrying its provenance.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ortty.content import ClassifiedContent, classify_content, file_extension
from ortty.envelope import EnvelopeScanConfig, RawEnvelope, extract_script
from ortty.script import MalformedScriptError

logger = logging.getLogger(__name__)

_INSCRIPTION_ID_RE = re.compile(r"^(?P<txid>[0-9a-fA-F]{64})i(?P<index>[0-9]+)$")


class InputNotFoundError(LookupError):
    """Raised when an input index is out of range for a transaction."""

    def __init__(self, txid: str, input_index: int, input_count: int) -> None:
        super().__init__(
            f"Input {input_index} not found in transaction {txid} ({input_count} inputs)"
        )
        self.txid = txid
        self.input_index = input_index
        self.input_count = input_count


class InscriptionIdError(ValueError):
    """Raised when an inscription identifier cannot be parsed."""


@dataclass(frozen=True)
class InscriptionId:
    """``<txid>i<index>`` identifier where ``index`` is the input index."""

    txid: str
    index: int

    @classmethod
    def parse(cls, value: str) -> "InscriptionId":
        match = _INSCRIPTION_ID_RE.match(value.strip())
        if match is None:
            raise InscriptionIdError(f"Inscription ID parse error: {value!r}")
        return cls(txid=match.group("txid"), index=int(match.group("index")))

    def __str__(self) -> str:
        return f"{self.txid}i{self.index}"


@dataclass(frozen=True)
class TransactionInput:
    """Witness material for one input.

    ``tapscript`` is the leaf script selected from the witness stack by the
    node adapter (see :func:`ortty.transaction.tapscript_from_witness`).
    """

    witness: List[bytes] = field(default_factory=list)
    tapscript: Optional[bytes] = None


@dataclass(frozen=True)
class Transaction:
    txid: str
    inputs: List[TransactionInput] = field(default_factory=list)


@dataclass(frozen=True)
class InscriptionRecord:
    """A classified inscription together with where it was found."""

    txid: str
    input_index: int
    intra_input_index: int
    content_type: str
    raw_content_type: Optional[bytes]
    payload: bytes
    content: ClassifiedContent

    @property
    def inscription_id(self) -> InscriptionId:
        return InscriptionId(self.txid, self.input_index)

    @property
    def file_extension(self) -> str:
        return file_extension(self.content)

    @property
    def file_name(self) -> str:
        """``<id>.<ext>`` for the first envelope of an input, ``<id>-<n>.<ext>`` after it."""

        stem = str(self.inscription_id)
        if self.intra_input_index:
            stem = f"{stem}-{self.intra_input_index}"
        return f"{stem}.{self.file_extension}"

    @property
    def is_text_like(self) -> bool:
        return self.content.is_text_like

    @property
    def is_json(self) -> bool:
        return self.content.is_json

    @property
    def is_html(self) -> bool:
        return self.content.is_html

    @property
    def is_image(self) -> bool:
        return self.content.is_image

    @property
    def is_brc20(self) -> bool:
        return self.content.is_brc20

    def __str__(self) -> str:
        return f"[Inscription {self.inscription_id}]"


def build_records(
    txid: str, input_index: int, envelopes: Sequence[RawEnvelope]
) -> List[InscriptionRecord]:
    """Classify ``envelopes`` from one witness and attach provenance."""

    records: List[InscriptionRecord] = []
    for position, envelope in enumerate(envelopes):
        content_type = envelope.content_type
        records.append(
            InscriptionRecord(
                txid=txid,
                input_index=input_index,
                intra_input_index=position,
                content_type=content_type,
                raw_content_type=envelope.raw_content_type,
                payload=envelope.payload,
                content=classify_content(content_type, envelope.payload),
            )
        )
    return records


def extract_one(
    tx: Transaction, input_index: int, config: EnvelopeScanConfig | None = None
) -> List[InscriptionRecord]:
    """Extract the inscriptions carried by a single input.

    Raises:
        InputNotFoundError: if ``input_index`` is out of range.
        MalformedScriptError: if the input's tapscript cannot be tokenized.
    """

    if input_index < 0 or input_index >= len(tx.inputs):
        raise InputNotFoundError(tx.txid, input_index, len(tx.inputs))

    tapscript = tx.inputs[input_index].tapscript
    if tapscript is None:
        return []

    envelopes = extract_script(tapscript, config)
    return build_records(tx.txid, input_index, envelopes)


def extract_all(
    tx: Transaction, config: EnvelopeScanConfig | None = None
) -> List[InscriptionRecord]:
    """Extract inscriptions from every input, in input then envelope order.

    Inputs whose tapscript is malformed are skipped so that sibling inputs
    are still reported.
    """

    records: List[InscriptionRecord] = []
    for input_index in range(len(tx.inputs)):
        try:
            records.extend(extract_one(tx, input_index, config))
        except MalformedScriptError as exc:
            logger.debug("Skipping input %s:%d: %s", tx.txid, input_index, exc)
    return records
