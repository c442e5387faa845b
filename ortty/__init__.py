"""Inscription scanner for Bitcoin witness data."""

from .content import ClassifiedContent, ContentKind, classify_content, file_extension
from .envelope import EnvelopeScanConfig, RawEnvelope, extract_envelopes, extract_script
from .filter import FilterError, InscriptionFilter, apply_filters, parse_filter
from .inscription import (
    InputNotFoundError,
    InscriptionId,
    InscriptionIdError,
    InscriptionRecord,
    Transaction,
    TransactionInput,
    extract_all,
    extract_one,
)
from .script import Instruction, InstructionStream, MalformedScriptError, decode_script

__all__ = [
    "ClassifiedContent",
    "ContentKind",
    "classify_content",
    "file_extension",
    "EnvelopeScanConfig",
    "RawEnvelope",
    "extract_envelopes",
    "extract_script",
    "FilterError",
    "InscriptionFilter",
    "apply_filters",
    "parse_filter",
    "InputNotFoundError",
    "InscriptionId",
    "InscriptionIdError",
    "InscriptionRecord",
    "Transaction",
    "TransactionInput",
    "extract_all",
    "extract_one",
    "Instruction",
    "InstructionStream",
    "MalformedScriptError",
    "decode_script",
]
