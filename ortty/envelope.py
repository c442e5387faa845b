"""Envelope extraction for ordinal-style inscriptions.

An inscription envelope is an unexecuted conditional branch inside a tapscript::

    OP_FALSE OP_IF
        OP_PUSH "ord"
        OP_PUSH 1
        OP_PUSH "text/plain;charset=utf-8"
        OP_0
        OP_PUSH data(<=520)
        ...
        OP_PUSH data(<=520)
    OP_ENDIF

The extractor scans an :class:`~ortty.script.InstructionStream` for any
number of such envelopes. Anything that does not fit the grammar is skipped;
a witness with no envelope simply yields an empty list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from ortty.script import OP_ENDIF, OP_IF, InstructionStream, decode_script

logger = logging.getLogger(__name__)

PROTOCOL_TAG = b"ord"
CONTENT_TYPE_MARKER = b"\x01"


@dataclass(frozen=True)
class RawEnvelope:
    """Content-type tag and payload recovered from one envelope.

    ``declared_tag`` is ``None`` when the envelope carried no content-type
    marker at all.
    """

    declared_tag: Optional[bytes]
    payload: bytes

    @property
    def content_type(self) -> str:
        """The declared tag as text, or ``""`` when absent or not UTF-8."""

        if self.declared_tag is None:
            return ""
        try:
            return self.declared_tag.decode("utf-8")
        except UnicodeDecodeError:
            return ""

    @property
    def raw_content_type(self) -> Optional[bytes]:
        return self.declared_tag


@dataclass(frozen=True)
class EnvelopeScanConfig:
    """Grammar variants observed across inscription decoders.

    The defaults accept the widest set of inputs. Each flag narrows the
    grammar to match a stricter deployment:

    * ``skip_leading_noise=False`` consumes exactly two leading instructions
      (the signature push and ``OP_CHECKSIG``) and then requires envelopes to
      follow back to back.
    * ``allow_extra_fields=False`` requires the data separator to follow the
      content-type tag immediately.
    * ``multiple_per_witness=False`` stops after the first envelope.
    """

    skip_leading_noise: bool = True
    allow_extra_fields: bool = True
    multiple_per_witness: bool = True
    protocol_tag: bytes = PROTOCOL_TAG


DEFAULT_SCAN_CONFIG = EnvelopeScanConfig()


def extract_envelopes(
    stream: InstructionStream, config: EnvelopeScanConfig | None = None
) -> List[RawEnvelope]:
    """Consume ``stream`` and return every well-formed envelope in order."""

    config = config or DEFAULT_SCAN_CONFIG
    envelopes: List[RawEnvelope] = []

    if not config.skip_leading_noise:
        stream.pop()
        stream.pop()

    while stream:
        if not _at_start_marker(stream):
            if not config.skip_leading_noise:
                break
            stream.pop()
            continue

        stream.pop()
        stream.pop()
        envelope = _extract_body(stream, config)
        if envelope is None:
            continue

        envelopes.append(envelope)
        if not config.multiple_per_witness:
            break

    return envelopes


def extract_script(script: bytes, config: EnvelopeScanConfig | None = None) -> List[RawEnvelope]:
    """Decode raw script bytes and extract their envelopes.

    Raises:
        MalformedScriptError: if ``script`` cannot be tokenized.
    """

    return extract_envelopes(decode_script(script), config)


def _at_start_marker(stream: InstructionStream) -> bool:
    first = stream.peek(0)
    second = stream.peek(1)
    return (
        first is not None
        and second is not None
        and first.is_empty_push
        and second.is_op(OP_IF)
    )


def _extract_body(stream: InstructionStream, config: EnvelopeScanConfig) -> Optional[RawEnvelope]:
    protocol = stream.pop()
    if protocol is None or not protocol.pushes(config.protocol_tag):
        logger.debug("Conditional branch without %r protocol tag; skipping", config.protocol_tag)
        return None

    declared_tag: Optional[bytes] = None
    marker = stream.peek()
    if marker is not None and marker.pushes(CONTENT_TYPE_MARKER):
        stream.pop()
        tag = stream.pop()
        if tag is None or not tag.is_push:
            logger.debug("Envelope content-type marker not followed by a push")
            return None
        declared_tag = tag.data

    if not _skip_to_data_separator(stream, config):
        logger.debug("Envelope has no data separator")
        return None

    payload = _accumulate_payload(stream)

    end = stream.peek()
    if end is None or not end.is_op(OP_ENDIF):
        logger.debug("Envelope with %d payload bytes is not terminated by OP_ENDIF", len(payload))
        return None
    stream.pop()

    return RawEnvelope(declared_tag=declared_tag, payload=payload)


def _skip_to_data_separator(stream: InstructionStream, config: EnvelopeScanConfig) -> bool:
    # Unknown tag/value pairs may sit between the content type and the body.
    while stream:
        instruction = stream.pop()
        if instruction.is_empty_push:
            return True
        if not instruction.is_push or not config.allow_extra_fields:
            return False
    return False


def _accumulate_payload(stream: InstructionStream) -> bytes:
    chunks: List[bytes] = []
    while True:
        instruction = stream.peek()
        if instruction is None or not instruction.is_push:
            break
        chunks.append(instruction.data)
        stream.pop()
    return b"".join(chunks)
