"""Instruction decoding for raw Bitcoin scripts.

Tokenizing is delegated to python-bitcoinlib's :class:`CScript`; this module
only wraps its ``raw_iter`` output into immutable :class:`Instruction` values
and a consumable :class:`InstructionStream` that the envelope extractor walks
front to back. Decoding is all-or-nothing: a single truncated push aborts the
whole script.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from bitcoin.core.script import OP_CHECKSIG, OP_ENDIF, OP_IF, CScript, CScriptInvalidError

OP_FALSE = 0x00

__all__ = [
    "Instruction",
    "InstructionStream",
    "MalformedScriptError",
    "OP_CHECKSIG",
    "OP_ENDIF",
    "OP_FALSE",
    "OP_IF",
    "decode_script",
]


class MalformedScriptError(ValueError):
    """Raised when raw script bytes cannot be tokenized into instructions."""


@dataclass(frozen=True)
class Instruction:
    """A single script instruction: either a bare opcode or a data push.

    ``data`` is ``None`` for opcodes and the pushed bytes otherwise. ``OP_0``
    and zero-length ``OP_PUSHDATA*`` forms both decode as an empty push.
    """

    opcode: int
    data: Optional[bytes] = None

    @classmethod
    def op(cls, opcode: int) -> "Instruction":
        return cls(opcode=int(opcode), data=None)

    @property
    def is_push(self) -> bool:
        return self.data is not None

    @property
    def is_empty_push(self) -> bool:
        return self.data is not None and len(self.data) == 0

    def is_op(self, opcode: int) -> bool:
        return self.data is None and self.opcode == int(opcode)

    def pushes(self, value: bytes) -> bool:
        """Return ``True`` when this is a push of exactly ``value``."""

        return self.data is not None and self.data == value


class InstructionStream:
    """Ordered, front-consumable sequence of :class:`Instruction` values."""

    def __init__(self, instructions: Iterable[Instruction] = ()) -> None:
        self._items: deque[Instruction] = deque(instructions)

    def peek(self, offset: int = 0) -> Optional[Instruction]:
        if offset < 0 or offset >= len(self._items):
            return None
        return self._items[offset]

    def pop(self) -> Optional[Instruction]:
        if not self._items:
            return None
        return self._items.popleft()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(tuple(self._items))

    def __repr__(self) -> str:
        return f"InstructionStream({len(self._items)} instructions)"


def decode_script(script: bytes) -> InstructionStream:
    """Tokenize ``script`` into an :class:`InstructionStream`.

    Raises:
        MalformedScriptError: if any push declares more bytes than remain or
            its length prefix is missing.
    """

    instructions = []
    try:
        for opcode, data, _ in CScript(bytes(script)).raw_iter():
            if data is None:
                instructions.append(Instruction.op(opcode))
            else:
                instructions.append(Instruction(opcode=int(opcode), data=bytes(data)))
    except CScriptInvalidError as exc:
        raise MalformedScriptError(f"Malformed script: {exc}") from exc
    return InstructionStream(instructions)
