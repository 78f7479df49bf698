"""
Abidecode Token Codec v1.0

Reads ABI parameter values (tokens) from cells and converts them to plain
JSON-compatible values.

Values are packed into a chain of cells: when a cell is full, decoding
continues in its last reference.
"""

import base64
from dataclasses import dataclass
from typing import Any

from pytoniq_core import Address, Cell

from abi_ast import (
    AbiVersion, Param, ParamType,
    IntType, VarIntType, BoolType, AddressType, CellType, BytesType, FixedBytesType,
    StringType, PublicKeyType, TupleType,
)
from errors import DeserializationError, IncompleteDeserializationError, DetokenizeError


SELECTOR_BITS = 32
SIGNATURE_BITS = 512
PUBKEY_BITS = 256
MAX_CELL_REFS = 4

ADDR_NONE_TAG = 0b00
ADDR_STD_TAG = 0b10


@dataclass
class Token:
    """A decoded parameter value."""
    name: str
    type: ParamType
    value: Any


class CellCursor:
    """Read position over a chain of cells.

    Every cursor starts from its own slice of the root cell, so reading from
    one cursor never moves another.
    """

    def __init__(self, cell: Cell):
        self._enter(cell)

    def _enter(self, cell: Cell) -> None:
        self.slice = cell.begin_parse()
        self.cell_refs = len(cell.refs)

    @property
    def remaining_bits(self) -> int:
        return self.slice.remaining_bits

    @property
    def remaining_refs(self) -> int:
        return self.slice.remaining_refs

    def ensure_bits(self, n: int) -> None:
        """Make sure n bits can be read, moving to the next cell when this one is exhausted."""
        if n == 0:
            return
        if self.remaining_bits == 0:
            if self.remaining_refs != 1:
                raise DeserializationError(
                    f"Not enough remaining bits in the cell: need {n}, cell is empty "
                    f"and has {self.remaining_refs} references"
                )
            self._enter(self.slice.load_ref())
        if self.remaining_bits < n:
            raise DeserializationError(
                f"Not enough remaining bits in the cell: need {n}, have {self.remaining_bits}"
            )

    def load_uint(self, n: int) -> int:
        if n == 0:
            return 0
        self.ensure_bits(n)
        return self.slice.load_uint(n)

    def load_int(self, n: int) -> int:
        if n == 0:
            return 0
        self.ensure_bits(n)
        return self.slice.load_int(n)

    def load_bit(self) -> bool:
        self.ensure_bits(1)
        return bool(self.slice.load_bit())

    def load_bytes(self, size: int) -> bytes:
        if size == 0:
            return b""
        self.ensure_bits(size * 8)
        return self.slice.load_bytes(size)

    def load_ref(self, last: bool, version: AbiVersion) -> Cell:
        """Load a referenced cell for a reference-typed value.

        A single remaining reference with no bits left is the continuation of
        the chain unless this is the last value (ABI v2), or unless the cell
        is not full of references (ABI v1).
        """
        if self.remaining_refs == 1:
            if version.major == 1:
                is_continuation = self.cell_refs == MAX_CELL_REFS
            else:
                is_continuation = not last and self.remaining_bits == 0
            if is_continuation:
                self._enter(self.slice.load_ref())
        if self.remaining_refs == 0:
            raise DeserializationError("Not enough remaining references in the cell")
        return self.slice.load_ref()

    def skip_ref(self) -> None:
        if self.remaining_refs == 0:
            raise DeserializationError("Not enough remaining references in the cell")
        self.slice.load_ref()

    def check_complete(self, allow_partial: bool) -> None:
        if allow_partial:
            return
        if self.remaining_bits != 0 or self.remaining_refs != 0:
            raise IncompleteDeserializationError(self.remaining_bits, self.remaining_refs)


def _read_address(cursor: CellCursor) -> Address | None:
    tag = cursor.load_uint(2)
    if tag == ADDR_NONE_TAG:
        return None
    if tag != ADDR_STD_TAG:
        raise DeserializationError(f"Unsupported address tag {tag:02b}")
    if cursor.load_bit():
        raise DeserializationError("Anycast addresses are not supported")
    workchain = cursor.load_int(8)
    hash_part = cursor.load_bytes(32)
    return Address((workchain, hash_part))


def _read_snake_bytes(cell: Cell) -> bytes:
    """Concatenate the data of a cell and its chain of first references."""
    data = b""
    current = cell
    while current is not None:
        cell_slice = current.begin_parse()
        if cell_slice.remaining_bits % 8:
            raise DeserializationError("Bytes cell data is not a whole number of bytes")
        if cell_slice.remaining_bits:
            data += cell_slice.load_bytes(cell_slice.remaining_bits // 8)
        current = cell_slice.load_ref() if cell_slice.remaining_refs else None
    return data


def read_value(param_type: ParamType, cursor: CellCursor, last: bool, version: AbiVersion) -> Any:
    """Read one value of the given type from the cursor."""
    if isinstance(param_type, IntType):
        if param_type.signed:
            return cursor.load_int(param_type.bits)
        return cursor.load_uint(param_type.bits)

    if isinstance(param_type, VarIntType):
        length = cursor.load_uint(param_type.length_bits)
        if length == 0:
            return 0
        if length >= param_type.size:
            raise DeserializationError(f"Length {length} is too big for {param_type.signature}")
        if param_type.signed:
            return cursor.load_int(length * 8)
        return cursor.load_uint(length * 8)

    if isinstance(param_type, BoolType):
        return cursor.load_bit()

    if isinstance(param_type, AddressType):
        return _read_address(cursor)

    if isinstance(param_type, CellType):
        return cursor.load_ref(last, version)

    if isinstance(param_type, (BytesType, StringType)):
        return _read_snake_bytes(cursor.load_ref(last, version))

    if isinstance(param_type, FixedBytesType):
        return cursor.load_bytes(param_type.size)

    if isinstance(param_type, PublicKeyType):
        if cursor.load_bit():
            return cursor.load_bytes(PUBKEY_BITS // 8)
        return None

    if isinstance(param_type, TupleType):
        return _read_params(param_type.components, cursor, last, version)

    raise DeserializationError(f"Unsupported type {param_type!r}")


def _read_params(params, cursor: CellCursor, last: bool, version: AbiVersion) -> list[Token]:
    tokens = []
    for i, param in enumerate(params):
        is_last = last and i == len(params) - 1
        tokens.append(Token(param.name, param.type, read_value(param.type, cursor, is_last, version)))
    return tokens


def decode_params(params: list[Param], cursor: CellCursor, version: AbiVersion, allow_partial: bool = False) -> list[Token]:
    """Decode a parameter list from the cursor.

    Args:
        params: Parameter schema, in order
        cursor: Read position; it is advanced past the decoded values
        version: ABI version of the contract
        allow_partial: Whether data left after the last parameter is accepted

    Returns:
        One Token per parameter

    Raises:
        DeserializationError: If the data does not fit the schema
        IncompleteDeserializationError: If data remains and allow_partial is False
    """
    tokens = _read_params(params, cursor, True, version)
    cursor.check_complete(allow_partial)
    return tokens


def read_selector(cursor: CellCursor) -> int:
    """Read the 32-bit function or event id."""
    return cursor.load_uint(SELECTOR_BITS)


def decode_header(version: AbiVersion, cursor: CellCursor, header: list[Param], is_internal: bool) -> tuple[list[Token], int, CellCursor]:
    """Skip the signature, read the header fields and the function id.

    Internal messages carry neither a signature nor header fields. ABI v1
    bodies start with the function id, followed by the signature reference
    and the header; later versions put the id after the header.

    Returns:
        Tuple of (header tokens, function id, cursor positioned at the first parameter)
    """
    if is_internal:
        return [], read_selector(cursor), cursor

    if version.major == 1:
        selector = read_selector(cursor)
        cursor.skip_ref()
        return _read_header(header, cursor, version), selector, cursor

    if cursor.load_bit():
        cursor.load_bytes(SIGNATURE_BITS // 8)
    tokens = _read_header(header, cursor, version)
    return tokens, read_selector(cursor), cursor


def _read_header(header: list[Param], cursor: CellCursor, version: AbiVersion) -> list[Token]:
    return [Token(p.name, p.type, read_value(p.type, cursor, False, version)) for p in header]


# === Detokenizer ===

def _detokenize_value(param_type: ParamType, value: Any) -> Any:
    if isinstance(param_type, IntType):
        if not param_type.signed and param_type.bits == 256:
            return f"0x{value:064x}"
        return str(value)

    if isinstance(param_type, VarIntType):
        return str(value)

    if isinstance(param_type, BoolType):
        return bool(value)

    if isinstance(param_type, AddressType):
        if value is None:
            return ""
        return f"{value.wc}:{value.hash_part.hex()}"

    if isinstance(param_type, CellType):
        return base64.b64encode(value.to_boc()).decode()

    if isinstance(param_type, (BytesType, FixedBytesType)):
        return value.hex()

    if isinstance(param_type, StringType):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DetokenizeError(f"String is not valid UTF-8: {e.reason} at byte {e.start}") from None

    if isinstance(param_type, PublicKeyType):
        return value.hex() if value is not None else None

    if isinstance(param_type, TupleType):
        return detokenize(value)

    raise DetokenizeError(f"Unsupported type {param_type!r}")


def detokenize(tokens: list[Token]) -> dict:
    """Convert decoded tokens to a dict keyed by parameter name."""
    result = {}
    for token in tokens:
        try:
            result[token.name] = _detokenize_value(token.type, token.value)
        except DetokenizeError as e:
            raise DetokenizeError(f"Parameter '{token.name}': {e}") from None
    return result
