"""
Abidecode Encoder v1.0

Encodes ABI parameter values into message body cells. The inverse of
token_codec; used to build fixture and golden bodies.
"""

from dataclasses import dataclass
from typing import Any, Callable

from pytoniq_core import Address, Builder, Cell, begin_cell

from abi_ast import (
    AbiContract, Param, ParamType,
    IntType, VarIntType, BoolType, AddressType, CellType, BytesType, FixedBytesType,
    StringType, PublicKeyType, TupleType,
)
from token_codec import SELECTOR_BITS, SIGNATURE_BITS, PUBKEY_BITS, MAX_CELL_REFS, ADDR_NONE_TAG, ADDR_STD_TAG


MAX_CELL_BITS = 1023
SNAKE_CHUNK_BYTES = 127


@dataclass
class Chunk:
    """One value's share of a cell: how much it takes and how to write it."""
    bits: int
    refs: int
    write: Callable[[Builder], Any]


def write_address(builder: Builder, address: Address | None) -> Builder:
    if address is None:
        return builder.store_uint(ADDR_NONE_TAG, 2)
    return (builder
            .store_uint(ADDR_STD_TAG, 2)
            .store_uint(0, 1)  # no anycast
            .store_int(address.wc, 8)
            .store_bytes(address.hash_part))


def snake_cell(data: bytes) -> Cell:
    """Store bytes in a chain of cells, 127 bytes per cell."""
    pieces = [data[i:i + SNAKE_CHUNK_BYTES] for i in range(0, len(data), SNAKE_CHUNK_BYTES)] or [b""]
    next_cell = None
    for piece in reversed(pieces):
        builder = begin_cell()
        if piece:
            builder.store_bytes(piece)
        if next_cell is not None:
            builder.store_ref(next_cell)
        next_cell = builder.end_cell()
    return next_cell


def pack_chunks(chunks: list[Chunk]) -> Cell:
    """Pack chunks greedily into a chain of cells.

    Every cell but the last keeps one reference free for the chain link.
    """
    groups = [[]]
    bits = refs = 0
    for i, chunk in enumerate(chunks):
        ref_limit = MAX_CELL_REFS if i == len(chunks) - 1 else MAX_CELL_REFS - 1
        if bits + chunk.bits > MAX_CELL_BITS or refs + chunk.refs > ref_limit:
            groups.append([])
            bits = refs = 0
        groups[-1].append(chunk)
        bits += chunk.bits
        refs += chunk.refs

    next_cell = None
    for group in reversed(groups):
        builder = begin_cell()
        for chunk in group:
            chunk.write(builder)
        if next_cell is not None:
            builder.store_ref(next_cell)
        next_cell = builder.end_cell()
    return next_cell


class Encoder:
    """Encodes message bodies using a contract ABI."""

    def __init__(self, abi: AbiContract):
        self.abi = abi
        self.version = abi.version

    def _to_int(self, value: Any) -> int:
        if isinstance(value, str):
            return int(value, 16) if value.lower().startswith("0x") else int(value)
        return int(value)

    def _to_bytes(self, value: Any) -> bytes:
        if isinstance(value, str):
            return bytes.fromhex(value)
        return bytes(value)

    def encode_value(self, param_type: ParamType, value: Any) -> list[Chunk]:
        """Encode a single value into one chunk (tuples give one chunk per component).

        Args:
            param_type: Type of the value
            value: int or numeric string, bool, Address or raw address string,
                   Cell, bytes or hex string, str, or dict for tuples

        Returns:
            List of chunks in write order
        """
        if isinstance(param_type, IntType):
            number = self._to_int(value)
            if param_type.signed:
                return [Chunk(param_type.bits, 0, lambda b: b.store_int(number, param_type.bits))]
            return [Chunk(param_type.bits, 0, lambda b: b.store_uint(number, param_type.bits))]

        elif isinstance(param_type, VarIntType):
            number = self._to_int(value)
            if param_type.signed:
                magnitude = number if number >= 0 else ~number
                length = (magnitude.bit_length() + 8) // 8 if number else 0
            else:
                length = (number.bit_length() + 7) // 8
            length_bits = param_type.length_bits

            def write_varint(b: Builder):
                b.store_uint(length, length_bits)
                if length:
                    if param_type.signed:
                        b.store_int(number, length * 8)
                    else:
                        b.store_uint(number, length * 8)
            return [Chunk(length_bits + length * 8, 0, write_varint)]

        elif isinstance(param_type, BoolType):
            flag = 1 if value else 0
            return [Chunk(1, 0, lambda b: b.store_uint(flag, 1))]

        elif isinstance(param_type, AddressType):
            address = Address(value) if isinstance(value, str) and value else (value or None)
            bits = 267 if address is not None else 2
            return [Chunk(bits, 0, lambda b: write_address(b, address))]

        elif isinstance(param_type, CellType):
            return [Chunk(0, 1, lambda b: b.store_ref(value))]

        elif isinstance(param_type, BytesType):
            cell = snake_cell(self._to_bytes(value))
            return [Chunk(0, 1, lambda b: b.store_ref(cell))]

        elif isinstance(param_type, StringType):
            cell = snake_cell(value.encode("utf-8") if isinstance(value, str) else bytes(value))
            return [Chunk(0, 1, lambda b: b.store_ref(cell))]

        elif isinstance(param_type, FixedBytesType):
            data = self._to_bytes(value)
            if len(data) != param_type.size:
                raise ValueError(f"{param_type.signature} needs {param_type.size} bytes, got {len(data)}")
            return [Chunk(param_type.size * 8, 0, lambda b: b.store_bytes(data))]

        elif isinstance(param_type, PublicKeyType):
            if value is None:
                return [Chunk(1, 0, lambda b: b.store_uint(0, 1))]
            key = self._to_bytes(value)
            return [Chunk(1 + PUBKEY_BITS, 0, lambda b: b.store_uint(1, 1).store_bytes(key))]

        elif isinstance(param_type, TupleType):
            return self.encode_params(list(param_type.components), value)

        raise ValueError(f"Unsupported type {param_type!r}")

    def encode_params(self, params: list[Param], values: dict[str, Any]) -> list[Chunk]:
        chunks = []
        for param in params:
            if param.name not in values:
                raise ValueError(f"Missing value for parameter: {param.name}")
            chunks.extend(self.encode_value(param.type, values[param.name]))
        return chunks

    def _selector_chunk(self, selector: int) -> Chunk:
        return Chunk(SELECTOR_BITS, 0, lambda b: b.store_uint(selector, SELECTOR_BITS))

    def _get_function(self, name: str):
        function = self.abi.get_function(name)
        if function is None:
            raise ValueError(f"Function '{name}' not found")
        return function

    def encode_input_body(self, function_name: str, values: dict[str, Any] = None, internal: bool = True,
                          header_values: dict[str, Any] = None, signature: bytes | None = None) -> Cell:
        """Create a function call body.

        Args:
            function_name: Function to call
            values: Input parameter values by name
            internal: Internal bodies have no signature and no header
            header_values: Header field values by name (external bodies only);
                           missing fields are encoded empty
            signature: 64-byte signature to embed (external bodies only)

        Returns:
            Root cell of the body
        """
        function = self._get_function(function_name)
        selector = self._selector_chunk(function.input_id(self.version))
        if signature is not None and len(signature) * 8 != SIGNATURE_BITS:
            raise ValueError("Signature must be 64 bytes")

        if internal:
            chunks = [selector]
        elif self.version.major == 1:
            # id, signature reference, header
            sig_builder = begin_cell()
            if signature is not None:
                sig_builder.store_bytes(signature)
            sig_cell = sig_builder.end_cell()
            chunks = [selector, Chunk(0, 1, lambda b: b.store_ref(sig_cell))]
            chunks.extend(self._header_chunks(header_values))
        else:
            # signature flag, header, id
            if signature is not None:
                chunks = [Chunk(1 + SIGNATURE_BITS, 0, lambda b: b.store_uint(1, 1).store_bytes(signature))]
            else:
                chunks = [Chunk(1, 0, lambda b: b.store_uint(0, 1))]
            chunks.extend(self._header_chunks(header_values))
            chunks.append(selector)

        chunks.extend(self.encode_params(function.inputs, values or {}))
        return pack_chunks(chunks)

    def _header_chunks(self, header_values: dict[str, Any] | None) -> list[Chunk]:
        """Header fields in schema order; missing fields other than pubkey are 0."""
        header_values = header_values or {}
        chunks = []
        for param in self.abi.header:
            value = header_values.get(param.name)
            if value is None and not isinstance(param.type, PublicKeyType):
                value = 0
            chunks.extend(self.encode_value(param.type, value))
        return chunks

    def encode_output_body(self, function_name: str, values: dict[str, Any] = None) -> Cell:
        """Create a function return body."""
        function = self._get_function(function_name)
        chunks = [self._selector_chunk(function.output_id(self.version))]
        chunks.extend(self.encode_params(function.outputs, values or {}))
        return pack_chunks(chunks)

    def encode_answer_body(self, answer_id: int, function_name: str, values: dict[str, Any] = None) -> Cell:
        """Create the reply a responsible function sends back to answer_id."""
        function = self._get_function(function_name)
        chunks = [self._selector_chunk(answer_id)]
        chunks.extend(self.encode_params(function.outputs, values or {}))
        return pack_chunks(chunks)

    def encode_event_body(self, event_name: str, values: dict[str, Any] = None) -> Cell:
        """Create an event body."""
        event = self.abi.get_event(event_name)
        if event is None:
            raise ValueError(f"Event '{event_name}' not found")
        chunks = [self._selector_chunk(event.event_id(self.version))]
        chunks.extend(self.encode_params(event.inputs, values or {}))
        return pack_chunks(chunks)
