"""
AST Node definitions for contract ABI descriptors

These dataclasses represent the parsed structure of a contract ABI JSON file.
"""

import hashlib
from dataclasses import dataclass, field


INPUT_ID_MASK = 0x7FFFFFFF
OUTPUT_ID_FLAG = 0x80000000


# === Parameter Types ===

@dataclass(frozen=True)
class IntType:
    """Fixed width integer: uintN, intN"""
    bits: int
    signed: bool = False

    @property
    def signature(self) -> str:
        return f"{'int' if self.signed else 'uint'}{self.bits}"


@dataclass(frozen=True)
class VarIntType:
    """Length-prefixed integer: varuintN, varintN (N is the max byte length)"""
    size: int
    signed: bool = False

    @property
    def length_bits(self) -> int:
        """Width of the byte-length prefix."""
        return (self.size - 1).bit_length()

    @property
    def signature(self) -> str:
        return f"{'varint' if self.signed else 'varuint'}{self.size}"


@dataclass(frozen=True)
class BoolType:
    @property
    def signature(self) -> str:
        return "bool"


@dataclass(frozen=True)
class AddressType:
    @property
    def signature(self) -> str:
        return "address"


@dataclass(frozen=True)
class CellType:
    @property
    def signature(self) -> str:
        return "cell"


@dataclass(frozen=True)
class BytesType:
    """bytes - stored in a referenced cell chain"""

    @property
    def signature(self) -> str:
        return "bytes"


@dataclass(frozen=True)
class FixedBytesType:
    """fixedbytesN - N bytes stored inline"""
    size: int

    @property
    def signature(self) -> str:
        return f"fixedbytes{self.size}"


@dataclass(frozen=True)
class StringType:
    @property
    def signature(self) -> str:
        return "string"


@dataclass(frozen=True)
class PublicKeyType:
    """Header-only type: maybe bit followed by a 256-bit key"""

    @property
    def signature(self) -> str:
        return "pubkey"


@dataclass(frozen=True)
class TupleType:
    """tuple with named components"""
    components: tuple = ()

    @property
    def signature(self) -> str:
        return "(" + ",".join(p.type.signature for p in self.components) + ")"


# Union of all parameter types
ParamType = IntType | VarIntType | BoolType | AddressType | CellType | BytesType | FixedBytesType | StringType | PublicKeyType | TupleType


@dataclass(frozen=True)
class Param:
    """A named parameter: {"name": ..., "type": ...}"""
    name: str
    type: ParamType


# === Version ===

@dataclass(frozen=True)
class AbiVersion:
    major: int
    minor: int = 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


# === Functions and Events ===

def signature_id(signature: str) -> int:
    """First four bytes of the SHA-256 of a signature, big-endian."""
    digest = hashlib.sha256(signature.encode()).digest()
    return int.from_bytes(digest[:4], byteorder="big")


def _types_signature(params) -> str:
    return ",".join(p.type.signature for p in params)


@dataclass
class Function:
    """A contract function with its input and output parameter lists"""
    name: str
    inputs: list[Param] = field(default_factory=list)
    outputs: list[Param] = field(default_factory=list)
    id: int | None = None  # explicit id from the ABI, if any
    header: list[Param] = field(default_factory=list)  # contract header, part of the v1 signature

    def signature(self, version: AbiVersion) -> str:
        inputs = self.header + self.inputs if version.major == 1 else self.inputs
        return f"{self.name}({_types_signature(inputs)})({_types_signature(self.outputs)})v{version.major}"

    def function_id(self, version: AbiVersion) -> int:
        return self.id if self.id is not None else signature_id(self.signature(version))

    def input_id(self, version: AbiVersion) -> int:
        return self.function_id(version) & INPUT_ID_MASK

    def output_id(self, version: AbiVersion) -> int:
        return self.function_id(version) | OUTPUT_ID_FLAG


@dataclass
class Event:
    """A contract event; events only have inputs"""
    name: str
    inputs: list[Param] = field(default_factory=list)
    id: int | None = None

    def signature(self, version: AbiVersion) -> str:
        return f"{self.name}({_types_signature(self.inputs)})v{version.major}"

    def event_id(self, version: AbiVersion) -> int:
        raw = self.id if self.id is not None else signature_id(self.signature(version))
        return raw & INPUT_ID_MASK


# === Contract ===

@dataclass
class AbiContract:
    """Root node representing a complete contract ABI"""
    version: AbiVersion
    header: list[Param] = field(default_factory=list)
    functions: list[Function] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)

    def get_function(self, name: str) -> Function | None:
        for f in self.functions:
            if f.name == name:
                return f
        return None

    def get_event(self, name: str) -> Event | None:
        for e in self.events:
            if e.name == name:
                return e
        return None
