"""
Abidecode ABI Parser v1.0

Loads contract ABI JSON documents into AbiContract nodes. Parameter type
expressions ("uint128", "fixedbytes32", "map(address,uint8)"...) are parsed
with Lark.
"""

import json
from pathlib import Path
from lark import Lark, Transformer
from lark.exceptions import UnexpectedInput, VisitError

from abi_ast import (
    AbiContract, AbiVersion, Function, Event, Param,
    IntType, VarIntType, BoolType, AddressType, CellType, BytesType, FixedBytesType,
    StringType, PublicKeyType, TupleType,
)
from errors import InvalidAbiError


TYPE_GRAMMAR = r"""
start: type_expr

?type_expr: array_type
          | map_type
          | optional_type
          | scalar_type

array_type: type_expr "[" [DEC_NUMBER] "]"
map_type: "map" "(" type_expr "," type_expr ")"
optional_type: "optional" "(" type_expr ")"

scalar_type: TYPE_NAME [DEC_NUMBER]

TYPE_NAME: "fixedbytes" | "varuint" | "varint" | "address" | "string" | "pubkey"
         | "bytes" | "tuple" | "token" | "uint" | "int" | "bool" | "cell" | "gram"

DEC_NUMBER: /[0-9]+/

%import common.WS
%ignore WS
"""

# Header entries given by name only
KNOWN_HEADER_TYPES = {
    "time": IntType(bits=64),
    "expire": IntType(bits=32),
    "pubkey": PublicKeyType(),
}


def get_parser() -> Lark:
    """Create and return the Lark parser for type expressions."""
    return Lark(TYPE_GRAMMAR, start="start", parser="lalr")


class UnsupportedTypeError(ValueError):
    pass


class TypeTransformer(Transformer):
    """Transform a type expression parse tree into a ParamType."""

    def __init__(self, allow_header_types: bool = False):
        super().__init__()
        self.allow_header_types = allow_header_types

    # === Terminals ===

    def TYPE_NAME(self, token):
        return str(token)

    def DEC_NUMBER(self, token):
        return int(str(token))

    # === Types ===

    def start(self, items):
        return items[0]

    def scalar_type(self, items):
        name, size = items

        if name in ("uint", "int"):
            if size is None or not 1 <= size <= 256:
                raise ValueError(f"'{name}' needs a bit size between 1 and 256")
            return IntType(bits=size, signed=(name == "int"))

        if name in ("varuint", "varint"):
            if size not in (16, 32):
                raise ValueError(f"'{name}' size must be 16 or 32")
            return VarIntType(size=size, signed=(name == "varint"))

        if name == "fixedbytes":
            if size is None or not 1 <= size <= 32:
                raise ValueError("'fixedbytes' needs a byte size between 1 and 32")
            return FixedBytesType(size=size)

        if size is not None:
            raise ValueError(f"'{name}' does not take a size")

        if name in ("gram", "token"):
            return VarIntType(size=16)
        if name == "pubkey":
            if not self.allow_header_types:
                raise ValueError("'pubkey' is only allowed in the header")
            return PublicKeyType()

        simple = {
            "bool": BoolType,
            "address": AddressType,
            "cell": CellType,
            "bytes": BytesType,
            "string": StringType,
            "tuple": TupleType,
        }
        return simple[name]()

    def array_type(self, items):
        raise UnsupportedTypeError("array types are not supported")

    def map_type(self, items):
        raise UnsupportedTypeError("map types are not supported")

    def optional_type(self, items):
        raise UnsupportedTypeError("optional types are not supported")


# Global parser instance
_parser = None


class ParseError(InvalidAbiError):
    """Exception raised for ABI errors, with the file and parameter involved."""
    def __init__(self, message: str, file_path: str = None, param: str = None):
        self.file_path = file_path
        self.param = param
        data = {}
        if file_path:
            data["file_path"] = file_path
        if param:
            data["param"] = param
        super().__init__(message, data)

    def __str__(self):
        location = ""
        if self.file_path:
            location = f"{self.file_path}:"
        if self.param:
            location += f"{self.param}:"
        if location:
            return f"{location} {self.message}"
        return self.message


def parse_type(type_str: str, components: list | None = None, header: bool = False):
    """Parse a type expression into a ParamType.

    Args:
        type_str: Type expression from the ABI, e.g. "uint128"
        components: Raw component list for "tuple" types
        header: Whether header-only types (pubkey) are allowed

    Returns:
        The ParamType node

    Raises:
        ParseError: If the expression is malformed or not supported
    """
    global _parser
    if _parser is None:
        _parser = get_parser()

    if not isinstance(type_str, str):
        raise ParseError(f"Type must be a string, got {type_str!r}")

    try:
        tree = _parser.parse(type_str)
    except UnexpectedInput as e:
        raise ParseError(f"Invalid type '{type_str}' at column {e.column}") from None

    try:
        param_type = TypeTransformer(allow_header_types=header).transform(tree)
    except VisitError as e:
        raise ParseError(f"Invalid type '{type_str}': {e.orig_exc}") from None

    if isinstance(param_type, TupleType):
        if not components:
            raise ParseError("Tuple type needs a non-empty 'components' list")
        param_type = TupleType(components=tuple(_parse_param(c) for c in components))
    elif components:
        raise ParseError(f"Type '{type_str}' can't have components")

    return param_type


def _parse_param(raw: dict, header: bool = False) -> Param:
    if not isinstance(raw, dict) or "name" not in raw or "type" not in raw:
        raise ParseError(f"Parameter must be an object with 'name' and 'type': {raw!r}")
    try:
        param_type = parse_type(raw["type"], raw.get("components"), header=header)
    except ParseError as e:
        raise ParseError(e.reason, param=raw["name"]) from None
    return Param(name=raw["name"], type=param_type)


def _parse_header_param(raw) -> Param:
    if isinstance(raw, str):
        if raw not in KNOWN_HEADER_TYPES:
            raise ParseError(f"Unknown header field '{raw}'")
        return Param(name=raw, type=KNOWN_HEADER_TYPES[raw])
    return _parse_param(raw, header=True)


def _parse_id(raw) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ParseError(f"Invalid id {raw!r}")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str):
        try:
            value = int(raw, 16) if raw.lower().startswith("0x") else int(raw)
        except ValueError:
            raise ParseError(f"Invalid id {raw!r}") from None
    else:
        raise ParseError(f"Invalid id {raw!r}")
    if not 0 <= value <= 0xFFFFFFFF:
        raise ParseError(f"Id {raw!r} does not fit in 32 bits")
    return value


def _parse_version(doc: dict) -> AbiVersion:
    version_str = doc.get("version")
    if version_str is not None:
        try:
            major, minor = (int(part) for part in str(version_str).split("."))
        except ValueError:
            raise ParseError(f"Invalid version '{version_str}'") from None
        return AbiVersion(major, minor)
    abi_version = doc.get("ABI version")
    if isinstance(abi_version, int) and not isinstance(abi_version, bool):
        return AbiVersion(abi_version, 0)
    raise ParseError("Missing 'ABI version'")


def _check_unique(items, key, what: str) -> None:
    seen = set()
    for item in items:
        k = key(item)
        if k in seen:
            shown = f"0x{k:08x}" if isinstance(k, int) else k
            raise ParseError(f"Duplicate {what}: {shown}")
        seen.add(k)


def parse_abi_dict(doc: dict) -> AbiContract:
    """Build an AbiContract from a decoded ABI JSON object.

    Raises:
        ParseError: If a required key is missing or a definition is invalid
    """
    if not isinstance(doc, dict):
        raise ParseError("ABI must be a JSON object")

    version = _parse_version(doc)
    header = [_parse_header_param(h) for h in doc.get("header", [])]

    functions = []
    for raw in doc.get("functions", []):
        if "name" not in raw:
            raise ParseError(f"Function without a name: {raw!r}")
        functions.append(Function(
            name=raw["name"],
            inputs=[_parse_param(p) for p in raw.get("inputs", [])],
            outputs=[_parse_param(p) for p in raw.get("outputs", [])],
            id=_parse_id(raw.get("id")),
            header=header,
        ))

    events = []
    for raw in doc.get("events", []):
        if "name" not in raw:
            raise ParseError(f"Event without a name: {raw!r}")
        events.append(Event(
            name=raw["name"],
            inputs=[_parse_param(p) for p in raw.get("inputs", [])],
            id=_parse_id(raw.get("id")),
        ))

    _check_unique(functions, lambda f: f.name, "function name")
    _check_unique(functions, lambda f: f.input_id(version), "function input id")
    _check_unique(functions, lambda f: f.output_id(version), "function output id")
    _check_unique(events, lambda e: e.name, "event name")
    _check_unique(events, lambda e: e.event_id(version), "event id")

    return AbiContract(version=version, header=header, functions=functions, events=events)


def parse_abi_string(content: str | bytes, file_path: str = None) -> AbiContract:
    """Parse ABI JSON text."""
    try:
        doc = json.loads(content)
    except ValueError as e:
        raise ParseError(f"Not valid JSON: {e}", file_path=file_path) from None
    try:
        return parse_abi_dict(doc)
    except ParseError as e:
        if file_path and not e.file_path:
            raise ParseError(e.reason, file_path=file_path, param=e.param) from None
        raise


def load_abi(file_path: str | Path) -> AbiContract:
    """Load a contract ABI from a .abi.json file.

    Raises:
        ParseError: If the file can't be read or is not a valid ABI
    """
    try:
        with open(file_path) as f:
            content = f.read()
    except OSError as e:
        raise ParseError(f"Can't read ABI file: {e.strerror}", file_path=str(file_path)) from None
    return parse_abi_string(content, file_path=str(file_path))


def resolve_abi(abi) -> AbiContract:
    """Accept an AbiContract, an ABI dict or an ABI JSON string."""
    if isinstance(abi, AbiContract):
        return abi
    if isinstance(abi, dict):
        return parse_abi_dict(abi)
    if isinstance(abi, (str, bytes)):
        return parse_abi_string(abi)
    raise ParseError(f"Unsupported ABI value of type {type(abi).__name__}")


if __name__ == "__main__":
    import sys
    if len(sys.argv) < 2:
        print("Usage: python abi_parser.py <file.abi.json>")
        sys.exit(1)

    result = load_abi(sys.argv[1])
    print(result)
