"""
Abidecode Errors v1.0

Exception hierarchy shared by the ABI loader, the token codec and the
message body decoder.

Two layers:
- Codec errors (CodecError and subclasses) are raised by token_codec while
  reading cells. They describe what went wrong at the bit level.
- AbiError and subclasses are what callers see. Each carries a stable
  numeric code so that tools can branch on it without parsing text.
"""

INVALID_JSON = 303
INVALID_MESSAGE = 304


class AbiError(Exception):
    """Base class for errors reported to callers."""
    code = 0

    def __init__(self, message: str, data: dict = None):
        self.message = message
        self.data = data or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "data": dict(self.data)}


class InvalidAbiError(AbiError):
    """The ABI document can't be read or is not a valid contract ABI."""
    code = INVALID_JSON

    def __init__(self, message: str, data: dict = None):
        self.reason = message
        super().__init__(f"Invalid ABI: {message}", data)


class MessageDecodeError(AbiError):
    """A message or message body can't be decoded with the given ABI."""
    code = INVALID_MESSAGE

    def __init__(self, message: str, data: dict = None):
        self.reason = message
        super().__init__(f"Message can't be decoded: {message}", data)


class SelectorReadError(MessageDecodeError):
    """The leading selector could not be read from the body."""


class BodyMismatchError(MessageDecodeError):
    """No function or event of the ABI matches the body."""


class IncompleteBodyError(MessageDecodeError):
    """Data was left in the body after all described parameters."""


class ResponsibleOutputError(MessageDecodeError):
    """A responsible-call reply matched its answer id but its output failed to decode."""


class DetokenizeFailedError(MessageDecodeError):
    """Decoded values can't be represented in the output value."""


class EmptyBodyError(MessageDecodeError):
    """The message has no body."""


class InvalidBocError(MessageDecodeError):
    """The message or body BOC can't be deserialized."""


# === Codec errors ===

class CodecError(Exception):
    """Base class for token codec failures."""


class DeserializationError(CodecError):
    """Not enough data, or malformed data, for the requested value."""


class IncompleteDeserializationError(CodecError):
    """Data remains in the cell after decoding every parameter."""

    def __init__(self, remaining_bits: int, remaining_refs: int):
        self.remaining_bits = remaining_bits
        self.remaining_refs = remaining_refs
        super().__init__(
            f"Incomplete deserialization: {remaining_bits} bits and "
            f"{remaining_refs} references left in the cell"
        )


class WrongIdError(CodecError):
    """The body selector is not known to the ABI."""

    def __init__(self, selector: int):
        self.selector = selector
        super().__init__(f"Wrong function ID: 0x{selector:08x}")


class DetokenizeError(CodecError):
    """A decoded token can't be converted to a plain value."""
