"""
Abidecode Body Decoder v1.0

Decodes message bodies against a contract ABI.

A body does not say what it is: the decoder tries it, in order, as a reply
to a responsible call, as a function output or event, and as a function
input. Each attempt reads from its own cursor over the unchanged body.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum

from pytoniq_core import Address, Cell

from abi_ast import AbiContract, Function, Param
from abi_parser import resolve_abi
from envelope import load_cell, load_message
from errors import (
    CodecError, DeserializationError, IncompleteDeserializationError, WrongIdError, DetokenizeError,
    MessageDecodeError, SelectorReadError, BodyMismatchError, IncompleteBodyError,
    ResponsibleOutputError, DetokenizeFailedError, EmptyBodyError,
)
from token_codec import CellCursor, Token, decode_params, decode_header, read_selector, detokenize


logger = logging.getLogger(__name__)

MISMATCH_MESSAGE = (
    "The message body does not match the specified ABI.\n"
    "Tip: Please check that you specified message's body, not full BOC."
)


class MessageBodyType(Enum):
    INPUT = "Input"                     # function call
    OUTPUT = "Output"                   # function return value
    INTERNAL_OUTPUT = "InternalOutput"  # reply to a responsible call
    EVENT = "Event"

    def is_output(self) -> bool:
        return self in (MessageBodyType.OUTPUT, MessageBodyType.INTERNAL_OUTPUT)


@dataclass(frozen=True)
class ResponsibleCall:
    """A call whose callee is expected to answer with answer_id back to src."""
    function: Function
    src: Address
    answer_id: int


@dataclass(frozen=True)
class FunctionHeader:
    expire: int | None = None
    time: int | None = None
    pubkey: str | None = None

    @classmethod
    def from_tokens(cls, tokens: list[Token]) -> "FunctionHeader | None":
        """Collect the known header fields; None when none of them is set."""
        values = {}
        for token in tokens:
            if token.name == "expire" and token.value is not None:
                values["expire"] = int(token.value)
            elif token.name == "time" and token.value is not None:
                values["time"] = int(token.value)
            elif token.name == "pubkey" and token.value is not None:
                values["pubkey"] = token.value.hex()
        if not values:
            return None
        return cls(**values)

    def to_dict(self) -> dict:
        return {"expire": self.expire, "time": self.time, "pubkey": self.pubkey}


@dataclass(frozen=True)
class DecodedMessageBody:
    """Result of decoding a message body."""
    body_type: MessageBodyType
    name: str  # function or event name
    value: dict | None
    header: FunctionHeader | None = None

    def to_dict(self) -> dict:
        return {
            "body_type": self.body_type.value,
            "name": self.name,
            "value": self.value,
            "header": self.header.to_dict() if self.header else None,
        }


@dataclass(frozen=True)
class SelectorTarget:
    """What an output-trial selector resolves to."""
    name: str
    params: tuple[Param, ...]
    is_event: bool = False


@dataclass
class DecodedTokens:
    name: str
    tokens: list[Token]


class BodyDecoder:
    """Classifies and decodes message bodies for one contract ABI."""

    def __init__(self, abi: AbiContract, allow_partial: bool = False):
        self.abi = abi
        self.version = abi.version
        self.allow_partial = allow_partial
        self.output_targets = self._build_output_targets()
        self.input_targets = {f.input_id(self.version): f for f in abi.functions}

    def _build_output_targets(self) -> OrderedDict:
        """Selector map for the output trial: function outputs first, then events."""
        targets = OrderedDict()
        for function in self.abi.functions:
            targets[function.output_id(self.version)] = SelectorTarget(function.name, tuple(function.outputs))
        for event in self.abi.events:
            targets.setdefault(event.event_id(self.version), SelectorTarget(event.name, tuple(event.inputs), is_event=True))
        return targets

    # === Responsible-reply matcher ===

    def match_responsible(self, body: Cell, responsible: ResponsibleCall) -> DecodedTokens | None:
        """Decode body as the answer to a responsible call.

        Returns:
            The decoded output, or None if the body starts with a different id

        Raises:
            SelectorReadError: If the id can't be read; there is no fallback
            IncompleteBodyError, ResponsibleOutputError: If the id matches but the output does not decode
        """
        cursor = CellCursor(body)
        try:
            selector = read_selector(cursor)
        except DeserializationError as e:
            raise SelectorReadError(f"Can't decode function header: {e}") from e

        if selector != responsible.answer_id:
            logger.debug("Responsible reply: id 0x%08x is not answer id 0x%08x", selector, responsible.answer_id)
            return None

        try:
            tokens = decode_params(responsible.function.outputs, cursor, self.version, self.allow_partial)
        except IncompleteDeserializationError as e:
            raise IncompleteBodyError(f"Responsible function output can't be decoded: {e}") from e
        except CodecError as e:
            raise ResponsibleOutputError(f"Responsible function output can't be decoded: {e}") from e

        logger.debug("Responsible reply: decoded as output of %s", responsible.function.name)
        return DecodedTokens(responsible.function.name, tokens)

    # === Body classifier ===

    def decode_output(self, body: Cell) -> DecodedTokens:
        """Decode body as a function output or an event."""
        cursor = CellCursor(body)
        selector = read_selector(cursor)
        target = self.output_targets.get(selector)
        if target is None:
            raise WrongIdError(selector)
        logger.debug("Output trial: id 0x%08x is %s %s", selector, "event" if target.is_event else "output of", target.name)
        tokens = decode_params(list(target.params), cursor, self.version, self.allow_partial)
        return DecodedTokens(target.name, tokens)

    def decode_input(self, body: Cell, is_internal: bool) -> DecodedTokens:
        """Decode body as a function input, skipping signature and header."""
        _, selector, cursor = decode_header(self.version, CellCursor(body), self.abi.header, is_internal)
        function = self.input_targets.get(selector)
        if function is None:
            raise WrongIdError(selector)
        tokens = decode_params(function.inputs, cursor, self.version, self.allow_partial)
        return DecodedTokens(function.name, tokens)

    def decode_function_header(self, body: Cell, is_internal: bool) -> FunctionHeader | None:
        try:
            tokens, _, _ = decode_header(self.version, CellCursor(body), self.abi.header, is_internal)
        except CodecError as e:
            raise MessageDecodeError(f"Can't decode function header: {e}") from e
        return FunctionHeader.from_tokens(tokens)

    def classify(self, body: Cell, is_internal: bool) -> DecodedMessageBody:
        """Try the body as output/event, then as input."""
        incomplete = None

        try:
            decoded = self.decode_output(body)
        except CodecError as e:
            logger.debug("Output trial failed: %s", e)
            if isinstance(e, IncompleteDeserializationError):
                incomplete = e
        else:
            # A function output named like an event is reported as that event
            if self.abi.get_event(decoded.name) is not None:
                body_type = MessageBodyType.EVENT
            else:
                body_type = MessageBodyType.OUTPUT
            logger.debug("Output trial matched %s as %s", decoded.name, body_type.value)
            return self.assemble(body_type, decoded)

        try:
            decoded = self.decode_input(body, is_internal)
        except CodecError as e:
            logger.debug("Input trial failed: %s", e)
            if isinstance(e, IncompleteDeserializationError) and incomplete is None:
                incomplete = e
        else:
            logger.debug("Input trial matched %s", decoded.name)
            header = self.decode_function_header(body, is_internal)
            return self.assemble(MessageBodyType.INPUT, decoded, header)

        if incomplete is not None:
            raise IncompleteBodyError(str(incomplete))
        raise BodyMismatchError(MISMATCH_MESSAGE)

    # === Decoded-body assembler ===

    def assemble(self, body_type: MessageBodyType, decoded: DecodedTokens, header: FunctionHeader | None = None) -> DecodedMessageBody:
        try:
            value = detokenize(decoded.tokens)
        except DetokenizeError as e:
            raise DetokenizeFailedError(str(e)) from e
        return DecodedMessageBody(body_type=body_type, name=decoded.name, value=value, header=header)

    def decode(self, body: Cell, is_internal: bool, internal_dst: Address | None = None,
               responsible: ResponsibleCall | None = None) -> DecodedMessageBody:
        """Decode a message body.

        Args:
            body: Root cell of the body
            is_internal: Whether the body belongs to an internal message
            internal_dst: Destination of the message, when known
            responsible: Responsible call this message may answer

        Returns:
            DecodedMessageBody

        Raises:
            MessageDecodeError: If the body can't be decoded
        """
        if (responsible is not None and internal_dst is not None
                and is_internal and internal_dst == responsible.src):
            decoded = self.match_responsible(body, responsible)
            if decoded is not None:
                return self.assemble(MessageBodyType.INTERNAL_OUTPUT, decoded)
        return self.classify(body, is_internal)


def decode_message(abi, message, allow_partial: bool = False,
                   responsible: ResponsibleCall | None = None) -> DecodedMessageBody:
    """Decode the body of a full message.

    Args:
        abi: AbiContract, ABI dict, or ABI JSON string
        message: Message BOC (base64 string, bytes, or Cell)
        allow_partial: Accept data left after the last ABI parameter
        responsible: Responsible call this message may answer

    Raises:
        InvalidAbiError: If the ABI is invalid
        MessageDecodeError: If the message can't be decoded
    """
    contract = resolve_abi(abi)
    envelope = load_message(message)
    if envelope.body is None:
        raise EmptyBodyError("The message body is empty")
    decoder = BodyDecoder(contract, allow_partial)
    return decoder.decode(envelope.body, envelope.is_internal, envelope.dst, responsible)


def decode_message_body(abi, body, is_internal: bool, allow_partial: bool = False) -> DecodedMessageBody:
    """Decode a standalone message body.

    Without a destination address the body is never matched as a
    responsible-call reply.
    """
    contract = resolve_abi(abi)
    cell = load_cell(body, "message body")
    decoder = BodyDecoder(contract, allow_partial)
    return decoder.decode(cell, is_internal)
