"""
Abidecode Envelope v1.0

Deserializes bags of cells (BOC) and extracts the parts of a message
envelope that body decoding needs: the body cell, whether the message is
internal, and its destination address.
"""

import base64
import binascii
from dataclasses import dataclass

from pytoniq_core import Address, Cell, MessageAny
from pytoniq_core.tlb.transaction import InternalMsgInfo, ExternalMsgInfo

from errors import InvalidBocError


@dataclass(frozen=True)
class MessageEnvelope:
    """What the body decoder needs from a deserialized message."""
    body: Cell | None
    is_internal: bool
    dst: Address | None


def is_empty_cell(cell: Cell | None) -> bool:
    if cell is None:
        return True
    cell_slice = cell.begin_parse()
    return cell_slice.remaining_bits == 0 and cell_slice.remaining_refs == 0


def load_cell(boc: str | bytes | Cell, name: str = "message") -> Cell:
    """Deserialize a single-root BOC.

    Args:
        boc: Base64 string, raw BOC bytes, or an already loaded Cell
        name: What the BOC holds, for error messages

    Returns:
        The root cell

    Raises:
        InvalidBocError: If the input is not a valid BOC
    """
    if isinstance(boc, Cell):
        return boc
    if isinstance(boc, str):
        try:
            boc = base64.b64decode(boc.strip(), validate=True)
        except (binascii.Error, ValueError):
            raise InvalidBocError(f"Invalid {name} BOC: not a base64 string") from None
    if not boc:
        raise InvalidBocError(f"Invalid {name} BOC: no data")
    try:
        return Cell.one_from_boc(boc)
    except Exception as e:
        raise InvalidBocError(f"Invalid {name} BOC: {e}") from e


def load_message(boc: str | bytes | Cell) -> MessageEnvelope:
    """Deserialize a message BOC into a MessageEnvelope.

    An empty body (no bits and no references) is reported as None. This
    includes a body stored as a referenced cell that is itself empty, so
    such a message fails with "body is empty" rather than a body mismatch.
    """
    cell = load_cell(boc, "message")
    try:
        message = MessageAny.deserialize(cell.begin_parse())
    except Exception as e:
        raise InvalidBocError(f"Invalid message BOC: {e}") from e

    info = message.info
    is_internal = isinstance(info, InternalMsgInfo)
    # Only internal and inbound external messages have an internal destination
    dst = info.dest if isinstance(info, (InternalMsgInfo, ExternalMsgInfo)) else None
    body = None if is_empty_cell(message.body) else message.body
    return MessageEnvelope(body=body, is_internal=is_internal, dst=dst)
