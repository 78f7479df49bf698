import base64
import json
from pathlib import Path

import pytest
from pytoniq_core import Address, begin_cell

from abi_parser import load_abi
from encoder import Encoder


FIXTURES = Path(__file__).parent / "fixtures"
SAMPLE_ABI_PATH = FIXTURES / "sample.abi.json"

# Function onBalance and event BalanceSync share this explicit id
SHARED_ID = 0x0000ABCD

WALLET = "0:" + "11" * 32
CALLER = "0:" + "22" * 32
OTHER = "-1:" + "33" * 32
PUBKEY = "ab" * 32


def to_base64(cell) -> str:
    return base64.b64encode(cell.to_boc()).decode()


def internal_message(body, src: str, dest: str):
    """Build an internal message cell around body (None for no body)."""
    return (begin_cell()
            .store_uint(0, 1)  # int_msg_info$0
            .store_uint(1, 1)  # ihr_disabled
            .store_uint(0, 1)  # bounce
            .store_uint(0, 1)  # bounced
            .store_address(Address(src))
            .store_address(Address(dest))
            .store_coins(10**9)
            .store_uint(0, 1)  # no extra currencies
            .store_coins(0)  # ihr_fee
            .store_coins(0)  # fwd_fee
            .store_uint(0, 64)
            .store_uint(0, 32)
            .store_uint(0, 1)  # no state init
            .store_maybe_ref(body)
            .end_cell())


def external_message(body, dest: str):
    """Build an inbound external message cell around body."""
    return (begin_cell()
            .store_uint(0b10, 2)  # ext_in_msg_info$10
            .store_address(None)
            .store_address(Address(dest))
            .store_coins(0)  # import_fee
            .store_uint(0, 1)  # no state init
            .store_maybe_ref(body)
            .end_cell())


@pytest.fixture
def abi_doc():
    with open(SAMPLE_ABI_PATH) as f:
        return json.load(f)


@pytest.fixture
def abi():
    return load_abi(SAMPLE_ABI_PATH)


@pytest.fixture
def encoder(abi):
    return Encoder(abi)
