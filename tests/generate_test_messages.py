#!/usr/bin/env python3
"""Generate test message bodies for manual CLI checks against tests/fixtures/sample.abi.json"""

import base64
from pathlib import Path

from abi_parser import load_abi
from encoder import Encoder

SAMPLE_ABI_PATH = Path(__file__).parent / "fixtures" / "sample.abi.json"
WALLET = "0:" + "11" * 32

# (description, internal flag for `abidecode body`, builder)
TEST_BODIES = {
    "transfer_internal": (
        "Internal call of transfer with a comment",
        True,
        lambda e: e.encode_input_body("transfer", {"to": WALLET, "amount": 1000, "comment": "hello"}),
    ),
    "transfer_external": (
        "External call of transfer with time, expire and pubkey header",
        False,
        lambda e: e.encode_input_body(
            "transfer", {"to": WALLET, "amount": 1000, "comment": "hello"}, internal=False,
            header_values={"time": 1700000000000, "expire": 1700000060, "pubkey": "ab" * 32},
        ),
    ),
    "get_balance_output": (
        "Return value of getBalance",
        True,
        lambda e: e.encode_output_body("getBalance", {"balance": 5000}),
    ),
    "deposited_event": (
        "Deposited event",
        False,
        lambda e: e.encode_event_body("Deposited", {"amount": 42}),
    ),
    "balance_answer": (
        "Answer to a responsible getBalance call with answer id 0x0000abcd",
        True,
        lambda e: e.encode_answer_body(0x0000ABCD, "getBalance", {"balance": 900}),
    ),
}

if __name__ == "__main__":
    encoder = Encoder(load_abi(SAMPLE_ABI_PATH))
    for name, (description, internal, build) in TEST_BODIES.items():
        body = base64.b64encode(build(encoder).to_boc()).decode()
        print(f"{name}: {body}")
        print(f"  Description: {description}")
        print(f"  Internal: {internal}")
        print()
