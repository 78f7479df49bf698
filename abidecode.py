#!/usr/bin/env python3
"""abidecode.

Usage:
  abidecode message [<message_boc> ...] --abi=<file>
                      [--allow-partial --verbose] [--format=<option>]
                      [--answer-function=<name> --answer-src=<address> --answer-id=<id>]
  abidecode body    [<body_boc> ...] --abi=<file>
                      [--internal --allow-partial --verbose] [--format=<option>]
  abidecode functions --abi=<file>
  abidecode events    --abi=<file>

Options:
  -h --help                   Show this screen.
  --version                   Show version.
  --abi=<file>                Contract ABI file (.abi.json).
  --internal                  Decode bodies as internal message bodies (no signature, no header).
  --allow-partial             Accept data left in the body after the last ABI parameter.
  --verbose                   Log each decoding attempt to stderr.
  --format=<option>           Output format [default: json].
                                Options: json, compact, tree.
  --answer-function=<name>    Responsible function whose reply the message may be.
  --answer-src=<address>      Address that made the responsible call (raw "wc:hex" form).
  --answer-id=<id>            Answer id of the responsible call (decimal or 0x-prefixed hex).

Messages and bodies are base64 BOC strings; they are read from stdin
(whitespace separated) when none are given.
"""

__version__ = "1.0.0"

import logging
import sys
from docopt import docopt
from pytoniq_core import Address

from abi_parser import load_abi, ParseError
from body_decoder import ResponsibleCall, decode_message, decode_message_body
from errors import AbiError
import formatters


logger = logging.getLogger(__name__)


def parse_responsible(args, abi) -> ResponsibleCall | None:
    """Build the responsible-call context from the --answer-* options.

    Raises:
        ValueError: If the options are incomplete or invalid
    """
    options = (args["--answer-function"], args["--answer-src"], args["--answer-id"])
    if not any(options):
        return None
    if not all(options):
        raise ValueError("--answer-function, --answer-src and --answer-id must be given together")

    name, src, answer_id = options
    function = abi.get_function(name)
    if function is None:
        raise ValueError(f"Function '{name}' not found")
    try:
        address = Address(src)
    except Exception as e:
        raise ValueError(f"Invalid --answer-src address '{src}': {e}") from e
    try:
        answer_id = int(answer_id, 16) if answer_id.lower().startswith("0x") else int(answer_id)
    except ValueError:
        raise ValueError(f"Invalid --answer-id '{answer_id}'") from None
    return ResponsibleCall(function=function, src=address, answer_id=answer_id)


def read_inputs(values: list[str]) -> list[str]:
    return values if values else sys.stdin.read().split()


"""

        DEFAULT ENTRYPOINT

"""
def cli_main(argv: list[str] = None) -> int:
    args = docopt(__doc__, argv=argv, version=f"abidecode {__version__}")

    if args["--verbose"]:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr,
                            format="%(levelname)s %(name)s: %(message)s")

    try:
        abi = load_abi(args["--abi"])
    except ParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args["functions"]:
        for function in abi.functions:
            print(f"{function.name:<32} input 0x{function.input_id(abi.version):08x}  "
                  f"output 0x{function.output_id(abi.version):08x}")
        return 0

    if args["events"]:
        for event in abi.events:
            print(f"{event.name:<32} id 0x{event.event_id(abi.version):08x}")
        return 0

    fmt = args["--format"]
    if formatters.get_formatter(fmt) is None:
        print(f"Error: Unknown format '{fmt}'. Options: {', '.join(formatters.list_formatters())}", file=sys.stderr)
        return 1

    ret = 0
    if args["message"]:
        try:
            responsible = parse_responsible(args, abi)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        for message_boc in read_inputs(args["<message_boc>"]):
            try:
                decoded = decode_message(abi, message_boc, args["--allow-partial"], responsible)
            except AbiError as e:
                print(f"Error: {e}", file=sys.stderr)
                ret = 1
                continue
            print(formatters.format_body(fmt, decoded))

    elif args["body"]:
        for body_boc in read_inputs(args["<body_boc>"]):
            try:
                decoded = decode_message_body(abi, body_boc, args["--internal"], args["--allow-partial"])
            except AbiError as e:
                print(f"Error: {e}", file=sys.stderr)
                ret = 1
                continue
            print(formatters.format_body(fmt, decoded))

    logger.debug("Done, exit status %d", ret)
    return ret


if __name__ == "__main__":
    sys.exit(cli_main())
