import io
import json

import pytest

import formatters
from abidecode import cli_main
from body_decoder import DecodedMessageBody, FunctionHeader, MessageBodyType

from conftest import SAMPLE_ABI_PATH, SHARED_ID, WALLET, CALLER, to_base64, internal_message


ABI_ARG = f"--abi={SAMPLE_ABI_PATH}"


@pytest.fixture
def decoded():
    return DecodedMessageBody(
        body_type=MessageBodyType.INPUT,
        name="transfer",
        value={"to": CALLER, "amount": "5", "meta": {"flags": "1"}},
        header=FunctionHeader(expire=10, time=20),
    )


class TestFormatters:
    def test_registry(self):
        assert formatters.list_formatters() == ["json", "compact", "tree"]
        assert formatters.get_formatter("yaml") is None
        assert formatters.format_body("yaml", None) is None

    def test_json(self, decoded):
        assert json.loads(formatters.format_body("json", decoded)) == decoded.to_dict()

    def test_compact_is_one_line(self, decoded):
        text = formatters.format_body("compact", decoded)
        assert "\n" not in text
        assert json.loads(text)["body_type"] == "Input"

    def test_tree(self, decoded):
        lines = formatters.format_body("tree", decoded).splitlines()
        assert lines[0] == "Input transfer"
        text = "\n".join(lines)
        assert 'amount: "5"' in text
        assert 'flags: "1"' in text
        assert "expire: 10" in text
        assert "pubkey: null" in text


class TestCli:
    def test_body(self, encoder, capsys):
        body = to_base64(encoder.encode_output_body("getBalance", {"balance": 12}))
        assert cli_main(["body", body, ABI_ARG, "--internal", "--format=compact"]) == 0
        result = json.loads(capsys.readouterr().out)
        assert result == {"body_type": "Output", "name": "getBalance", "value": {"balance": "12"}, "header": None}

    def test_body_from_stdin(self, encoder, capsys, monkeypatch):
        first = to_base64(encoder.encode_output_body("getBalance", {"balance": 1}))
        second = to_base64(encoder.encode_event_body("Deposited", {"amount": 2}))
        monkeypatch.setattr("sys.stdin", io.StringIO(f"{first}\n{second}\n"))
        assert cli_main(["body", ABI_ARG, "--format=compact"]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert [json.loads(line)["name"] for line in lines] == ["getBalance", "Deposited"]

    def test_message_with_reply_context(self, encoder, capsys):
        body = encoder.encode_answer_body(SHARED_ID, "getBalance", {"balance": 3})
        message = to_base64(internal_message(body, src=CALLER, dest=WALLET))
        argv = ["message", message, ABI_ARG, "--answer-function=getBalance",
                f"--answer-src={WALLET}", f"--answer-id=0x{SHARED_ID:x}"]
        assert cli_main(argv) == 0
        assert json.loads(capsys.readouterr().out)["body_type"] == "InternalOutput"

    def test_incomplete_reply_context(self, capsys):
        assert cli_main(["message", "te6c", ABI_ARG, "--answer-function=getBalance"]) == 1
        assert "must be given together" in capsys.readouterr().err

    def test_decode_error(self, capsys):
        assert cli_main(["body", "not-base64!", ABI_ARG]) == 1
        err = capsys.readouterr().err
        assert err.startswith("Error: Message can't be decoded: Invalid message body BOC")

    def test_unknown_format(self, encoder, capsys):
        body = to_base64(encoder.encode_output_body("getBalance", {"balance": 12}))
        assert cli_main(["body", body, ABI_ARG, "--format=yaml"]) == 1
        assert "Unknown format 'yaml'" in capsys.readouterr().err

    def test_missing_abi(self, tmp_path, capsys):
        assert cli_main(["functions", f"--abi={tmp_path / 'none.abi.json'}"]) == 1
        assert capsys.readouterr().err.startswith("Error: ")

    def test_functions(self, abi, capsys):
        assert cli_main(["functions", ABI_ARG]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == len(abi.functions)
        on_balance = [line for line in lines if line.startswith("onBalance ")]
        assert on_balance and "input 0x0000abcd" in on_balance[0] and "output 0x8000abcd" in on_balance[0]

    def test_events(self, capsys):
        assert cli_main(["events", ABI_ARG]) == 0
        out = capsys.readouterr().out
        assert "BalanceSync" in out and "id 0x0000abcd" in out
