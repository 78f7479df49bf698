import pytest
from pytoniq_core import begin_cell

from abi_ast import Param, FixedBytesType, IntType
from encoder import Chunk, pack_chunks, snake_cell
from token_codec import CellCursor, read_selector

from conftest import SHARED_ID


class TestPackChunks:
    def test_reserves_a_reference_for_the_chain(self):
        leaf = begin_cell().end_cell()
        chunks = [Chunk(0, 1, lambda b: b.store_ref(leaf)) for _ in range(5)]
        root = pack_chunks(chunks)
        # three values and the link in the first cell, two values in the second
        assert len(root.refs) == 4
        assert len(root.refs[3].refs) == 2

    def test_snake_cell_splits_data(self):
        cell = snake_cell(b"\x01" * 200)
        assert cell.begin_parse().remaining_bits == 127 * 8
        assert len(cell.refs) == 1


class TestEncoder:
    def test_answer_body_starts_with_answer_id(self, encoder):
        body = encoder.encode_answer_body(SHARED_ID, "getBalance", {"balance": 1})
        assert read_selector(CellCursor(body)) == SHARED_ID

    def test_output_body_uses_output_id(self, abi, encoder):
        body = encoder.encode_output_body("getBalance", {"balance": 1})
        assert read_selector(CellCursor(body)) == abi.get_function("getBalance").output_id(abi.version)

    def test_missing_value(self, encoder):
        with pytest.raises(ValueError, match="Missing value for parameter: balance"):
            encoder.encode_output_body("getBalance", {})

    def test_unknown_function(self, encoder):
        with pytest.raises(ValueError, match="not found"):
            encoder.encode_input_body("burn")

    def test_fixed_bytes_size(self, encoder):
        with pytest.raises(ValueError, match="needs 4 bytes"):
            encoder.encode_params([Param("f", FixedBytesType(4))], {"f": "00"})

    def test_hex_string_integers(self, encoder):
        chunks = encoder.encode_params([Param("n", IntType(32))], {"n": "0x10"})
        assert read_selector(CellCursor(pack_chunks(chunks))) == 16
