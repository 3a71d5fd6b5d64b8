"""Tests for the wire-format converters."""

import pytest

from core.exceptions import HexDecodeError, MalformedLedgerRecordError
from schemas.converters import (
    canonical_id,
    decode_hex_quantity,
    decode_vote_history,
    decode_vote_record,
    normalize_membership,
)


@pytest.mark.unit
class TestDecodeHexQuantity:
    """Tests for decode_hex_quantity."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("0x5", 5),
            ({"hex": "0x05"}, 5),
            ({"type": "BigNumber", "hex": "0x0a"}, 10),
            ({"hex": "0x00"}, 0),
            ("0xFF", 255),
            ("0Xff", 255),
            ({"hex": "-0x01"}, -1),
        ],
    )
    def test_decodes_valid_quantities(self, value, expected):
        """Test that well-formed hex quantities decode to ints."""
        assert decode_hex_quantity(value) == expected

    def test_decodes_beyond_64_bits(self):
        """Test that quantities wider than 64 bits keep full precision."""
        assert decode_hex_quantity({"hex": "0x" + "f" * 40}) == 2**160 - 1

    @pytest.mark.parametrize(
        "value",
        [
            "",
            {"hex": ""},
            {"hex": "0x"},
            {"hex": "0xZZ"},
            {"hex": "12"},
            {"value": "0x01"},
            {"hex": 5},
            None,
            7,
        ],
    )
    def test_rejects_invalid_quantities(self, value):
        """Test that malformed input raises instead of defaulting to zero."""
        with pytest.raises(HexDecodeError):
            decode_hex_quantity(value)


@pytest.mark.unit
class TestIdentifiers:
    """Tests for id and membership normalisation."""

    @pytest.mark.parametrize(
        "value,expected",
        [(3, "3"), ("3", "3"), (" 03 ", "3"), ("abc", "abc"), ("-Nx1", "-Nx1")],
    )
    def test_canonical_id(self, value, expected):
        assert canonical_id(value) == expected

    def test_membership_list(self):
        assert normalize_membership(["1", 3, None]) == ["1", "3"]

    def test_membership_firebase_map(self):
        """Test that only enabled keys of a map count as membership."""
        assert normalize_membership({"3": True, "4": False, "7": True}) == ["3", "7"]

    def test_membership_separated_string(self):
        assert normalize_membership("1, 3;12") == ["1", "3", "12"]

    def test_membership_string_is_not_substring_match(self):
        """Test that "13" is one election, not elections 1 and 3."""
        membership = normalize_membership("13")
        assert "1" not in membership
        assert "3" not in membership
        assert membership == ["13"]

    def test_membership_scalar_and_none(self):
        assert normalize_membership(4) == ["4"]
        assert normalize_membership(None) == []


@pytest.mark.unit
class TestDecodeVoteRecord:
    """Tests for ledger vote entry decoding."""

    def test_tuple_entry(self):
        """Test decoding of a positional vote tuple."""
        entry = [
            {"hex": "0x03"},
            {"hex": "0x02"},
            {"hex": "0x07"},
            {"hex": "0x01"},
            {"hex": "0x6553f100"},
            "0xabc",
            {"hex": "0x64"},
        ]

        record = decode_vote_record(entry)

        assert record.election_id == "3"
        assert record.candidate_id == "2"
        assert record.voter_id == "7"
        assert record.vote_count == 1
        assert record.timestamp == 0x6553F100
        assert record.transaction_hash == "0xabc"
        assert record.block_number == 100

    def test_object_entry(self):
        """Test decoding of a named-field vote entry."""
        record = decode_vote_record(
            {
                "idElection": {"hex": "0x04"},
                "idCandidate": {"hex": "0x0a"},
                "idVoter": {"hex": "0x08"},
            }
        )

        assert (record.election_id, record.candidate_id, record.voter_id) == ("4", "10", "8")
        assert record.transaction_hash is None
        assert record.block_number is None

    def test_missing_ids_are_rejected(self):
        with pytest.raises(MalformedLedgerRecordError):
            decode_vote_record([{"hex": "0x03"}, {"hex": "0x02"}])

    def test_bad_hex_in_entry_is_rejected(self):
        with pytest.raises(HexDecodeError):
            decode_vote_record([{"hex": "0x03"}, {"hex": "nope"}, {"hex": "0x07"}])

    def test_unexpected_entry_type(self):
        with pytest.raises(MalformedLedgerRecordError):
            decode_vote_record("0x03")

    def test_history_must_be_list(self):
        """Test that a non-list history body is malformed."""
        with pytest.raises(MalformedLedgerRecordError):
            decode_vote_history({"votes": []})

    def test_empty_history(self):
        assert decode_vote_history([]) == []
