"""
Wire-format converters.

Centralized helpers for turning realtime-database and ledger payloads into
schemas. The ledger transmits every numeric field as a big integer encoded in
hex (``{"hex": "0x05"}``); these are decoded into Python ints, which carry
arbitrary precision. A value that cannot be decoded raises ``HexDecodeError``
and is never replaced by zero.
"""

import re
from typing import Any

from core.exceptions import HexDecodeError, MalformedLedgerRecordError
from schemas.vote import VoteRecord

HEX_QUANTITY = re.compile(r"^(-)?0[xX]([0-9a-fA-F]+)$")

# Field order of the tuples returned by GET /getAllVotes
VOTE_TUPLE_FIELDS = (
    "election_id",
    "candidate_id",
    "voter_id",
    "vote_count",
    "timestamp",
    "transaction_hash",
    "block_number",
)

# Named-field variant of the same record
VOTE_OBJECT_FIELDS = {
    "idElection": "election_id",
    "idCandidate": "candidate_id",
    "idVoter": "voter_id",
    "voteCount": "vote_count",
    "timestamp": "timestamp",
    "transactionHash": "transaction_hash",
    "blockNumber": "block_number",
}

_MEMBERSHIP_SEPARATORS = re.compile(r"[,\s;]+")


def canonical_id(value: Any) -> str:
    """
    Normalise an identifier for comparison.

    Ids arrive as ints from the ledger and as strings (sometimes padded or
    zero-prefixed) from the realtime database. Decimal ids compare by value.
    """
    text = str(value).strip()
    if text.isascii() and text.isdigit():
        return str(int(text))
    return text


def normalize_membership(value: Any) -> list[str]:
    """
    Turn an ``elections`` membership field into a list of canonical ids.

    Accepts a list, a Firebase map (``{"3": true}``), a separated string
    (``"1,3"``) or a single scalar id.
    """
    if value is None:
        return []
    if isinstance(value, dict):
        items = [key for key, enabled in value.items() if enabled]
    elif isinstance(value, (list, tuple)):
        items = [item for item in value if item is not None]
    elif isinstance(value, str):
        items = [part for part in _MEMBERSHIP_SEPARATORS.split(value) if part]
    else:
        items = [value]
    return [canonical_id(item) for item in items]


def decode_hex_quantity(value: Any) -> int:
    """
    Decode a hex-encoded big integer.

    Accepts either the wire object ``{"hex": "0x5"}`` or the bare hex string.

    Raises:
        HexDecodeError: if the value is missing, empty or not hex
    """
    raw = value.get("hex") if isinstance(value, dict) else value
    if not isinstance(raw, str):
        raise HexDecodeError(f"Expected a hex string, got {type(raw).__name__}")

    match = HEX_QUANTITY.match(raw.strip())
    if match is None:
        raise HexDecodeError(f"Invalid hex quantity: {raw!r}")

    sign, digits = match.groups()
    number = int(digits, 16)
    return -number if sign else number


def _optional_quantity(value: Any) -> int | None:
    if value is None:
        return None
    return decode_hex_quantity(value)


def _transaction_hash(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, dict):
        value = value.get("hex")
    if not isinstance(value, str) or not value:
        raise HexDecodeError(f"Invalid transaction hash: {value!r}")
    return value


def decode_vote_record(entry: Any) -> VoteRecord:
    """
    Convert one ledger entry into a VoteRecord.

    Entries are positional tuples in VOTE_TUPLE_FIELDS order; objects keyed
    like VOTE_OBJECT_FIELDS are accepted too. The three ids are mandatory.
    """
    if isinstance(entry, dict):
        fields = {name: entry.get(key) for key, name in VOTE_OBJECT_FIELDS.items()}
    elif isinstance(entry, (list, tuple)):
        fields = dict(zip(VOTE_TUPLE_FIELDS, entry))
    else:
        raise MalformedLedgerRecordError(f"Unexpected vote entry type: {type(entry).__name__}")

    missing = [name for name in VOTE_TUPLE_FIELDS[:3] if fields.get(name) is None]
    if missing:
        raise MalformedLedgerRecordError(f"Vote entry missing {', '.join(missing)}")

    return VoteRecord(
        election_id=str(decode_hex_quantity(fields["election_id"])),
        candidate_id=str(decode_hex_quantity(fields["candidate_id"])),
        voter_id=str(decode_hex_quantity(fields["voter_id"])),
        vote_count=_optional_quantity(fields.get("vote_count")),
        timestamp=_optional_quantity(fields.get("timestamp")),
        transaction_hash=_transaction_hash(fields.get("transaction_hash")),
        block_number=_optional_quantity(fields.get("block_number")),
    )


def decode_vote_history(payload: Any) -> list[VoteRecord]:
    """Convert the GET /getAllVotes body into VoteRecords."""
    if not isinstance(payload, list):
        raise MalformedLedgerRecordError("Vote history must be a list")
    return [decode_vote_record(entry) for entry in payload]
