"""Expected PCR values for attested TLS and their comparison with vTPM quotes."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable

from cocos.attestation_config import PcrValues

__all__ = [
    "HashAlgo",
    "PcrQuote",
    "PcrMismatchError",
    "UnsupportedHashAlgoError",
    "calculate_pcr_tls_key",
    "check_expected_pcr_values",
]

PCR15 = 15
HASH256 = 32
HASH384 = 48

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1
_INDEX_RE = re.compile(r"[+-]?[0-9]+")
_HEX_RE = re.compile(r"(?:[0-9a-fA-F]{2})*")


class HashAlgo(IntEnum):
    """TPM hash algorithm identifiers."""

    HASH_INVALID = 0
    SHA1 = 4
    SHA256 = 11
    SHA384 = 12
    SHA512 = 13


class PcrMismatchError(Exception):
    """A PCR in a quote does not hold the expected value."""


class UnsupportedHashAlgoError(Exception):
    """A quote uses a hash algorithm with no expected values."""


@dataclass
class PcrQuote:
    """The PCR bank of one vTPM quote."""

    hash_algo: int
    pcrs: dict[int, bytes] = field(default_factory=dict)


def _algo_name(algo: int) -> str:
    try:
        return HashAlgo(algo).name
    except ValueError:
        return ""


def calculate_pcr_tls_key(pub_key: bytes) -> tuple[bytes, bytes]:
    """Return the SHA-256 and SHA-384 PCR values after extending a zero PCR with the key."""
    key256 = hashlib.sha3_256(pub_key).digest()
    key384 = hashlib.sha3_384(pub_key).digest()
    pcr256 = hashlib.sha256(bytes(HASH256) + key256).digest()
    pcr384 = hashlib.sha384(bytes(HASH384) + key384).digest()
    return pcr256, pcr384


def _parse_index(text: str) -> int:
    if not _INDEX_RE.fullmatch(text):
        raise ValueError(f"error converting PCR index to int32: invalid syntax: {text!r}")
    index = int(text)
    if not _INT32_MIN <= index <= _INT32_MAX:
        raise ValueError(f"error converting PCR index to int32: value out of range: {text!r}")
    return index


def _parse_hex(text: str) -> bytes:
    if not _HEX_RE.fullmatch(text):
        raise ValueError(f"error converting PCR value to byte: invalid hex: {text!r}")
    return bytes.fromhex(text)


def check_expected_pcr_values(
    quotes: Iterable[PcrQuote],
    expected_256: bytes,
    expected_384: bytes,
    pcr_values: PcrValues,
) -> None:
    """Raise unless every quote holds the expected PCR15 and policy PCR values."""
    for quote in quotes:
        if quote.hash_algo == HashAlgo.SHA256:
            pcr_map, pcr15 = pcr_values.sha256, expected_256
        elif quote.hash_algo == HashAlgo.SHA384:
            pcr_map, pcr15 = pcr_values.sha384, expected_384
        else:
            raise UnsupportedHashAlgoError(
                f"hash algo is not supported: algo: {_algo_name(quote.hash_algo)}"
            )
        name = _algo_name(quote.hash_algo)

        found = quote.pcrs.get(PCR15, b"")
        if found != pcr15:
            raise PcrMismatchError(
                f"for algo {name} PCR[15] expected {pcr15.hex()} but found {found.hex()}"
            )

        for key, value in pcr_map.items():
            index = _parse_index(key)
            expected = _parse_hex(value)
            found = quote.pcrs.get(index & 0xFFFFFFFF, b"")
            if found != expected:
                raise PcrMismatchError(
                    f"for algo {name} PCR[{index}] expected {expected.hex()} but found {found.hex()}"
                )