"""Client-side operations against a computation agent."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, BinaryIO, Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa

from cocos.progressbar import ProgressBar

__all__ = [
    "UnsupportedKeyError",
    "ResultRequest",
    "AttestationRequest",
    "AgentSDK",
    "sign_data",
    "generate_metadata",
]

USER_METADATA_KEY = "user-id"
SIGNATURE_METADATA_KEY = "signature"
FILE_SIZE_KEY = "file-size"

ALGORITHM_PROVIDER_ROLE = "algorithm-provider"
DATA_PROVIDER_ROLE = "data-provider"
CONSUMER_ROLE = "consumer"

REPORT_DATA_SIZE = 64
NONCE_SIZE = 32

ALGO_DESCRIPTION = "Uploading algorithm"
DATA_DESCRIPTION = "Uploading data"
RESULT_DESCRIPTION = "Downloading result"
ATTESTATION_DESCRIPTION = "Downloading attestation"


class UnsupportedKeyError(Exception):
    """The private key is not an Ed25519, RSA or ECDSA key."""


@dataclass(frozen=True)
class ResultRequest:
    """Request for the computation result."""


@dataclass(frozen=True)
class AttestationRequest:
    """Request for an attestation report bound to the given nonces."""

    tee_nonce: bytes
    vtpm_nonce: bytes
    attestation_type: int


def sign_data(user_id: str, private_key: Any) -> bytes:
    """Sign ``user_id`` with an Ed25519, RSA (PKCS#1 v1.5) or ECDSA key."""
    message = user_id.encode("utf-8")
    if isinstance(private_key, ed25519.Ed25519PrivateKey):
        return private_key.sign(message)
    if isinstance(private_key, rsa.RSAPrivateKey):
        return private_key.sign(message, padding.PKCS1v15(), hashes.SHA256())
    if isinstance(private_key, ec.EllipticCurvePrivateKey):
        return private_key.sign(message, ec.ECDSA(hashes.SHA256()))
    raise UnsupportedKeyError("unsupported key type")


def generate_metadata(user_id: str, private_key: Any) -> dict[str, str]:
    """Return the call metadata identifying the role and proving key possession."""
    signature = sign_data(user_id, private_key)
    return {
        USER_METADATA_KEY: user_id,
        SIGNATURE_METADATA_KEY: base64.standard_b64encode(signature).decode("ascii"),
    }


def _announced_size(stream: Any) -> int:
    values = [
        value
        for key, value in stream.initial_metadata()
        if key.lower() == FILE_SIZE_KEY
    ]
    return int(values[0] if values else "0")


class AgentSDK:
    """Uploads algorithms and datasets, and downloads results and attestations.

    ``client`` provides ``algo(metadata=...)`` and ``data(metadata=...)`` returning
    upload streams (``send`` / ``close_and_recv``), and ``result(request, metadata=...)``
    and ``attestation(request)`` returning response iterators that also offer
    ``initial_metadata()``.
    """

    def __init__(self, client: Any) -> None:
        self.client = client

    def algo(
        self,
        algorithm: BinaryIO,
        requirements: Optional[BinaryIO],
        private_key: Any,
    ) -> Any:
        """Upload an algorithm and its optional requirements file."""
        metadata = generate_metadata(ALGORITHM_PROVIDER_ROLE, private_key)
        stream = self.client.algo(metadata=tuple(metadata.items()))
        return ProgressBar(False).send_algorithm(ALGO_DESCRIPTION, algorithm, requirements, stream)

    def data(self, dataset: BinaryIO, filename: str, private_key: Any) -> Any:
        """Upload a dataset under ``filename``."""
        metadata = generate_metadata(DATA_PROVIDER_ROLE, private_key)
        stream = self.client.data(metadata=tuple(metadata.items()))
        return ProgressBar(False).send_data(DATA_DESCRIPTION, filename, dataset, stream)

    def result(self, private_key: Any, result_file: BinaryIO) -> None:
        """Download the computation result into ``result_file``."""
        metadata = generate_metadata(CONSUMER_ROLE, private_key)
        stream = self.client.result(ResultRequest(), metadata=tuple(metadata.items()))
        size = _announced_size(stream)
        ProgressBar(True).receive_result(RESULT_DESCRIPTION, size, stream, result_file)

    def attestation(
        self,
        report_data: bytes,
        nonce: bytes,
        att_type: int,
        attestation_file: BinaryIO,
    ) -> None:
        """Download an attestation report bound to ``report_data`` and ``nonce``."""
        if len(report_data) != REPORT_DATA_SIZE:
            raise ValueError(f"report data must be {REPORT_DATA_SIZE} bytes, got {len(report_data)}")
        if len(nonce) != NONCE_SIZE:
            raise ValueError(f"nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")

        request = AttestationRequest(
            tee_nonce=bytes(report_data),
            vtpm_nonce=bytes(nonce),
            attestation_type=int(att_type),
        )
        stream = self.client.attestation(request)
        size = _announced_size(stream)
        ProgressBar(True).receive_attestation(
            ATTESTATION_DESCRIPTION, size, stream, attestation_file
        )