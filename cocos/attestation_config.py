"""Attestation policy: SEV-SNP check settings and expected PCR values."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

__all__ = [
    "AttestationPolicyError",
    "AttestationPolicyOpenError",
    "AttestationPolicyDecodeError",
    "AttestationPolicyMissingError",
    "PcrValues",
    "PcrConfig",
    "AttestationConfig",
    "default_config",
    "read_attestation_policy",
    "read_attestation_policy_from_bytes",
]


class AttestationPolicyError(Exception):
    """Base class for attestation policy failures."""

    message = "attestation policy error"

    def __init__(self, detail: object = None) -> None:
        text = self.message if detail is None else f"{self.message}: {detail}"
        super().__init__(text)


class AttestationPolicyOpenError(AttestationPolicyError):
    message = "failed to open Attestation Policy file"


class AttestationPolicyDecodeError(AttestationPolicyError):
    message = "failed to decode Attestation Policy file"


class AttestationPolicyMissingError(AttestationPolicyError):
    message = "failed due to missing Attestation Policy file"


@dataclass
class PcrValues:
    """Expected PCR values, keyed by PCR index, as hex strings."""

    sha256: dict[str, str] = field(default_factory=dict)
    sha384: dict[str, str] = field(default_factory=dict)


@dataclass
class PcrConfig:
    pcr_values: PcrValues = field(default_factory=PcrValues)


@dataclass
class AttestationConfig:
    """SEV-SNP policy and root of trust, plus the PCR expectations."""

    policy: dict[str, Any] | None = None
    root_of_trust: dict[str, Any] | None = None
    pcr_config: PcrConfig = field(default_factory=PcrConfig)


def default_config() -> AttestationConfig:
    """Return an empty configuration with policy and root of trust present."""
    return AttestationConfig(policy={}, root_of_trust={}, pcr_config=PcrConfig())


_SNP_FIELDS = (
    ("policy", "policy"),
    ("root_of_trust", "root_of_trust"),
    ("rootOfTrust", "root_of_trust"),
)


def read_attestation_policy(policy_path: str | Path, config: AttestationConfig) -> AttestationConfig:
    """Load the policy file at ``policy_path`` into ``config`` and return it."""
    if not policy_path:
        raise AttestationPolicyMissingError()
    try:
        policy_data = Path(policy_path).read_bytes()
    except OSError as exc:
        raise AttestationPolicyOpenError(exc) from exc
    return read_attestation_policy_from_bytes(policy_data, config)


def read_attestation_policy_from_bytes(
    policy_data: bytes | str, config: AttestationConfig
) -> AttestationConfig:
    """Decode a JSON policy document into ``config`` and return it.

    The SNP part replaces what ``config`` held; PCR values are merged in.
    Unknown keys are ignored.
    """
    try:
        document = json.loads(policy_data)
    except ValueError as exc:
        raise AttestationPolicyDecodeError(exc) from exc
    if not isinstance(document, dict):
        raise AttestationPolicyDecodeError("policy document must be a JSON object")

    snp = _decode_snp(document)
    config.policy = snp.get("policy")
    config.root_of_trust = snp.get("root_of_trust")

    for algo, table in _decode_pcr_values(document):
        values = config.pcr_config.pcr_values
        if table is None:
            setattr(values, algo, {})
        else:
            getattr(values, algo).update(
                {key: "" if value is None else value for key, value in table.items()}
            )
    return config


def _decode_snp(document: dict[str, Any]) -> dict[str, dict[str, Any]]:
    decoded: dict[str, dict[str, Any]] = {}
    for key, attr in _SNP_FIELDS:
        value = document.get(key)
        if value is None:
            continue
        if not isinstance(value, dict):
            raise AttestationPolicyDecodeError(f"{key} must be an object")
        decoded[attr] = value
    return decoded


def _matching(obj: dict[str, Any], name: str) -> list[Any]:
    return [value for key, value in obj.items() if key.lower() == name]


def _decode_pcr_values(document: dict[str, Any]) -> list[tuple[str, dict[str, Any] | None]]:
    updates: list[tuple[str, dict[str, Any] | None]] = []
    for section in _matching(document, "pcr_values"):
        if section is None:
            continue
        if not isinstance(section, dict):
            raise AttestationPolicyDecodeError("pcr_values must be an object")
        for algo in ("sha256", "sha384"):
            for table in _matching(section, algo):
                if table is not None:
                    if not isinstance(table, dict):
                        raise AttestationPolicyDecodeError(f"pcr_values.{algo} must be an object")
                    for index, value in table.items():
                        if value is not None and not isinstance(value, str):
                            raise AttestationPolicyDecodeError(
                                f"pcr_values.{algo}[{index}] must be a string"
                            )
                updates.append((algo, table))
    return updates