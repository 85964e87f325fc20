"""gRPC client connections to the agent, manager and CVM services."""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import grpc
from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.x509.oid import ExtendedKeyUsageOID

from cocos.attestation_config import (
    AttestationConfig,
    AttestationPolicyError,
    default_config,
    read_attestation_policy,
)

__all__ = [
    "GrpcClientError",
    "Security",
    "BaseConfig",
    "AgentClientConfig",
    "ManagerClientConfig",
    "CVMClientConfig",
    "Client",
    "new_client",
    "load_tls_config",
    "check_if_certificate_self_signed",
    "verify_peer_certificate_atls",
]

ATTESTATION_REPORT_SIZE = 0x4A0
WITH_ATLS = "with aTLS"
WITH_TLS = "with TLS"


class GrpcClientError(Exception):
    """A gRPC client could not be configured, connected or closed."""


class Security(IntEnum):
    """Transport security of a client connection."""

    WITHOUT_TLS = 0
    WITH_TLS = 1
    WITH_MTLS = 2
    WITH_ATLS = 3

    @property
    def label(self) -> str:
        return _SECURITY_LABELS[self]


_SECURITY_LABELS = {
    Security.WITHOUT_TLS: "without TLS",
    Security.WITH_TLS: WITH_TLS,
    Security.WITH_MTLS: "with mTLS",
    Security.WITH_ATLS: WITH_ATLS,
}


@dataclass
class BaseConfig:
    """Address, timeout (seconds) and TLS material of a client."""

    url: str = "localhost:7001"
    timeout: float = 60.0
    client_cert: str = ""
    client_key: str = ""
    server_ca_file: str = ""


@dataclass
class AgentClientConfig(BaseConfig):
    attestation_policy: str = ""
    attested_tls: bool = False


@dataclass
class ManagerClientConfig(BaseConfig):
    pass


@dataclass
class CVMClientConfig(BaseConfig):
    pass


class Client:
    """An open gRPC channel together with the security it was set up with."""

    def __init__(
        self,
        channel: Optional[grpc.Channel],
        config: Optional[BaseConfig],
        security: Security,
        attestation_policy: Optional[AttestationConfig] = None,
    ) -> None:
        self._channel = channel
        self.config = config
        self.security = Security(security)
        self.attestation_policy = attestation_policy

    def close(self) -> None:
        """Close the underlying channel."""
        if self._channel is None:
            return
        try:
            self._channel.close()
        except Exception as exc:
            raise GrpcClientError(f"failed to close grpc connection: {exc}") from exc

    def secure(self) -> str:
        """Describe the transport security, e.g. ``"with mTLS"``."""
        return self.security.label

    def connection(self) -> Optional[grpc.Channel]:
        return self._channel

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def new_client(config: BaseConfig) -> Client:
    """Create a client for ``config``; aTLS is used for agent configs that ask for it."""
    policy: Optional[AttestationConfig] = None
    if isinstance(config, AgentClientConfig) and config.attested_tls:
        credentials, policy = _setup_atls(config)
        security = Security.WITH_ATLS
    else:
        credentials, security = load_tls_config(
            config.server_ca_file, config.client_cert, config.client_key
        )

    if not config.url:
        raise GrpcClientError("failed to connect to grpc server: empty target address")
    try:
        if credentials is None:
            channel = grpc.insecure_channel(config.url)
        else:
            channel = grpc.secure_channel(config.url, credentials)
    except Exception as exc:
        raise GrpcClientError(f"failed to connect to grpc server: {exc}") from exc
    return Client(channel, config, security, policy)


def _setup_atls(config: AgentClientConfig) -> Tuple[grpc.ChannelCredentials, AttestationConfig]:
    try:
        policy = read_attestation_policy(config.attestation_policy, default_config())
    except AttestationPolicyError as exc:
        raise GrpcClientError(f"failed to read Attestation Policy: {exc}") from exc
    return grpc.ssl_channel_credentials(), policy


def load_tls_config(
    server_ca_file: str, client_cert: str, client_key: str
) -> Tuple[Optional[grpc.ChannelCredentials], Security]:
    """Build channel credentials; ``None`` means a plain-text channel."""
    security = Security.WITHOUT_TLS
    root_ca: Optional[bytes] = None
    credentials: Optional[grpc.ChannelCredentials] = None

    if server_ca_file:
        try:
            data = Path(server_ca_file).read_bytes()
        except OSError as exc:
            raise GrpcClientError(f"failed to load root ca file: {exc}") from exc
        if data:
            try:
                x509.load_pem_x509_certificates(data)
            except ValueError as exc:
                raise GrpcClientError("failed to append root ca to tls.Config") from exc
            root_ca = data
            security = Security.WITH_TLS
            credentials = grpc.ssl_channel_credentials(root_certificates=root_ca)

    if client_cert or client_key:
        try:
            cert_pem, key_pem = _load_key_pair(client_cert, client_key)
        except (OSError, ValueError, TypeError) as exc:
            raise GrpcClientError(f"failed to load client certificate and key: {exc}") from exc
        security = Security.WITH_MTLS
        credentials = grpc.ssl_channel_credentials(
            root_certificates=root_ca,
            private_key=key_pem,
            certificate_chain=cert_pem,
        )

    return credentials, security


def _load_key_pair(cert_file: str, key_file: str) -> Tuple[bytes, bytes]:
    cert_pem = Path(cert_file).read_bytes()
    key_pem = Path(key_file).read_bytes()
    certificate = x509.load_pem_x509_certificates(cert_pem)[0]
    key = serialization.load_pem_private_key(key_pem, None)

    def spki(public_key: object) -> bytes:
        return public_key.public_bytes(  # type: ignore[attr-defined]
            serialization.Encoding.DER,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    if spki(certificate.public_key()) != spki(key.public_key()):
        raise ValueError("private key does not match public key")
    return cert_pem, key_pem


def _validity(cert: x509.Certificate) -> Tuple[datetime.datetime, datetime.datetime]:
    before = getattr(cert, "not_valid_before_utc", None)
    after = getattr(cert, "not_valid_after_utc", None)
    if before is None or after is None:
        before = cert.not_valid_before.replace(tzinfo=datetime.timezone.utc)
        after = cert.not_valid_after.replace(tzinfo=datetime.timezone.utc)
    return before, after


def check_if_certificate_self_signed(cert: Optional[x509.Certificate]) -> None:
    """Raise unless ``cert`` is a currently valid, self-signed server certificate."""
    if cert is None:
        raise GrpcClientError("x509: missing ASN.1 contents; use ParseCertificate")

    now = datetime.datetime.now(datetime.timezone.utc)
    before, after = _validity(cert)
    if now < before or now > after:
        raise GrpcClientError("x509: certificate has expired or is not yet valid")

    try:
        cert.verify_directly_issued_by(cert)
    except (ValueError, TypeError, InvalidSignature) as exc:
        raise GrpcClientError(f"x509: certificate signed by unknown authority: {exc}") from exc

    try:
        usages = cert.extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
    except x509.ExtensionNotFound:
        return
    allowed = {ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.ANY_EXTENDED_KEY_USAGE}
    if not allowed.intersection(usages):
        raise GrpcClientError("x509: certificate specifies an incompatible key usage")


def verify_peer_certificate_atls(raw_certs: Sequence[Union[bytes, bytearray]]) -> x509.Certificate:
    """Check the first DER certificate presented by the peer and return it parsed."""
    try:
        cert = x509.load_der_x509_certificate(bytes(raw_certs[0]))
    except (IndexError, ValueError) as exc:
        raise GrpcClientError(f"failed to parse x509 certificate: {exc}") from exc

    try:
        check_if_certificate_self_signed(cert)
    except GrpcClientError as exc:
        raise GrpcClientError(f"certificate is not self signed: {exc}") from exc
    return cert