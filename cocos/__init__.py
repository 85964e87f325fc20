"""Client tooling for confidential-computing agents: attestation, PCR checks, transfers and gRPC setup."""

__version__ = "0.1.0"