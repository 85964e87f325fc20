[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cocos"
version = "0.1.0"
description = "Client-side tooling for confidential computing agents: attestation policies, PCR checks, signed uploads and gRPC client setup."
requires-python = ">=3.10"
keywords = ["confidential-computing", "attestation", "vtpm", "sev-snp", "grpc", "tls"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
    "Topic :: Security :: Cryptography",
]
dependencies = [
    "cryptography",
    "termcolor",
    "grpcio",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["cocos"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
