# cocos

Client-side building blocks for working with confidential-computing agents:

- **Attestation policies** — read a JSON attestation policy (SEV-SNP check
  configuration plus expected vTPM PCR values) into an `AttestationConfig`.
- **PCR verification** — compute the PCR[15] values a TLS public key should
  produce and check vTPM quotes against the policy.
- **Progress-reporting transfers** — stream algorithms and datasets to an
  agent, and download results and attestation reports, with a terminal
  progress bar.
- **Agent SDK** — sign requests with Ed25519, RSA or ECDSA keys and drive the
  agent's algorithm, data, result and attestation calls.
- **gRPC client setup** — plain, TLS, mutual TLS and attested TLS connections.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Reading an attestation policy

```python
from cocos.attestation_config import default_config, read_attestation_policy

config = default_config()
read_attestation_policy("attestation_policy.json", config)
print(config.pcr_config.pcr_values.sha256)
```

A missing path raises `AttestationPolicyMissingError`, an unreadable file
`AttestationPolicyOpenError`, and malformed content
`AttestationPolicyDecodeError`; all derive from `AttestationPolicyError`.

## Checking PCR values

```python
from cocos.pcr import calculate_pcr_tls_key, check_expected_pcr_values

expected_256, expected_384 = calculate_pcr_tls_key(tls_public_key_der)
check_expected_pcr_values(quotes, expected_256, expected_384, config.pcr_config.pcr_values)
```

A mismatch raises `PcrMismatchError`; a quote using an unknown hash algorithm
raises `UnsupportedHashAlgoError`.

## Manager states

`ManagerState` and `ManagerStatus` enumerate the manager's lifecycle;
`manager_state_name` and `manager_status_name` turn raw numbers into names,
falling back to `ManagerState(n)` / `ManagerStatus(n)` for unknown values.

## Talking to an agent

```python
from cocos.grpc_client import AgentClientConfig, BaseConfig, new_client
from cocos.sdk import AgentSDK

client = new_client(AgentClientConfig(base=BaseConfig(url="localhost:7001")))
print(client.secure())

sdk = AgentSDK(agent_stub)
with open("algo.py", "rb") as algorithm:
    sdk.algo(algorithm, None, private_key)
```

`sign_data` and `generate_metadata` are available on their own for building
signed request metadata.