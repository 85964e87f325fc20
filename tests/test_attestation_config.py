import pytest

from cocos.attestation_config import (
    AttestationConfig,
    AttestationPolicyDecodeError,
    AttestationPolicyError,
    AttestationPolicyMissingError,
    AttestationPolicyOpenError,
    PcrConfig,
    PcrValues,
    default_config,
    read_attestation_policy,
    read_attestation_policy_from_bytes,
)

VALID_JSON = (
    '{"pcr_values":{"sha256":{"0":"123"},"sha384":{"0":"123"}},'
    '"policy":{"report_data":"AAAA"},"root_of_trust":{"product_line":"Milan"}}'
)
INVALID_JSON = '{"invalid_json"'
INVALID_JSON_PCR = (
    '{"pcr_values":{"sha256":{"0":true},"sha384":{"0":"123"}},'
    '"policy":{"report_data":"AAAA"},"root_of_trust":{"product_line":"Milan"}}'
)


def _empty_config():
    return AttestationConfig(policy=None, root_of_trust=None, pcr_config=PcrConfig())


def test_valid_manifest(tmp_path):
    path = tmp_path / "valid_manifest.json"
    path.write_text(VALID_JSON)
    config = _empty_config()
    read_attestation_policy(str(path), config)
    assert config.policy == {"report_data": "AAAA"}
    assert config.root_of_trust == {"product_line": "Milan"}
    assert config.pcr_config.pcr_values.sha256 == {"0": "123"}
    assert config.pcr_config.pcr_values.sha384 == {"0": "123"}


@pytest.mark.parametrize("content", [INVALID_JSON, INVALID_JSON_PCR])
def test_invalid_manifest(tmp_path, content):
    path = tmp_path / "invalid_manifest.json"
    path.write_text(content)
    with pytest.raises(AttestationPolicyDecodeError):
        read_attestation_policy(str(path), _empty_config())


def test_nonexistent_file(tmp_path):
    with pytest.raises(AttestationPolicyOpenError) as info:
        read_attestation_policy(str(tmp_path / "nonexistent.json"), _empty_config())
    assert "failed to open Attestation Policy file" in str(info.value)


def test_empty_path():
    with pytest.raises(AttestationPolicyMissingError) as info:
        read_attestation_policy("", _empty_config())
    assert str(info.value) == "failed due to missing Attestation Policy file"


def test_errors_share_base_class():
    with pytest.raises(AttestationPolicyError):
        read_attestation_policy_from_bytes(b"[1, 2]", _empty_config())


def test_default_config_has_empty_policy_and_root():
    config = default_config()
    assert config.policy == {}
    assert config.root_of_trust == {}
    assert config.pcr_config.pcr_values == PcrValues()


def test_snp_part_is_replaced_and_pcr_values_merged():
    config = default_config()
    config.pcr_config.pcr_values.sha256["1"] = "aa"
    read_attestation_policy_from_bytes(b'{"pcr_values":{"sha256":{"0":"bb"}}}', config)
    assert config.policy is None
    assert config.root_of_trust is None
    assert config.pcr_config.pcr_values.sha256 == {"1": "aa", "0": "bb"}


def test_camel_case_root_of_trust_and_unknown_fields():
    config = read_attestation_policy_from_bytes(
        '{"rootOfTrust":{"product_line":"Genoa"},"extra":1}', _empty_config()
    )
    assert config.root_of_trust == {"product_line": "Genoa"}
    assert config.policy is None


def test_policy_must_be_object():
    with pytest.raises(AttestationPolicyDecodeError):
        read_attestation_policy_from_bytes('{"policy":"text"}', _empty_config())