import pytest
from cryptography.hazmat.primitives import hashes, serialization

from certhygiene.dispatcher import inspect, inspect_bytes
from certhygiene.errors import ParseError, UnrecognizedFormat, UsageError
from certhygiene.formats import pem
from certhygiene.settings import Settings
from _util import PASSWORD, SHA1_CSR_RSA1024, cert_pem, ec_key, key_bytes, make_ca_and_leaf, make_cert, make_p12, read_bytes, rsa_key


def rules_of(section):
    return [f.rule for f in section.findings]


def test_pem_certificate():
    r = inspect_bytes(cert_pem(make_cert()), "cert.pem")
    assert r.ok
    (section,) = r.sections
    assert section.kind == "certificate"
    assert section.summary["key_length"] == "2048 bits"
    assert section.summary["chain_verification"].startswith("OK [self-verification only")
    assert rules_of(section) == []


def test_pem_falls_back_to_private_key():
    r = inspect_bytes(key_bytes(rsa_key(1024)), "server.pem")
    (section,) = r.sections
    assert section.kind == "private key"
    assert rules_of(section) == ["short_key", "unencrypted_key"]


def test_combined_pem_reports_certificate_then_key():
    key = rsa_key()
    data = cert_pem(make_cert(key=key)) + key_bytes(key)
    r = inspect_bytes(data, "combined.pem")
    assert [s.kind for s in r.sections] == ["certificate", "private key"]
    assert r.sections[1].artifact == "combined.pem [private key]"
    assert rules_of(r.sections[1]) == ["unencrypted_key"]


def test_garbage_pem_is_unrecognized():
    with pytest.raises(UnrecognizedFormat):
        inspect_bytes(b"hello world", "junk.pem")


def test_unknown_extension_is_unrecognized():
    with pytest.raises(UnrecognizedFormat):
        inspect_bytes(cert_pem(make_cert()), "cert.crt")
    assert inspect_bytes(cert_pem(make_cert()), "cert.crt", extension_hint="pem").ok


def test_csr():
    r = inspect_bytes(read_bytes(SHA1_CSR_RSA1024), "req.csr")
    (section,) = r.sections
    assert section.kind == "CSR"
    assert rules_of(section) == ["weak_algorithm", "short_key"]


def test_pfx_without_passphrase_reports_mac_only():
    r = inspect_bytes(make_p12(mac=hashes.SHA1()), "bundle.p12")
    assert r.ok
    (section,) = r.sections
    assert section.summary["mac_algorithm"] == "sha1"
    assert section.summary["entries"] == "not extracted (no passphrase)"
    assert rules_of(section) == ["weak_mac"]


def test_pfx_wrong_passphrase_keeps_mac_section():
    r = inspect_bytes(make_p12(mac=hashes.SHA1()), "bundle.pfx", passphrase="wrongpass")
    assert not r.ok
    (section,) = r.sections
    assert section.summary["mac_algorithm"] == "sha1"
    assert rules_of(section) == ["weak_mac"]
    assert section.error.startswith("AuthenticationFailed")


def test_pfx_with_passphrase_lists_entries():
    ca, leaf = make_ca_and_leaf()
    data = make_p12(key=rsa_key(2048, 2), cert=leaf, cas=[ca])
    r = inspect_bytes(data, "bundle.pfx", passphrase="changeit")
    assert r.ok
    assert [s.artifact for s in r.sections] == [
        "bundle.pfx",
        "bundle.pfx [certificate 1]",
        "bundle.pfx [private key]",
        "bundle.pfx [certificate 2]",
    ]
    assert r.sections[0].summary["entries"] == "2"
    # the bundle's own certificates form the trust set
    assert r.sections[1].summary["chain_verification"].startswith("OK")
    assert r.sections[2].summary["protection_algorithm"] == "PBES2/aes-256-cbc"


def test_key_with_wrong_passphrase_still_reports_encryption():
    data = key_bytes(rsa_key(), password=PASSWORD)
    r = inspect_bytes(data, "k.key", passphrase="wrongpass")
    assert not r.ok
    (section,) = r.sections
    assert section.summary["encryption"] == "encrypted"
    assert section.summary["key_length"] == "undetermined"
    assert section.error.startswith("AuthenticationFailed")
    assert rules_of(section) == ["short_key"]


def test_der_key_file():
    r = inspect_bytes(key_bytes(rsa_key(), encoding=serialization.Encoding.DER), "k.key")
    assert r.sections[0].summary["algorithm"] == "RSA"


def test_ca_option_switches_mode():
    ca, leaf = make_ca_and_leaf()
    r = inspect_bytes(cert_pem(leaf), "leaf.pem", ca_data=cert_pem(ca))
    assert r.sections[0].summary["chain_verification"] == "OK"

    alone = inspect_bytes(cert_pem(leaf), "leaf.pem")
    section = alone.sections[0]
    assert section.summary["chain_verification"].startswith("FAILED (unknown issuer)")
    assert rules_of(section) == ["chain_verification"]
    # a failed verification is a finding, not an error
    assert alone.ok


def test_large_ca_bundle_keeps_every_anchor():
    ca, leaf = make_ca_and_leaf()
    fillers = [make_cert(f"Filler CA {n}", key=ec_key(), ca=True) for n in range(pem.MAX_BLOCKS + 6)]
    bundle = cert_pem(*fillers) + cert_pem(ca)
    r = inspect_bytes(cert_pem(leaf), "leaf.pem", ca_data=bundle)
    assert r.sections[0].summary["chain_verification"] == "OK"


def test_certificate_after_text_dump():
    dump = b"Certificate:\n" + b"        Modulus: 00:c3:5f:9a:1e:77:02:4b:aa:10:de:ad:be:ef\n" * 200
    r = inspect_bytes(dump + cert_pem(make_cert()), "c.pem")
    assert [s.kind for s in r.sections] == ["certificate"]


def test_bad_ca_file():
    with pytest.raises(ParseError, match="CA file"):
        inspect_bytes(cert_pem(make_cert()), "cert.pem", ca_data=b"nope")


def test_inspect_reads_files(tmp_path):
    ca, leaf = make_ca_and_leaf()
    (tmp_path / "leaf.pem").write_bytes(cert_pem(leaf))
    (tmp_path / "ca.pem").write_bytes(cert_pem(ca))
    r = inspect(tmp_path / "leaf.pem", ca_path=tmp_path / "ca.pem")
    assert r.sections[0].artifact == str((tmp_path / "leaf.pem").resolve())
    assert r.sections[0].summary["chain_verification"] == "OK"


def test_inspect_missing_file(tmp_path):
    with pytest.raises(UsageError):
        inspect(tmp_path / "missing.pem")


def test_inspect_honours_size_limit(tmp_path):
    (tmp_path / "big.pem").write_bytes(cert_pem(make_cert()))
    with pytest.raises(ParseError, match="limit"):
        inspect(tmp_path / "big.pem", settings=Settings(MAX_INPUT_BYTES=16))
