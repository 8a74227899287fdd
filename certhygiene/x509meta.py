
import datetime as dt
from typing import Optional, Tuple, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, rsa, x448, x25519

from .errors import UndeterminedProperty
from .oids import signature_name

Signed = Union[x509.Certificate, x509.CertificateSigningRequest]

# key types whose strength is expressed by a bit length we can compare
_SIZED = ((rsa.RSAPublicKey, rsa.RSAPrivateKey, "RSA"),
          (dsa.DSAPublicKey, dsa.DSAPrivateKey, "DSA"),
          (ec.EllipticCurvePublicKey, ec.EllipticCurvePrivateKey, "EC"))

_UNSIZED = ((ed25519.Ed25519PublicKey, ed25519.Ed25519PrivateKey, "Ed25519"),
            (ed448.Ed448PublicKey, ed448.Ed448PrivateKey, "Ed448"),
            (x25519.X25519PublicKey, x25519.X25519PrivateKey, "X25519"),
            (x448.X448PublicKey, x448.X448PrivateKey, "X448"))


def key_algorithm(key) -> str:
    for pub_t, priv_t, name in _SIZED + _UNSIZED:
        if isinstance(key, (pub_t, priv_t)):
            return name
    return key.__class__.__name__


def key_bits(key) -> int:
    """Bit length of an RSA/DSA/EC key; anything else raises UndeterminedProperty."""
    for pub_t, priv_t, _name in _SIZED:
        if isinstance(key, (pub_t, priv_t)):
            return int(key.key_size)
    raise UndeterminedProperty(f"key length is not modelled for {key_algorithm(key)} keys")


def public_key_info(obj: Signed) -> Tuple[Optional[str], Optional[int]]:
    try:
        pk = obj.public_key()
    except (ValueError, UnsupportedAlgorithm):
        return None, None
    try:
        return key_algorithm(pk), key_bits(pk)
    except UndeterminedProperty:
        return key_algorithm(pk), None


def signature_algorithm(obj: Signed) -> str:
    name = signature_name(obj.signature_algorithm_oid.dotted_string)
    if name == "RSASSA-PSS":
        # the digest lives in the PSS parameters
        try:
            algo = obj.signature_hash_algorithm
        except UnsupportedAlgorithm:
            algo = None
        if isinstance(algo, hashes.HashAlgorithm):
            return f"{name} ({algo.name})"
    return name


def validity(cert: x509.Certificate) -> Tuple[dt.datetime, dt.datetime]:
    return cert.not_valid_before_utc, cert.not_valid_after_utc


def rfc4514(name: x509.Name) -> str:
    return name.rfc4514_string()
