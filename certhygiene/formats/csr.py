from cryptography import x509

from ..errors import ParseError
from ..models import ParsedCSR
from ..x509meta import public_key_info, rfc4514, signature_algorithm
from . import pem


def parse_csr(data: bytes) -> ParsedCSR:
    pem.check_size(data)
    der = data
    if pem.looks_like_pem(data):
        block = pem.first_block(data, pem.CSR_LABELS)
        if block is None:
            raise ParseError("no CERTIFICATE REQUEST block found in PEM input")
        der = block.der

    try:
        csr = x509.load_der_x509_csr(der)
        subject = rfc4514(csr.subject)
        sig = signature_algorithm(csr)
    except ValueError as e:
        raise ParseError(f"malformed PKCS#10 request: {e}") from e

    algo, bits = public_key_info(csr)
    return ParsedCSR(subject=subject, key_algorithm=algo, key_bits=bits, signature_algorithm=sig)
