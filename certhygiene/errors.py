class CertHygieneError(Exception):
    """Base class for every error raised by certhygiene."""


class UsageError(CertHygieneError):
    """Bad or missing arguments; raised before any inspection starts."""


class UnrecognizedFormat(CertHygieneError):
    """The extension or content does not match any supported container."""


class ParseError(CertHygieneError):
    """A container is malformed or cannot be decoded."""


class AuthenticationFailed(ParseError):
    """Wrong passphrase for a PKCS#12 bundle or an encrypted private key."""


class UndeterminedProperty(CertHygieneError):
    """A property (key size, algorithm...) cannot be derived from the input.

    Never fatal: callers turn it into a None value and the rule engine
    reports it as an informational finding.
    """
