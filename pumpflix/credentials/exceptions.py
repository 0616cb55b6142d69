"""Credential-specific exceptions."""

from pumpflix.exceptions import NotFoundError, PumpFlixException, ValidationError


class CredentialNotFoundError(NotFoundError):
    """Raised when a credential is not found."""
    error = "Credential not found"


class CredentialExpiredError(ValidationError):
    """Raised when an expired credential is validated or used."""
    error = "Credential has expired"

    def __init__(self, message: str = "Credential has expired"):
        super().__init__(message)


class CredentialEncryptionError(PumpFlixException):
    """Raised when credential encryption/decryption fails."""
    status_code = 500
    error = "Credential Encryption Error"
