class PollVoteError(Exception):
    """Base class for poll vote decryption errors."""

    pass


class InvalidKeyLengthError(PollVoteError):
    """Raised when a key or IV does not have the expected byte count."""

    def __init__(self, name: str, expected: int, actual: int):
        super().__init__(f"{name} must be {expected} bytes, got {actual}")
        self.name = name
        self.expected = expected
        self.actual = actual


class CryptoProviderError(PollVoteError):
    """Raised when the crypto backend rejects an algorithm or its parameters."""

    pass


class AuthenticationFailedError(PollVoteError):
    """Raised when the AES-GCM tag does not verify."""

    pass


class InvalidTextError(PollVoteError):
    """Raised when an identifier or option cannot be encoded as UTF-8."""

    pass
