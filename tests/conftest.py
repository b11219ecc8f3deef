# ruff: noqa: E402
import os

# Set environment to testing before any other imports
os.environ["POLLVOTE_ENV"] = "testing"

import hashlib
import hmac
from collections.abc import Callable, Sequence

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from pollvote.dependencies import reset_dependencies
from pollvote.models.poll_models import PollCreationContext, PollVoteUpdate
from pollvote.services.crypto_provider import CryptoProvider, create_provider
from pollvote.services.poll_vote_service import PollVoteService

SealVote = Callable[..., PollVoteUpdate]


def reference_vote_key(
    enc_key: bytes, poll_msg_id: str, poll_msg_sender: str, vote_msg_sender: str
) -> bytes:
    """Independent vote key derivation using the standard library hmac module."""
    intermediate = hmac.new(bytes(32), enc_key, hashlib.sha256).digest()
    sign_message = (
        poll_msg_id.encode()
        + poll_msg_sender.encode()
        + vote_msg_sender.encode()
        + b"Poll Vote"
        + b"\x01"
    )
    return hmac.new(intermediate, sign_message, hashlib.sha256).digest()


def vote_plaintext(options: Sequence[str]) -> bytes:
    """Builds a vote plaintext: one 0x0A 0x20 <sha256> record per selected option."""
    return b"".join(
        b"\x0a\x20" + hashlib.sha256(option.encode()).digest() for option in options
    )


@pytest.fixture(params=["cryptography", "tink"])
def provider(request) -> CryptoProvider:
    """Runs the test once per crypto backend."""
    return create_provider(request.param)


@pytest.fixture
def service(provider: CryptoProvider) -> PollVoteService:
    return PollVoteService(provider=provider)


@pytest.fixture
def poll() -> PollCreationContext:
    return PollCreationContext(
        poll_msg_id="P1",
        poll_msg_sender="111@x",
        enc_key=bytes(32),
    )


@pytest.fixture
def seal_vote() -> SealVote:
    """Returns a helper that encrypts a vote the way a client would."""

    def _seal(
        poll: PollCreationContext,
        vote_msg_sender: str,
        options: Sequence[str],
        iv: bytes | None = None,
    ) -> PollVoteUpdate:
        key = reference_vote_key(
            poll.enc_key, poll.poll_msg_id, poll.poll_msg_sender, vote_msg_sender
        )
        iv = iv or os.urandom(12)
        associated_data = poll.poll_msg_id.encode() + b"\x00" + vote_msg_sender.encode()
        payload = AESGCM(key).encrypt(iv, vote_plaintext(options), associated_data)
        return PollVoteUpdate(
            vote_msg_sender=vote_msg_sender, enc_payload=payload, enc_iv=iv
        )

    return _seal


@pytest.fixture(autouse=True)
def reset_state():
    """Drops cached singletons so each test picks the backend it configures."""
    reset_dependencies()
    yield
    reset_dependencies()


@pytest.fixture
def reference_key() -> Callable[[bytes, str, str, str], bytes]:
    return reference_vote_key
