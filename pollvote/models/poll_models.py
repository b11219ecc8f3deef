from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import InvalidTextError

KEY_SIZE = 32
IV_SIZE = 12
TAG_SIZE = 16


def utf8(value: str, what: str = "text") -> bytes:
    """UTF-8 encodes value; lone surrogates raise InvalidTextError."""
    try:
        return value.encode()
    except UnicodeEncodeError as e:
        raise InvalidTextError(f"{what} is not valid Unicode: {e.reason}") from e


class PollCreationContext(BaseModel):
    """The poll a vote refers to, as extracted from the poll creation message."""

    model_config = ConfigDict(frozen=True)

    poll_msg_id: str = Field(..., min_length=1)
    poll_msg_sender: str = Field(..., min_length=1)
    enc_key: bytes = Field(
        ...,
        min_length=KEY_SIZE,
        max_length=KEY_SIZE,
        repr=False,
        description="Secret key carried by the poll creation message",
    )


class PollVoteUpdate(BaseModel):
    """A single encrypted vote update."""

    model_config = ConfigDict(frozen=True)

    vote_msg_sender: str = Field(..., min_length=1)
    enc_payload: bytes = Field(
        ...,
        min_length=TAG_SIZE,
        repr=False,
        description="Ciphertext followed by the 16 byte GCM tag",
    )
    enc_iv: bytes = Field(..., min_length=IV_SIZE, max_length=IV_SIZE)


class VoteSignMessage(BaseModel):
    """
    Input to the second HMAC stage of vote key derivation.

    Layout: poll_msg_id ++ poll_msg_sender ++ vote_msg_sender ++ "Poll Vote" ++ 0x01.
    Fields are concatenated without separators or length prefixes.
    """

    model_config = ConfigDict(frozen=True)

    MODIFICATION_TYPE: ClassVar[bytes] = b"Poll Vote"
    PAD: ClassVar[bytes] = b"\x01"

    poll_msg_id: str
    poll_msg_sender: str
    vote_msg_sender: str

    @classmethod
    def build(
        cls, poll_msg_id: str, poll_msg_sender: str, vote_msg_sender: str
    ) -> bytes:
        try:
            message = cls(
                poll_msg_id=poll_msg_id,
                poll_msg_sender=poll_msg_sender,
                vote_msg_sender=vote_msg_sender,
            )
        except ValidationError as e:
            raise InvalidTextError(f"Invalid vote identifiers: {e}") from e
        return message.to_bytes()

    def to_bytes(self) -> bytes:
        return b"".join(
            [
                utf8(self.poll_msg_id, "poll_msg_id"),
                utf8(self.poll_msg_sender, "poll_msg_sender"),
                utf8(self.vote_msg_sender, "vote_msg_sender"),
                self.MODIFICATION_TYPE,
                self.PAD,
            ]
        )


class VoteAssociatedData(BaseModel):
    """AES-GCM associated data for a vote: poll_msg_id ++ 0x00 ++ vote_msg_sender."""

    model_config = ConfigDict(frozen=True)

    SEPARATOR: ClassVar[bytes] = b"\x00"

    poll_msg_id: str
    vote_msg_sender: str

    @classmethod
    def build(cls, poll_msg_id: str, vote_msg_sender: str) -> bytes:
        try:
            data = cls(poll_msg_id=poll_msg_id, vote_msg_sender=vote_msg_sender)
        except ValidationError as e:
            raise InvalidTextError(f"Invalid vote identifiers: {e}") from e
        return data.to_bytes()

    def to_bytes(self) -> bytes:
        return (
            utf8(self.poll_msg_id, "poll_msg_id")
            + self.SEPARATOR
            + utf8(self.vote_msg_sender, "vote_msg_sender")
        )


class DecryptedPollVote(BaseModel):
    vote_msg_sender: str
    option_hashes: list[str]
    selected_options: list[str]

    @property
    def is_retracted(self) -> bool:
        """True when the voter currently has no option selected."""
        return not self.selected_options
