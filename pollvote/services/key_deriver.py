from ..models.poll_models import KEY_SIZE, VoteSignMessage
from .crypto_provider import CryptoProvider, check_length

# First HMAC stage is keyed with 32 zero bytes
ZERO_KEY = bytes(KEY_SIZE)


class KeyDeriver:
    """
    Derives the per-vote AES key from the poll's secret key:

        intermediate = HMAC-SHA256(ZERO_KEY, enc_key)
        vote_key     = HMAC-SHA256(intermediate, VoteSignMessage)
    """

    provider: CryptoProvider

    def __init__(self, provider: CryptoProvider):
        self.provider = provider

    async def derive(
        self,
        enc_key: bytes,
        poll_msg_id: str,
        poll_msg_sender: str,
        vote_msg_sender: str,
    ) -> bytearray:
        """Returns a fresh 32 byte key. Callers should zero it once done."""
        check_length("Poll encryption key", enc_key, KEY_SIZE)

        sign_message = VoteSignMessage.build(
            poll_msg_id, poll_msg_sender, vote_msg_sender
        )

        intermediate = bytearray(await self.provider.hmac_sign(ZERO_KEY, enc_key))
        try:
            derived = await self.provider.hmac_sign(
                intermediate, sign_message
            )
        finally:
            intermediate[:] = bytes(len(intermediate))

        key = bytearray(derived)
        check_length("Derived vote key", key, KEY_SIZE)
        return key
