from ..models.poll_models import VoteAssociatedData
from .crypto_provider import CryptoProvider


class AeadDecryptor:
    """AES-256-GCM decryption of vote payloads with a 128-bit trailing tag."""

    provider: CryptoProvider

    def __init__(self, provider: CryptoProvider):
        self.provider = provider

    @staticmethod
    def associated_data(poll_msg_id: str, vote_msg_sender: str) -> bytes:
        return VoteAssociatedData.build(poll_msg_id, vote_msg_sender)

    async def decrypt(
        self,
        key: bytes | bytearray,
        iv: bytes,
        associated_data: bytes,
        ciphertext_with_tag: bytes,
    ) -> bytes:
        """
        Returns the raw plaintext, padding included.
        Raises AuthenticationFailedError if the tag does not verify and
        InvalidKeyLengthError if the key or IV has the wrong size.
        """
        return await self.provider.aead_decrypt(
            key, iv, associated_data, ciphertext_with_tag
        )
