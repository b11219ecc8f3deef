import abc
import hashlib

import tink
from anyio import to_thread
from cryptography.exceptions import InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import hmac as crypto_hmac
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from tink import aead, cleartext_keyset_handle, mac
from tink.proto import aes_gcm_pb2, common_pb2, hmac_pb2, tink_pb2

from ..models.exceptions import (
    AuthenticationFailedError,
    CryptoProviderError,
    InvalidKeyLengthError,
)
from ..models.poll_models import IV_SIZE, KEY_SIZE

AES_GCM_TYPE_URL = "type.googleapis.com/google.crypto.tink.AesGcmKey"
HMAC_TYPE_URL = "type.googleapis.com/google.crypto.tink.HmacKey"


def check_length(name: str, value: bytes | bytearray, expected: int) -> None:
    if len(value) != expected:
        raise InvalidKeyLengthError(name, expected, len(value))


class CryptoProvider(abc.ABC):
    """Abstract interface for the primitives used by vote decryption."""

    name: str

    @abc.abstractmethod
    async def digest(self, data: bytes) -> bytes:
        """Returns the SHA-256 digest of data."""
        pass

    @abc.abstractmethod
    async def hmac_sign(self, key: bytes | bytearray, data: bytes) -> bytes:
        """Returns HMAC-SHA256(key, data)."""
        pass

    @abc.abstractmethod
    async def aead_decrypt(
        self,
        key: bytes | bytearray,
        iv: bytes,
        associated_data: bytes,
        ciphertext_with_tag: bytes,
    ) -> bytes:
        """Verifies and decrypts AES-256-GCM ciphertext with a trailing 128-bit tag."""
        pass


class CryptographyProvider(CryptoProvider):
    """Default provider backed by the OpenSSL bindings in `cryptography`."""

    name = "cryptography"

    def __init__(self):
        # Fails early when the linked OpenSSL lacks AES-GCM or HMAC-SHA256
        try:
            AESGCM(bytes(KEY_SIZE))
            crypto_hmac.HMAC(bytes(KEY_SIZE), hashes.SHA256())
        except UnsupportedAlgorithm as e:
            raise CryptoProviderError(f"OpenSSL backend unavailable: {e}") from e

    async def digest(self, data: bytes) -> bytes:
        h = hashes.Hash(hashes.SHA256())
        h.update(data)
        return h.finalize()

    async def hmac_sign(self, key: bytes | bytearray, data: bytes) -> bytes:
        check_length("HMAC key", key, KEY_SIZE)
        try:
            h = crypto_hmac.HMAC(bytes(key), hashes.SHA256())
            h.update(data)
            return h.finalize()
        except (TypeError, ValueError) as e:
            raise CryptoProviderError(f"HMAC-SHA256 rejected input: {e}") from e

    async def aead_decrypt(
        self,
        key: bytes | bytearray,
        iv: bytes,
        associated_data: bytes,
        ciphertext_with_tag: bytes,
    ) -> bytes:
        check_length("AES-GCM key", key, KEY_SIZE)
        check_length("AES-GCM IV", iv, IV_SIZE)
        try:
            cipher = AESGCM(bytes(key))
            return cipher.decrypt(iv, ciphertext_with_tag, associated_data)
        except InvalidTag as e:
            raise AuthenticationFailedError("Vote payload failed authentication") from e
        except (TypeError, ValueError) as e:
            raise CryptoProviderError(f"AES-GCM rejected input: {e}") from e


class TinkProvider(CryptoProvider):
    """
    Fallback provider using Google Tink.
    Raw key bytes are wrapped in a single-key cleartext keyset with a RAW
    output prefix so Tink produces and accepts unprefixed MACs and ciphertexts.
    """

    name = "tink"

    def __init__(self):
        # Ensure Tink primitives are registered before we build any keysets
        aead.register()
        mac.register()

    @staticmethod
    def _single_key_handle(
        type_url: str, key_value: bytes
    ) -> tink.KeysetHandle:
        keyset = tink_pb2.Keyset(primary_key_id=1)
        key = keyset.key.add()
        key.key_data.type_url = type_url
        key.key_data.value = key_value
        key.key_data.key_material_type = tink_pb2.KeyData.SYMMETRIC
        key.status = tink_pb2.ENABLED
        key.key_id = 1
        key.output_prefix_type = tink_pb2.RAW
        return cleartext_keyset_handle.from_keyset(keyset)

    async def digest(self, data: bytes) -> bytes:
        # Tink has no digest primitive
        return hashlib.sha256(data).digest()

    async def hmac_sign(self, key: bytes | bytearray, data: bytes) -> bytes:
        check_length("HMAC key", key, KEY_SIZE)

        def _sign() -> bytes:
            hmac_key = hmac_pb2.HmacKey(
                version=0,
                key_value=bytes(key),
                params=hmac_pb2.HmacParams(hash=common_pb2.SHA256, tag_size=32),
            )
            handle = self._single_key_handle(
                HMAC_TYPE_URL, hmac_key.SerializeToString()
            )
            return handle.primitive(mac.Mac).compute_mac(data)

        try:
            return await to_thread.run_sync(_sign)
        except tink.TinkError as e:
            raise CryptoProviderError(f"Tink HMAC failed: {e}") from e

    async def aead_decrypt(
        self,
        key: bytes | bytearray,
        iv: bytes,
        associated_data: bytes,
        ciphertext_with_tag: bytes,
    ) -> bytes:
        check_length("AES-GCM key", key, KEY_SIZE)
        check_length("AES-GCM IV", iv, IV_SIZE)

        try:
            aes_key = aes_gcm_pb2.AesGcmKey(version=0, key_value=bytes(key))
            primitive = self._single_key_handle(
                AES_GCM_TYPE_URL, aes_key.SerializeToString()
            ).primitive(aead.Aead)
        except tink.TinkError as e:
            raise CryptoProviderError(f"Tink rejected AES-GCM key: {e}") from e

        try:
            # Tink expects iv || ciphertext || tag
            return await to_thread.run_sync(
                primitive.decrypt, iv + ciphertext_with_tag, associated_data
            )
        except tink.TinkError as e:
            raise AuthenticationFailedError("Vote payload failed authentication") from e


# Used when the configured backend cannot be constructed
FALLBACK_BACKEND = TinkProvider.name

PROVIDERS: dict[str, type[CryptoProvider]] = {
    CryptographyProvider.name: CryptographyProvider,
    TinkProvider.name: TinkProvider,
}


def create_provider(backend: str) -> CryptoProvider:
    """Instantiates the provider registered under the given backend name."""
    try:
        provider_cls = PROVIDERS[backend]
    except KeyError:
        raise CryptoProviderError(f"Unknown crypto backend: {backend}") from None
    try:
        return provider_cls()
    except (tink.TinkError, RuntimeError) as e:
        raise CryptoProviderError(f"Cannot start {backend} backend: {e}") from e
