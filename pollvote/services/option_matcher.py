from collections.abc import Iterable, Sequence

from ..models.poll_models import utf8
from .crypto_provider import CryptoProvider
from .option_codec import OptionHashCodec


class OptionMatcher:
    provider: CryptoProvider

    def __init__(self, provider: CryptoProvider):
        self.provider = provider

    async def hash_option(self, option: str) -> str:
        """Uppercase hex SHA-256 of the option text. Options must be valid Unicode."""
        digest = await self.provider.digest(utf8(option, "option"))
        return OptionHashCodec.encode(digest)

    async def match(
        self, candidates: Sequence[str], option_hashes: Iterable[str]
    ) -> list[str]:
        """
        Returns the candidates whose hash appears in option_hashes, in
        candidate order and without duplicates. An empty result means no
        option is currently selected.
        """
        wanted = set(option_hashes)
        selected: list[str] = []
        for option in candidates:
            if option in selected:
                continue
            if await self.hash_option(option) in wanted:
                selected.append(option)
        return selected
