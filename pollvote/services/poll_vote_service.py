import asyncio
from collections.abc import Sequence

import structlog

from ..models.exceptions import PollVoteError
from ..models.poll_models import DecryptedPollVote, PollCreationContext, PollVoteUpdate
from .aead_decryptor import AeadDecryptor
from .crypto_provider import CryptoProvider
from .key_deriver import KeyDeriver
from .option_codec import OptionHashCodec
from .option_matcher import OptionMatcher

logger = structlog.stdlib.get_logger()


class PollVoteService:
    """
    Decrypts poll vote updates and recovers the selected options.

    Pipeline per vote: derive key -> AES-GCM decrypt -> strip pad ->
    hex encode -> split -> match against the poll's options.
    """

    provider: CryptoProvider
    key_deriver: KeyDeriver
    decryptor: AeadDecryptor
    matcher: OptionMatcher

    def __init__(self, provider: CryptoProvider):
        self.provider = provider
        self.key_deriver = KeyDeriver(provider)
        self.decryptor = AeadDecryptor(provider)
        self.matcher = OptionMatcher(provider)

    async def decrypt_option_hashes(
        self, poll: PollCreationContext, vote: PollVoteUpdate
    ) -> list[str]:
        """Returns the option hashes carried by a vote, in protocol order."""
        key = await self.key_deriver.derive(
            poll.enc_key,
            poll.poll_msg_id,
            poll.poll_msg_sender,
            vote.vote_msg_sender,
        )
        try:
            plaintext = await self.decryptor.decrypt(
                key,
                vote.enc_iv,
                AeadDecryptor.associated_data(poll.poll_msg_id, vote.vote_msg_sender),
                vote.enc_payload,
            )
        finally:
            # The derived key must not outlive the decrypt call
            key[:] = bytes(len(key))

        return OptionHashCodec.decode_option_hashes(plaintext)

    async def decrypt_selected_options(
        self,
        poll: PollCreationContext,
        vote: PollVoteUpdate,
        options: Sequence[str],
    ) -> list[str]:
        """Returns the subset of options selected by the vote, in option order."""
        hashes = await self.decrypt_option_hashes(poll, vote)
        return await self.matcher.match(options, hashes)

    async def decrypt_vote(
        self,
        poll: PollCreationContext,
        vote: PollVoteUpdate,
        options: Sequence[str],
    ) -> DecryptedPollVote:
        hashes = await self.decrypt_option_hashes(poll, vote)
        selected = await self.matcher.match(options, hashes)

        logger.debug(
            "poll_vote.decrypted",
            poll_msg_id=poll.poll_msg_id,
            vote_msg_sender=vote.vote_msg_sender,
            selected_count=len(selected),
        )
        return DecryptedPollVote(
            vote_msg_sender=vote.vote_msg_sender,
            option_hashes=hashes,
            selected_options=selected,
        )

    async def _try_decrypt_vote(
        self,
        poll: PollCreationContext,
        vote: PollVoteUpdate,
        options: Sequence[str],
    ) -> DecryptedPollVote | None:
        try:
            return await self.decrypt_vote(poll, vote, options)
        except PollVoteError as e:
            logger.warning(
                "poll_vote.skipped",
                poll_msg_id=poll.poll_msg_id,
                vote_msg_sender=vote.vote_msg_sender,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

    async def decrypt_votes(
        self,
        poll: PollCreationContext,
        votes: Sequence[PollVoteUpdate],
        options: Sequence[str],
    ) -> list[DecryptedPollVote]:
        """
        Decrypts many vote updates for the same poll concurrently.
        Unprocessable updates are logged and left out; the rest keep input order.
        """
        results = await asyncio.gather(
            *(self._try_decrypt_vote(poll, vote, options) for vote in votes)
        )
        decrypted = [r for r in results if r is not None]

        logger.info(
            "poll_vote.batch_decrypted",
            poll_msg_id=poll.poll_msg_id,
            total=len(votes),
            decrypted=len(decrypted),
            skipped=len(votes) - len(decrypted),
        )
        return decrypted
