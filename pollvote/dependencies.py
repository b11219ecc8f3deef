import structlog

from .config import settings
from .logging_conf import configure_logging
from .models.exceptions import CryptoProviderError
from .services.crypto_provider import (
    FALLBACK_BACKEND,
    CryptoProvider,
    create_provider,
)
from .services.poll_vote_service import PollVoteService

logger = structlog.stdlib.get_logger()

# Process-wide singletons, built once on first use
_crypto_provider: CryptoProvider | None = None
_poll_vote_service: PollVoteService | None = None


def get_crypto_provider() -> CryptoProvider:
    """
    Returns the crypto provider chosen by CRYPTO_BACKEND, creating it on first use.
    Falls back to the portable backend when the configured one cannot start.
    """
    global _crypto_provider
    if _crypto_provider is None:
        backend = settings.crypto_backend
        try:
            _crypto_provider = create_provider(backend)
            reason = "configured"
        except CryptoProviderError as e:
            if backend == FALLBACK_BACKEND:
                raise
            logger.warning(
                "crypto.provider_unavailable", backend=backend, error=str(e)
            )
            _crypto_provider = create_provider(FALLBACK_BACKEND)
            reason = f"fallback from {backend}"
        logger.info(
            "crypto.provider_selected", backend=_crypto_provider.name, reason=reason
        )
    return _crypto_provider


def startup() -> PollVoteService:
    """Configures logging and selects the crypto backend for the process."""
    configure_logging()
    return get_poll_vote_service()


def get_poll_vote_service() -> PollVoteService:
    global _poll_vote_service
    if _poll_vote_service is None:
        _poll_vote_service = PollVoteService(provider=get_crypto_provider())
    return _poll_vote_service


def reset_dependencies() -> None:
    """Helper for testing to drop the cached provider and service."""
    global _crypto_provider, _poll_vote_service
    _crypto_provider = None
    _poll_vote_service = None
