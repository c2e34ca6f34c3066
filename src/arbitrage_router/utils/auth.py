"""Authority checks for administrative operations."""
import logging

from arbitrage_router.errors import Unauthorized

logger = logging.getLogger(__name__)


def authorize(caller: str, authority: str) -> None:
    """
    Require ``caller`` to be the configured authority.

    Raises:
        Unauthorized: If the caller is anyone else
    """
    if not caller or caller != authority:
        logger.warning(f"Rejected administrative call from {caller!r}")
        raise Unauthorized(f"Caller {caller!r} is not the authority")
