"""
Repository helpers for contact token storage.

Contact tokens are keyed digests of the identifiers found in a user's
uploaded contact export. Re-uploads merge over existing rows.
"""

from collections import defaultdict
from collections.abc import Iterable

from app.db.helpers import BatchWrite, execute_batch, fetch_all
from app.features.proximity_graph.domain import ContactToken
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ContactTokenRepository:
    """Persistence helpers for contact tokens."""

    @classmethod
    async def upsert_tokens(cls, tokens: Iterable[ContactToken]) -> int:
        payload = sorted({(t.owner_user_id, str(t.kind), t.token) for t in tokens})
        if not payload:
            return 0

        query = """
            INSERT INTO contact_tokens (owner_user_id, kind, token)
            VALUES (%s, %s, %s)
            ON CONFLICT (owner_user_id, kind, token)
            DO UPDATE SET updated_at = NOW()
        """
        await execute_batch([BatchWrite(query, payload, "contact_tokens")])

        logger.info("Contact tokens upserted", token_count=len(payload))
        return len(payload)

    @classmethod
    async def load_tokens_by_user(cls) -> dict[str, set[str]]:
        """
        Load every token grouped by owner.

        The whole collection is read in one pass; graph builds assume it fits
        in memory.
        """
        query = """
            SELECT owner_user_id, token
            FROM contact_tokens
        """
        rows = await fetch_all(query)

        tokens_by_user: defaultdict[str, set[str]] = defaultdict(set)
        for row in rows:
            tokens_by_user[row["owner_user_id"]].add(row["token"])
        return dict(tokens_by_user)
