"""Deletion token store: one live row per subject."""

from datetime import datetime

from sqlalchemy import delete

from storeguard.db.models.compliance import DeletionToken
from storeguard.db.repositories.base import BaseRepository


class DeletionTokenRepository(BaseRepository[DeletionToken, int]):
    """Persistence for pending deletion requests."""

    model = DeletionToken

    async def upsert(
        self,
        subject_id: int,
        token_hash: str,
        issued_at: datetime,
        expires_at: datetime,
    ) -> DeletionToken:
        """Store a token for ``subject_id``, overwriting any live request."""
        row = await self.get(subject_id)
        if row is None:
            row = DeletionToken(subject_id=subject_id)
            self.db.add(row)
        row.token_hash = token_hash
        row.issued_at = issued_at
        row.expires_at = expires_at
        await self.db.flush()
        return row

    async def fetch_current(self, subject_id: int) -> DeletionToken | None:
        """Read the stored token straight from the database.

        Bypasses the identity map so a request written by another session
        is always seen.
        """
        return await self.db.get(self.model, subject_id, populate_existing=True)

    async def discard(self, subject_id: int) -> bool:
        """Delete the stored token.

        Returns:
            True if this call removed it, False if it was already gone
        """
        stmt = delete(DeletionToken).where(DeletionToken.subject_id == subject_id)
        result = await self.db.execute(stmt)
        await self.db.flush()
        return (result.rowcount or 0) > 0
