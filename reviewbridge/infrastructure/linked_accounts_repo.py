# reviewbridge/infrastructure/linked_accounts_repo.py
from typing import Optional, List
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select
from sqlalchemy import delete, update
from reviewbridge.models.linked_account import LinkedAccount
from reviewbridge.infrastructure.upsert import upsert_statement
import uuid
from datetime import datetime
from reviewbridge.timeutil import utcnow


class LinkedAccountRepository:
    """
    Repository for LinkedAccount entity.
    All writes are keyed on (user_id, provider); there is no read-modify-write.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_user_and_provider(self, user_id: uuid.UUID, provider: str) -> Optional[LinkedAccount]:
        q = (
            select(LinkedAccount)
            .where(LinkedAccount.user_id == user_id, LinkedAccount.provider == provider)
            .execution_options(populate_existing=True)
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list_by_user(self, user_id: uuid.UUID) -> List[LinkedAccount]:
        q = select(LinkedAccount).where(LinkedAccount.user_id == user_id).order_by(LinkedAccount.provider)
        res = await self.session.execute(q)
        return list(res.scalars().all())

    async def upsert(
        self,
        user_id: uuid.UUID,
        provider: str,
        provider_user_id: str,
        access_token_enc: str,
        refresh_token_enc: Optional[str],
        page_token_enc: Optional[str],
        expires_at: Optional[datetime],
        user_email: Optional[str] = None,
        user_name: Optional[str] = None,
        scope: Optional[str] = None,
        page_id: Optional[str] = None,
    ) -> LinkedAccount:
        """
        Insert or overwrite the record for (user_id, provider) in one statement.
        created_at survives an overwrite, every other column is replaced.
        """
        now = utcnow()
        row = {
            "id": uuid.uuid4(),
            "user_id": user_id,
            "provider": provider,
            "provider_user_id": provider_user_id,
            "access_token_enc": access_token_enc,
            "refresh_token_enc": refresh_token_enc,
            "page_id": page_id,
            "page_token_enc": page_token_enc,
            "token_expires_at": expires_at,
            "scope": scope,
            "user_email": user_email,
            "user_name": user_name,
            "created_at": now,
            "updated_at": now,
        }
        stmt = upsert_statement(
            self.session, LinkedAccount, row,
            conflict_keys=("user_id", "provider"),
            preserve=("created_at",),
        )
        try:
            await self.session.execute(stmt)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return await self.get_by_user_and_provider(user_id, provider)

    async def update_access_token(
        self,
        user_id: uuid.UUID,
        provider: str,
        access_token_enc: str,
        expires_at: Optional[datetime],
    ) -> None:
        q = (
            update(LinkedAccount)
            .where(LinkedAccount.user_id == user_id, LinkedAccount.provider == provider)
            .values(access_token_enc=access_token_enc, token_expires_at=expires_at, updated_at=utcnow())
        )
        try:
            await self.session.execute(q)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def delete_by_user_and_provider(self, user_id: uuid.UUID, provider: str) -> bool:
        q = delete(LinkedAccount).where(LinkedAccount.user_id == user_id, LinkedAccount.provider == provider)
        res = await self.session.execute(q)
        await self.session.commit()
        return res.rowcount > 0
