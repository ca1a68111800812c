# reviewbridge/infrastructure/testimonials_repo.py
from typing import List, Sequence
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel import select
from reviewbridge.models.testimonial import Testimonial
from reviewbridge.infrastructure.upsert import upsert_statement
import uuid


class TestimonialRepository:
    __test__ = False  # not a pytest class

    def __init__(self, session: AsyncSession):
        self.session = session

    async def upsert_many(self, user_id: uuid.UUID, source: str, rows: Sequence[dict]) -> List[Testimonial]:
        """
        Upsert a batch keyed on (user_id, source, external_id).
        The batch is one statement: it lands completely or not at all.
        Returns the stored rows in input order.
        """
        if not rows:
            return []

        stmt = upsert_statement(
            self.session, Testimonial, list(rows),
            conflict_keys=("user_id", "source", "external_id"),
            preserve=("created_at",),
        )
        try:
            await self.session.execute(stmt)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        external_ids = [r["external_id"] for r in rows]
        q = (
            select(Testimonial)
            .where(
                Testimonial.user_id == user_id,
                Testimonial.source == source,
                Testimonial.external_id.in_(external_ids),
            )
            .execution_options(populate_existing=True)
        )
        res = await self.session.execute(q)
        by_external_id = {t.external_id: t for t in res.scalars().all()}
        return [by_external_id[e] for e in external_ids if e in by_external_id]

    async def list_by_user(self, user_id: uuid.UUID) -> List[Testimonial]:
        q = select(Testimonial).where(Testimonial.user_id == user_id).order_by(Testimonial.created_at)
        res = await self.session.execute(q)
        return list(res.scalars().all())
