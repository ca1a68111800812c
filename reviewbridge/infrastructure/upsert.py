# reviewbridge/infrastructure/upsert.py
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel.ext.asyncio.session import AsyncSession

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(session: AsyncSession, model):
    """
    Dialect-specific INSERT that supports ON CONFLICT DO UPDATE.
    """
    name = session.bind.dialect.name
    try:
        return _INSERTS[name](model)
    except KeyError:
        raise RuntimeError(f"upsert not supported for dialect {name!r}")


def upsert_statement(session: AsyncSession, model, rows, conflict_keys, preserve=()):
    stmt = dialect_insert(session, model).values(rows)
    skip = set(conflict_keys) | {"id"} | set(preserve)
    columns = rows[0].keys() if isinstance(rows, list) else rows.keys()
    return stmt.on_conflict_do_update(
        index_elements=list(conflict_keys),
        set_={name: stmt.excluded[name] for name in columns if name not in skip},
    )
