from sqlalchemy import Table
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


def dialect_insert(db: AsyncSession, table: Table):
    """INSERT construct supporting ON CONFLICT for the dialect the session is bound to."""
    dialect = db.get_bind().dialect.name
    if dialect == 'sqlite':
        return sqlite_insert(table)
    if dialect == 'postgresql':
        return pg_insert(table)
    raise RuntimeError(f'Unsupported database dialect for upserts: {dialect}')
