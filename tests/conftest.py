"""Shared fixtures: throwaway SQLite databases and spreadsheet writers."""
import asyncio
import os
import tempfile

# logging_config creates its log directory at import time
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="buyers-logs-"))
os.environ.setdefault("STAGE", "development")

import pytest
from openpyxl import Workbook
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.config import Settings
from app.db import Base
from database.models import Buyer, Upload, User

OWNER_ID = 1
OTHER_OWNER_ID = 2


async def _with_db(url, scenario):
    engine = create_async_engine(url, poolclass=NullPool)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        factory = async_sessionmaker(bind=engine, expire_on_commit=False)
        async with factory() as session:
            session.add_all([
                User(id=OWNER_ID, name="Owner One", email="one@example.com", mobile="9000000000"),
                User(id=OTHER_OWNER_ID, name="Owner Two", email="two@example.com", mobile="9000000009"),
            ])
            await session.commit()
        return await scenario(factory)
    finally:
        await engine.dispose()


async def count_rows(factory):
    async with factory() as session:
        uploads = await session.scalar(select(func.count()).select_from(Upload))
        buyers = await session.scalar(select(func.count()).select_from(Buyer))
        return uploads, buyers


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'buyers.db'}"


@pytest.fixture
def run_db(db_url):
    """Run ``scenario(sessionmaker)`` against a fresh database seeded with two owners."""
    def runner(scenario):
        return asyncio.run(_with_db(db_url, scenario))
    return runner


@pytest.fixture
def settings(tmp_path, db_url):
    return Settings(
        DATABASE_URL=db_url,
        UPLOAD_DIR=str(tmp_path / "uploads"),
        STAGE="development",
    )


@pytest.fixture
def write_csv(tmp_path):
    def writer(name, text, encoding="utf-8"):
        path = tmp_path / name
        path.write_text(text, encoding=encoding)
        return str(path)
    return writer


@pytest.fixture
def write_xlsx(tmp_path):
    def writer(name, rows):
        wb = Workbook()
        ws = wb.active
        for row in rows:
            ws.append(list(row))
        path = tmp_path / name
        wb.save(path)
        return str(path)
    return writer
