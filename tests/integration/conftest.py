import os
import uuid
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from app.config.settings import Settings
from app.database.connection import close_pool, get_connection, init_pool
from app.database.repositories.receipts_repository import ReceiptsRepository
from app.export.file_storage import LocalFileStorage
from app.export.postgres_persistence import PostgresReceiptPersistence

_CREATE_RECEIPTS = """
CREATE TABLE IF NOT EXISTS receipts (
    id TEXT PRIMARY KEY,
    vendor TEXT,
    date DATE,
    amount BIGINT,
    tax_id TEXT,
    memo TEXT,
    pdf_path TEXT,
    thumbnail_path TEXT,
    confidence DOUBLE PRECISION,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "receipts_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute(_CREATE_RECEIPTS)
            conn.commit()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def receipt_ids(integration_pool: None) -> Generator[list[str], None, None]:
    """Ids handed out here are deleted after the test."""
    ids: list[str] = []
    yield ids
    if not ids:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM receipts WHERE id = ANY(%s)", (ids,))
        conn.commit()


@pytest.fixture
def new_receipt_id(receipt_ids: list[str]) -> str:
    receipt_id = str(uuid.uuid4())
    receipt_ids.append(receipt_id)
    return receipt_id


@pytest.fixture
def postgres_persistence(integration_pool: None, tmp_path: Path) -> PostgresReceiptPersistence:
    return PostgresReceiptPersistence(
        storage=LocalFileStorage(tmp_path, secret="integration-secret"),
        repository=ReceiptsRepository(),
    )
