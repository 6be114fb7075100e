"""
Initialize the Postgres database `studyai` and create the documents table.
- Reads connection settings from env: POSTGRES_HOST/PORT/USER/PASSWORD/DB
- Connects to maintenance DB `postgres` to create `studyai` if missing
- Creates `documents` (uploaded files with their extracted text) and its owner/category index

The API only reads this table; uploads and text extraction populate it.

Run:
  python studyai-db/init_postgres.py [--reset]
"""
from __future__ import annotations
import os
import sys
import psycopg2
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT

PG_HOST = os.getenv("POSTGRES_HOST", "localhost")
PG_USER = os.getenv("POSTGRES_USER", "postgres")
PG_PASSWORD = os.getenv("POSTGRES_PASSWORD", "")
PG_DB_NAME = os.getenv("POSTGRES_DB", "studyai")
PG_PORT = int(os.getenv("POSTGRES_PORT", "5432"))


def connect(dbname: str):
    return psycopg2.connect(
        host=PG_HOST,
        port=PG_PORT,
        user=PG_USER,
        password=PG_PASSWORD,
        database=dbname,
    )


def ensure_database_exists():
    # Connect to maintenance DB to check/create target database
    conn = connect("postgres")
    conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
    cur = conn.cursor()
    try:
        cur.execute("SELECT 1 FROM pg_database WHERE datname=%s", (PG_DB_NAME,))
        exists = cur.fetchone() is not None
        if not exists:
            print(f"Creating database '{PG_DB_NAME}' ...")
            cur.execute(f"CREATE DATABASE {PG_DB_NAME};")
        else:
            print(f"Database '{PG_DB_NAME}' already exists.")
    finally:
        cur.close()
        conn.close()


def create_tables(reset: bool = False):
    conn = connect(PG_DB_NAME)
    cur = conn.cursor()
    try:
        if reset:
            cur.execute("DROP TABLE IF EXISTS documents CASCADE;")

        # DOCUMENTS
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
                id SERIAL PRIMARY KEY,
                user_id TEXT NOT NULL,
                filename TEXT NOT NULL,
                file_type TEXT,
                category TEXT NOT NULL DEFAULT 'general'
                    CHECK (category IN ('research', 'notes', 'pyq', 'general')),
                extracted_text TEXT,
                created_at TIMESTAMP DEFAULT NOW()
            );
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS documents_user_category_idx ON documents (user_id, category);"
        )
        conn.commit()
        print("Postgres database initialized successfully. Tables: documents")
    except Exception as e:
        conn.rollback()
        print("Initialization failed:", e)
        sys.exit(1)
    finally:
        cur.close()
        conn.close()


if __name__ == "__main__":
    ensure_database_exists()
    create_tables(reset="--reset" in sys.argv[1:])
