"""Database schema for the vector index."""

SCHEMA = """
-- Documents table: one row per indexed document
CREATE TABLE IF NOT EXISTS documents (
    path TEXT PRIMARY KEY,
    updated_at INTEGER NOT NULL,   -- epoch millis of the indexed version
    chunk_count INTEGER NOT NULL
);

-- Entries table: chunks with their embeddings
CREATE TABLE IF NOT EXISTS entries (
    document_path TEXT NOT NULL,
    offset_start INTEGER NOT NULL,
    offset_end INTEGER NOT NULL,
    text TEXT NOT NULL,
    embedding BLOB NOT NULL,       -- float32 little-endian
    updated_at INTEGER NOT NULL,
    PRIMARY KEY (document_path, offset_start),
    FOREIGN KEY (document_path) REFERENCES documents(path)
);

-- Metadata table: embedding model, dimension
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT
);

CREATE INDEX IF NOT EXISTS idx_entries_document ON entries(document_path);
"""
