"""Package data: the SQLite schema of the practice store."""
