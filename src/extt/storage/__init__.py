"""Storage layer: note files on disk and the SQLite path/title index."""
