"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Token-windowed tender chunking
- Embedding generation
- SQLite/FAISS content storage
- Per-tender semantic retrieval
- Grounded answer synthesis
"""
