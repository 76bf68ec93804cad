"""
CodeVault Backend — Application Package Initializer
====================================================

What: Marks the `codevault` directory as a Python package.
Why:  Enables module imports like `from codevault.config import Settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    This backend follows a clean layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, auth extraction
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Ownership rules, hashing, tokens
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Configuration is loaded once (codevault.config.load_settings) and handed
    to create_app(); nothing below the app factory reads the environment.
"""

__version__ = "1.0.0"
