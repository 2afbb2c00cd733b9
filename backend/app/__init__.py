"""
TreeSpotter Backend - Application Package
==========================================

Layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, current user
    ├─────────────────────────────────────┤
    │         Services                    │  ← consistency protocol, uploads
    ├─────────────────────────────────────┤
    │         Repositories                │  ← owner-scoped SQL, one per table
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← connection manager, sessions
    └─────────────────────────────────────┘

One request is one session is one transaction: every layer below the route
works on the session the route received.
"""

__version__ = "1.0.0"
