"""Pydantic request/response contracts, kept separate from the ORM models."""
