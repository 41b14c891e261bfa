"""Pydantic schemas for the HTTP contract."""
