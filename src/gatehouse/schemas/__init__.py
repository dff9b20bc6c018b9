"""Pydantic schemas for API requests and service results."""
