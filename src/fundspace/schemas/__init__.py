"""Pydantic schemas for API inputs and outputs."""
