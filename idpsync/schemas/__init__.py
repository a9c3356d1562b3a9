"""Pydantic schemas for the gateway wire format and the trigger API."""
