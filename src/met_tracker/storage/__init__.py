"""Persistence for activity records and sessions."""
