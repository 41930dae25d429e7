"""Shared utilities: structured logging and content hashing."""
