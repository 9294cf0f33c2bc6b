"""Shared connection management for Postgres and Redis."""
