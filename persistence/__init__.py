"""PostgreSQL Persistence for the AI Roadmap API.

Main entry point of the persistence package. It stores users, profiles,
stats, roadmaps, progress records, earned achievements and session tokens in
PostgreSQL, with an in-memory store used when the database is unavailable.

This package is organized into the following modules:
- config: Configuration constants and environment handling
- globals: Global state (active store, connection string cache, init lock)
- records: Default user stats/preferences and record shaping helpers
- sessions: Session token generation, expiry and validation
- database: Connection management, pool handling, table and trigger setup
- error_handling: Retry logic for transient connection failures
- store: Store interface, Postgres and in-memory implementations, factory
"""
