"""PostgreSQL Database Management Package

Connection string and kwargs generation, the async connection pool used by
PostgresStore, and creation of tables, indexes and realtime triggers.
"""
