"""Model of a PostgreSQL schema for normalizing, hashing and rewriting catalog DDL."""

__version__ = "0.1.0"