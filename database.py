#!/usr/bin/env python3
"""
SQLAlchemy Database Configuration
==================================

This file sets up the database connection and session management for
storing soil sensor readings permanently.

WHICH DATABASE?
---------------
The connection string comes from the DATABASE_URL environment variable
(see config.py). With nothing set we fall back to a local SQLite file,
sensor_data.db, so the service runs with zero setup on a Raspberry Pi or
a laptop. Point DATABASE_URL at Postgres for a shared deployment.

WHY check_same_thread=False?
-----------------------------
FastAPI runs sync endpoints in a thread pool. SQLite refuses to share a
connection across threads by default, so for SQLite URLs we disable that
check and let SQLAlchemy's pool hand out connections safely.

WHAT HAPPENS HERE:
------------------
1. Create an "engine" for DATABASE_URL
2. Create a "SessionLocal" factory for making database sessions
3. Create a "Base" class that all our database models will inherit from
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from config import DATABASE_URL


def make_engine(url: str):
    """Build an engine, adding the SQLite threading flag when needed."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


engine = make_engine(DATABASE_URL)

# Each session is one "conversation" with the database, one per request
SessionLocal = sessionmaker(
    autocommit=False,  # We commit explicitly after each insert
    autoflush=False,
    bind=engine
)

# Base class that all our database models inherit from
Base = declarative_base()
