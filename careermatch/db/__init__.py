"""
Database module - relational (PostgreSQL/SQLAlchemy) and MongoDB connections.
"""
from careermatch.db.postgres import get_db_session, execute_raw_sql, init_db, test_postgres_connection
from careermatch.db.mongodb import get_mongo_db, test_mongo_connection

__all__ = [
    "get_db_session",
    "execute_raw_sql",
    "init_db",
    "test_postgres_connection",
    "get_mongo_db",
    "test_mongo_connection"
]
