from contextlib import contextmanager

from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event

db = SQLAlchemy()
migrate = Migrate()


@contextmanager
def transaction(session=None):
    """Commit everything done inside the block, or roll all of it back."""
    session = session or db.session
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def serialize_sqlite_writers(engine):
    """
    Make every SQLite transaction start with ``BEGIN IMMEDIATE``.

    pysqlite defers ``BEGIN`` until the first INSERT/UPDATE, so a
    check-then-write sequence would read outside any transaction and
    ``SELECT ... FOR UPDATE`` compiles to nothing on SQLite. Taking the
    database write lock when the transaction begins makes a second writer
    wait before its first read.
    """
    @event.listens_for(engine, "connect")
    def _manual_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")
