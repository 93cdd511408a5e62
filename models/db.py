from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event

db = SQLAlchemy()


def use_immediate_transactions(engine):
    """
    Make every SQLite transaction take the write lock at BEGIN.

    pysqlite defers BEGIN until the first write, so two check-then-insert
    sequences could both read before either writes. SQLite ignores
    SELECT ... FOR UPDATE, so this is what serializes them there.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")
