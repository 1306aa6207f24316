from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker


def create_db_engine(database_uri: str) -> Engine:
    is_sqlite = database_uri.startswith("sqlite")
    # SQLite specific configuration for multi-threading
    connect_args = {"check_same_thread": False, "timeout": 30} if is_sqlite else {}

    engine = create_engine(
        database_uri,
        pool_pre_ping=True,
        connect_args=connect_args
    )

    if is_sqlite:
        # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
