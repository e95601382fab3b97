from sqlmodel import Session, SQLModel, create_engine

from backend.config import get_settings

settings = get_settings()

# SQLite needs this when the session is used from FastAPI's threadpool
connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, echo=settings.sql_echo, connect_args=connect_args)


def init_db():
    # Import so the tables are registered on SQLModel.metadata
    from backend import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


# Dependency for DB Session
def get_session():
    with Session(engine) as session:
        yield session
