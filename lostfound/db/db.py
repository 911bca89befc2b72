from sqlmodel import Session, SQLModel, create_engine

from lostfound.config import DATABASE_URL

if DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}
else:
    connect_args = {}

engine = create_engine(DATABASE_URL, connect_args=connect_args)


def create_db_and_tables():
    # table modules must be imported before create_all sees them
    from lostfound.models import claim, comment, found_item, lost_report, notification, user  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
