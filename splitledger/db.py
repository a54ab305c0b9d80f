import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, create_engine, Session

from splitledger.config import config
from splitledger.errors import StorageError

connect_args = {"check_same_thread": False} if config.DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(config.DATABASE_URL, echo=config.SQL_ECHO, connect_args=connect_args)


def init_db(bind=None):
    # Import models so SQLModel.metadata includes them
    import splitledger.models.user, splitledger.models.group, splitledger.models.expense  # noqa: F401
    import splitledger.models.settlement, splitledger.models.claim, splitledger.models.activity  # noqa: F401
    SQLModel.metadata.create_all(bind or engine)


def get_engine():
    return engine


class UnitOfWork:
    """One database transaction.

    Used as a context manager: commits when the block exits normally and rolls
    back when it raises. Driver failures come out as ``StorageError``.

        with UnitOfWork(engine) as uow:
            uow.session.add(row)
    """

    def __init__(self, bind=None):
        self.bind = bind or engine
        self.session = None

    def __enter__(self):
        self.begin()
        return self

    def __exit__(self, exc_type, exc, tb):
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self.close()
        if exc_type is not None and issubclass(exc_type, SQLAlchemyError):
            raise StorageError("database operation failed") from exc
        return False

    def begin(self):
        self.session = Session(self.bind)
        return self.session

    def commit(self):
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.rollback()
            raise StorageError("transaction commit failed") from e

    def rollback(self):
        try:
            self.session.rollback()
        except SQLAlchemyError:
            logging.exception("rollback failed")

    def close(self):
        if self.session is not None:
            self.session.close()
            self.session = None
