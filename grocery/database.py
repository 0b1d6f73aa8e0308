import functools
import logging

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .errors import Conflict, GroceryError, StoreUnavailable

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(database_url: str):
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


def build_session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine) -> bool:
    """
    Create database tables if they don't exist.
    Returns False when the store cannot be reached; the app still starts
    and serves degraded reads.
    """
    try:
        Base.metadata.create_all(bind=engine)
    except OperationalError as exc:
        logger.warning("Database not available, skipping table creation: %s", exc)
        return False
    return True


# Dependency to get a database session
def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def read_path(default=None):
    """
    Read helpers degrade to `default` (called if callable) when the store
    cannot be reached.
    """

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(db: Session, *args, **kwargs):
            try:
                return fn(db, *args, **kwargs)
            except OperationalError as exc:
                logger.warning("Database read %s failed: %s", fn.__name__, exc)
                db.rollback()
                return default() if callable(default) else default

        return wrapper

    return decorator


def write_path(fn):
    """Write helpers roll back and fail loudly; they never report false success."""

    @functools.wraps(fn)
    def wrapper(db: Session, *args, **kwargs):
        try:
            return fn(db, *args, **kwargs)
        except GroceryError:
            db.rollback()
            raise
        except IntegrityError as exc:
            db.rollback()
            logger.info("Database write %s rejected: %s", fn.__name__, exc.orig)
            raise Conflict("Record conflicts with existing data") from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Database write %s failed: %s", fn.__name__, exc)
            raise StoreUnavailable("Database not available") from exc

    return wrapper
