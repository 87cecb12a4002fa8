import logging
from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from stacks.configs import DB_URI, DEBUG

logger = logging.getLogger(__name__)
# Only use client_encoding for PostgreSQL, not SQLite
engine_kwargs = {'echo': DEBUG}
if not DB_URI.startswith('sqlite'):
    engine_kwargs['client_encoding'] = 'utf8'
engine = create_engine(DB_URI, **engine_kwargs)
session = scoped_session(sessionmaker(bind=engine, autoflush=False))

class StacksBase:
    @classmethod
    def get_many(cls, db, offset=None, limit=None):
        return db.query(cls).offset(offset).limit(limit).all()

Base = declarative_base(cls=StacksBase)

def init(bind=None):
    try:
        Base.metadata.create_all(bind=bind or engine)
        return session
    except Exception as e:
        logger.warning(f"[WARNING] Database initialization failed: {e}")

@contextmanager
def transaction(factory=None):
    """Yields a session whose work is committed as a single unit, or
    rolled back entirely if anything inside the block raises.
    """
    db = (factory or session)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
