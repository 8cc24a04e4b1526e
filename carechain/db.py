# carechain/db.py
from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session
import threading
import os

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./carechain.db")
engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False} if "sqlite" in DATABASE_URL else {})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# one writer at a time across every session in the process
_ledger_lock = threading.RLock()


def init_db(admin_id: str, bind=None):
    """Create tables and the counters row. An existing row is left untouched."""
    import carechain.models as models
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    db = Session(bind=bind)
    try:
        state = db.get(models.LedgerState, models.LEDGER_STATE_ID)
        if state is None:
            db.add(models.LedgerState(id=models.LEDGER_STATE_ID, admin_id=admin_id))
            db.commit()
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """Serialize one logical call: commit on success, roll back on any error."""
    with _ledger_lock:
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
