from typing import List, Optional
from sqlalchemy import select, delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from db import Base
from models import KVEntry


class KVStore:
    """Key/value collaborator over a single SQLAlchemy table.

    Every call opens its own session, so one store can be shared by request
    handlers, background tasks and worker threads. Calls are independent:
    there is no transaction spanning more than one key.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        Base.metadata.create_all(bind=engine)

    def get(self, key: str) -> Optional[str]:
        with Session(self.engine) as s:
            row = s.get(KVEntry, key)
            return row.value if row else None

    def put(self, key: str, value: str) -> None:
        stmt = update(KVEntry).where(KVEntry.key == key).values(value=value)
        with Session(self.engine) as s:
            if not s.execute(stmt).rowcount:
                s.add(KVEntry(key=key, value=value))
            try:
                s.commit()
            except IntegrityError:
                # another writer inserted the key first; last write wins
                s.rollback()
                s.execute(stmt)
                s.commit()

    def delete(self, key: str) -> None:
        with Session(self.engine) as s:
            s.execute(delete(KVEntry).where(KVEntry.key == key))
            s.commit()

    def list(self, prefix: str = "", limit: Optional[int] = None) -> List[str]:
        stmt = select(KVEntry.key).order_by(KVEntry.key)
        if prefix:
            stmt = stmt.where(KVEntry.key.startswith(prefix, autoescape=True))
        if limit is not None:
            stmt = stmt.limit(limit)
        with Session(self.engine) as s:
            return list(s.scalars(stmt))
