import os
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase
from config import DATABASE_URL


class Base(DeclarativeBase):
    pass


def make_engine(url: str = DATABASE_URL) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        # handlers, background tasks and dashboard workers share the pool across threads
        connect_args["check_same_thread"] = False
        path = url.split("///", 1)[-1]
        folder = os.path.dirname(path)
        if path != ":memory:" and folder:
            os.makedirs(folder, exist_ok=True)
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


engine = make_engine()
