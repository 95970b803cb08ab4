"""Engine e sessão SQLModel (engine criado explicitamente e injetado, sem estado global)."""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from pixpay.db import models  # noqa: F401  (registra as tabelas no metadata)


def _ensure_sqlite_dir(url: str) -> None:
    if not url.startswith("sqlite:///") or url.endswith(":memory:"):
        return
    Path(url.replace("sqlite:///", "").split("?")[0]).parent.mkdir(parents=True, exist_ok=True)


def build_engine(database_url: str) -> Engine:
    url = database_url.strip()
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)
    if url in ("sqlite://", "sqlite:///:memory:"):
        # Mesma conexão para todas as sessões, senão cada uma vê um banco vazio
        return create_engine(
            url, connect_args={"check_same_thread": False}, poolclass=StaticPool
        )
    _ensure_sqlite_dir(url)
    return create_engine(url, connect_args={"check_same_thread": False})


@contextmanager
def get_session(engine: Engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def create_all_tables(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)
