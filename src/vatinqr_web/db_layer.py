from flask import current_app
from sqlalchemy import Column, DateTime, Index, MetaData, String, Table, create_engine
from sqlalchemy.engine import Engine, URL

import config as cfg

ENGINE_KEY = 'vatinqr.engine'

metadata = MetaData()

qrs = Table(
    "qrs",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("vatin", String(64), nullable=False),
    Column("first_name", String(255), nullable=False),
    Column("last_name", String(255), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("idx_qrs_vatin", "vatin"),
)


def database_url(conf=cfg):
    """DATABASE_URL wins; otherwise assemble a PostgreSQL URL from the DB_* settings."""
    if getattr(conf, 'DATABASE_URL', ''):
        return conf.DATABASE_URL
    query = {"sslmode": "require"} if conf.DB_SSL else {}
    return URL.create(
        "postgresql+psycopg2",
        username=conf.DB_USER or None,
        password=conf.DB_PASSWORD or None,
        host=conf.DB_HOST or None,
        port=conf.DB_PORT,
        database=conf.DB_NAME or None,
        query=query,
    )


def make_engine(url=None) -> Engine:
    return create_engine(url if url is not None else database_url(), pool_pre_ping=True)


def init_db(engine: Engine) -> None:
    metadata.create_all(engine)


def get_engine() -> Engine:
    """Engine bound to the running app by create_app()."""
    return current_app.extensions[ENGINE_KEY]
