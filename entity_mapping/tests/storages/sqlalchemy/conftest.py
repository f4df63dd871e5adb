from typing import Generator

import pytest
import sqlalchemy as sa
from sqlalchemy.engine import Connection, Engine

from entity_mapping import EntityMapper, Session
from entity_mapping.storages.sqlalchemy import SqlAlchemyClient


@pytest.fixture()
def sa_metadata() -> sa.MetaData:
    metadata = sa.MetaData()
    sa.Table(
        "widgets",
        metadata,
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("weight", sa.Float, nullable=True),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime, nullable=True),
        sa.Column("blueprint", sa.LargeBinary, nullable=True),
    )
    sa.Table(
        "owners",
        metadata,
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(64), nullable=False),
    )
    sa.Table(
        "parts",
        metadata,
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("owner_id", sa.Integer, sa.ForeignKey("owners.id"), nullable=True),
    )
    sa.Table(
        "tags",
        metadata,
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("label", sa.String(32), nullable=False),
    )
    sa.Table(
        "widget_tags",
        metadata,
        sa.Column("widget_id", sa.Integer, sa.ForeignKey("widgets.id"), nullable=False),
        sa.Column("tag_id", sa.Integer, sa.ForeignKey("tags.id"), nullable=False),
    )
    return metadata


@pytest.fixture()
def connection(sa_metadata: sa.MetaData, engine: Engine) -> Generator[Connection, None, None]:
    sa_metadata.drop_all(engine)
    sa_metadata.create_all(engine)
    with engine.connect() as connection:
        yield connection
    sa_metadata.drop_all(engine)


@pytest.fixture()
def sa_client(connection: Connection) -> SqlAlchemyClient:
    return SqlAlchemyClient(connection)


@pytest.fixture()
def session(mapper: EntityMapper, sa_client: SqlAlchemyClient) -> Generator[Session, None, None]:
    with mapper.session(sa_client) as session:
        yield session
