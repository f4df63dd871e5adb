import enum
import typing
import uuid
from datetime import date, timedelta

import sqlalchemy as sa

from entity_mapping import Entity, EntityMapper, column, many_to_many, many_to_one, one_to_many
from entity_mapping.extensions import UuidCoercionRegistry
from entity_mapping.storages.sqlalchemy import SqlAlchemyClient


class Status(enum.Enum):
    NEW = "NEW"
    OLD = "OLD"


class Plan(Entity, table="plans"):
    id: typing.Optional[uuid.UUID] = column(primary_key=True, default=None)
    discount: float = column(default=0.0)
    subscribers = many_to_many(lambda: Subscriber, join_table="plan_subscribers")


class Subscriber(Entity, table="subscribers"):
    id: int = column(primary_key=True, generated=True, default=0)
    name: str = column(default="")
    status: Status = column(default=Status.NEW)
    plans = many_to_many(Plan, join_table="plan_subscribers")
    subscriptions = one_to_many(lambda: Subscription)


class Subscription(Entity, table="subscriptions"):
    id: int = column(primary_key=True, generated=True, default=0)
    subscriber_id: int = many_to_one(Subscriber, default=0)
    starts_on: typing.Optional[date] = column(default=None)
    ends_on: typing.Optional[date] = column(default=None)
    cancelled_at: typing.Optional[date] = column(default=None)


metadata = sa.MetaData()
sa.Table("plans", metadata, sa.Column("id", sa.String(36), primary_key=True), sa.Column("discount", sa.Float))
sa.Table(
    "subscribers",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("name", sa.String(64)),
    sa.Column("status", sa.String(8)),
)
sa.Table(
    "subscriptions",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("subscriber_id", sa.Integer, sa.ForeignKey("subscribers.id")),
    sa.Column("starts_on", sa.Date),
    sa.Column("ends_on", sa.Date),
    sa.Column("cancelled_at", sa.Date, nullable=True),
)
sa.Table(
    "plan_subscribers",
    metadata,
    sa.Column("plan_id", sa.String(36), sa.ForeignKey("plans.id")),
    sa.Column("subscriber_id", sa.Integer, sa.ForeignKey("subscribers.id")),
)

engine = sa.create_engine("sqlite://", echo=True)
metadata.create_all(engine)
mapper = EntityMapper(coercion=UuidCoercionRegistry())

with engine.begin() as connection, mapper.session(SqlAlchemyClient(connection)) as session:
    plan = Plan(uuid.uuid4(), discount=0.1)
    subscriber = Subscriber(name="Seba")
    session.insert(plan)
    session.insert(subscriber)
    session.add_many_to_many(subscriber, plan)
    session.insert(
        Subscription(subscriber_id=subscriber.id, starts_on=date.today(), ends_on=date.today() + timedelta(days=30))
    )

with engine.connect() as connection, mapper.session(SqlAlchemyClient(connection)) as session:
    got_subscriber = session.get(Subscriber, subscriber.id)
    assert got_subscriber == subscriber, f"\n{got_subscriber}\n{subscriber}"
    assert session.get_many_to_many(got_subscriber, Plan) == [plan]

    (subscription,) = session.get_one_to_many(got_subscriber, Subscription)
    subscription.cancelled_at = date.today()
    session.cautious_update(subscription)
    connection.commit()

metadata.drop_all(engine)
