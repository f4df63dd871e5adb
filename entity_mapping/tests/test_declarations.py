import typing

import attr

from entity_mapping import Entity, column, many_to_many, many_to_one, one_to_many
from entity_mapping.declarations import (
    COLUMN,
    ColumnDeclaration,
    ManyToManyDeclaration,
    OneToManyDeclaration,
    declared_relationships,
)


class Team(Entity, table="teams"):
    id: int = column(primary_key=True, generated=True, default=0)
    name: typing.Optional[str] = column("team_name", default=None)
    players = one_to_many(lambda: Player)


class Player(Entity, entity_name="players"):
    id: int = column(primary_key=True, default=0)
    team_id: int = many_to_one(Team, default=0)
    nickname: str = "rookie"


def test_entity_becomes_attrs_class():
    assert attr.has(Team)
    team = Team(id=3, name="Owls")

    assert team.id == 3
    assert team.name == "Owls"
    assert Team() == Team(id=0, name=None)


def test_table_and_entity_names_are_kept_on_class():
    assert Team.__table_name__ == "teams"
    assert Player.__entity_name__ == "players"
    assert not hasattr(Player, "__table_name__")


def test_column_declaration_is_kept_in_field_metadata():
    fields = attr.fields_dict(Team)

    assert fields["id"].metadata[COLUMN] == ColumnDeclaration(primary_key=True, generated=True)
    assert fields["name"].metadata[COLUMN] == ColumnDeclaration(name="team_name")
    assert fields["name"].default is None


def test_many_to_one_is_a_column_referencing_target():
    declaration = attr.fields_dict(Player)["team_id"].metadata[COLUMN]

    assert declaration.references is Team
    assert declaration.name is None


def test_plain_attributes_are_not_columns():
    assert COLUMN not in attr.fields_dict(Player)["nickname"].metadata
    assert Player().nickname == "rookie"


def test_relationship_declarations_are_not_fields():
    assert "players" not in attr.fields_dict(Team)
    assert list(declared_relationships(Team)) == ["players"]
    assert isinstance(declared_relationships(Team)["players"], OneToManyDeclaration)


def test_relationship_declarations_are_inherited():
    class Base(Entity):
        id: int = column(primary_key=True, default=0)
        tags = many_to_many(lambda: Player, join_table="base_players")

    class Derived(Base, table="derived"):
        followers = many_to_many(lambda: Player, join_table="derived_followers")

    assert list(declared_relationships(Base)) == ["tags"]
    assert list(declared_relationships(Derived)) == ["tags", "followers"]
    assert all(isinstance(value, ManyToManyDeclaration) for value in declared_relationships(Derived).values())
