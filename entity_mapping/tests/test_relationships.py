import typing

import pytest

from entity_mapping import (
    AmbiguousRelationshipError,
    Entity,
    EntityMapper,
    RelationshipResolutionError,
    Session,
    column,
    many_to_many,
    many_to_one,
    one_to_many,
)


class Author(Entity, table="authors"):
    id: int = column(primary_key=True, default=0)
    name: typing.Optional[str] = column(default=None)
    books = one_to_many(lambda: Book)


class Book(Entity, table="books"):
    id: int = column(primary_key=True, default=0)
    author_id: int = many_to_one(Author, default=0)
    shelves = many_to_many(lambda: Shelf, join_table="shelf_books")
    archives = many_to_many(lambda: Shelf, join_table="archived_books", join_column="book", inverse_join_column="shelf")
    tags = many_to_many(lambda: Tag, join_table="book_tags")


class Shelf(Entity, table="shelves"):
    id: int = column(primary_key=True, default=0)
    books = many_to_many(Book, join_table="shelf_books")
    archived = many_to_many(Book, join_table="archived_books", join_column="shelf", inverse_join_column="book")


class Novel(Entity, table="novels"):
    id: int = column(primary_key=True, default=0)
    author_id: int = many_to_one(Author, default=0)
    editor_id: typing.Optional[int] = many_to_one(Author, default=None)


class Review(Entity, table="reviews"):
    id: int = column(primary_key=True, default=0)
    book_id: int = many_to_one(Book, default=0)
    author_id: int = many_to_one(Author, default=0)


class Genre(Entity, table="genres"):
    id: int = column(primary_key=True, default=0)
    books = many_to_many(Book, join_table="genre_books")


class Tag(Entity, table="tags"):
    id: int = column(primary_key=True, default=0)
    books = many_to_many(Book, join_table="tag_books")


@pytest.fixture()
def session(mapper: EntityMapper, client) -> Session:
    return mapper.session(client)


def test_many_to_one_fetches_target_by_key(session: Session, client):
    client.result_sets.append([{"id": 7, "name": "Ann"}])
    book = Book(id=1, author_id=7)

    author = session.get_many_to_one(book, Author)

    assert author.name == "Ann"
    assert client.queries == [("SELECT * FROM authors WHERE id = ?", [7])]
    assert session.get_many_to_one(book, Author) is author
    assert len(client.queries) == 1


def test_many_to_one_with_absent_key_is_none(session: Session, client):
    assert session.get_many_to_one(Novel(id=1, author_id=7), Author, "editor_id") is None
    assert client.queries == []


def test_many_to_one_requires_name_when_ambiguous(session: Session):
    with pytest.raises(AmbiguousRelationshipError, match="author_id, editor_id"):
        session.get_many_to_one(Novel(id=1, author_id=7, editor_id=8), Author)


def test_one_to_many_filters_on_back_reference(session: Session, client):
    client.result_sets.append([{"id": 1, "author_id": 7}, {"id": 2, "author_id": 7}])

    books = session.get_one_to_many(Author(id=7), Book)

    assert [book.id for book in books] == [1, 2]
    assert client.queries == [("SELECT * FROM books WHERE author_id = ?", [7])]


def test_one_to_many_by_declared_name(session: Session, client):
    session.resolve(Author(id=7), "books")

    assert client.queries == [("SELECT * FROM books WHERE author_id = ?", [7])]


def test_one_to_many_with_several_back_references(session: Session, client):
    with pytest.raises(AmbiguousRelationshipError):
        session.get_one_to_many(Author(id=7), Novel)

    session.get_one_to_many(Author(id=7), Novel, mapped_by="editor_id")

    assert client.queries == [("SELECT * FROM novels WHERE editor_id = ?", [7])]


def test_one_to_many_without_back_reference_fails(session: Session, client):
    with pytest.raises(RelationshipResolutionError, match="Shelf does not define a many-to-one"):
        session.get_one_to_many(Author(id=7), Shelf)

    assert client.queries == []


def test_collections_reuse_cached_instances(session: Session, client):
    cached = Book(id=1, author_id=7)
    session.cache.set(Book, 1, cached)
    client.result_sets.append([{"id": 1, "author_id": 7}, {"id": 2, "author_id": 7}])

    books = session.get_one_to_many(Author(id=7), Book)

    assert books[0] is cached
    assert session.cache.get(Book, 2) is books[1]


def test_many_to_many_joins_through_join_table(session: Session, client):
    session.get_many_to_many(Shelf(id=2), Book, "books")
    session.get_many_to_many(Shelf(id=2), Book, "archived")

    assert client.queries == [
        ("SELECT t.* FROM books t JOIN shelf_books m ON t.id = m.book_id WHERE m.shelf_id = ?", [2]),
        ("SELECT t.* FROM books t JOIN archived_books m ON t.id = m.book WHERE m.shelf = ?", [2]),
    ]


def test_many_to_many_requires_name_when_ambiguous(session: Session):
    with pytest.raises(AmbiguousRelationshipError):
        session.get_many_to_many(Shelf(id=2), Book)


def test_many_to_many_requires_inverse_declaration(session: Session, client):
    with pytest.raises(RelationshipResolutionError, match="must specify many to many details"):
        session.get_many_to_many(Genre(id=1), Book)

    assert client.queries == []


def test_many_to_many_requires_consistent_inverse(session: Session):
    with pytest.raises(RelationshipResolutionError, match="mirrors"):
        session.get_many_to_many(Tag(id=1), Book)
    with pytest.raises(RelationshipResolutionError, match="mirrors"):
        session.add_many_to_many(Book(id=1), Tag(id=1))


def test_links_are_added_and_removed_on_join_table(session: Session, client):
    shelf, book = Shelf(id=2), Book(id=1)

    session.add_many_to_many(shelf, book, "books")
    session.remove_many_to_many(shelf, book, "books")
    session.add_many_to_many(book, shelf, "shelves")

    assert client.executions == [
        ("INSERT INTO shelf_books (shelf_id, book_id) VALUES (?, ?)", [2, 1]),
        ("DELETE FROM shelf_books WHERE book_id = ? AND shelf_id = ?", [1, 2]),
        ("INSERT INTO shelf_books (book_id, shelf_id) VALUES (?, ?)", [1, 2]),
    ]


def test_query_for_joins_on_every_constraint(session: Session, client):
    session.query_for(Review, Book(id=1), Author(id=7))

    assert client.queries == [("SELECT * FROM reviews WHERE book_id = ? AND author_id = ?", [1, 7])]


def test_query_for_without_foreign_key_fails(session: Session):
    with pytest.raises(RelationshipResolutionError):
        session.query_for(Author, Book(id=1))


def test_unknown_relationship_name(session: Session):
    with pytest.raises(RelationshipResolutionError, match="named 'friends'"):
        session.resolve(Author(id=7), "friends")
