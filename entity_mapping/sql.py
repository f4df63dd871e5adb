import typing


PLACEHOLDER = "?"


def _conditions(columns: typing.Sequence[str], alias: str = "") -> str:
    prefix = f"{alias}." if alias else ""
    return " AND ".join(f"{prefix}{column} = {PLACEHOLDER}" for column in columns)


def select(table: str, where: typing.Sequence[str] = ()) -> str:
    query = f"SELECT * FROM {table}"
    if where:
        query += f" WHERE {_conditions(where)}"
    return query


def select_joined(
    table: str, id_column: str, join_table: str, target_join_column: str, source_join_column: str
) -> str:
    return (
        f"SELECT t.* FROM {table} t JOIN {join_table} m ON t.{id_column} = m.{target_join_column} "
        f"WHERE m.{source_join_column} = {PLACEHOLDER}"
    )


def insert(table: str, columns: typing.Sequence[str]) -> str:
    if not columns:
        return f"INSERT INTO {table} DEFAULT VALUES"
    placeholders = ", ".join(PLACEHOLDER for _ in columns)
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"


def update(table: str, columns: typing.Sequence[str], id_column: str) -> str:
    assignments = ", ".join(f"{column} = {PLACEHOLDER}" for column in columns)
    return f"UPDATE {table} SET {assignments} WHERE {id_column} = {PLACEHOLDER}"


def delete(table: str, where: typing.Sequence[str]) -> str:
    return f"DELETE FROM {table} WHERE {_conditions(where)}"
