"""SQL dialect facts for the three FocusFlow storage engines.

Application SQL is written once, in the embedded engine's syntax with ``?``
placeholders. A ``Dialect`` knows what has to change for its engine:
placeholder style, identifier quoting, reserved words, DDL idioms, and
boolean literals. The adapters use it at dispatch time and the migration
translator uses it to rewrite canonical DDL.

Architecture::

    ┌──────────────┐ ┌──────────────────┐ ┌──────────────────┐
    │ SQLite       │ │ PostgreSQL       │ │ MySQL            │
    │ ?            │ │ %s  (%% escaped) │ │ %s               │
    │ "col"        │ │ "col"            │ │ `col`            │
    │ AUTOINCREMENT│ │ SERIAL           │ │ AUTO_INCREMENT   │
    │ DATETIME     │ │ TIMESTAMP        │ │ TIMESTAMP        │
    │ 0 / 1        │ │ FALSE / TRUE     │ │ FALSE / TRUE     │
    └──────────────┘ └──────────────────┘ └──────────────────┘

Examples:
    >>> d = get_dialect("postgresql")
    >>> d.translate_placeholders("SELECT * FROM tasks WHERE id = ? AND title LIKE '50%'")
    "SELECT * FROM tasks WHERE id = %s AND title LIKE '50%%'"
    >>> get_dialect("mysql").quote_identifier("repeat")
    '`repeat`'
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract."""

    @property
    def name(self) -> str:
        """Engine name (``'sqlite'``, ``'postgresql'``, ``'mysql'``)."""
        ...

    # Whether bound timestamps must be ``YYYY-MM-DD HH:MM:SS`` literals
    timestamp_literals: bool
    # Whether ``CREATE INDEX IF NOT EXISTS`` is valid
    supports_index_if_not_exists: bool
    # Whether ``ALTER TABLE ... ADD COLUMN IF NOT EXISTS`` is valid
    supports_add_column_if_not_exists: bool
    reserved_words: frozenset[str]

    def translate_placeholders(self, sql: str) -> str:
        """Rewrite ``?`` placeholders into the driver's paramstyle."""
        ...

    def quote_identifier(self, name: str) -> str:
        """Quote an identifier with the engine's quote character."""
        ...

    def is_reserved(self, name: str) -> bool:
        ...

    def auto_increment(self) -> str:
        """DDL for an auto-incrementing integer primary key column type."""
        ...

    def timestamp_type(self) -> str:
        ...

    def boolean_true(self) -> str:
        ...

    def boolean_false(self) -> str:
        ...

    def table_exists_query(self) -> str:
        """Query taking one ``?`` placeholder (table name), returning rows if present."""
        ...


# =========================================================================
# Placeholder scanning
# =========================================================================


def rewrite_placeholders(sql: str, replacement: str, *, escape_percent: bool) -> str:
    """Replace ``?`` outside literals, quoted identifiers and comments.

    When ``escape_percent`` is set every literal ``%`` becomes ``%%``,
    including those inside string literals, because pyformat drivers
    interpolate the whole statement text.
    """
    out: list[str] = []
    i = 0
    n = len(sql)
    while i < n:
        ch = sql[i]
        if ch in ("'", '"', "`"):
            end = i + 1
            while end < n:
                if sql[end] == ch:
                    if end + 1 < n and sql[end + 1] == ch:
                        end += 2
                        continue
                    break
                end += 1
            chunk = sql[i : end + 1]
            out.append(chunk.replace("%", "%%") if escape_percent else chunk)
            i = end + 1
            continue
        if ch == "-" and sql.startswith("--", i):
            end = sql.find("\n", i)
            end = n if end == -1 else end
            chunk = sql[i:end]
            out.append(chunk.replace("%", "%%") if escape_percent else chunk)
            i = end
            continue
        if ch == "/" and sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            end = n if end == -1 else end + 2
            chunk = sql[i:end]
            out.append(chunk.replace("%", "%%") if escape_percent else chunk)
            i = end
            continue
        if ch == "?":
            out.append(replacement)
        elif ch == "%" and escape_percent:
            out.append("%%")
        else:
            out.append(ch)
        i += 1
    return "".join(out)


# =========================================================================
# Reserved words
# =========================================================================

SQLITE_RESERVED = frozenset(
    """
    add all alter and as autoincrement between case check collate commit
    constraint create default deferrable delete distinct drop else escape
    except exists foreign from group having if in index insert intersect
    into is isnull join limit not notnull null on or order primary
    references select set table then to transaction union unique update
    using values when where
    """.split()
)

POSTGRESQL_RESERVED = frozenset(
    """
    all analyse analyze and any array as asc asymmetric authorization
    binary both case cast check collate collation column concurrently
    constraint create cross current_catalog current_date current_role
    current_schema current_time current_timestamp current_user default
    deferrable desc distinct do else end except false fetch for foreign
    freeze from full grant group having ilike in initially inner intersect
    into is isnull join lateral leading left like limit localtime
    localtimestamp natural not notnull null offset on only or order outer
    overlaps placing primary references returning right select
    session_user similar some symmetric table tablesample then to trailing
    true union unique user using variadic verbose when where window with
    """.split()
)

MYSQL_RESERVED = frozenset(
    """
    accessible add all alter analyze and as asc before between bigint
    binary blob both by call cascade case change char character check
    collate column condition constraint continue convert create cross
    cube cume_dist current_date current_time current_timestamp
    current_user cursor database databases default delayed delete
    dense_rank desc describe distinct div double drop dual each else
    elseif empty enclosed escaped except exists exit explain false fetch
    first_value float for force foreign from fulltext function generated
    get grant group grouping groups having high_priority if ignore in
    index infile inner inout insert int integer intersect interval into
    is iterate join json_table key keys kill lag last_value lateral lead
    leading leave left like limit linear lines load localtime
    localtimestamp lock long loop low_priority match maxvalue mod
    natural not null nth_value ntile numeric of on optimize option
    optionally or order out outer over partition percent_rank precision
    primary procedure purge range rank read real recursive references
    regexp release rename repeat replace require resignal restrict return
    revoke right rlike row row_number rows schema schemas select
    separator set show signal smallint spatial sql sqlexception sqlstate
    sqlwarning ssl starting stored straight_join system table terminated
    then to trailing trigger true undo union unique unlock unsigned update
    usage use using values varbinary varchar varying virtual when where
    while window with write xor year_month zerofill
    """.split()
)


# =========================================================================
# Concrete Dialect Implementations
# =========================================================================


class SQLiteDialect:
    """SQLite dialect: ``?`` placeholders, canonical DDL."""

    timestamp_literals = False
    supports_index_if_not_exists = True
    supports_add_column_if_not_exists = False
    reserved_words = SQLITE_RESERVED

    @property
    def name(self) -> str:
        return "sqlite"

    def translate_placeholders(self, sql: str) -> str:
        return sql

    def quote_identifier(self, name: str) -> str:
        return '"' + name.replace('"', '""') + '"'

    def is_reserved(self, name: str) -> bool:
        return name.lower() in self.reserved_words

    def auto_increment(self) -> str:
        return "INTEGER PRIMARY KEY AUTOINCREMENT"

    def timestamp_type(self) -> str:
        return "DATETIME"

    def boolean_true(self) -> str:
        return "1"

    def boolean_false(self) -> str:
        return "0"

    def table_exists_query(self) -> str:
        return "SELECT name FROM sqlite_master WHERE type='table' AND name = ?"


class PostgreSQLDialect:
    """PostgreSQL dialect: ``%s`` placeholders (psycopg2), ``SERIAL`` keys."""

    timestamp_literals = True
    supports_index_if_not_exists = True
    supports_add_column_if_not_exists = True
    reserved_words = POSTGRESQL_RESERVED

    @property
    def name(self) -> str:
        return "postgresql"

    def translate_placeholders(self, sql: str) -> str:
        return rewrite_placeholders(sql, "%s", escape_percent=True)

    def quote_identifier(self, name: str) -> str:
        return '"' + name.replace('"', '""') + '"'

    def is_reserved(self, name: str) -> bool:
        return name.lower() in self.reserved_words

    def auto_increment(self) -> str:
        return "SERIAL PRIMARY KEY"

    def timestamp_type(self) -> str:
        return "TIMESTAMP"

    def boolean_true(self) -> str:
        return "TRUE"

    def boolean_false(self) -> str:
        return "FALSE"

    def table_exists_query(self) -> str:
        return (
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = current_schema() AND table_name = ?"
        )


class MySQLDialect:
    """MySQL dialect: ``%s`` placeholders, ``AUTO_INCREMENT`` keys.

    ``mysql.connector`` only substitutes ``%s`` tokens, so literal ``%`` is
    left as is.
    """

    timestamp_literals = True
    supports_index_if_not_exists = False
    supports_add_column_if_not_exists = False
    reserved_words = MYSQL_RESERVED

    @property
    def name(self) -> str:
        return "mysql"

    def translate_placeholders(self, sql: str) -> str:
        return rewrite_placeholders(sql, "%s", escape_percent=False)

    def quote_identifier(self, name: str) -> str:
        return "`" + name.replace("`", "``") + "`"

    def is_reserved(self, name: str) -> bool:
        return name.lower() in self.reserved_words

    def auto_increment(self) -> str:
        return "INT AUTO_INCREMENT PRIMARY KEY"

    def timestamp_type(self) -> str:
        return "TIMESTAMP"

    def boolean_true(self) -> str:
        return "TRUE"

    def boolean_false(self) -> str:
        return "FALSE"

    def table_exists_query(self) -> str:
        return (
            "SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES "
            "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = ?"
        )


# =========================================================================
# Registry / Factory
# =========================================================================

# Dialects are stateless
_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # alias
    "mysql": MySQLDialect(),
    "mariadb": MySQLDialect(),  # alias
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Raises:
        ValueError: If ``db_type`` is not recognised.
    """
    key = db_type.lower() if isinstance(db_type, str) else db_type.value
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres', 'mariadb'})}"
        )
    return _DIALECTS[key]


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "MySQLDialect",
    "SQLITE_RESERVED",
    "POSTGRESQL_RESERVED",
    "MYSQL_RESERVED",
    "rewrite_placeholders",
    "get_dialect",
]
