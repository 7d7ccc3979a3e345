"""Migration dialect translator.

Canonical migrations are written once, in SQLite syntax. Before a file runs
against PostgreSQL or MySQL each statement is rewritten by a fixed set of
rules, one method per rule so every rule is testable on its own:

=====================================  ==============================  ====================================
Canonical (SQLite)                     PostgreSQL                      MySQL
=====================================  ==============================  ====================================
``INTEGER PRIMARY KEY AUTOINCREMENT``  ``SERIAL PRIMARY KEY``          ``INT AUTO_INCREMENT PRIMARY KEY``
``INTEGER PRIMARY KEY``                ``SERIAL PRIMARY KEY``          ``INT PRIMARY KEY``
``DATETIME``                           ``TIMESTAMP``                   ``TIMESTAMP``
``DEFAULT (datetime('now'))``          ``DEFAULT CURRENT_TIMESTAMP``   ``DEFAULT CURRENT_TIMESTAMP``
``BOOLEAN DEFAULT 0`` / ``1``          ``FALSE`` / ``TRUE``            ``FALSE`` / ``TRUE``
``TEXT DEFAULT '...'``                 kept                            default dropped
``TEXT PRIMARY KEY``                   kept                            ``VARCHAR(255) PRIMARY KEY``
``CREATE INDEX i ON t(text_col)``      ``IF NOT EXISTS`` added         ``text_col(255)``
``UNIQUE`` over a text column          kept                            moved to ``CREATE UNIQUE INDEX``
``INSERT OR IGNORE INTO``              ``... ON CONFLICT DO NOTHING``  ``INSERT IGNORE INTO``
``INSERT OR REPLACE INTO``             kept                            ``REPLACE INTO``
=====================================  ==============================  ====================================

Every engine also gets ``CREATE TABLE IF NOT EXISTS``, and column names in
``CREATE TABLE`` / ``ALTER TABLE ... ADD COLUMN`` are re-quoted with the
engine's quote character when they were quoted or are reserved words.

The translator only has to cover the canonical subset of SQL the migration
files use; it is not a general SQL compiler.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field

from focusflow.core.dialect import Dialect, get_dialect
from focusflow.core.logging import get_logger
from focusflow.core.splitter import leading_keyword, split_statements

logger = get_logger(__name__)

MYSQL_INDEX_PREFIX_LENGTH = 255

TEXT_TYPES = frozenset({"TEXT", "CLOB", "TINYTEXT", "MEDIUMTEXT", "LONGTEXT"})

# Leading tokens of CREATE TABLE body items that are not column definitions
_CONSTRAINT_KEYWORDS = frozenset({"CONSTRAINT", "PRIMARY", "UNIQUE", "FOREIGN", "CHECK", "KEY", "INDEX"})

_LITERAL_RE = re.compile(r"('(?:[^']|'')*')")
_NAME_RE = re.compile(r'^\s*(?:`([^`]+)`|"([^"]+)"|\[([^\]]+)\]|(\w+))(.*)$', re.DOTALL)

_AUTOINCREMENT_RE = re.compile(r"\bINTEGER\s+PRIMARY\s+KEY\s+AUTOINCREMENT\b", re.IGNORECASE)
_INTEGER_PK_RE = re.compile(r"\bINTEGER\s+PRIMARY\s+KEY\b(?!\s+AUTOINCREMENT)", re.IGNORECASE)
_DATETIME_DEFAULT_RE = re.compile(
    r"\bDEFAULT\s*\(\s*datetime\s*\(\s*'now'\s*\)\s*\)", re.IGNORECASE
)
_DATETIME_RE = re.compile(r"\bDATETIME\b(?!\s*\()", re.IGNORECASE)
_BOOLEAN_DEFAULT_RE = re.compile(
    r"\bBOOLEAN(\s+(?:NOT\s+NULL\s+)?)DEFAULT\s+([01])\b", re.IGNORECASE
)
_TEXT_DEFAULT_RE = re.compile(
    r"\bTEXT(\s+NOT\s+NULL)?\s+DEFAULT\s+'(?:[^']|'')*'", re.IGNORECASE
)
_TEXT_PK_RE = re.compile(r"\bTEXT\s+PRIMARY\s+KEY\b", re.IGNORECASE)
_CREATE_TABLE_RE = re.compile(
    r"^(\s*CREATE\s+TABLE\s+)(IF\s+NOT\s+EXISTS\s+)?", re.IGNORECASE
)
_CREATE_INDEX_RE = re.compile(
    r"^(\s*CREATE\s+(?:UNIQUE\s+)?INDEX\s+)(IF\s+NOT\s+EXISTS\s+)?", re.IGNORECASE
)
_INDEX_COLUMNS_RE = re.compile(
    r"^(\s*CREATE\s+(?:UNIQUE\s+)?INDEX\s+(?:IF\s+NOT\s+EXISTS\s+)?\S+\s+ON\s+)"
    r"([`\"]?\w+[`\"]?)\s*\((.*)\)(\s*)$",
    re.IGNORECASE | re.DOTALL,
)
_ADD_COLUMN_RE = re.compile(
    r"^(\s*ALTER\s+TABLE\s+\S+\s+ADD\s+)(COLUMN\s+)?(IF\s+NOT\s+EXISTS\s+)?(.*)$",
    re.IGNORECASE | re.DOTALL,
)
_INSERT_OR_IGNORE_RE = re.compile(r"^(\s*)INSERT\s+OR\s+IGNORE\s+INTO\b", re.IGNORECASE)
_INSERT_OR_REPLACE_RE = re.compile(r"^(\s*)INSERT\s+OR\s+REPLACE\s+INTO\b", re.IGNORECASE)
_ON_CONFLICT_RE = re.compile(r"\bON\s+CONFLICT\b", re.IGNORECASE)
_COLUMN_UNIQUE_RE = re.compile(r"\s+UNIQUE\b(?!\s*\()", re.IGNORECASE)
_TABLE_UNIQUE_RE = re.compile(
    r"^\s*(?:CONSTRAINT\s+\S+\s+)?UNIQUE\s*\((.*)\)\s*$", re.IGNORECASE | re.DOTALL
)
_PREFIX_LENGTH_RE = re.compile(r"\s*\(\s*\d+\s*\)\s*$")
_ORDER_SUFFIX_RE = re.compile(r"\s+(ASC|DESC)\s*$", re.IGNORECASE)


# ── SQL text helpers ──────────────────────────────────────────────────


def outside_literals(sql: str, fn: Callable[[str], str]) -> str:
    """Apply ``fn`` to the parts of ``sql`` that are not string literals."""
    parts = _LITERAL_RE.split(sql)
    return "".join(part if i % 2 else fn(part) for i, part in enumerate(parts))


def split_top_level(text: str, sep: str = ",") -> list[str]:
    """Split on ``sep`` outside parentheses and quotes."""
    items: list[str] = []
    depth = 0
    quote: str | None = None
    start = 0
    for i, ch in enumerate(text):
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"', "`"):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == sep and depth == 0:
            items.append(text[start:i])
            start = i + 1
    items.append(text[start:])
    return [item.strip() for item in items if item.strip()]


def split_name(text: str) -> tuple[str, bool, str] | None:
    """Split a leading identifier off ``text``: ``(name, was_quoted, rest)``."""
    match = _NAME_RE.match(text)
    if not match:
        return None
    quoted = match.group(1) or match.group(2) or match.group(3)
    name = quoted or match.group(4)
    return name, quoted is not None, match.group(5)


@dataclass(frozen=True)
class CreateTable:
    """A ``CREATE TABLE`` statement split into head, body items and tail."""

    head: str
    table: str
    items: list[str]
    tail: str

    def render(self, separator: str = ",\n  ") -> str:
        return f"{self.head}(\n  {separator.join(self.items)}\n){self.tail}"


_CREATE_TABLE_HEAD_RE = re.compile(
    r"^(\s*CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?)([`\"]?\w+[`\"]?)\s*\(",
    re.IGNORECASE,
)


def parse_create_table(sql: str) -> CreateTable | None:
    """Parse a ``CREATE TABLE name (...)`` statement by paren matching."""
    match = _CREATE_TABLE_HEAD_RE.match(sql)
    if not match:
        return None
    start = match.end()
    depth = 1
    quote: str | None = None
    for i in range(start, len(sql)):
        ch = sql[i]
        if quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"', "`"):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return CreateTable(
                    head=match.group(1) + match.group(2) + " ",
                    table=match.group(2).strip('`"'),
                    items=split_top_level(sql[start:i]),
                    tail=sql[i + 1 :],
                )
    return None


def column_type(item: str) -> tuple[str, str] | None:
    """``(column_name, TYPE)`` of a column definition, ``None`` for constraints."""
    parsed = split_name(item)
    if parsed is None:
        return None
    name, quoted, rest = parsed
    if not quoted and name.upper() in _CONSTRAINT_KEYWORDS:
        return None
    type_match = re.match(r"\s*(\w+)", rest)
    return name, type_match.group(1).upper() if type_match else ""


# ── Schema catalog ────────────────────────────────────────────────────


@dataclass
class SchemaCatalog:
    """
    Text columns per table, accumulated across canonical migrations.

    An index created in file N may cover a text column declared in file
    M < N, so the runner feeds every file into the catalog in order,
    including the ones already applied.
    """

    text_columns: dict[str, dict[str, None]] = field(default_factory=dict)

    def observe(self, statement: str) -> None:
        keyword = leading_keyword(statement)
        if keyword == "CREATE":
            table = parse_create_table(statement)
            if table is None:
                return
            for item in table.items:
                col = column_type(item)
                if col and col[1] in TEXT_TYPES and not re.search(
                    r"\bPRIMARY\s+KEY\b", item, re.IGNORECASE
                ):
                    self.add(table.table, col[0])
        elif keyword == "ALTER":
            match = _ADD_COLUMN_RE.match(statement)
            if match:
                col = column_type(match.group(4))
                if col and col[1] in TEXT_TYPES:
                    table = re.match(r"\s*ALTER\s+TABLE\s+(\S+)", statement, re.IGNORECASE)
                    self.add(table.group(1).strip('`"'), col[0])

    def observe_script(self, sql: str) -> None:
        for statement in split_statements(sql):
            self.observe(statement)

    def add(self, table: str, column: str) -> None:
        self.text_columns.setdefault(table.lower(), {})[column.lower()] = None

    def is_text(self, table: str, column: str) -> bool:
        return column.lower() in self.text_columns.get(table.lower(), {})

    def columns(self, table: str) -> list[str]:
        return list(self.text_columns.get(table.lower(), {}))


# ── Translator ────────────────────────────────────────────────────────


class MigrationTranslator:
    """
    Rewrites canonical (SQLite) migration SQL for a target engine.

    Example:
        >>> t = MigrationTranslator("mysql")
        >>> t.translate("CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, email TEXT UNIQUE)")
        ['CREATE TABLE IF NOT EXISTS users (\\n  id INT AUTO_INCREMENT PRIMARY KEY,\\n  email TEXT\\n)',
         'CREATE UNIQUE INDEX users_email_unique ON users(email(255))']
    """

    def __init__(self, dialect: Dialect | str):
        self.dialect = get_dialect(dialect) if isinstance(dialect, str) else dialect

    @property
    def is_sqlite(self) -> bool:
        return self.dialect.name == "sqlite"

    @property
    def is_postgresql(self) -> bool:
        return self.dialect.name == "postgresql"

    @property
    def is_mysql(self) -> bool:
        return self.dialect.name == "mysql"

    # -- entry points -------------------------------------------------

    def translate(self, sql: str, catalog: SchemaCatalog | None = None) -> list[str]:
        """Translate a canonical script into target-dialect statements."""
        catalog = catalog if catalog is not None else SchemaCatalog()
        statements: list[str] = []
        for statement in split_statements(sql):
            catalog.observe(statement)
            statements.extend(self.translate_statement(statement, catalog))
        return statements

    def translate_text(self, sql: str, catalog: SchemaCatalog | None = None) -> str:
        """Translate a script and render it back as text."""
        statements = self.translate(sql, catalog)
        return "".join(f"{stmt};\n" for stmt in statements)

    def translate_statement(self, statement: str, catalog: SchemaCatalog) -> list[str]:
        """Translate one canonical statement (may yield extra statements)."""
        sql = statement
        sql = self.rewrite_backticks(sql)
        sql = self.rewrite_auto_increment(sql)
        sql = self.rewrite_integer_primary_key(sql)
        sql = self.rewrite_datetime_default(sql)
        sql = self.rewrite_datetime(sql)
        sql = self.rewrite_boolean_defaults(sql)
        sql = self.rewrite_text_defaults(sql)
        sql = self.rewrite_text_primary_key(sql)
        sql = self.add_create_table_if_not_exists(sql)
        sql = self.add_create_index_if_not_exists(sql)
        sql = self.prefix_index_columns(sql, catalog)
        sql = self.rewrite_add_column(sql)
        sql = self.rewrite_insert_or_ignore(sql)
        sql = self.rewrite_insert_or_replace(sql)
        sql, extra = self.extract_unique_text_constraints(sql, catalog)
        sql = self.quote_create_table_columns(sql)
        if sql != statement:
            logger.debug("translator.rewrote", dialect=self.dialect.name, before=statement, after=sql)
        return [sql, *extra]

    # -- type and default rules --------------------------------------

    def rewrite_auto_increment(self, sql: str) -> str:
        if self.is_sqlite:
            return sql
        return outside_literals(sql, lambda s: _AUTOINCREMENT_RE.sub(self.dialect.auto_increment(), s))

    def rewrite_integer_primary_key(self, sql: str) -> str:
        if self.is_sqlite:
            return sql
        replacement = "SERIAL PRIMARY KEY" if self.is_postgresql else "INT PRIMARY KEY"
        return outside_literals(sql, lambda s: _INTEGER_PK_RE.sub(replacement, s))

    def rewrite_datetime(self, sql: str) -> str:
        if self.is_sqlite:
            return sql
        return outside_literals(sql, lambda s: _DATETIME_RE.sub(self.dialect.timestamp_type(), s))

    def rewrite_datetime_default(self, sql: str) -> str:
        if self.is_sqlite:
            return sql
        return _DATETIME_DEFAULT_RE.sub("DEFAULT CURRENT_TIMESTAMP", sql)

    def rewrite_boolean_defaults(self, sql: str) -> str:
        if self.is_sqlite:
            return sql

        def repl(m: re.Match[str]) -> str:
            literal = self.dialect.boolean_true() if m.group(2) == "1" else self.dialect.boolean_false()
            return f"BOOLEAN{m.group(1)}DEFAULT {literal}"

        return outside_literals(sql, lambda s: _BOOLEAN_DEFAULT_RE.sub(repl, s))

    def rewrite_text_defaults(self, sql: str) -> str:
        """MySQL rejects literal defaults on TEXT columns; drop them."""
        if not self.is_mysql:
            return sql
        return _TEXT_DEFAULT_RE.sub(lambda m: "TEXT" + (m.group(1) or ""), sql)

    def rewrite_text_primary_key(self, sql: str) -> str:
        if not self.is_mysql:
            return sql
        return outside_literals(
            sql, lambda s: _TEXT_PK_RE.sub(f"VARCHAR({MYSQL_INDEX_PREFIX_LENGTH}) PRIMARY KEY", s)
        )

    # -- identifier rules ---------------------------------------------

    def rewrite_backticks(self, sql: str) -> str:
        """PostgreSQL quotes identifiers with double quotes only."""
        if not self.is_postgresql:
            return sql
        return outside_literals(sql, lambda s: re.sub(r"`([^`]*)`", r'"\1"', s))

    def quote_column(self, name: str, was_quoted: bool) -> str:
        if was_quoted or self.dialect.is_reserved(name):
            return self.dialect.quote_identifier(name)
        return name

    def quote_create_table_columns(self, sql: str) -> str:
        """Re-quote column names in a CREATE TABLE body for the target."""
        table = parse_create_table(sql)
        if table is None:
            return sql
        items = []
        changed = False
        for item in table.items:
            parsed = split_name(item)
            if parsed is None or column_type(item) is None:
                items.append(item)
                continue
            name, was_quoted, rest = parsed
            rendered = self.quote_column(name, was_quoted) + rest
            changed = changed or rendered != item
            items.append(rendered)
        if not changed:
            return sql
        return CreateTable(table.head, table.table, items, table.tail).render()

    def rewrite_add_column(self, sql: str) -> str:
        """Quote the added column and apply the engine's IF NOT EXISTS support."""
        match = _ADD_COLUMN_RE.match(sql)
        if not match or leading_keyword(sql) != "ALTER":
            return sql
        prefix, column_kw, _if_not_exists, definition = match.groups()
        parsed = split_name(definition)
        if parsed is None or column_type(definition) is None:
            return sql
        name, was_quoted, rest = parsed
        guard = "IF NOT EXISTS " if self.dialect.supports_add_column_if_not_exists else ""
        return f"{prefix}{column_kw or 'COLUMN '}{guard}{self.quote_column(name, was_quoted)}{rest}"

    # -- DDL guards ---------------------------------------------------

    def add_create_table_if_not_exists(self, sql: str) -> str:
        return _CREATE_TABLE_RE.sub(r"\1IF NOT EXISTS ", sql, count=1)

    def add_create_index_if_not_exists(self, sql: str) -> str:
        guard = r"\1IF NOT EXISTS " if self.dialect.supports_index_if_not_exists else r"\1"
        return _CREATE_INDEX_RE.sub(guard, sql, count=1)

    # -- MySQL index rules --------------------------------------------

    def prefix_column(self, table: str, column: str, catalog: SchemaCatalog) -> str:
        """Add the MySQL key length to one indexed column if it is text."""
        order = _ORDER_SUFFIX_RE.search(column)
        suffix = order.group(0) if order else ""
        bare = column[: order.start()] if order else column
        bare = _PREFIX_LENGTH_RE.sub("", bare).strip()
        parsed = split_name(bare)
        name = parsed[0] if parsed else bare
        if catalog.is_text(table, name):
            return f"{bare}({MYSQL_INDEX_PREFIX_LENGTH}){suffix}"
        return f"{bare}{suffix}"

    def prefix_index_columns(self, sql: str, catalog: SchemaCatalog) -> str:
        if not self.is_mysql:
            return sql
        match = _INDEX_COLUMNS_RE.match(sql)
        if not match:
            return sql
        head, table, columns, trailing = match.groups()
        bare_table = table.strip('`"')
        cols = [self.prefix_column(bare_table, c, catalog) for c in split_top_level(columns)]
        return f"{head}{table}({', '.join(cols)}){trailing}"

    def extract_unique_text_constraints(
        self, sql: str, catalog: SchemaCatalog
    ) -> tuple[str, list[str]]:
        """Move UNIQUE constraints over text columns into prefixed unique indexes.

        MySQL cannot build a unique key over an unbounded TEXT column, so
        the constraint is removed from the table and re-created as
        ``CREATE UNIQUE INDEX <table>_<cols>_unique ON t(col(255), ...)``.
        """
        if not self.is_mysql:
            return sql, []
        table = parse_create_table(sql)
        if table is None:
            return sql, []

        items: list[str] = []
        indexes: list[list[str]] = []
        for item in table.items:
            table_unique = _TABLE_UNIQUE_RE.match(item)
            if table_unique:
                cols = split_top_level(table_unique.group(1))
                names = [(split_name(c) or (c, False, ""))[0] for c in cols]
                if any(catalog.is_text(table.table, n) for n in names):
                    indexes.append(cols)
                    continue
                items.append(item)
                continue

            col = column_type(item)
            if col and col[1] in TEXT_TYPES and _COLUMN_UNIQUE_RE.search(item):
                items.append(_COLUMN_UNIQUE_RE.sub("", item, count=1))
                name, was_quoted, _ = split_name(item)
                indexes.append([self.quote_column(name, was_quoted)])
                continue
            items.append(item)

        if not indexes:
            return sql, []

        statements = []
        for cols in indexes:
            names = [(split_name(c) or (c, False, ""))[0] for c in cols]
            index_name = "_".join([table.table, *names, "unique"])
            rendered = ", ".join(self.prefix_column(table.table, c, catalog) for c in cols)
            statements.append(f"CREATE UNIQUE INDEX {index_name} ON {table.table}({rendered})")
        rebuilt = CreateTable(table.head, table.table, items, table.tail).render()
        return rebuilt, statements

    # -- INSERT rules -------------------------------------------------

    def rewrite_insert_or_ignore(self, sql: str) -> str:
        if self.is_sqlite or not _INSERT_OR_IGNORE_RE.match(sql):
            return sql
        if self.is_mysql:
            return _INSERT_OR_IGNORE_RE.sub(r"\1INSERT IGNORE INTO", sql, count=1)
        sql = _INSERT_OR_IGNORE_RE.sub(r"\1INSERT INTO", sql, count=1)
        if not _ON_CONFLICT_RE.search(sql):
            sql = sql.rstrip() + " ON CONFLICT DO NOTHING"
        return sql

    def rewrite_insert_or_replace(self, sql: str) -> str:
        if not self.is_mysql:
            return sql
        return _INSERT_OR_REPLACE_RE.sub(r"\1REPLACE INTO", sql, count=1)


__all__ = [
    "MYSQL_INDEX_PREFIX_LENGTH",
    "TEXT_TYPES",
    "SchemaCatalog",
    "MigrationTranslator",
    "CreateTable",
    "parse_create_table",
    "split_top_level",
    "split_name",
    "column_type",
    "outside_literals",
]
