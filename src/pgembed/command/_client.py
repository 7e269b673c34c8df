"""Builders for the interactive client and connection check utilities."""

from typing import ClassVar

from ._base import CommandBuilder, Option, flag, repeat, value
from ._maintenance import connection_options


class PsqlBuilder(CommandBuilder):
    """psql is the PostgreSQL interactive terminal."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "psql"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        repeat("command", "--command", "run only single command (SQL or internal) and exit"),
        value("dbname", "--dbname", "database name to connect to"),
        repeat("file", "--file", "execute commands from file, then exit"),
        flag("list", "--list", "list available databases, then exit"),
        repeat("variable", "--variable", "set psql variable NAME to VALUE"),
        flag("version", "--version", "output version information, then exit"),
        flag("no_psqlrc", "--no-psqlrc", "do not read startup file (~/.psqlrc)"),
        flag("single_transaction", "--single-transaction", "execute as a single transaction"),
        flag("help", "--help", "show help, then exit"),
        flag("echo_all", "--echo-all", "echo all input from script"),
        flag("echo_errors", "--echo-errors", "echo failed commands"),
        flag("echo_queries", "--echo-queries", "echo commands sent to server"),
        flag("echo_hidden", "--echo-hidden", "display queries that internal commands generate"),
        value("log_file", "--log-file", "send session log to file"),
        flag("no_readline", "--no-readline", "disable enhanced command line editing (readline)"),
        value("output", "--output", "send query results to file (or |pipe)"),
        flag("quiet", "--quiet", "run quietly (no messages, only query output)"),
        flag("single_step", "--single-step", "single-step mode (confirm each query)"),
        flag("single_line", "--single-line", "single-line mode (end of line terminates SQL command)"),
        flag("no_align", "--no-align", "unaligned table output mode"),
        flag("csv", "--csv", "CSV (Comma-Separated Values) table output mode"),
        value("field_separator", "--field-separator", "field separator for unaligned output"),
        flag("html", "--html", "HTML table output mode"),
        repeat("pset", "--pset", "set printing option VAR to ARG"),
        value("record_separator", "--record-separator", "record separator for unaligned output"),
        flag("tuples_only", "--tuples-only", "print rows only"),
        value("table_attr", "--table-attr", "set HTML table tag attributes"),
        flag("expanded", "--expanded", "turn on expanded table output"),
        flag("field_separator_zero", "--field-separator-zero", "set field separator for unaligned output to zero byte"),
        flag("record_separator_zero", "--record-separator-zero", "set record separator for unaligned output to zero byte"),
        *connection_options(),
    )


class PgIsReadyBuilder(CommandBuilder):
    """pg_isready issues a connection check to a PostgreSQL database."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "pg_isready"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        value("dbname", "--dbname", "database name"),
        flag("quiet", "--quiet", "run quietly"),
        flag("version", "--version", "output version information, then exit"),
        flag("help", "--help", "show help, then exit"),
        value("host", "--host", "database server host or socket directory"),
        value("port", "--port", "database server port"),
        value("timeout", "--timeout", "seconds to wait when attempting connection"),
        value("username", "--username", "user name to connect as"),
    )


__all__ = [
    "PgIsReadyBuilder",
    "PsqlBuilder",
]
