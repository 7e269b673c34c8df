"""Builders for the server-side utilities: initdb, pg_ctl and postgres."""

from enum import StrEnum
from typing import ClassVar

from pgembed.settings import ShutdownMode

from ._base import CommandBuilder, Option, flag, joined, positional, repeat, value


class InitDbBuilder(CommandBuilder):
    """initdb creates a new PostgreSQL database cluster."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "initdb"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        joined("auth", "--auth", "default authentication method for local connections"),
        joined("auth_host", "--auth-host", "default authentication method for local TCP/IP connections"),
        joined("auth_local", "--auth-local", "default authentication method for local-socket connections"),
        value("pgdata", "--pgdata", "location for this database cluster"),
        joined("encoding", "--encoding", "set default encoding for new databases"),
        flag("allow_group_access", "--allow-group-access", "allow group read/execute on data directory"),
        joined("icu_locale", "--icu-locale", "set ICU locale ID for new databases"),
        joined("icu_rules", "--icu-rules", "set additional ICU collation rules for new databases"),
        flag("data_checksums", "--data-checksums", "use data page checksums"),
        joined("locale", "--locale", "set default locale for new databases"),
        joined("lc_collate", "--lc-collate"),
        joined("lc_ctype", "--lc-ctype"),
        joined("lc_messages", "--lc-messages"),
        joined("lc_monetary", "--lc-monetary"),
        joined("lc_numeric", "--lc-numeric"),
        joined("lc_time", "--lc-time"),
        flag("no_locale", "--no-locale", "equivalent to --locale=C"),
        joined("locale_provider", "--locale-provider", "set default locale provider for new databases"),
        joined("pwfile", "--pwfile", "read password for the new superuser from file"),
        joined("text_search_config", "--text-search-config", "default text search configuration"),
        joined("username", "--username", "database superuser name"),
        flag("pwprompt", "--pwprompt", "prompt for a password for the new superuser"),
        joined("waldir", "--waldir", "location for the write-ahead log directory"),
        joined("wal_segsize", "--wal-segsize", "size of WAL segments, in megabytes"),
        repeat("parameter", "--set", "override default setting for server parameter (name=value)"),
        flag("debug", "--debug", "generate lots of debugging output"),
        flag("discard_caches", "--discard-caches", "set debug_discard_caches=1"),
        value("directory", "-L", "where to find the input files"),
        flag("no_clean", "--no-clean", "do not clean up after errors"),
        flag("no_instructions", "--no-instructions", "do not print instructions for next steps"),
        flag("no_sync", "--no-sync", "do not wait for changes to be written safely to disk"),
        flag("show", "--show", "show internal settings"),
        flag("sync_only", "--sync-only", "only sync database files to disk, then exit"),
        flag("version", "--version", "output version information, then exit"),
        flag("help", "--help", "show help, then exit"),
    )


class PgCtlMode(StrEnum):
    """pg_ctl operating modes."""

    INIT_DB = "init"
    START = "start"
    STOP = "stop"
    RESTART = "restart"
    RELOAD = "reload"
    STATUS = "status"
    PROMOTE = "promote"
    LOGROTATE = "logrotate"
    KILL = "kill"


class PgCtlBuilder(CommandBuilder):
    """pg_ctl initializes, starts, stops, or controls a PostgreSQL server."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "pg_ctl"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        positional("mode", "operation mode (PgCtlMode)"),
        value("pgdata", "--pgdata", "location of the database storage area"),
        value("log", "--log", "write (or append) server log to file"),
        value("shutdown_mode", "--mode", "shutdown mode (ShutdownMode)"),
        value("options", "-o", "command line options to pass to postgres"),
        flag("silent", "--silent", "only print errors, no informational messages"),
        value("timeout", "--timeout", "seconds to wait when using -w option"),
        flag("version", "--version", "output version information, then exit"),
        flag("wait", "--wait", "wait until operation completes"),
        flag("no_wait", "--no-wait", "do not wait until operation completes"),
        flag("core_files", "--core-files", "allow postgres to produce core files"),
        value("path", "-p", "normally not necessary"),
        positional("signal", "signal name for kill mode"),
        positional("pid", "process id for kill mode"),
        flag("help", "--help", "show help, then exit"),
    )


class PostgresBuilder(CommandBuilder):
    """postgres is the PostgreSQL database server."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "postgres"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        value("shared_buffers", "-B", "number of shared buffers"),
        repeat("parameter", "-c", "set run-time parameter (name=value)"),
        value("show", "-C", "print value of run-time parameter, then exit"),
        value("debug_level", "-d", "debugging level"),
        value("data_dir", "-D", "database directory"),
        flag("european_dates", "-e", "use European date input format (DMY)"),
        flag("no_fsync", "-F", "turn fsync off"),
        value("host", "-h", "host name or IP address to listen on"),
        flag("ssl", "-l", "enable SSL connections"),
        value("max_connections", "-N", "maximum number of allowed connections"),
        value("port", "-p", "port number to listen on"),
        flag("show_stats", "-s", "show statistics after each query"),
        value("work_mem", "-S", "set amount of memory for sorts (in kB)"),
        flag("version", "--version", "output version information, then exit"),
        flag("describe_config", "--describe-config", "describe configuration parameters, then exit"),
        flag("help", "--help", "show help, then exit"),
    )


__all__ = [
    "InitDbBuilder",
    "PgCtlBuilder",
    "PgCtlMode",
    "PostgresBuilder",
    "ShutdownMode",
]
