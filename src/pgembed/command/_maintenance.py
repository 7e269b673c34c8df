"""Builders for the database and role maintenance utilities."""

from typing import ClassVar

from ._base import CommandBuilder, Option, flag, positional, repeat, value


def connection_options(*, maintenance_db: bool = False) -> tuple[Option, ...]:
    """Connection options shared by the client utilities.

    Args:
        maintenance_db: Include ``--maintenance-db``.

    Returns:
        Options in the order the utilities document them.
    """
    options = (
        value("host", "--host", "database server host or socket directory"),
        value("port", "--port", "database server port"),
        value("username", "--username", "user name to connect as"),
        flag("no_password", "--no-password", "never prompt for password"),
        flag("password", "--password", "force password prompt"),
    )
    if maintenance_db:
        options += (value("maintenance_db", "--maintenance-db", "alternate maintenance database"),)
    return options


class CreateDbBuilder(CommandBuilder):
    """createdb creates a PostgreSQL database."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "createdb"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        value("tablespace", "--tablespace", "default tablespace for the database"),
        flag("echo", "--echo", "show the commands being sent to the server"),
        value("encoding", "--encoding", "encoding for the database"),
        value("locale", "--locale", "locale settings for the database"),
        value("lc_collate", "--lc-collate", "LC_COLLATE setting for the database"),
        value("lc_ctype", "--lc-ctype", "LC_CTYPE setting for the database"),
        value("icu_locale", "--icu-locale", "ICU locale setting for the database"),
        value("icu_rules", "--icu-rules", "ICU rules setting for the database"),
        value("locale_provider", "--locale-provider", "locale provider for the database's default collation"),
        value("owner", "--owner", "database user to own the new database"),
        value("strategy", "--strategy", "database creation strategy wal_log or file_copy"),
        value("template", "--template", "template database to copy"),
        flag("version", "--version", "output version information, then exit"),
        flag("help", "--help", "show help, then exit"),
        *connection_options(maintenance_db=True),
        positional("dbname", "name of the database to create"),
        positional("description", "comment attached to the database"),
    )


class DropDbBuilder(CommandBuilder):
    """dropdb removes a PostgreSQL database."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "dropdb"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        flag("echo", "--echo", "show the commands being sent to the server"),
        flag("force", "--force", "try to terminate other connections before dropping"),
        flag("interactive", "--interactive", "prompt before deleting anything"),
        flag("version", "--version", "output version information, then exit"),
        flag("if_exists", "--if-exists", "don't report error if database doesn't exist"),
        flag("help", "--help", "show help, then exit"),
        *connection_options(maintenance_db=True),
        positional("dbname", "name of the database to remove"),
    )


class CreateUserBuilder(CommandBuilder):
    """createuser creates a new PostgreSQL role."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "createuser"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        repeat("with_admin", "--with-admin", "role will be a member of new role with admin option"),
        value("connection_limit", "--connection-limit", "connection limit for role"),
        flag("createdb", "--createdb", "role can create new databases"),
        flag("no_createdb", "--no-createdb", "role cannot create databases"),
        flag("echo", "--echo", "show the commands being sent to the server"),
        repeat("member_of", "--member-of", "new role will be a member of this role"),
        flag("inherit", "--inherit", "role inherits privileges of roles it is a member of"),
        flag("no_inherit", "--no-inherit", "role does not inherit privileges"),
        flag("login", "--login", "role can login"),
        flag("no_login", "--no-login", "role cannot login"),
        repeat("with_member", "--with-member", "this role will be a member of new role"),
        flag("pwprompt", "--pwprompt", "assign a password to new role"),
        flag("createrole", "--createrole", "role can create new roles"),
        flag("no_createrole", "--no-createrole", "role cannot create roles"),
        flag("superuser", "--superuser", "role will be superuser"),
        flag("no_superuser", "--no-superuser", "role will not be superuser"),
        value("valid_until", "--valid-until", "password expiration date and time for role"),
        flag("version", "--version", "output version information, then exit"),
        flag("interactive", "--interactive", "prompt for missing role name and attributes"),
        flag("bypassrls", "--bypassrls", "role can bypass row-level security policy"),
        flag("no_bypassrls", "--no-bypassrls", "role cannot bypass row-level security policy"),
        flag("replication", "--replication", "role can initiate replication"),
        flag("no_replication", "--no-replication", "role cannot initiate replication"),
        flag("help", "--help", "show help, then exit"),
        *connection_options(),
        positional("rolename", "name of the role to create"),
    )


class DropUserBuilder(CommandBuilder):
    """dropuser removes a PostgreSQL role."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "dropuser"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        flag("echo", "--echo", "show the commands being sent to the server"),
        flag("interactive", "--interactive", "prompt before deleting anything"),
        flag("version", "--version", "output version information, then exit"),
        flag("if_exists", "--if-exists", "don't report error if user doesn't exist"),
        flag("help", "--help", "show help, then exit"),
        *connection_options(),
        positional("rolename", "name of the role to remove"),
    )


class VacuumDbBuilder(CommandBuilder):
    """vacuumdb cleans and analyzes a PostgreSQL database."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "vacuumdb"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        flag("all", "--all", "vacuum all databases"),
        value("buffer_usage_limit", "--buffer-usage-limit", "size of ring buffer used for vacuum"),
        value("dbname", "--dbname", "database to vacuum"),
        flag("disable_page_skipping", "--disable-page-skipping", "disable all page-skipping behavior"),
        flag("echo", "--echo", "show the commands being sent to the server"),
        flag("full", "--full", "do full vacuuming"),
        flag("freeze", "--freeze", "freeze row transaction information"),
        flag("force_index_cleanup", "--force-index-cleanup", "always remove index entries that point to dead tuples"),
        value("jobs", "--jobs", "use this many concurrent connections to vacuum"),
        value("min_mxid_age", "--min-mxid-age", "minimum multixact ID age of tables to vacuum"),
        value("min_xid_age", "--min-xid-age", "minimum transaction ID age of tables to vacuum"),
        flag("no_index_cleanup", "--no-index-cleanup", "don't remove index entries that point to dead tuples"),
        flag("no_process_main", "--no-process-main", "skip the main relation"),
        flag("no_process_toast", "--no-process-toast", "skip the TOAST table associated with the table to vacuum"),
        flag("no_truncate", "--no-truncate", "don't truncate empty pages at the end of the table"),
        repeat("schema", "--schema", "vacuum tables in the specified schema(s) only"),
        repeat("exclude_schema", "--exclude-schema", "do not vacuum tables in the specified schema(s)"),
        value("parallel", "--parallel", "use this many background workers for vacuum, if available"),
        flag("quiet", "--quiet", "don't write any messages"),
        flag("skip_locked", "--skip-locked", "skip relations that cannot be immediately locked"),
        repeat("table", "--table", "vacuum specific table(s) only"),
        flag("verbose", "--verbose", "write a lot of output"),
        flag("version", "--version", "output version information, then exit"),
        flag("analyze", "--analyze", "update optimizer statistics"),
        flag("analyze_only", "--analyze-only", "only update optimizer statistics; no vacuum"),
        flag("analyze_in_stages", "--analyze-in-stages", "only update optimizer statistics, in multiple stages"),
        flag("help", "--help", "show help, then exit"),
        *connection_options(maintenance_db=True),
    )


class ReindexDbBuilder(CommandBuilder):
    """reindexdb reindexes a PostgreSQL database."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "reindexdb"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        flag("all", "--all", "reindex all databases"),
        flag("concurrently", "--concurrently", "reindex concurrently"),
        value("dbname", "--dbname", "database to reindex"),
        flag("echo", "--echo", "show the commands being sent to the server"),
        repeat("index", "--index", "recreate specific index(es) only"),
        value("jobs", "--jobs", "use this many concurrent connections to reindex"),
        flag("quiet", "--quiet", "don't write any messages"),
        flag("system", "--system", "reindex system catalogs only"),
        repeat("schema", "--schema", "reindex specific schema(s) only"),
        repeat("table", "--table", "reindex specific table(s) only"),
        value("tablespace", "--tablespace", "tablespace where indexes are rebuilt"),
        flag("verbose", "--verbose", "write a lot of output"),
        flag("version", "--version", "output version information, then exit"),
        flag("help", "--help", "show help, then exit"),
        *connection_options(maintenance_db=True),
    )


class ClusterDbBuilder(CommandBuilder):
    """clusterdb clusters all previously clustered tables in a database."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "clusterdb"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        flag("all", "--all", "cluster all databases"),
        value("dbname", "--dbname", "database to cluster"),
        flag("echo", "--echo", "show the commands being sent to the server"),
        flag("quiet", "--quiet", "don't write any messages"),
        repeat("table", "--table", "cluster specific table(s) only"),
        flag("verbose", "--verbose", "write a lot of output"),
        flag("version", "--version", "output version information, then exit"),
        flag("help", "--help", "show help, then exit"),
        *connection_options(maintenance_db=True),
    )


__all__ = [
    "ClusterDbBuilder",
    "CreateDbBuilder",
    "CreateUserBuilder",
    "DropDbBuilder",
    "DropUserBuilder",
    "ReindexDbBuilder",
    "VacuumDbBuilder",
    "connection_options",
]
