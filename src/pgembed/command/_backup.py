"""Builders for the backup and restore utilities."""

from typing import ClassVar

from ._base import CommandBuilder, Option, flag, positional, repeat, value
from ._maintenance import connection_options

_ROLE = value("role", "--role", "do SET ROLE before dump")


class PgDumpBuilder(CommandBuilder):
    """pg_dump dumps a database as a text file or to other formats."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "pg_dump"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        value("file", "--file", "output file or directory name"),
        value("format", "--format", "output file format (custom, directory, tar, plain text)"),
        value("jobs", "--jobs", "use this many parallel jobs to dump"),
        flag("verbose", "--verbose", "verbose mode"),
        flag("version", "--version", "output version information, then exit"),
        value("compress", "--compress", "compress as specified"),
        value("lock_wait_timeout", "--lock-wait-timeout", "fail after waiting TIMEOUT for a table lock"),
        flag("no_sync", "--no-sync", "do not wait for changes to be written safely to disk"),
        flag("help", "--help", "show help, then exit"),
        flag("data_only", "--data-only", "dump only the data, not the schema"),
        flag("large_objects", "--large-objects", "include large objects in dump"),
        flag("clean", "--clean", "clean (drop) database objects before recreating"),
        flag("create", "--create", "include commands to create database in dump"),
        repeat("extension", "--extension", "dump the specified extension(s) only"),
        value("encoding", "--encoding", "dump the data in encoding ENCODING"),
        repeat("schema", "--schema", "dump the specified schema(s) only"),
        repeat("exclude_schema", "--exclude-schema", "do NOT dump the specified schema(s)"),
        flag("no_owner", "--no-owner", "skip restoration of object ownership in plain-text format"),
        flag("schema_only", "--schema-only", "dump only the schema, no data"),
        value("superuser", "--superuser", "superuser user name to use in plain-text format"),
        repeat("table", "--table", "dump only the specified table(s)"),
        repeat("exclude_table", "--exclude-table", "do NOT dump the specified table(s)"),
        flag("no_privileges", "--no-privileges", "do not dump privileges (grant/revoke)"),
        flag("binary_upgrade", "--binary-upgrade", "for use by upgrade utilities only"),
        flag("column_inserts", "--column-inserts", "dump data as INSERT commands with column names"),
        flag("disable_dollar_quoting", "--disable-dollar-quoting", "disable dollar quoting, use SQL standard quoting"),
        flag("disable_triggers", "--disable-triggers", "disable triggers during data-only restore"),
        flag("enable_row_security", "--enable-row-security", "enable row security"),
        repeat("exclude_table_data", "--exclude-table-data", "do NOT dump data for the specified table(s)"),
        value("extra_float_digits", "--extra-float-digits", "override default setting for extra_float_digits"),
        flag("if_exists", "--if-exists", "use IF EXISTS when dropping objects"),
        repeat("include_foreign_data", "--include-foreign-data", "include data of foreign tables on matching servers"),
        flag("inserts", "--inserts", "dump data as INSERT commands, rather than COPY"),
        flag("load_via_partition_root", "--load-via-partition-root", "load partitions via the root table"),
        flag("no_comments", "--no-comments", "do not dump comments"),
        flag("no_publications", "--no-publications", "do not dump publications"),
        flag("no_security_labels", "--no-security-labels", "do not dump security label assignments"),
        flag("no_subscriptions", "--no-subscriptions", "do not dump subscriptions"),
        flag("no_table_access_method", "--no-table-access-method", "do not dump table access methods"),
        flag("no_tablespaces", "--no-tablespaces", "do not dump tablespace assignments"),
        flag("no_toast_compression", "--no-toast-compression", "do not dump TOAST compression methods"),
        flag("no_unlogged_table_data", "--no-unlogged-table-data", "do not dump unlogged table data"),
        flag("on_conflict_do_nothing", "--on-conflict-do-nothing", "add ON CONFLICT DO NOTHING to INSERT commands"),
        flag("quote_all_identifiers", "--quote-all-identifiers", "quote all identifiers, even if not key words"),
        value("rows_per_insert", "--rows-per-insert", "number of rows per INSERT"),
        repeat("section", "--section", "dump named section (pre-data, data, or post-data)"),
        flag("serializable_deferrable", "--serializable-deferrable", "wait until the dump can run without anomalies"),
        value("snapshot", "--snapshot", "use given snapshot for the dump"),
        flag("strict_names", "--strict-names", "require table and/or schema include patterns to match"),
        flag("use_set_session_authorization", "--use-set-session-authorization", "use SET SESSION AUTHORIZATION commands"),
        value("dbname", "--dbname", "database to dump"),
        *connection_options(),
        _ROLE,
    )


class PgDumpAllBuilder(CommandBuilder):
    """pg_dumpall extracts a PostgreSQL database cluster into an SQL script."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "pg_dumpall"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        value("file", "--file", "output file name"),
        flag("verbose", "--verbose", "verbose mode"),
        flag("version", "--version", "output version information, then exit"),
        value("lock_wait_timeout", "--lock-wait-timeout", "fail after waiting TIMEOUT for a table lock"),
        flag("help", "--help", "show help, then exit"),
        flag("data_only", "--data-only", "dump only the data, not the schema"),
        flag("clean", "--clean", "clean (drop) databases before recreating"),
        value("encoding", "--encoding", "dump the data in encoding ENCODING"),
        flag("globals_only", "--globals-only", "dump only global objects, no databases"),
        flag("no_owner", "--no-owner", "skip restoration of object ownership"),
        flag("roles_only", "--roles-only", "dump only roles, no databases or tablespaces"),
        flag("schema_only", "--schema-only", "dump only the schema, no data"),
        value("superuser", "--superuser", "superuser user name to use in the dump"),
        flag("tablespaces_only", "--tablespaces-only", "dump only tablespaces, no databases or roles"),
        flag("no_privileges", "--no-privileges", "do not dump privileges (grant/revoke)"),
        flag("binary_upgrade", "--binary-upgrade", "for use by upgrade utilities only"),
        flag("column_inserts", "--column-inserts", "dump data as INSERT commands with column names"),
        flag("disable_dollar_quoting", "--disable-dollar-quoting", "disable dollar quoting, use SQL standard quoting"),
        flag("disable_triggers", "--disable-triggers", "disable triggers during data-only restore"),
        repeat("exclude_database", "--exclude-database", "exclude databases whose name matches PATTERN"),
        value("extra_float_digits", "--extra-float-digits", "override default setting for extra_float_digits"),
        flag("if_exists", "--if-exists", "use IF EXISTS when dropping objects"),
        flag("inserts", "--inserts", "dump data as INSERT commands, rather than COPY"),
        flag("load_via_partition_root", "--load-via-partition-root", "load partitions via the root table"),
        flag("no_comments", "--no-comments", "do not dump comments"),
        flag("no_publications", "--no-publications", "do not dump publications"),
        flag("no_role_passwords", "--no-role-passwords", "do not dump passwords for roles"),
        flag("no_security_labels", "--no-security-labels", "do not dump security label assignments"),
        flag("no_subscriptions", "--no-subscriptions", "do not dump subscriptions"),
        flag("no_sync", "--no-sync", "do not wait for changes to be written safely to disk"),
        flag("no_table_access_method", "--no-table-access-method", "do not dump table access methods"),
        flag("no_tablespaces", "--no-tablespaces", "do not dump tablespace assignments"),
        flag("no_toast_compression", "--no-toast-compression", "do not dump TOAST compression methods"),
        flag("no_unlogged_table_data", "--no-unlogged-table-data", "do not dump unlogged table data"),
        flag("on_conflict_do_nothing", "--on-conflict-do-nothing", "add ON CONFLICT DO NOTHING to INSERT commands"),
        flag("quote_all_identifiers", "--quote-all-identifiers", "quote all identifiers, even if not key words"),
        value("rows_per_insert", "--rows-per-insert", "number of rows per INSERT"),
        flag("use_set_session_authorization", "--use-set-session-authorization", "use SET SESSION AUTHORIZATION commands"),
        value("dbname", "--dbname", "connect using connection string"),
        value("database", "--database", "alternative default database"),
        *connection_options(),
        _ROLE,
    )


class PgRestoreBuilder(CommandBuilder):
    """pg_restore restores a PostgreSQL database from an archive created by pg_dump."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "pg_restore"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        value("dbname", "--dbname", "connect to database name"),
        value("file", "--file", "output file name (- for stdout)"),
        value("format", "--format", "backup file format (should be automatic)"),
        flag("list", "--list", "print summarized TOC of the archive"),
        flag("verbose", "--verbose", "verbose mode"),
        flag("version", "--version", "output version information, then exit"),
        flag("help", "--help", "show help, then exit"),
        flag("data_only", "--data-only", "restore only the data, no schema"),
        flag("clean", "--clean", "clean (drop) database objects before recreating"),
        flag("create", "--create", "create the target database"),
        flag("exit_on_error", "--exit-on-error", "exit on error, default is to continue"),
        repeat("index", "--index", "restore named index"),
        value("jobs", "--jobs", "use this many parallel jobs to restore"),
        value("use_list", "--use-list", "use table of contents from this file for selecting/ordering output"),
        repeat("schema", "--schema", "restore only objects in this schema"),
        repeat("exclude_schema", "--exclude-schema", "do not restore objects in this schema"),
        flag("no_owner", "--no-owner", "skip restoration of object ownership"),
        repeat("function", "--function", "restore named function"),
        flag("schema_only", "--schema-only", "restore only the schema, no data"),
        value("superuser", "--superuser", "superuser user name to use for disabling triggers"),
        repeat("table", "--table", "restore named relation (table, view, etc.)"),
        repeat("trigger", "--trigger", "restore named trigger"),
        flag("no_privileges", "--no-privileges", "skip restoration of access privileges (grant/revoke)"),
        flag("single_transaction", "--single-transaction", "restore as a single transaction"),
        flag("disable_triggers", "--disable-triggers", "disable triggers during data-only restore"),
        flag("enable_row_security", "--enable-row-security", "enable row security"),
        flag("if_exists", "--if-exists", "use IF EXISTS when dropping objects"),
        flag("no_comments", "--no-comments", "do not restore comments"),
        flag("no_data_for_failed_tables", "--no-data-for-failed-tables", "do not restore data of tables that could not be created"),
        flag("no_publications", "--no-publications", "do not restore publications"),
        flag("no_security_labels", "--no-security-labels", "do not restore security labels"),
        flag("no_subscriptions", "--no-subscriptions", "do not restore subscriptions"),
        flag("no_table_access_method", "--no-table-access-method", "do not restore table access methods"),
        flag("no_tablespaces", "--no-tablespaces", "do not restore tablespace assignments"),
        repeat("section", "--section", "restore named section (pre-data, data, or post-data)"),
        flag("strict_names", "--strict-names", "require table and/or schema include patterns to match"),
        flag("use_set_session_authorization", "--use-set-session-authorization", "use SET SESSION AUTHORIZATION commands"),
        *connection_options(),
        value("role", "--role", "do SET ROLE before restore"),
        positional("filename", "archive file to restore"),
    )


class PgBaseBackupBuilder(CommandBuilder):
    """pg_basebackup takes a base backup of a running PostgreSQL server."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "pg_basebackup"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        value("pgdata", "--pgdata", "receive base backup into directory"),
        value("format", "--format", "output format (plain (default), tar)"),
        value("max_rate", "--max-rate", "maximum transfer rate to transfer data directory"),
        flag("write_recovery_conf", "--write-recovery-conf", "write configuration for replication"),
        value("target", "--target", "backup target (if other than client)"),
        repeat("tablespace_mapping", "--tablespace-mapping", "relocate tablespace in OLDDIR to NEWDIR"),
        value("waldir", "--waldir", "location for the write-ahead log directory"),
        value("wal_method", "--wal-method", "include required WAL files with specified method"),
        flag("gzip", "--gzip", "compress tar output"),
        value("compress", "--compress", "compress on client or server as specified"),
        value("checkpoint", "--checkpoint", "set fast or spread checkpointing"),
        flag("create_slot", "--create-slot", "create replication slot"),
        value("label", "--label", "set backup label"),
        flag("no_clean", "--no-clean", "do not clean up after errors"),
        flag("no_sync", "--no-sync", "do not wait for changes to be written safely to disk"),
        flag("progress", "--progress", "show progress information"),
        value("slot", "--slot", "replication slot to use"),
        flag("verbose", "--verbose", "output verbose messages"),
        flag("version", "--version", "output version information, then exit"),
        value("manifest_checksums", "--manifest-checksums", "use algorithm for manifest checksums"),
        flag("manifest_force_encode", "--manifest-force-encode", "hex encode all file names in manifest"),
        flag("no_estimate_size", "--no-estimate-size", "do not estimate backup size in server side"),
        flag("no_manifest", "--no-manifest", "suppress generation of backup manifest"),
        flag("no_slot", "--no-slot", "prevent creation of temporary replication slot"),
        flag("no_verify_checksums", "--no-verify-checksums", "do not verify checksums"),
        flag("help", "--help", "show help, then exit"),
        value("dbname", "--dbname", "connection string"),
        value("status_interval", "--status-interval", "time between status packets sent to server (in seconds)"),
        *connection_options(),
    )


__all__ = [
    "PgBaseBackupBuilder",
    "PgDumpAllBuilder",
    "PgDumpBuilder",
    "PgRestoreBuilder",
]
