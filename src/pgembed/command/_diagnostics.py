"""Builders for the inspection and benchmarking utilities."""

from typing import ClassVar

from ._base import CommandBuilder, Option, flag, value


class PgControlDataBuilder(CommandBuilder):
    """pg_controldata displays control information of a PostgreSQL database cluster."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "pg_controldata"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        value("pgdata", "--pgdata", "data directory"),
        flag("version", "--version", "output version information, then exit"),
        flag("help", "--help", "show help, then exit"),
    )


class PgTestTimingBuilder(CommandBuilder):
    """pg_test_timing measures the timing overhead of the system clock."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "pg_test_timing"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        value("duration", "-d", "set the duration for the test"),
    )


class PgTestFsyncBuilder(CommandBuilder):
    """pg_test_fsync determines the fastest wal_sync_method for PostgreSQL."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "pg_test_fsync"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        value("filename", "-f", "file to test"),
        value("secs_per_test", "-s", "seconds per test"),
    )


class PgConfigBuilder(CommandBuilder):
    """pg_config provides information about the installed version of PostgreSQL."""

    __slots__: tuple[str, ...] = ()

    PROGRAM: ClassVar[str] = "pg_config"
    OPTIONS: ClassVar[tuple[Option, ...]] = (
        flag("bindir", "--bindir", "show location of user executables"),
        flag("docdir", "--docdir", "show location of documentation files"),
        flag("htmldir", "--htmldir", "show location of HTML documentation files"),
        flag("includedir", "--includedir", "show location of C header files of the client interfaces"),
        flag("pkgincludedir", "--pkgincludedir", "show location of other C header files"),
        flag("includedir_server", "--includedir-server", "show location of C header files for the server"),
        flag("libdir", "--libdir", "show location of object code libraries"),
        flag("pkglibdir", "--pkglibdir", "show location of dynamically loadable modules"),
        flag("localedir", "--localedir", "show location of locale support files"),
        flag("mandir", "--mandir", "show location of manual pages"),
        flag("sharedir", "--sharedir", "show location of architecture-independent support files"),
        flag("sysconfdir", "--sysconfdir", "show location of system-wide configuration files"),
        flag("pgxs", "--pgxs", "show location of extension makefile"),
        flag("configure", "--configure", "show options given to configure script"),
        flag("cc", "--cc", "show CC value used when PostgreSQL was built"),
        flag("cppflags", "--cppflags", "show CPPFLAGS value used when PostgreSQL was built"),
        flag("cflags", "--cflags", "show CFLAGS value used when PostgreSQL was built"),
        flag("cflags_sl", "--cflags_sl", "show CFLAGS_SL value used when PostgreSQL was built"),
        flag("ldflags", "--ldflags", "show LDFLAGS value used when PostgreSQL was built"),
        flag("ldflags_ex", "--ldflags_ex", "show LDFLAGS_EX value used when PostgreSQL was built"),
        flag("ldflags_sl", "--ldflags_sl", "show LDFLAGS_SL value used when PostgreSQL was built"),
        flag("libs", "--libs", "show LIBS value used when PostgreSQL was built"),
        flag("version", "--version", "show the PostgreSQL version"),
        flag("help", "--help", "show help, then exit"),
    )


__all__ = [
    "PgConfigBuilder",
    "PgControlDataBuilder",
    "PgTestFsyncBuilder",
    "PgTestTimingBuilder",
]
