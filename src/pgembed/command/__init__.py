"""Command builders for the utilities bundled with PostgreSQL.

Every builder is an immutable value. Fluent methods return a new builder,
``args()`` renders the configured options in a fixed order, and ``build()``
produces a CommandSpec that can be rendered or run.

Example:
    >>> spec = (
    ...     PgCtlBuilder()
    ...     .mode(PgCtlMode.STOP)
    ...     .pgdata("/tmp/data")
    ...     .shutdown_mode(ShutdownMode.FAST)
    ...     .wait()
    ...     .build(default_dir=record.bin_dir)
    ... )
    >>> await spec.run()
"""

from ._backup import PgBaseBackupBuilder, PgDumpAllBuilder, PgDumpBuilder, PgRestoreBuilder
from ._base import (
    CommandBuilder,
    CommandResult,
    CommandSpec,
    Option,
    OptionKind,
    flag,
    joined,
    positional,
    repeat,
    value,
)
from ._client import PgIsReadyBuilder, PsqlBuilder
from ._diagnostics import (
    PgConfigBuilder,
    PgControlDataBuilder,
    PgTestFsyncBuilder,
    PgTestTimingBuilder,
)
from ._maintenance import (
    ClusterDbBuilder,
    CreateDbBuilder,
    CreateUserBuilder,
    DropDbBuilder,
    DropUserBuilder,
    ReindexDbBuilder,
    VacuumDbBuilder,
    connection_options,
)
from ._server import InitDbBuilder, PgCtlBuilder, PgCtlMode, PostgresBuilder, ShutdownMode

BUILDERS: dict[str, type[CommandBuilder]] = {
    builder.PROGRAM: builder
    for builder in (
        ClusterDbBuilder,
        CreateDbBuilder,
        CreateUserBuilder,
        DropDbBuilder,
        DropUserBuilder,
        InitDbBuilder,
        PgBaseBackupBuilder,
        PgConfigBuilder,
        PgControlDataBuilder,
        PgCtlBuilder,
        PgDumpAllBuilder,
        PgDumpBuilder,
        PgIsReadyBuilder,
        PgRestoreBuilder,
        PgTestFsyncBuilder,
        PgTestTimingBuilder,
        PostgresBuilder,
        PsqlBuilder,
        ReindexDbBuilder,
        VacuumDbBuilder,
    )
}

__all__ = [
    "BUILDERS",
    "ClusterDbBuilder",
    "CommandBuilder",
    "CommandResult",
    "CommandSpec",
    "CreateDbBuilder",
    "CreateUserBuilder",
    "DropDbBuilder",
    "DropUserBuilder",
    "InitDbBuilder",
    "Option",
    "OptionKind",
    "PgBaseBackupBuilder",
    "PgConfigBuilder",
    "PgControlDataBuilder",
    "PgCtlBuilder",
    "PgCtlMode",
    "PgDumpAllBuilder",
    "PgDumpBuilder",
    "PgIsReadyBuilder",
    "PgRestoreBuilder",
    "PgTestFsyncBuilder",
    "PgTestTimingBuilder",
    "PostgresBuilder",
    "PsqlBuilder",
    "ReindexDbBuilder",
    "ShutdownMode",
    "VacuumDbBuilder",
    "connection_options",
    "flag",
    "joined",
    "positional",
    "repeat",
    "value",
]
