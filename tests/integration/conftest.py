import sys
from pathlib import Path

import pendulum
import pytest

from pgembed.archive import InstallationRecord, write_installation_record
from pgembed.settings import Settings
from tests.conftest import TEST_PLATFORM


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(item.path).is_relative_to(Path(__file__).parent):
            item.add_marker(pytest.mark.integration)


# Stand-in for the postmaster: listens on the requested address and records
# its PID the way PostgreSQL does.
_LISTENER = """
import os
import socket
import sys
from pathlib import Path

host, port, pgdata = sys.argv[1], int(sys.argv[2]), Path(sys.argv[3])
sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
try:
    sock.bind((host, port))
except OSError:
    print("FATAL:  could not bind IPv4 address: Address already in use", flush=True)
    sys.exit(1)
sock.listen(16)
(pgdata / "postmaster.pid").write_text(f"{os.getpid()}\\n{pgdata}\\n")
print("LOG:  database system is ready to accept connections", flush=True)
while True:
    conn, _ = sock.accept()
    conn.close()
"""

# A postmaster that starts but never accepts connections.
_SILENT = """
import os
import sys
import time
from pathlib import Path

pgdata = Path(sys.argv[3])
(pgdata / "postmaster.pid").write_text(f"{os.getpid()}\\n{pgdata}\\n")
while True:
    time.sleep(1)
"""

# A postmaster that dies shortly after writing its PID file.
_CRASHING = """
import os
import sys
import time
from pathlib import Path

pgdata = Path(sys.argv[3])
pid_file = pgdata / "postmaster.pid"
pid_file.write_text(f"{os.getpid()}\\n{pgdata}\\n")
print("FATAL:  could not load library \\"vector.so\\"", flush=True)
time.sleep(0.5)
pid_file.unlink()
sys.exit(1)
"""

_INITDB = """#!{python}
import os
import sys
from pathlib import Path

if os.environ.get("FAKE_PG_BEHAVIOR") == "initdb-fails":
    print("initdb: error: could not change permissions of directory", file=sys.stderr)
    sys.exit(1)

args = sys.argv[1:]
pgdata = Path(args[args.index("--pgdata") + 1])
if (pgdata / "PG_VERSION").exists():
    print(f"initdb: error: directory {{pgdata}} exists but is not empty", file=sys.stderr)
    sys.exit(1)
pgdata.mkdir(parents=True, exist_ok=True)
(pgdata / "PG_VERSION").write_text("16\\n")
(pgdata / "initdb.args").write_text("\\n".join(args))
"""

_PG_CTL = """#!{python}
import os
import shlex
import signal
import subprocess
import sys
import time
from pathlib import Path

LISTENER = {listener!r}
SILENT = {silent!r}
CRASHING = {crashing!r}
BEHAVIOR = os.environ.get("FAKE_PG_BEHAVIOR", "")

args = sys.argv[1:]


def option(flag):
    return args[args.index(flag) + 1] if flag in args else None


mode = args[0]
pgdata = Path(option("--pgdata"))
pid_file = pgdata / "postmaster.pid"

if mode == "start":
    server_args = shlex.split(option("-o") or "")
    host = server_args[server_args.index("-h") + 1]
    port = server_args[server_args.index("-p") + 1]
    log = open(option("--log") or os.devnull, "ab")
    server = {{"crash": CRASHING, "never-ready": SILENT}}.get(BEHAVIOR, LISTENER)
    subprocess.Popen(
        [sys.executable, "-c", server, host, port, str(pgdata)],
        stdin=subprocess.DEVNULL,
        stdout=log,
        stderr=log,
        start_new_session=True,
    )
    sys.exit(0)

if mode == "stop":
    (pgdata / "stop.args").write_text("\\n".join(args))
    if BEHAVIOR == "stop-hangs":
        time.sleep(60)
    try:
        pid = int(pid_file.read_text().split()[0])
    except (OSError, ValueError, IndexError):
        print("pg_ctl: PID file does not exist", file=sys.stderr)
        sys.exit(1)
    (pgdata / "stop.mode").write_text(option("--mode") or "")
    os.kill(pid, signal.SIGTERM)
    for _ in range(40):
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            break
        time.sleep(0.05)
    pid_file.unlink(missing_ok=True)
    sys.exit(0)

sys.exit(1)
"""

FAKE_EXECUTABLES = frozenset({"bin/initdb", "bin/pg_ctl"})


def fake_binaries() -> dict[str, str]:
    """Scripts that emulate initdb and pg_ctl, keyed by relative path."""
    python = sys.executable
    return {
        "bin/initdb": _INITDB.format(python=python),
        "bin/pg_ctl": _PG_CTL.format(
            python=python, listener=_LISTENER, silent=_SILENT, crashing=_CRASHING
        ),
        "share/postgresql.conf.sample": "# sample\n",
    }


def install_fake_binaries(
    settings: Settings, version: str = "16.4.0", platform: str = TEST_PLATFORM
) -> InstallationRecord:
    """Create a completed installation holding the fake binaries."""
    path = settings.installation_root / version / platform
    for relative, content in fake_binaries().items():
        target = path / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        _ = target.write_text(content)
        if relative in FAKE_EXECUTABLES:
            target.chmod(0o755)
    record = InstallationRecord(
        path=path,
        version=version,
        platform=platform,
        checksum="sha256:" + "0" * 64,
        installed_at=pendulum.now("UTC"),
    )
    write_installation_record(record)
    return record


posix_only = pytest.mark.skipif(
    sys.platform == "win32", reason="fake binaries are shebang scripts"
)


@pytest.fixture
def fake_installation(settings: Settings) -> InstallationRecord:
    return install_fake_binaries(settings)
