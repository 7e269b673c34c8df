"""Host platform detection.

Maps the running CPU architecture, operating system and C library to the
target triple used to name release artifacts.
"""

import platform as _platform

from pgembed.exceptions import UnsupportedPlatformError

_ARCHITECTURES: dict[str, str] = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
    "i386": "i686",
    "i686": "i686",
    "x86": "i686",
    "armv7l": "armv7",
    "armv7": "armv7",
    "ppc64le": "powerpc64le",
    "s390x": "s390x",
}


def _detect_libc() -> str:
    name, _ = _platform.libc_ver()
    return "gnu" if name == "glibc" else "musl"


def detect_platform(
    system: str | None = None,
    machine: str | None = None,
    libc: str | None = None,
) -> str:
    """Get the target triple for a host.

    Each argument defaults to the running host's value.

    Args:
        system: Operating system name as reported by ``platform.system()``.
        machine: CPU architecture as reported by ``platform.machine()``.
        libc: C library flavor on Linux, ``gnu`` or ``musl``.

    Returns:
        Target triple such as ``x86_64-unknown-linux-gnu``.

    Raises:
        UnsupportedPlatformError: If the combination has no known triple.
    """
    system = (system or _platform.system()).lower()
    raw_machine = machine or _platform.machine()
    arch = _ARCHITECTURES.get(raw_machine.lower())
    if arch is None:
        msg = f"Unsupported CPU architecture: {raw_machine}"
        raise UnsupportedPlatformError(msg, platform=f"{raw_machine}-{system}")

    if system == "darwin":
        if arch not in {"x86_64", "aarch64"}:
            msg = f"Unsupported macOS architecture: {raw_machine}"
            raise UnsupportedPlatformError(msg, platform=f"{arch}-apple-darwin")
        return f"{arch}-apple-darwin"

    if system == "windows":
        if arch != "x86_64":
            msg = f"Unsupported Windows architecture: {raw_machine}"
            raise UnsupportedPlatformError(msg, platform=f"{arch}-pc-windows-msvc")
        return "x86_64-pc-windows-msvc"

    if system == "linux":
        flavor = libc or _detect_libc()
        if arch == "armv7":
            return f"armv7-unknown-linux-{flavor}eabihf"
        return f"{arch}-unknown-linux-{flavor}"

    msg = f"Unsupported operating system: {system}"
    raise UnsupportedPlatformError(msg, platform=f"{arch}-{system}")
