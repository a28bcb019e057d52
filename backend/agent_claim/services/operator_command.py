"""
Operator instructions for reading the challenge file locally.

The claim UI shows these to whoever is claiming the agent: the path of the
challenge file, a command that prints it, and a short explanation.
"""

import sys
from dataclasses import dataclass
from pathlib import Path, PurePosixPath, PureWindowsPath

POSIX_HELP = (
    "We need to verify this server is yours. SSH to this server and run this command. "
    "It will give you a UUID. Copy and paste this UUID to this box:"
)
WINDOWS_HELP = (
    "We need to verify this Windows server is yours. So, open a Command Prompt on this "
    "server to run the command. It will give you a UUID. Copy and paste this UUID to this box:"
)


@dataclass(frozen=True)
class OperatorCommand:
    display_path: str
    command: str
    help: str


def _quote(path: str) -> str:
    return f'"{path}"' if " " in path else path


class PosixCommandRenderer:
    prefix = "sudo cat"
    help = POSIX_HELP

    def native_path(self, path: Path | str) -> str:
        return str(PurePosixPath(path))

    def render(self, path: Path | str) -> OperatorCommand:
        display_path = self.native_path(path)
        return OperatorCommand(
            display_path=display_path,
            command=f"{self.prefix} {_quote(display_path)}",
            help=self.help,
        )


class WindowsCommandRenderer(PosixCommandRenderer):
    prefix = "more"
    help = WINDOWS_HELP

    def native_path(self, path: Path | str) -> str:
        raw = str(path)
        # Cygwin/MSYS style mount points, e.g. /cygdrive/c/ProgramData
        for mount in ("/cygdrive/", "/"):
            rest = raw[len(mount):] if raw.startswith(mount) else None
            if rest and len(rest) >= 2 and rest[0].isalpha() and rest[1] == "/":
                return str(PureWindowsPath(f"{rest[0].upper()}:/", rest[2:]))
        return str(PureWindowsPath(raw))


_RENDERERS = {
    "posix": PosixCommandRenderer,
    "windows": WindowsCommandRenderer,
}


def detect_platform() -> str:
    return "windows" if sys.platform in ("win32", "cygwin", "msys") else "posix"


def get_command_renderer(platform: str | None = None) -> PosixCommandRenderer:
    return _RENDERERS[platform or detect_platform()]()


def render_operator_command(path: Path | str, platform: str | None = None) -> OperatorCommand:
    return get_command_renderer(platform).render(path)
