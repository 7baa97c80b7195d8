"""External diagram rendering.

Diagram figures are rasterised by an external command-line tool (by default
the Mermaid CLI ``mmdc``) invoked as::

    <command> -i <source file> -o <png file> [extra args...]

Source and output live in a private temporary directory that is removed
when rendering finishes, whether it succeeded or not.  Every failure mode
(missing binary, non-zero exit, timeout, no output) is reported as
:class:`~mdbridge.errors.MdBridgeRenderError` so callers can skip the one
figure and carry on.
"""

from __future__ import annotations

import asyncio
import subprocess
import tempfile
from collections.abc import Sequence
from pathlib import Path

from mdbridge.errors import MdBridgeRenderError
from mdbridge.observability import get_logger

log = get_logger("mdbridge.render")


class DiagramRenderer:
    """Render diagram source text to PNG bytes with an external tool.

    Parameters
    ----------
    command:
        Executable name or path.
    args:
        Extra arguments appended after the input/output options.
    timeout:
        Seconds before the subprocess is killed.
    """

    def __init__(
        self,
        command: str = "mmdc",
        args: Sequence[str] = (),
        timeout: float = 60.0,
    ) -> None:
        self.command = command
        self.args = list(args)
        self.timeout = timeout

    def build_command(self, source_path: Path, output_path: Path) -> list[str]:
        return [self.command, "-i", str(source_path), "-o", str(output_path), *self.args]

    def render_sync(self, source: str) -> bytes:
        """Render *source* and return the PNG bytes.

        Raises
        ------
        MdBridgeRenderError
            If the tool is missing, exits non-zero, times out, or writes no
            output file.
        """
        with tempfile.TemporaryDirectory(prefix="mdbridge-diagram-") as tmp:
            source_path = Path(tmp) / "diagram.mmd"
            output_path = Path(tmp) / "diagram.png"
            source_path.write_text(source, encoding="utf-8")
            cmd = self.build_command(source_path, output_path)

            try:
                subprocess.run(cmd, check=True, capture_output=True, text=True, timeout=self.timeout)
            except FileNotFoundError as exc:
                raise MdBridgeRenderError(
                    message=f"Diagram renderer {self.command!r} was not found on PATH.",
                    context={"command": self.command},
                    cause=exc,
                ) from exc
            except subprocess.CalledProcessError as exc:
                raise MdBridgeRenderError(
                    message=f"Diagram renderer exited with status {exc.returncode}.",
                    context={
                        "command": self.command,
                        "returncode": exc.returncode,
                        "stderr": (exc.stderr or "")[-2000:],
                    },
                    cause=exc,
                ) from exc
            except subprocess.TimeoutExpired as exc:
                raise MdBridgeRenderError(
                    message=f"Diagram renderer timed out after {self.timeout}s.",
                    context={"command": self.command, "timeout": self.timeout},
                    cause=exc,
                ) from exc

            if not output_path.is_file():
                raise MdBridgeRenderError(
                    message="Diagram renderer produced no output file.",
                    context={"command": self.command, "output": str(output_path)},
                )
            data = output_path.read_bytes()

        log.debug("Rendered diagram", extra={"extra_fields": {"bytes": len(data)}})
        return data

    async def render(self, source: str) -> bytes:
        """Async wrapper running :meth:`render_sync` in a worker thread."""
        return await asyncio.to_thread(self.render_sync, source)
