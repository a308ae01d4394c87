"""
Command execution utility for the release pipeline.
Runs toolchain, git and deployment CLI commands with output capture,
timeouts and secrets masking.
"""

import asyncio
import os
import shlex
import time
from pathlib import Path
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Union

from .logger import StageLogger
from .security import SecretsMasker


@dataclass
class CommandResult:
    """Result of a command execution."""
    command: str
    return_code: int
    stdout: str
    stderr: str
    success: bool
    duration_seconds: float
    timed_out: bool = False

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        return f"{self.stdout}\n{self.stderr}".strip()

    def tail(self, lines: int = 20) -> str:
        """Last lines of combined output, masked, for error reports."""
        return SecretsMasker.mask_secrets("\n".join(self.output.splitlines()[-lines:]))

    def to_dict(self) -> dict:
        """Convert to dictionary with secrets masked."""
        return {
            "command": SecretsMasker.mask_secrets(self.command),
            "return_code": self.return_code,
            "stdout": SecretsMasker.mask_secrets(self.stdout),
            "stderr": SecretsMasker.mask_secrets(self.stderr),
            "success": self.success,
            "duration_seconds": self.duration_seconds,
            "timed_out": self.timed_out,
        }


class CommandExecutor:
    """Executes commands without a shell, with proper error handling and logging."""

    def __init__(
        self,
        working_dir: Path = None,
        logger: StageLogger = None,
    ):
        self.working_dir = working_dir or Path.cwd()
        self.logger = logger or StageLogger("CommandExecutor")

    @staticmethod
    def split(command: Union[str, Sequence[str]]) -> List[str]:
        """Turn a configured command string into an argument vector."""
        if isinstance(command, str):
            return shlex.split(command)
        return list(command)

    async def run(
        self,
        command: Union[str, Sequence[str]],
        timeout: int = 300,
        env: Dict[str, str] = None,
        stream_output: bool = False,
        on_output: Callable[[str], None] = None,
    ) -> CommandResult:
        """
        Execute a command asynchronously.

        Args:
            command: Command string (split with shlex) or argument list
            timeout: Maximum execution time in seconds; exceeding it is a failure
            env: Additional environment variables
            stream_output: Whether to stream output line by line
            on_output: Callback for streamed lines

        Returns:
            CommandResult with execution details
        """
        argv = self.split(command)
        display = " ".join(shlex.quote(part) for part in argv)
        safe_command = SecretsMasker.mask_secrets(display)

        if not argv:
            return CommandResult(
                command=display,
                return_code=-1,
                stdout="",
                stderr="Empty command",
                success=False,
                duration_seconds=0,
            )

        self.logger.debug(f"Executing: {safe_command}")
        start_time = time.time()

        full_env = os.environ.copy()
        if env:
            full_env.update(env)

        try:
            return_code, stdout, stderr = await self._run_process(
                argv, timeout, full_env, on_output if stream_output else None
            )
            duration = time.time() - start_time

            cmd_result = CommandResult(
                command=display,
                return_code=return_code,
                stdout=stdout,
                stderr=stderr,
                success=return_code == 0,
                duration_seconds=duration,
            )

            if cmd_result.success:
                self.logger.debug(f"Command succeeded in {duration:.2f}s")
            else:
                self.logger.warning(f"{safe_command} failed with code {return_code}")

            return cmd_result

        except asyncio.TimeoutError:
            duration = time.time() - start_time
            self.logger.error(f"{safe_command} timed out after {timeout}s")
            return CommandResult(
                command=display,
                return_code=-1,
                stdout="",
                stderr=f"Command timed out after {timeout} seconds",
                success=False,
                duration_seconds=duration,
                timed_out=True,
            )
        except OSError as e:
            duration = time.time() - start_time
            self.logger.error(f"Command execution failed: {e}", exc=e)
            return CommandResult(
                command=display,
                return_code=-1,
                stdout="",
                stderr=str(e),
                success=False,
                duration_seconds=duration,
            )

    async def _run_process(
        self,
        argv: List[str],
        timeout: int,
        env: dict,
        on_output: Optional[Callable[[str], None]],
    ) -> tuple:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self.working_dir,
            env=env,
        )

        stdout_lines: List[str] = []
        stderr_lines: List[str] = []

        async def read_stream(stream, lines: list):
            while True:
                line = await stream.readline()
                if not line:
                    break
                decoded = line.decode(errors="replace")
                lines.append(decoded)
                if on_output:
                    on_output(SecretsMasker.mask_secrets(decoded.rstrip("\n")))

        try:
            await asyncio.wait_for(
                asyncio.gather(
                    read_stream(process.stdout, stdout_lines),
                    read_stream(process.stderr, stderr_lines),
                ),
                timeout=timeout,
            )
            await process.wait()
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise

        return process.returncode, "".join(stdout_lines), "".join(stderr_lines)
