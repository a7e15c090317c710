"""gravapi executor - running external programs."""

import logging
import subprocess

import click

from gravapi.errors import SubprocessExecutionError, SubprocessLaunchError

logger = logging.getLogger(__name__)


def _echo_command(name: str, args: list[str]) -> None:
    click.echo(f"Command executed: {name} {args}")


class CommandRunner:
    """Runs external programs and returns their captured stdout.

    Subclass this to substitute scripted output in tests.
    """

    def execute(self, name: str, args: list[str], verbose: bool = False) -> str:
        raise NotImplementedError

    def pipe(
        self,
        producer: list[str],
        consumer: list[str],
        verbose: bool = False,
    ) -> str:
        """Run producer | consumer and return the consumer's stdout."""
        raise NotImplementedError


class SubprocessRunner(CommandRunner):
    """Runs programs with the subprocess module. No timeouts."""

    def execute(self, name: str, args: list[str], verbose: bool = False) -> str:
        if verbose:
            _echo_command(name, args)
        logger.debug("Running %s %s", name, args)
        try:
            proc = subprocess.run(
                [name, *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except OSError as e:
            raise SubprocessLaunchError(f"Unable to start {name}: {e}", program=name) from e
        if proc.returncode != 0:
            raise SubprocessExecutionError(
                _exit_message(name, proc.returncode, proc.stderr),
                program=name,
                returncode=proc.returncode,
                stderr=proc.stderr,
            )
        return proc.stdout

    def pipe(
        self,
        producer: list[str],
        consumer: list[str],
        verbose: bool = False,
    ) -> str:
        if verbose:
            _echo_command(producer[0], producer[1:])
            _echo_command(consumer[0], consumer[1:])
        logger.debug("Piping %s into %s", producer, consumer)

        try:
            first = subprocess.Popen(producer, stdout=subprocess.PIPE)
        except OSError as e:
            raise SubprocessLaunchError(
                f"Unable to start {producer[0]}: {e}",
                program=producer[0],
            ) from e

        try:
            second = subprocess.Popen(
                consumer,
                stdin=first.stdout,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            first.stdout.close()
            first.wait()
            raise SubprocessLaunchError(
                f"Unable to start {consumer[0]}: {e}",
                program=consumer[0],
            ) from e

        # producer gets SIGPIPE if the consumer exits early
        first.stdout.close()
        out, err = second.communicate()
        first.wait()

        if first.returncode != 0:
            raise SubprocessExecutionError(
                _exit_message(producer[0], first.returncode, ""),
                program=producer[0],
                returncode=first.returncode,
            )
        if second.returncode != 0:
            raise SubprocessExecutionError(
                _exit_message(consumer[0], second.returncode, err),
                program=consumer[0],
                returncode=second.returncode,
                stderr=err,
            )
        return out


def _exit_message(name: str, returncode: int, stderr: str) -> str:
    msg = f"{name} exited with status {returncode}"
    detail = (stderr or "").strip()
    if detail:
        msg += f": {detail}"
    return msg
