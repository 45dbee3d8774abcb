"""The pseudo-terminal or serial line that connects the terminal to a program."""

from __future__ import annotations

import errno
import fcntl
import logging
import os
import pty
import pwd
import select
import signal
import struct
import subprocess
import termios
from collections.abc import Callable, Mapping, Sequence

from .config import Config

log = logging.getLogger(__name__)

_ARG_MAX = 4096
_BUFSIZ = 8192
_WRITE_LIMIT = 256
_RESET_SIGNALS = ("SIGCHLD", "SIGHUP", "SIGINT", "SIGQUIT", "SIGTERM", "SIGALRM")


class ChildExitError(Exception):
    """The program on the tty went away; ``returncode`` is negative for a signal."""

    def __init__(self, returncode: int, message: str) -> None:
        super().__init__(message)
        self.returncode = returncode


def shell_command(
    config: Config,
    cmd: str,
    args: Sequence[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> tuple[list[str], dict[str, str]]:
    """Return the argument vector and environment for the program to start."""
    environ = os.environ if environ is None else environ
    try:
        entry = pwd.getpwuid(os.getuid())
    except KeyError as exc:
        raise OSError("who are you?") from exc

    shell = environ.get("SHELL")
    if shell is None:
        shell = entry.pw_shell or cmd

    if args:
        argv = list(args)
    elif config.scroll:
        argv = [config.scroll, config.utmp or shell]
    elif config.utmp:
        argv = [config.utmp]
    else:
        argv = [shell]

    env = {k: v for k, v in environ.items() if k not in ("COLUMNS", "LINES", "TERMCAP")}
    env.update(
        LOGNAME=entry.pw_name,
        USER=entry.pw_name,
        SHELL=shell,
        HOME=entry.pw_dir,
        TERM=config.termname,
    )
    return argv, env


def stty_command(stty_args: str, args: Sequence[str] | None = None) -> str:
    """Build the stty command line used to configure a serial line."""
    if len(stty_args) > _ARG_MAX - 1:
        raise ValueError("incorrect stty parameters")
    room = _ARG_MAX - len(stty_args)
    parts = [stty_args]
    for arg in args or ():
        if len(arg) > room - 1:
            raise ValueError("stty parameter length too long")
        parts.append(arg)
        room -= len(arg) + 1
    return " ".join(parts)


class Tty:
    """A tty file descriptor, the child behind it and an optional output copy."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self.fd = -1
        self.pid = 0
        self.output_fd = -1
        self.consumer: Callable[[bytes], int] | None = None
        self._pending = b""

    def __enter__(self) -> Tty:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def open(
        self,
        line: str | None = None,
        cmd: str | None = None,
        out: str | None = None,
        args: Sequence[str] | None = None,
    ) -> int:
        """Open a serial ``line`` or spawn the shell on a new pty; return the fd."""
        if out is not None:
            if out == "-":
                self.output_fd = 1
            else:
                try:
                    self.output_fd = os.open(out, os.O_WRONLY | os.O_CREAT, 0o666)
                except OSError as exc:
                    log.error("Error opening %s:%s", out, exc.strerror)
                    self.output_fd = -1

        if line is not None:
            try:
                self.fd = os.open(line, os.O_RDWR)
            except OSError as exc:
                raise OSError(exc.errno, f"open line '{line}' failed: {exc.strerror}") from exc
            os.dup2(self.fd, 0)
            command = stty_command(self.config.stty_args, args)
            if subprocess.run(command, shell=True, check=False).returncode != 0:
                log.error("Couldn't call stty")
            return self.fd

        argv, env = shell_command(self.config, cmd or self.config.shell, args)
        pid, master = pty.fork()
        if pid == 0:
            try:
                if self.output_fd > 2:
                    os.close(self.output_fd)
                for name in _RESET_SIGNALS:
                    signal.signal(getattr(signal, name), signal.SIG_DFL)
                os.execvpe(argv[0], argv, env)
            finally:
                os._exit(1)
        self.pid = pid
        self.fd = master
        return master

    def write_output(self, data: bytes) -> None:
        """Copy ``data`` to the output file given to :meth:`open`, if any."""
        if self.output_fd == -1:
            return
        view = memoryview(bytes(data))
        try:
            while view:
                view = view[os.write(self.output_fd, view):]
        except OSError as exc:
            log.error("Error writing to output file: %s", exc.strerror)
            os.close(self.output_fd)
            self.output_fd = -1

    def _child_gone(self) -> ChildExitError:
        if not self.pid:
            return ChildExitError(0, "tty line closed")
        _, status = os.waitpid(self.pid, 0)
        self.pid = 0
        code = os.waitstatus_to_exitcode(status)
        if code < 0:
            return ChildExitError(code, f"child terminated due to signal {-code}")
        return ChildExitError(code, f"child exited with status {code}")

    def read(self, consume: Callable[[bytes], int] | None = None) -> int:
        """Read available bytes and feed them to ``consume``.

        ``consume`` returns how many bytes it used; the rest, such as an
        incomplete UTF-8 sequence, is kept for the next call. Without a
        consumer the bytes are held until one is given. Raises
        :class:`ChildExitError` when the other end has gone away.
        """
        consume = consume or self.consumer
        try:
            data = os.read(self.fd, _BUFSIZ)
        except OSError as exc:
            if exc.errno != errno.EIO:
                raise OSError(exc.errno, f"couldn't read from shell: {exc.strerror}") from exc
            data = b""
        if not data:
            raise self._child_gone()
        self._pending += data
        if consume is not None:
            used = consume(self._pending)
            self._pending = self._pending[used:]
        return len(data)

    def write(self, data: bytes) -> None:
        """Write ``data`` in small pieces, draining the tty when it fills up."""
        view = memoryview(bytes(data))
        limit = _WRITE_LIMIT
        while view:
            readable, writable, _ = select.select([self.fd], [self.fd], [])
            if writable:
                try:
                    written = os.write(self.fd, view[:min(len(view), limit)])
                except OSError as exc:
                    raise OSError(exc.errno, f"write error on tty: {exc.strerror}") from exc
                if written < len(view):
                    if len(view) < limit:
                        limit = self.read()
                    view = view[written:]
                else:
                    break
            if readable:
                limit = self.read()

    def resize(self, cols: int, rows: int, width: int, height: int) -> None:
        """Tell the tty its size in cells and pixels."""
        size = struct.pack("HHHH", rows, cols, width, height)
        try:
            fcntl.ioctl(self.fd, termios.TIOCSWINSZ, size)
        except OSError as exc:
            log.error("Couldn't set window size: %s", exc.strerror)

    def hangup(self) -> None:
        """Send SIGHUP to the child."""
        if self.pid:
            os.kill(self.pid, signal.SIGHUP)

    def send_break(self) -> None:
        try:
            termios.tcsendbreak(self.fd, 0)
        except termios.error as exc:
            log.error("Error sending break: %s", exc)

    def close(self) -> None:
        """Close the tty and the output file."""
        if self.fd != -1:
            os.close(self.fd)
            self.fd = -1
        if self.output_fd > 2:
            os.close(self.output_fd)
        self.output_fd = -1