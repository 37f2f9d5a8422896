"""Exceptions raised by MySQL Dumper."""

from typing import Optional


class DumperError(Exception):
    """Base exception for dumper errors."""
    pass


class ConfigError(DumperError):
    """Settings that cannot produce a valid dump."""
    pass


class DumpIOError(DumperError):
    """Reading the dump or writing split output failed."""
    pass


class DumpParseError(DumperError):
    """A marker line does not carry a usable backtick-quoted name."""

    def __init__(self, message: str, line_number: int, line: str):
        super().__init__(f"{message} (line {line_number}: {line.strip()!r})")
        self.line_number = line_number
        self.line = line


class DumpCommandError(DumperError):
    """mysqldump could not be started or exited with an error."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
