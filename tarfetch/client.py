"""Interactive client for the tarball file server."""

from __future__ import annotations

import argparse
import os
import re
import socket
import string
from collections.abc import Sequence

from tarfetch.search import is_valid_date as _is_date_shaped

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080
MAX_BUFFER = 4096
MAX_EXTENSIONS = 6
MAX_EXTENSION_LENGTH = 10

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_FILE_COMMANDS = ("getftar", "sgetfiles", "dgetfiles", "getfiles")

_USAGE = """
=== Available Commands ===
findfile <filename>              - Find a file by name
sgetfiles <size1> <size2>        - Get files within size range (bytes)
dgetfiles <date1> <date2>        - Get files within date range (YYYY-MM-DD)
getfiles <ext1> [ext2] ... [ext6] - Get files by extensions (1-6 extensions)
getftar <filename>               - Get a specific file as tar
quit                             - Exit the client
help                             - Show this help message

Examples:
  findfile document.txt
  sgetfiles 1024 10485760
  dgetfiles 2023-01-01 2023-12-31
  getfiles txt pdf
  getftar config.conf
=========================="""


class CommandError(ValueError):
    """Raised when a command typed by the user has invalid syntax."""


def is_valid_date(date: str) -> bool:
    """Return True for a YYYY-MM-DD date with year 1900-2100, month 1-12, day 1-31."""
    if not _is_date_shaped(date):
        return False
    year, month, day = (int(part) for part in date.split("-"))
    return 1900 <= year <= 2100 and 1 <= month <= 12 and 1 <= day <= 31


def is_valid_size(size: str) -> bool:
    """Return True if ``size`` is a non-empty string of decimal digits."""
    return bool(size) and all(char in string.digits for char in size)


def is_valid_extension(ext: str) -> bool:
    """Return True if ``ext`` is 1-10 ASCII letters or digits."""
    if not 0 < len(ext) <= MAX_EXTENSION_LENGTH:
        return False
    return all(char.isascii() and char.isalnum() for char in ext)


def _check_filename(command: str, keyword: str) -> None:
    tokens = command[len(keyword):].split()
    if tokens and "/" not in tokens[0]:
        return
    raise CommandError(
        f"Error: {keyword} syntax is '{keyword} <filename>'\n"
        "Note: filename should not contain path separators"
    )


def validate_command(command: str) -> bool:
    """Check a command before it is sent.

    Returns True when the command may go to the server and False for
    ``help``, which is handled locally. Raises CommandError otherwise.
    """
    if command.startswith("help"):
        return False

    if command.startswith("findfile"):
        _check_filename(command, "findfile")
        return True

    if command.startswith("sgetfiles"):
        tokens = command[len("sgetfiles"):].split()
        if len(tokens) >= 2 and is_valid_size(tokens[0]) and is_valid_size(tokens[1]):
            if int(tokens[0]) <= int(tokens[1]):
                return True
            raise CommandError(
                "Error: size1 should be <= size2, and both should be non-negative"
            )
        raise CommandError(
            "Error: sgetfiles syntax is 'sgetfiles <size1> <size2>'\n"
            "Note: sizes should be non-negative integers in bytes"
        )

    if command.startswith("dgetfiles"):
        tokens = command[len("dgetfiles"):].split()
        if len(tokens) >= 2 and is_valid_date(tokens[0]) and is_valid_date(tokens[1]):
            return True
        raise CommandError(
            "Error: dgetfiles syntax is 'dgetfiles <date1> <date2>'\n"
            "Note: dates should be in YYYY-MM-DD format"
        )

    if command.startswith("getfiles"):
        extensions = [token for token in command[9:].split(" ") if token]
        for ext in extensions[:MAX_EXTENSIONS]:
            if not is_valid_extension(ext):
                raise CommandError(
                    f"Error: invalid extension '{ext}'\n"
                    "Note: extensions should be alphanumeric (e.g., txt, pdf, jpg)"
                )
        if extensions:
            return True
        raise CommandError(
            "Error: getfiles syntax is 'getfiles <ext1> [ext2] ... [ext6]'\n"
            "Note: provide 1-6 file extensions"
        )

    if command.startswith("getftar"):
        _check_filename(command, "getftar")
        return True

    raise CommandError(f"Error: Unknown command '{command}'")


def output_filename(command: str) -> str:
    """Return the local file name a downloaded tarball is saved under."""
    if command.startswith("getftar"):
        return "file.tar.gz"
    if command.startswith("sgetfiles"):
        return "sizefiles.tar.gz"
    if command.startswith("dgetfiles"):
        return "datefiles.tar.gz"
    return "files.tar.gz"


def parse_redirect(response: str) -> tuple[str, int] | None:
    """Return ``(host, port)`` from a REDIRECT response, or None for other responses."""
    if not response.startswith("REDIRECT"):
        return None
    tokens = response[len("REDIRECT"):].split()
    if len(tokens) < 2:
        raise ValueError(f"malformed redirect {response!r}")
    match = _LEADING_INT.match(tokens[1])
    if match is None:
        raise ValueError(f"malformed redirect port in {response!r}")
    return tokens[0], int(match.group(1))


def usage() -> str:
    """Return the help text listing the available commands."""
    return _USAGE


class Client:
    """A connection to the file server that follows redirects to a mirror."""

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
        self._sock: socket.socket | None = None
        self.download_dir = "."
        self.connect(host, port)

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def connect(self, host: str, port: int) -> None:
        """Connect to ``host:port``, dropping any current connection."""
        self.close()
        self._sock = socket.create_connection((host, port))
        self.host = host
        self.port = port

    def _connection(self) -> socket.socket:
        if self._sock is None:
            raise ConnectionError("not connected")
        return self._sock

    def _exchange(self, command: str, peer: str) -> str:
        conn = self._connection()
        conn.sendall(command.encode())
        try:
            data = conn.recv(MAX_BUFFER - 1)
        except OSError:
            data = b""
        if not data:
            raise ConnectionError(f"Connection lost to {peer}")
        return data.decode(errors="replace")

    def execute(self, command: str) -> str:
        """Send ``command`` and return the message describing its outcome.

        Tarballs sent back are saved into ``download_dir``. Raises
        ConnectionError when the server or its mirror goes away.
        """
        if command == "quit":
            self._connection().sendall(command.encode())
            return ""

        response = self._exchange(command, "server")
        redirect = parse_redirect(response)
        if redirect is not None:
            print("Server is redirecting to mirror server...")
            host, port = redirect
            try:
                self.connect(host, port)
            except OSError as error:
                raise ConnectionError("Failed to connect to mirror server") from error
            print(f"Connected to mirror server at {host}:{port}")
            response = self._exchange(command, "mirror server")

        if command.startswith("findfile"):
            if response == "File not found":
                return "File not found"
            return f"File found at: {response}"

        if command.startswith(_FILE_COMMANDS):
            if response == "No file found":
                return "No files found matching the criteria"
            if response.startswith("Error"):
                return f"Server error: {response}"
            match = _LEADING_INT.match(response)
            file_size = int(match.group(1)) if match else 0
            if file_size <= 0:
                return "Invalid file size received"
            print(f"Receiving file ({file_size} bytes)...")
            self._connection().sendall(b"ACK")
            filename = output_filename(command)
            self.receive_file(os.path.join(self.download_dir, filename))
            return f"File saved as: {filename}"

        return f"Server response: {response}"

    def receive_file(self, path: str) -> int:
        """Write incoming data to ``path`` until a short read; return the byte count."""
        conn = self._connection()
        total = 0
        with open(path, "wb") as out:
            print("Downloading", end="", flush=True)
            while True:
                chunk = conn.recv(MAX_BUFFER)
                if not chunk:
                    break
                out.write(chunk)
                total += len(chunk)
                if total % (MAX_BUFFER * 10) == 0:
                    print(".", end="", flush=True)
                if len(chunk) < MAX_BUFFER:
                    break
        print(" Complete!")
        return total

    def close(self) -> None:
        """Close the connection if one is open."""
        if self._sock is not None:
            self._sock.close()
            self._sock = None


def main(argv: Sequence[str] | None = None) -> int:
    """Run the interactive client."""
    parser = argparse.ArgumentParser(description="Fetch files from the file server.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)

    print("=== File Server Client ===")
    print(f"Connecting to server at {args.host}:{args.port}")
    try:
        client = Client(args.host, args.port)
    except OSError as error:
        print(f"Connection failed: {error}")
        print("Failed to connect to server")
        return 1

    print("Connected to server successfully!")
    print(usage())

    with client:
        while True:
            try:
                command = input("\nEnter command (or 'quit' to exit): ")
            except EOFError:
                break
            if not command:
                continue
            if command == "quit":
                try:
                    client.execute(command)
                except OSError:
                    pass
                break
            try:
                if not validate_command(command):
                    print(usage())
                    continue
            except CommandError as error:
                print(error)
                print("Invalid command syntax. Type 'help' for usage information.")
                continue
            try:
                print(client.execute(command))
            except ConnectionError as error:
                print(error)
                break
            except OSError as error:
                print(f"Error: Cannot create file: {error}")
    print("Disconnected from server")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())