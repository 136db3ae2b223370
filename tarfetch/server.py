"""TCP file server that searches a directory tree and ships matches as tarballs."""

from __future__ import annotations

import argparse
import os
import re
import socket
import tarfile
import threading
from collections.abc import Sequence

from tarfetch.search import (
    MAX_FILES,
    build_tar,
    files_by_date,
    files_by_extension,
    files_by_size,
    find_file,
    is_valid_date,
)

DEFAULT_PORT = 8080
MIRROR_HOST = "127.0.0.1"
MIRROR_PORT = 8081
MAX_BUFFER = 4096
MAX_EXTENSIONS = 6
DEFAULT_TAR_PATH = "/tmp/temp.tar.gz"

_SIZE_RANGE = re.compile(r"\s*([+-]?\d+)(?!\d)\s*([+-]?\d+)")
_ACCEPT_TIMEOUT = 0.2


def should_redirect(connection_count: int) -> bool:
    """Decide whether the given (1-based) connection goes to the mirror.

    The first four connections stay, the next four are redirected, and
    after that even-numbered connections are redirected.
    """
    if connection_count <= 4:
        return False
    if connection_count <= 8:
        return True
    return connection_count % 2 == 0


def redirect_message(host: str, port: int) -> str:
    """Return the message telling a client to reconnect to ``host:port``."""
    return f"REDIRECT {host} {port}"


class FileServer:
    """Serves search commands over TCP, one thread per client.

    ``mirror`` is the ``(host, port)`` that some connections are redirected
    to; when it is ``None`` the server handles every connection itself.
    """

    def __init__(
        self,
        port: int = DEFAULT_PORT,
        root: str | None = None,
        tar_path: str = DEFAULT_TAR_PATH,
        mirror: tuple[str, int] | None = (MIRROR_HOST, MIRROR_PORT),
    ) -> None:
        self.port = port
        self.root = root if root is not None else os.path.expanduser("~")
        self.tar_path = tar_path
        self.mirror = mirror
        self.connection_count = 0
        self.ready = threading.Event()
        self.stop_requested = threading.Event()
        self._name = "server" if mirror is not None else "mirror server"
        self._prefix = "" if mirror is not None else "Mirror: "

    def _send(self, conn: socket.socket, message: str) -> None:
        conn.sendall(message.encode())

    def handle_command(self, conn: socket.socket, command: str) -> bool:
        """Answer one command on ``conn``; return False when the client quits."""
        if command.startswith("findfile"):
            tokens = command[len("findfile"):].split()
            if not tokens:
                self._send(conn, "Invalid findfile syntax")
            else:
                found = find_file(self.root, tokens[0])
                self._send(conn, found if found else "File not found")
        elif command.startswith("sgetfiles"):
            match = _SIZE_RANGE.match(command, len("sgetfiles"))
            if match is None:
                self._send(conn, "Invalid sgetfiles syntax")
            else:
                size1, size2 = int(match.group(1)), int(match.group(2))
                if size1 <= size2:
                    self.send_tar(conn, files_by_size(self.root, size1, size2, MAX_FILES))
                else:
                    self._send(conn, "Invalid size range")
        elif command.startswith("dgetfiles"):
            tokens = command[len("dgetfiles"):].split()
            if len(tokens) < 2:
                self._send(conn, "Invalid dgetfiles syntax")
            elif is_valid_date(tokens[0]) and is_valid_date(tokens[1]):
                self.send_tar(
                    conn, files_by_date(self.root, tokens[0], tokens[1], MAX_FILES)
                )
            else:
                self._send(conn, "Invalid date format")
        elif command.startswith("getfiles"):
            extensions = [token for token in command[9:].split(" ") if token]
            extensions = extensions[:MAX_EXTENSIONS]
            if extensions:
                self.send_tar(
                    conn, files_by_extension(self.root, extensions, MAX_FILES)
                )
            else:
                self._send(conn, "Invalid getfiles syntax")
        elif command.startswith("getftar"):
            tokens = command[len("getftar"):].split()
            if not tokens:
                self._send(conn, "Invalid getftar syntax")
            else:
                found = find_file(self.root, tokens[0])
                self.send_tar(conn, [found] if found else [])
        elif command.startswith("quit"):
            print(f"{self._prefix}Client requested to quit")
            return False
        else:
            self._send(conn, "Unknown command")
        return True

    def handle_client(self, conn: socket.socket) -> None:
        """Read and answer commands until the client quits or disconnects."""
        while True:
            try:
                data = conn.recv(MAX_BUFFER - 1)
            except OSError:
                data = b""
            if not data:
                print(f"{self._prefix}Client disconnected")
                return
            command = data.decode(errors="replace")
            print(f"{self._prefix}Received command: {command}")
            if not self.handle_command(conn, command):
                return

    def send_tar(self, conn: socket.socket, paths: Sequence[str]) -> None:
        """Pack ``paths`` and send the tarball: size, wait for an ack, then bytes."""
        if not paths:
            self._send(conn, "No file found")
            return
        try:
            build_tar(paths, self.tar_path)
        except (OSError, tarfile.TarError):
            self._remove_tar()
            self._send(conn, "Error creating tar file")
            return
        try:
            with open(self.tar_path, "rb") as archive:
                size = os.fstat(archive.fileno()).st_size
                self._send(conn, str(size))
                conn.recv(10)
                while chunk := archive.read(MAX_BUFFER):
                    conn.sendall(chunk)
        except FileNotFoundError:
            self._send(conn, "Error creating tar file")
        finally:
            self._remove_tar()

    def _remove_tar(self) -> None:
        try:
            os.unlink(self.tar_path)
        except FileNotFoundError:
            pass

    def _serve_connection(self, conn: socket.socket) -> None:
        with conn:
            self.handle_client(conn)

    def serve_forever(self) -> None:
        """Accept connections until ``stop_requested`` is set."""
        print(f"Starting {self._name} on port {self.port}...")
        with socket.create_server(("", self.port), backlog=10) as listener:
            self.port = listener.getsockname()[1]
            listener.settimeout(_ACCEPT_TIMEOUT)
            print(f"{self._name.capitalize()} listening on port {self.port}")
            self.ready.set()
            waiting = True
            while not self.stop_requested.is_set():
                if waiting:
                    print(f"{self._prefix}Waiting for connections...")
                    waiting = False
                try:
                    conn, _address = listener.accept()
                except TimeoutError:
                    continue
                except OSError as error:
                    print(f"accept: {error}")
                    continue
                waiting = True
                conn.settimeout(None)
                self.connection_count += 1
                print(f"{self._prefix}Connection {self.connection_count} established")
                if self.mirror is not None and should_redirect(self.connection_count):
                    print(
                        f"Redirecting connection {self.connection_count} to mirror server"
                    )
                    with conn:
                        try:
                            self._send(conn, redirect_message(*self.mirror))
                        except OSError:
                            pass
                    continue
                threading.Thread(
                    target=self._serve_connection, args=(conn,), daemon=True
                ).start()


def main(argv: Sequence[str] | None = None) -> int:
    """Run the file server from the command line."""
    parser = argparse.ArgumentParser(description="Serve file searches as tarballs.")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--root", default=None, help="directory to search (default: home)")
    parser.add_argument("--tar-path", default=DEFAULT_TAR_PATH)
    parser.add_argument("--mirror-host", default=MIRROR_HOST)
    parser.add_argument("--mirror-port", type=int, default=MIRROR_PORT)
    args = parser.parse_args(argv)
    server = FileServer(
        args.port, args.root, args.tar_path, (args.mirror_host, args.mirror_port)
    )
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        return 0
    except OSError as error:
        print(f"bind failed: {error}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())