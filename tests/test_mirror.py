import io
import socket
import tarfile
import threading

import pytest

from tarfetch.mirror import DEFAULT_MIRROR_TAR_PATH, create_mirror, main
from tarfetch.server import MIRROR_PORT


@pytest.fixture
def tree(tmp_path):
    root = tmp_path / "root"
    (root / "docs").mkdir(parents=True)
    (root / "docs" / "notes.txt").write_bytes(b"hello mirror")
    (root / "image.jpg").write_bytes(b"\xff\xd8\xff")
    return root


@pytest.fixture
def running_mirror(tree, tmp_path):
    mirror = create_mirror(0, str(tree), str(tmp_path / "out.tar.gz"))
    thread = threading.Thread(target=mirror.serve_forever, daemon=True)
    thread.start()
    assert mirror.ready.wait(5)
    yield mirror
    mirror.stop_requested.set()
    thread.join(5)


def _connect(mirror):
    conn = socket.create_connection(("127.0.0.1", mirror.port), timeout=5)
    return conn


def _recv_exact(conn, size):
    chunks = []
    remaining = size
    while remaining:
        chunk = conn.recv(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def test_create_mirror_defaults():
    mirror = create_mirror()
    assert mirror.port == MIRROR_PORT
    assert mirror.tar_path == DEFAULT_MIRROR_TAR_PATH
    assert mirror.mirror is None


def test_create_mirror_uses_given_settings(tmp_path):
    tar_path = str(tmp_path / "x.tar.gz")
    mirror = create_mirror(9999, str(tmp_path), tar_path)
    assert (mirror.port, mirror.root, mirror.tar_path) == (9999, str(tmp_path), tar_path)


def test_findfile_returns_path(running_mirror, tree):
    with _connect(running_mirror) as conn:
        conn.sendall(b"findfile notes.txt")
        reply = conn.recv(4096).decode()
    assert reply == f"{tree}/docs/notes.txt"


def test_findfile_missing(running_mirror):
    with _connect(running_mirror) as conn:
        conn.sendall(b"findfile absent.txt")
        assert conn.recv(4096) == b"File not found"


def test_unknown_command(running_mirror):
    with _connect(running_mirror) as conn:
        conn.sendall(b"bogus")
        assert conn.recv(4096) == b"Unknown command"


def test_invalid_size_range(running_mirror):
    with _connect(running_mirror) as conn:
        conn.sendall(b"sgetfiles 10 1")
        assert conn.recv(4096) == b"Invalid size range"


def test_never_redirects(running_mirror):
    replies = []
    for _ in range(10):
        with _connect(running_mirror) as conn:
            conn.sendall(b"bogus")
            replies.append(conn.recv(4096))
    assert all(reply == b"Unknown command" for reply in replies)
    assert running_mirror.connection_count == 10


def test_getftar_transfers_tarball(running_mirror, tree, tmp_path):
    with _connect(running_mirror) as conn:
        conn.sendall(b"getftar notes.txt")
        size = int(conn.recv(32).decode())
        conn.sendall(b"ACK")
        data = _recv_exact(conn, size)
    assert len(data) == size
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as archive:
        members = archive.getmembers()
        assert len(members) == 1
        extracted = archive.extractfile(members[0]).read()
    assert extracted == b"hello mirror"
    assert members[0].name.endswith("docs/notes.txt")
    assert not (tmp_path / "out.tar.gz").exists()


def test_getfiles_by_extension(running_mirror):
    with _connect(running_mirror) as conn:
        conn.sendall(b"getfiles jpg")
        size = int(conn.recv(32).decode())
        conn.sendall(b"ACK")
        data = _recv_exact(conn, size)
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as archive:
        names = archive.getnames()
    assert len(names) == 1
    assert names[0].endswith("image.jpg")


def test_getfiles_no_match(running_mirror):
    with _connect(running_mirror) as conn:
        conn.sendall(b"getfiles pdf")
        assert conn.recv(4096) == b"No file found"


def test_main_reports_bind_failure(capsys):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
        blocker.bind(("", 0))
        blocker.listen(1)
        port = blocker.getsockname()[1]
        result = main(["--port", str(port)])
    assert result == 1
    assert "bind failed" in capsys.readouterr().out


def test_main_rejects_bad_port():
    with pytest.raises(SystemExit) as excinfo:
        main(["--port", "notaport"])
    assert excinfo.value.code == 2