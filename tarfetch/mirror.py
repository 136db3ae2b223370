"""Mirror file server: answers the same commands as the main server.

The mirror never redirects connections. It writes its temporary tarball
to a path of its own, so it can run next to the main server.
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence

from tarfetch.server import MIRROR_PORT, FileServer

DEFAULT_MIRROR_TAR_PATH = "/tmp/mirror_temp.tar.gz"


def create_mirror(
    port: int = MIRROR_PORT,
    root: str | None = None,
    tar_path: str = DEFAULT_MIRROR_TAR_PATH,
) -> FileServer:
    """Return a server that handles every connection itself and never redirects."""
    return FileServer(port, root, tar_path, mirror=None)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the mirror server from the command line."""
    parser = argparse.ArgumentParser(
        description="Serve file searches as tarballs (mirror)."
    )
    parser.add_argument("--port", type=int, default=MIRROR_PORT)
    parser.add_argument(
        "--root", default=None, help="directory to search (default: home)"
    )
    parser.add_argument("--tar-path", default=DEFAULT_MIRROR_TAR_PATH)
    args = parser.parse_args(argv)
    mirror = create_mirror(args.port, args.root, args.tar_path)
    try:
        mirror.serve_forever()
    except KeyboardInterrupt:
        return 0
    except OSError as error:
        print(f"bind failed: {error}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())