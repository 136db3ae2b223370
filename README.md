# tarfetch

tarfetch has three parts that talk to each other over plain TCP:

- a file server;
- a mirror server;
- an interactive client.

The servers search a directory tree. By default this is the home directory of the user running them. Matching files are packed into a `.tar.gz` archive and sent to the client. The package uses only the standard library.

## Installation

```
pip install .
```

To install with the test dependencies:

```
pip install .[test]
```

## Running

### Main server

Start the main server:

```
tarfetch-server
```

| Option | Default | Meaning |
| --- | --- | --- |
| `--port` | 8080 | Port to listen on |
| `--root` | home directory | Directory to search |
| `--tar-path` | `/tmp/temp.tar.gz` | Temporary archive file |
| `--mirror-host` | 127.0.0.1 | Host that connections are redirected to |
| `--mirror-port` | 8081 | Port that connections are redirected to |

### Mirror

Start the mirror:

```
tarfetch-mirror
```

| Option | Default | Meaning |
| --- | --- | --- |
| `--port` | 8081 | Port to listen on |
| `--root` | home directory | Directory to search |
| `--tar-path` | `/tmp/mirror_temp.tar.gz` | Temporary archive file |

The mirror answers the same commands as the main server. It never redirects a connection.

### Client

Start the client:

```
tarfetch
```

| Option | Default |
| --- | --- |
| `--host` | 127.0.0.1 |
| `--port` | 8080 |

### Connections and redirects

Each server handles every connection it keeps in a thread of its own.

The main server counts its connections, starting from 1. It keeps or redirects each connection as follows:

- It handles connections 1 to 4 itself.
- It redirects connections 5 to 8 to the mirror.
- After that, it redirects only the even-numbered connections.

A redirected connection receives `REDIRECT <host> <port>` and is then closed. The client connects to the mirror at that address and sends the same command again.

## Commands

| Command | Meaning |
| --- | --- |
| `findfile <filename>` | Report the path of the first regular file with that name |
| `sgetfiles <size1> <size2>` | Archive files whose size in bytes lies in `[size1, size2]` |
| `dgetfiles <date1> <date2>` | Archive files modified between local midnight at the start of `date1` and local midnight at the start of `date2` |
| `getfiles <ext1> [ext2] ... [ext6]` | Archive files whose last extension matches one of the given ones (case-sensitive) |
| `getftar <filename>` | Archive the first regular file with that name |
| `help` | Show usage; nothing is sent to the server |
| `quit` | Leave the client |

The search follows symbolic links. It skips anything it cannot read. A single search collects at most 1000 files.

### Checks made by the client

The client checks each command before sending it:

- File names must not contain `/`.
- Sizes must be strings of decimal digits, and `size1 <= size2`.
- Dates must have the form `YYYY-MM-DD`, with:
  - a year from 1900 to 2100;
  - a month from 1 to 12;
  - a day from 1 to 31.
- Extensions must be 1 to 10 ASCII letters or digits.

### Where archives are saved

The client saves each archive in the current directory. The file name depends on the command:

| Command | File |
| --- | --- |
| `getftar` | `file.tar.gz` |
| `sgetfiles` | `sizefiles.tar.gz` |
| `dgetfiles` | `datefiles.tar.gz` |
| `getfiles` | `files.tar.gz` |

## Using it as a library

### Search helpers

The helpers in `tarfetch.search` can be used on their own:

```python
from tarfetch.search import find_file, files_by_extension, build_tar

path = find_file("/home/me", "notes.txt")          # None if nothing matches
matches = files_by_extension("/home/me", ["txt", "md"], 1000)
build_tar(matches, "/tmp/out.tar.gz")
```

The module also provides:

- `files_by_size`;
- `files_by_date`;
- `is_valid_date`;
- `date_to_timestamp`, which raises `ValueError` for a malformed date.

### Servers

`tarfetch.server.FileServer(port, root, tar_path, mirror)` runs a server through `serve_forever()`:

- It sets its `ready` event once it is listening.
- It returns once `stop_requested` is set.
- Passing port 0 picks a free port. `FileServer.port` then holds the port actually used.
- With `mirror=None` it handles every connection itself.

`tarfetch.mirror.create_mirror(port, root, tar_path)` builds such a non-redirecting server.

### Client

`tarfetch.client.Client(host, port)` is a context manager:

- `execute(command)` returns the outcome as text, follows redirects and saves archives into its `download_dir`.
- It raises `ConnectionError` when the connection is lost.

`tarfetch.client.validate_command` raises `CommandError` for a malformed command. It returns `False` for `help`.

## Limitations

- There is no authentication and no encryption.
- Anyone who can reach the port can search and download files under the served directory.
- A file transfer ends at the first read shorter than 4096 bytes, not at a declared length. On a slow network the client may save a truncated archive.