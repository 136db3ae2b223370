[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "tarfetch"
version = "0.1.0"
description = "A TCP file server, mirror and interactive client that search a directory tree and deliver matching files as tar.gz archives"
requires-python = ">=3.10"
dependencies = []
keywords = ["file server", "tar", "mirror", "socket", "search"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: File Transfer Protocol (FTP)",
    "Topic :: System :: Archiving",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tarfetch-server = "tarfetch.server:main"
tarfetch-mirror = "tarfetch.mirror:main"
tarfetch = "tarfetch.client:main"

[tool.setuptools.packages.find]
include = ["tarfetch*"]

[tool.pytest.ini_options]
addopts = "-ra"
