[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hellorpc"
version = "0.1.0"
description = "A small framed RPC framework over TCP with client proxies, services and a connection pool"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["rpc", "tcp", "framing", "connection-pool", "client", "server"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
hellorpc-client = "hellorpc.cli:client_main"
hellorpc-server = "hellorpc.cli:server_main"

[tool.hatch.build.targets.wheel]
packages = ["hellorpc"]

[tool.pytest.ini_options]
addopts = "-ra"
