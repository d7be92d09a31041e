[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "usertcp"
version = "0.1.0"
description = "A user-space TCP/IP stack that reads IPv4 packets from a TUN device and decodes TCP segments"
requires-python = ">=3.10"
dependencies = []
keywords = ["tcp", "ip", "tun", "networking", "packet", "protocol"]
classifiers = [
    "Development Status :: 2 - Pre-Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
usertcp = "usertcp.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["usertcp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
