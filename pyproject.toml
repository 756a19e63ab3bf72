[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sylar"
version = "0.1.0"
description = "Building blocks for network servers: a chunked byte buffer, socket addresses, typed YAML configuration, descriptor bookkeeping and HTTP messages"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
    "psutil",
]
keywords = ["bytearray", "serialization", "varint", "zigzag", "address", "config", "yaml", "http"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sylar"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
