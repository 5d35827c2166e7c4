[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tileworld"
version = "0.1.0"
description = "Game logic and state for a tile-based multiplayer role-playing game: wire protocol, sector grid, game events, user storage and client/server world state"
requires-python = ">=3.10"
dependencies = []
keywords = ["game", "mmorpg", "server", "protocol", "tile", "sector"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Games/Entertainment :: Role-Playing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tileworld"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
