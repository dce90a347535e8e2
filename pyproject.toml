[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ormkit"
version = "0.1.0"
description = "A small typed query builder and repository layer for SQL databases, with JSON column helpers for MySQL, PostgreSQL and SQLite."
requires-python = ">=3.10"
dependencies = []
keywords = ["orm", "sql", "query-builder", "repository", "sqlite", "json"]
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
    "Topic :: Database :: Front-Ends",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["ormkit"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
