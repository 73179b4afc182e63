[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "evidencekeeper"
version = "1.2.0"
description = "Local SQLite evidence store with tagging, configuration and layout helpers for security operations"
requires-python = ">=3.10"
dependencies = []
keywords = ["evidence", "security", "sqlite", "tags", "operations", "migrations"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Information Technology",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Security",
    "Topic :: Database",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["evidencekeeper"]

[tool.pytest.ini_options]
addopts = "-ra"
