[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "launchcore"
version = "0.1.0"
description = "Search core for application launchers: item indexing, fuzzy matching, usage-based ranking and trigger/global/fallback query handlers"
requires-python = ">=3.10"
keywords = ["launcher", "fuzzy", "search", "index", "levenshtein", "query", "ranking"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Utilities",
    "Typing :: Typed",
]
dependencies = [
    "platformdirs",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["launchcore"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
