[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "transferd"
version = "1.0.0"
description = "A small REST service that keeps account balances and moves money between accounts."
requires-python = ">=3.11"
keywords = ["accounts", "transfers", "ledger", "rest", "flask", "redis", "postgresql"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
    "Topic :: Office/Business :: Financial :: Accounting",
]
dependencies = [
    "flask>=2.0",
    "werkzeug>=2.0",
    "sqlalchemy>=2.0",
    "redis",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
transferd = "transferd.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["transferd"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
