"""Automation sessions for the cabinet quoter (src layout)."""
from __future__ import annotations

import pathlib

import nox

PYTHON_VERSION = "3.11"
SRC_DIR = "src"
TESTS_DIR = "tests"
PACKAGE_IMPORT = "cabinet_quoter"

nox.options.sessions = ("lint", "typecheck", "tests")


def install_project(session: nox.Session) -> None:
    """Install the package in editable mode with its test extra."""
    session.install("-e", ".[test]")


@nox.session(python=PYTHON_VERSION)
def lint(session: nox.Session) -> None:
    """Run Ruff over the package and its tests."""
    session.install("ruff")
    session.run("ruff", "check", SRC_DIR, TESTS_DIR)


@nox.session(python=PYTHON_VERSION)
def typecheck(session: nox.Session) -> None:
    """Type-check the package with Mypy."""
    install_project(session)
    session.install("mypy", "pandas-stubs", "types-requests")
    session.run("mypy", str(pathlib.Path(SRC_DIR, PACKAGE_IMPORT)))


@nox.session(python=PYTHON_VERSION)
def tests(session: nox.Session) -> None:
    """Run pytest under coverage, restricted to the package sources."""
    install_project(session)
    coverage_source = pathlib.Path(SRC_DIR, PACKAGE_IMPORT)
    session.run(
        "coverage",
        "run",
        "--source",
        str(coverage_source),
        "-m",
        "pytest",
        *session.posargs,
    )
    session.run("coverage", "report", "--show-missing")


@nox.session(python=PYTHON_VERSION)
def smoke(session: nox.Session) -> None:
    """Exercise the installed command line entry point."""
    install_project(session)
    session.run(
        "cabinet-quoter",
        "eval",
        "(width/1000*height/1000)*mat_rate_per_sqm",
        "--var",
        "width=600",
        "--var",
        "height=720",
        "--var",
        "mat_rate_per_sqm=85",
    )
    session.run("cabinet-quoter", "print-env")
