import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13"]

# Packages with C extensions that must be rebuilt per Python version.
# Poetry's wheel cache can serve a .so compiled for the wrong interpreter.
_C_EXT_PACKAGES = ["psycopg2-binary"]


def _install(session: nox.Session) -> None:
    """Install the project with the test extra into the nox virtualenv."""
    session.run("poetry", "install", "--all-extras", external=True)
    session.run(
        "pip",
        "install",
        "--force-reinstall",
        "--no-cache-dir",
        *_C_EXT_PACKAGES,
    )


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Run the full marketplace suite across Python versions."""
    _install(session)
    session.run("pytest", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def tests_domain(session: nox.Session) -> None:
    """Aggregate, value object and state machine tests only."""
    _install(session)
    session.run("pytest", "tests/marketplace/domain/", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def tests_flows(session: nox.Session) -> None:
    """Command handlers, cross-view sync, BDD scenarios and the HTTP surface."""
    _install(session)
    session.run(
        "pytest",
        "tests/marketplace/application/",
        "tests/marketplace/bdd/",
        "tests/marketplace/integration/",
        *session.posargs,
    )
