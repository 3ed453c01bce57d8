"""Package version, taken from pyproject.toml in a source checkout."""

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

_PYPROJECT = Path(__file__).resolve().parent.parent / "pyproject.toml"


def get_version() -> str:
    if _PYPROJECT.exists():
        with _PYPROJECT.open("rb") as fh:
            return tomllib.load(fh)["project"]["version"]
    try:
        return version("habitflow")
    except PackageNotFoundError:
        return "unknown"


__version__: str = get_version()
