from pathlib import Path

import toml

DISTRIBUTION_NAME = "dyad-analysis"


class ProjectRootNotFound(Exception):
    pass


def _declares_project(pyproject: Path, name: str) -> bool:
    try:
        data = toml.load(pyproject)
    except (OSError, toml.TomlDecodeError):
        return False
    return bool(data.get("project", {}).get("name") == name)


def get_project_root_dir(
    start: Path | None = None, name: str = DISTRIBUTION_NAME
) -> Path:
    """Look for the pyproject.toml of project `name` above `start`.

    pyproject.toml files belonging to other projects (for instance one
    enclosing a virtualenv the package is installed into) are skipped.
    """
    current = start if start is not None else Path(__file__).parent

    # Walk up until we hit the filesystem root
    while True:
        candidate = current / "pyproject.toml"
        if candidate.exists() and _declares_project(candidate, name):
            return current

        parent = current.parent
        if parent == current:
            raise ProjectRootNotFound

        current = parent
