"""Format parsers: one pure ``parse(raw_text, include_dev)`` per on-disk format."""

from depaudit.parsers import (
    go_mod,
    go_sum,
    npm_lock,
    package_json,
    pnpm_lock,
    poetry_lock,
    pyproject,
    requirements_txt,
    yarn_lock,
)

__all__ = [
    "go_mod",
    "go_sum",
    "npm_lock",
    "package_json",
    "pnpm_lock",
    "poetry_lock",
    "pyproject",
    "requirements_txt",
    "yarn_lock",
]
