#!/usr/bin/env python3
"""
Verify that project version in pyproject.toml matches flowctl_core.__version__.
Usage: python scripts/check_version_sync.py [pkg_import]
Default pkg_import = "flowctl_core"
"""
from __future__ import annotations
import sys
import pathlib
import importlib

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # Python 3.9–3.10
    import tomli as tomllib  # type: ignore[no-redef]


def main(argv: list[str]) -> int:
    pkg_import = argv[1] if len(argv) > 1 else "flowctl_core"

    root = pathlib.Path(__file__).resolve().parent.parent
    with open(root / "pyproject.toml", "rb") as f:
        ver_toml = tomllib.load(f)["project"]["version"]

    # import package from src/
    sys.path.insert(0, str(root / "src"))
    ver_pkg = getattr(importlib.import_module(pkg_import), "__version__", None)

    if ver_toml != ver_pkg:
        print(f"Version mismatch: pyproject={ver_toml} != package={ver_pkg}", file=sys.stderr)
        return 1

    print(f"Version OK: {ver_toml}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
