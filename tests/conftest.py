import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'rulebook' and tests/helpers importable as 'helpers'
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

from helpers.factories import write_yaml_file  # noqa: E402


@pytest.fixture(autouse=True)
def rulebook_home(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the global scope at an empty directory and drop env overrides."""
    for key in list(os.environ):
        if key.startswith("RULEBOOK_"):
            monkeypatch.delenv(key, raising=False)
    home = tmp_path_factory.mktemp("rulebook-home")
    monkeypatch.setenv("RULEBOOK_HOME", str(home))
    return home


@pytest.fixture
def rule_tree(tmp_path: Path):
    """Factory writing ``{relative file: [rule docs]}`` under ``<root>/rules``.

    Returns the project root.
    """

    def _build(
        files: Dict[str, List[Dict[str, Any]]],
        *,
        root: Optional[Path] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> Path:
        base = root or tmp_path
        rules_dir = base / "rules"
        rules_dir.mkdir(parents=True, exist_ok=True)
        for relative, docs in files.items():
            write_yaml_file(rules_dir / relative, {"rules": docs})
        if config is not None:
            write_yaml_file(rules_dir / ".rulebook-config.yaml", config)
        return base

    return _build
