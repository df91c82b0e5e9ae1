"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

import classmap.autoloader
import classmap.config
import classmap.loader.host
from classmap.loader.host import AutoloadStack

WriteTree = Callable[[dict[str, str]], Path]


@pytest.fixture(autouse=True)
def isolated_config(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the user's global config and CLASSMAP_* variables out of tests."""
    global_dir = tmp_path_factory.mktemp("global-config")
    monkeypatch.setattr(classmap.config, "_GLOBAL_CONFIG_PATH", global_dir / "config.toml")
    for key in (
        "CLASSMAP_EXTENSIONS",
        "CLASSMAP_EXCLUDE",
        "CLASSMAP_CASE_SENSITIVE",
        "CLASSMAP_FOLLOW_SYMLINKS",
        "CLASSMAP_INCLUDE_STATIC",
        "CLASSMAP_RELATIVE",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def fresh_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give every test its own process-wide autoloader and autoload stack."""
    monkeypatch.setattr(classmap.autoloader, "_default", None)
    monkeypatch.setattr(classmap.loader.host, "_default_host", None)


@pytest.fixture
def write_tree(tmp_path: Path) -> WriteTree:
    """Return a helper that writes {relative path: content} below tmp_path/src."""
    root = tmp_path / "src"

    def _write(files: dict[str, str]) -> Path:
        root.mkdir(exist_ok=True)
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return root

    return _write


@pytest.fixture
def php_project(write_tree: WriteTree) -> Path:
    """A small namespaced PHP tree with one of each declaration kind."""
    return write_tree({
        "Models/User.php": (
            "<?php\n"
            "namespace App\\Models;\n\n"
            "use App\\Contracts\\Arrayable;\n\n"
            "class User implements Arrayable\n"
            "{\n"
            "    use HasName;\n\n"
            "    public function toArray(): array { return []; }\n"
            "}\n"
        ),
        "Contracts/Arrayable.php": (
            "<?php\n"
            "namespace App\\Contracts;\n\n"
            "interface Arrayable\n"
            "{\n"
            "    public function toArray(): array;\n"
            "}\n"
        ),
        "Models/HasName.php": (
            "<?php\n"
            "namespace App\\Models;\n\n"
            "trait HasName\n"
            "{\n"
            "    public string $name = '';\n"
            "}\n"
        ),
        "Enums/Status.php": (
            "<?php\n"
            "namespace App\\Enums;\n\n"
            "enum Status: string\n"
            "{\n"
            "    case Active = 'active';\n"
            "    case Inactive = 'inactive';\n"
            "}\n"
        ),
        "helpers.php": (
            "<?php\n"
            "namespace App;\n\n"
            "function helper(): string\n"
            "{\n"
            "    return 'help';\n"
            "}\n"
        ),
        "README.md": "# not php\n",
    })


@pytest.fixture
def executed() -> list[Path]:
    """Paths passed to the executor of the ``stack`` fixture."""
    return []


@pytest.fixture
def stack(executed: list[Path]) -> AutoloadStack:
    """An autoload stack whose executor records included files."""
    return AutoloadStack(executor=executed.append)
