"""Tests for the Autoloader façade and the module-level API."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

import classmap
from classmap.autoloader import Autoloader, resolve_options
from classmap.config import ScanOptions
from classmap.exceptions import ConfigError, StaleEnvironmentError
from classmap.loader.host import AutoloadStack, default_host


class RejectingHost:
    """Loader host that refuses every registration."""

    def register(self, resolver, prepend: bool = False) -> bool:
        return False

    def unregister(self, resolver) -> bool:
        return False

    def require_once(self, path) -> bool:
        return True


class TestActivate:
    def test_activate_registers_resolver(
        self, php_project: Path, stack: AutoloadStack, executed: list[Path]
    ) -> None:
        loader = Autoloader(host=stack)

        assert loader.activate(php_project)
        assert loader.list_active() == [
            {"directory": os.path.realpath(php_project), "symbol_count": 4, "class_count": 4}
        ]
        assert stack.load("App\\Models\\User")
        assert executed == [Path(os.path.realpath(php_project / "Models" / "User.php"))]

    def test_list_active_reports_symbol_count(self, php_project: Path, stack: AutoloadStack) -> None:
        loader = Autoloader(host=stack)
        loader.activate(php_project, exclude=["Enums/*"])

        (entry,) = loader.list_active()

        assert entry["directory"] == os.path.realpath(php_project)
        assert entry["symbol_count"] == 3

    def test_case_insensitive_by_default(self, php_project: Path, stack: AutoloadStack) -> None:
        Autoloader(host=stack).activate(php_project)

        assert stack.load("app\\enums\\status")

    def test_case_sensitive(self, php_project: Path, stack: AutoloadStack) -> None:
        Autoloader(host=stack).activate(php_project, case_sensitive=True)

        assert not stack.load("app\\enums\\status")
        assert stack.load("App\\Enums\\Status")

    def test_options_as_mapping(self, php_project: Path, stack: AutoloadStack) -> None:
        loader = Autoloader(host=stack)

        assert loader.activate(php_project, {"exclude": ["Models/*"]})
        assert loader.list_active()[0]["symbol_count"] == 2

    def test_unknown_option(self, php_project: Path, stack: AutoloadStack) -> None:
        with pytest.raises(ConfigError):
            Autoloader(host=stack).activate(php_project, {"recursive": True})

    def test_prepend(self, php_project: Path, stack: AutoloadStack) -> None:
        def existing(name: str) -> bool:
            return False

        stack.register(existing)
        Autoloader(host=stack).activate(php_project, prepend=True)

        assert stack.resolvers[1] is existing
        assert stack.resolvers[0] is not existing

    def test_missing_directory(
        self, tmp_path: Path, stack: AutoloadStack, capsys: pytest.CaptureFixture[str]
    ) -> None:
        loader = Autoloader(host=stack)

        assert not loader.activate(tmp_path / "missing")
        assert loader.list_active() == []
        assert stack.resolvers == ()
        assert "Warning" in capsys.readouterr().err

    def test_empty_directory(
        self, write_tree, stack: AutoloadStack, capsys: pytest.CaptureFixture[str]
    ) -> None:
        root = write_tree({"notes.txt": "class Nope {}\n"})

        assert not Autoloader(host=stack).activate(root)
        assert stack.resolvers == ()
        assert "No declarations found" in capsys.readouterr().err

    def test_host_rejection(self, php_project: Path, capsys: pytest.CaptureFixture[str]) -> None:
        loader = Autoloader(host=RejectingHost())

        assert not loader.activate(php_project)
        assert loader.list_active() == []
        err = capsys.readouterr().err
        assert "Warning" in err
        assert "Failed to register" in err

    def test_include_static(
        self, php_project: Path, stack: AutoloadStack, executed: list[Path]
    ) -> None:
        assert Autoloader(host=stack).activate(php_project, include_static=True)

        assert executed == [Path(os.path.realpath(php_project / "helpers.php"))]

    def test_static_only_tree(self, write_tree, stack: AutoloadStack, executed: list[Path]) -> None:
        root = write_tree({"functions.php": "<?php\nfunction f() { return 1; }\n"})
        loader = Autoloader(host=stack)

        assert loader.activate(root, include_static=True)
        assert loader.list_active()[0]["symbol_count"] == 0
        assert len(executed) == 1

    def test_scan_is_cached_across_activations(self, php_project: Path, stack: AutoloadStack) -> None:
        loader = Autoloader(host=stack)

        loader.activate(php_project)
        loader.activate(php_project)

        assert loader.builder.cache_size == 1
        assert len(loader.list_active()) == 2

    def test_concurrent_activations(self, php_project: Path, stack: AutoloadStack) -> None:
        loader = Autoloader(host=stack)

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(lambda _: loader.activate(php_project), range(8)))

        assert all(results)
        assert len(loader.list_active()) == 8
        assert len(stack.resolvers) == 8
        assert loader.builder.cache_size == 1


class TestUnregister:
    def test_unregister_all(self, php_project: Path, stack: AutoloadStack) -> None:
        loader = Autoloader(host=stack)
        loader.activate(php_project)
        loader.activate(php_project, case_sensitive=True)

        assert loader.unregister_all() == 2
        assert stack.resolvers == ()
        assert loader.list_active() == []
        assert not stack.load("App\\Models\\User")

    def test_counts_only_actual_removals(self, php_project: Path, stack: AutoloadStack) -> None:
        loader = Autoloader(host=stack)
        loader.activate(php_project)
        loader.activate(php_project)
        stack.unregister(stack.resolvers[0])

        assert loader.unregister_all() == 1

    def test_unregister_leaves_foreign_resolvers(self, php_project: Path, stack: AutoloadStack) -> None:
        def foreign(name: str) -> bool:
            return False

        stack.register(foreign)
        loader = Autoloader(host=stack)
        loader.activate(php_project)

        loader.unregister_all()

        assert stack.resolvers == (foreign,)

    def test_clear_cache_keeps_resolvers(self, php_project: Path, stack: AutoloadStack) -> None:
        loader = Autoloader(host=stack)
        loader.activate(php_project)

        loader.clear_cache()

        assert loader.builder.cache_size == 0
        assert len(loader.list_active()) == 1
        assert stack.load("App\\Models\\User")


class TestRender:
    def test_table_uses_absolute_paths(self, php_project: Path) -> None:
        table = Autoloader().render(php_project, fmt="table", relative=True)

        assert isinstance(table, dict)
        assert table["App\\Models\\User"] == os.path.realpath(php_project / "Models" / "User.php")

    def test_table_paths_exist_and_are_readable(self, php_project: Path) -> None:
        table = Autoloader().render(php_project, fmt="table", relative=False)

        assert table
        for path in table.values():
            assert os.path.isabs(path)
            assert os.path.isfile(path)
            assert os.access(path, os.R_OK)

    def test_source(self, php_project: Path) -> None:
        source = Autoloader().render(php_project)

        assert isinstance(source, str)
        assert "__DIR__ . '/Models/User.php'" in source

    def test_unknown_format(self, php_project: Path) -> None:
        with pytest.raises(ConfigError):
            Autoloader().render(php_project, fmt="xml")

    def test_missing_directory(self, tmp_path: Path) -> None:
        assert Autoloader().render(tmp_path / "missing") is None

    def test_build_mapping(self, php_project: Path) -> None:
        loader = Autoloader()

        mapping = loader.build_mapping(php_project)

        assert mapping is not None
        assert len(mapping) == 4

    def test_build_mapping_empty(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty"
        empty.mkdir()

        assert Autoloader().build_mapping(empty) is None

    def test_render_does_not_register(self, php_project: Path, stack: AutoloadStack) -> None:
        loader = Autoloader(host=stack)

        loader.render(php_project)

        assert stack.resolvers == ()
        assert loader.list_active() == []


class TestEnvironment:
    def test_stale_interpreter(self, php_project: Path, stack: AutoloadStack) -> None:
        loader = Autoloader(host=stack, minimum_python=(99, 0))

        with pytest.raises(StaleEnvironmentError):
            loader.activate(php_project)
        with pytest.raises(StaleEnvironmentError):
            loader.render(php_project)
        assert stack.resolvers == ()

    def test_check_is_memoized(self, php_project: Path) -> None:
        loader = Autoloader()
        loader.check_environment()

        loader._minimum_python = (99, 0)

        loader.check_environment()


class TestResolveOptions:
    def test_none(self) -> None:
        assert resolve_options(None) == ScanOptions()

    def test_overrides_apply_on_top(self) -> None:
        options = resolve_options({"extensions": ".INC,php"}, {"prepend": True})

        assert options.extensions == ("inc", "php")
        assert options.prepend

    def test_rejects_other_types(self) -> None:
        with pytest.raises(ConfigError):
            resolve_options(["php"])  # type: ignore[arg-type]


class TestModuleApi:
    def test_activate_uses_default_host(self, php_project: Path) -> None:
        assert classmap.activate(php_project)

        assert len(default_host().resolvers) == 1
        assert classmap.list_active()[0]["symbol_count"] == 4
        assert default_host().load("App\\Contracts\\Arrayable")

        assert classmap.unregister_all() == 1
        assert default_host().resolvers == ()

    def test_default_autoloader_is_shared(self) -> None:
        assert classmap.default_autoloader() is classmap.default_autoloader()

    def test_render_and_build_mapping(self, php_project: Path) -> None:
        assert isinstance(classmap.render(php_project), str)
        assert classmap.build_mapping(php_project) == classmap.render(php_project, fmt="table")

        classmap.clear_cache()

        assert classmap.default_autoloader().builder.cache_size == 0
