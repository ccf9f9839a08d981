from __future__ import annotations

import logging

import pytest

from pybuilddeps.model import Module, ParsedModule
from pybuilddeps.python.package import (
    PackageContext,
    analyze_package,
    find_sub_packages,
    load_package,
)


def _module(spec: str, name: str, *imports: str) -> Module:
    pkg_path = spec.rsplit(".", 1)[0].replace(".", "/") if name else spec.replace(".", "/")
    return Module(
        import_spec=spec,
        pkg_path=pkg_path,
        name=name,
        filename=f"{name or '__init__'}.py",
        parsed=ParsedModule(imports=tuple(imports)),
    )


@pytest.fixture
def nested_package() -> PackageContext:
    modules = [
        _module("pkg1.pkg2", "", "pkg1", "pkg1.pkg2.subpkg1", "pkg1.pkg2.mod1"),
        _module(
            "pkg1.pkg2.mod1",
            "mod1",
            "pkg1",
            "pkg1.pkg2.subpkg1",
            "pkg1.pkg2.mod2",
            "pkg1.pkg2.sym1",
            "pkg1.pkg2.mod2.sym2",
        ),
        _module("pkg1.pkg2.mod2", "mod2", "pkg1.pkg2.subpkg2"),
    ]
    return PackageContext("pkg1/pkg2", modules, {"subpkg1", "subpkg2"})


def test_direct_in_package_deps(nested_package):
    for module in nested_package.modules.values():
        nested_package.process_imports(module)
    modules = nested_package.modules

    assert modules["pkg1.pkg2"].in_package_deps == {"pkg1.pkg2.mod1"}
    assert modules["pkg1.pkg2.mod1"].in_package_deps == {"pkg1.pkg2", "pkg1.pkg2.mod2"}
    assert modules["pkg1.pkg2.mod2"].in_package_deps == set()

    assert modules["pkg1.pkg2"].external_imports == ["pkg1", "pkg1.pkg2.subpkg1"]
    assert modules["pkg1.pkg2.mod1"].external_imports == ["pkg1", "pkg1.pkg2.subpkg1"]
    assert modules["pkg1.pkg2.mod2"].external_imports == ["pkg1.pkg2.subpkg2"]


def test_closure(nested_package):
    nested_package.analyze()
    modules = nested_package.modules

    assert modules["pkg1.pkg2"].in_package_deps == {"pkg1.pkg2.mod1", "pkg1.pkg2.mod2"}
    assert modules["pkg1.pkg2.mod1"].in_package_deps == {"pkg1.pkg2", "pkg1.pkg2.mod2"}
    assert modules["pkg1.pkg2.mod2"].in_package_deps == set()


def test_closure_never_contains_self_and_is_idempotent(nested_package):
    nested_package.analyze()
    before = {k: set(m.in_package_deps) for k, m in nested_package.modules.items()}
    for key, module in nested_package.modules.items():
        assert key not in module.in_package_deps
        nested_package.close(module)
    after = {k: set(m.in_package_deps) for k, m in nested_package.modules.items()}
    assert after == before


def test_closure_leaves_external_imports_alone(nested_package):
    for module in nested_package.modules.values():
        nested_package.process_imports(module)
    before = {k: list(m.external_imports) for k, m in nested_package.modules.items()}
    for module in nested_package.modules.values():
        nested_package.close(module)
    after = {k: list(m.external_imports) for k, m in nested_package.modules.items()}
    assert after == before


def test_root_closes_over_chain():
    modules = analyze_package(
        "pkg",
        {
            "__init__.py": ParsedModule(imports=("pkg.mod1",)),
            "mod1.py": ParsedModule(imports=("pkg.mod2",)),
            "mod2.py": ParsedModule(),
        },
    )
    by_spec = {m.import_spec: m for m in modules}
    assert [m.import_spec for m in modules] == ["pkg", "pkg.mod1", "pkg.mod2"]
    assert by_spec["pkg"].in_package_deps == {"pkg.mod1", "pkg.mod2"}


def test_mutual_imports_converge():
    modules = analyze_package(
        "pkg",
        {
            "a.py": ParsedModule(imports=("pkg.b",)),
            "b.py": ParsedModule(imports=("pkg.a.helper",)),
        },
    )
    a, b = modules
    assert a.in_package_deps == {"pkg.b"}
    assert b.in_package_deps == {"pkg.a"}


def test_three_module_cycle():
    modules = analyze_package(
        "",
        {
            "a.py": ParsedModule(imports=("b",)),
            "b.py": ParsedModule(imports=("c",)),
            "c.py": ParsedModule(imports=("a",)),
        },
    )
    deps = {m.import_spec: m.in_package_deps for m in modules}
    assert deps == {"a": {"b", "c"}, "b": {"a", "c"}, "c": {"a", "b"}}


def test_self_import_is_neither_dep_nor_external():
    (module,) = analyze_package("pkg", {"a.py": ParsedModule(imports=("pkg.a", "pkg.a.x"))})
    assert module.in_package_deps == set()
    assert module.external_imports == []


def test_subpackage_wins_over_root_symbol():
    modules = analyze_package(
        "pkg",
        {
            "__init__.py": ParsedModule(),
            "a.py": ParsedModule(imports=("pkg.sub", "pkg.symbol")),
        },
        sub_packages={"sub"},
    )
    a = modules[1]
    assert a.external_imports == ["pkg.sub"]
    assert a.in_package_deps == {"pkg"}


def test_init_at_python_root_is_skipped(caplog):
    with caplog.at_level(logging.WARNING):
        modules = analyze_package(
            "",
            {"__init__.py": ParsedModule(), "a.py": ParsedModule()},
        )
    assert [m.import_spec for m in modules] == ["a"]
    assert "__init__.py" in caplog.text


def test_non_python_files_are_ignored():
    modules = analyze_package("pkg", {"ext.so": ParsedModule(), "a.py": ParsedModule()})
    assert [m.filename for m in modules] == ["a.py"]


def test_duplicate_modules_rejected():
    with pytest.raises(ValueError):
        PackageContext("pkg", [_module("pkg.a", "a"), _module("pkg.a", "a")])


def test_load_package(make_tree, caplog):
    root = make_tree(
        {
            "pkg/__init__.py": "from pkg.good import thing\n",
            "pkg/good.py": "from . import sub\nimport requests\n",
            "pkg/bad.py": "def (:\n",
            "pkg/notes.txt": "not python",
            "pkg/sub/__init__.py": "",
            "pkg/data/readme.md": "no init here",
        }
    )
    with caplog.at_level(logging.WARNING):
        modules = load_package("pkg", root / "pkg")

    assert [m.import_spec for m in modules] == ["pkg", "pkg.good"]
    assert "bad.py" in caplog.text

    init, good = modules
    assert init.in_package_deps == {"pkg.good"}
    assert good.external_imports == ["pkg.sub", "requests"]


def test_find_sub_packages(make_tree):
    root = make_tree(
        {
            "pkg/a/__init__.py": "",
            "pkg/b/module.py": "",
            "pkg/c/__init__.py": "",
        }
    )
    assert find_sub_packages(root / "pkg") == ["a", "c"]
