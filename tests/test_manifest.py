from __future__ import annotations

import pytest

from pybuilddeps.errors import ManifestError
from pybuilddeps.manifest import (
    parse_external_module_tsv,
    parse_external_module_yaml,
    parse_internal_module_list,
    read_external_module_map,
    read_internal_module_list,
)
from pybuilddeps.model import ExternalModule


def test_read_tsv_manifest():
    content = "dist1\tpkg1.pkg2\tmod\tpy\ndist2\t\tmod\tso\ndist3\tpkg\t\tpy"
    got = parse_external_module_tsv(content.splitlines(), "pre_")
    assert dict(got) == {
        "pkg1.pkg2.mod": ExternalModule(
            dist="dist1",
            pkg_path="pkg1/pkg2",
            module="mod",
            target="@pre_dist1//:pkg",
            kind="py",
        ),
        "mod": ExternalModule(
            dist="dist2",
            pkg_path="",
            module="mod",
            target="@pre_dist2//:pkg",
            kind="so",
        ),
        "pkg": ExternalModule(
            dist="dist3",
            pkg_path="pkg",
            module="",
            target="@pre_dist3//:pkg",
            kind="py",
        ),
    }


def test_empty_tsv_manifest():
    assert dict(parse_external_module_tsv([])) == {}


def test_tsv_comments_and_blank_lines():
    lines = ["# GENERATED FILE - DO NOT EDIT!", "", "attrs\tattr\t\tpy", ""]
    got = parse_external_module_tsv(lines)
    assert list(got) == ["attr"]
    assert got["attr"].target == "@attrs//:pkg"


def test_tsv_manifest_is_read_only():
    got = parse_external_module_tsv(["attrs\tattr\t\tpy"])
    with pytest.raises(TypeError):
        got["other"] = got["attr"]


def test_duplicate_same_kind_is_fatal():
    lines = ["dist1\tpkg\tmod\tpy", "dist2\tpkg\tmod\tpy"]
    with pytest.raises(ManifestError, match="duplicate"):
        parse_external_module_tsv(lines)


def test_duplicate_different_kind_keeps_first():
    lines = ["dist1\tpkg\tmod\tso", "dist2\tpkg\tmod\tpy"]
    got = parse_external_module_tsv(lines)
    assert got["pkg.mod"].dist == "dist1"
    assert got["pkg.mod"].kind == "so"


@pytest.mark.parametrize(
    "line",
    [
        "dist\tpkg\tmod",
        "dist\tpkg\tmod\tpy\textra",
        "dist\tpkg\tmod\tdll",
        "dist\t\t\tpy",
    ],
)
def test_malformed_tsv_record_is_fatal(line):
    with pytest.raises(ManifestError):
        parse_external_module_tsv([line], source="modules.tsv")


def test_yaml_manifest():
    text = "manifest:\n  modules_mapping:\n    yaml: PyYAML\n    google.protobuf: protobuf\n"
    got = parse_external_module_yaml(text)
    assert dict(got) == {
        "yaml": ExternalModule(dist="PyYAML"),
        "google.protobuf": ExternalModule(dist="protobuf"),
    }
    assert got["yaml"].target == ""


def test_yaml_manifest_keys_stay_strings():
    text = (
        "manifest:\n"
        "  modules_mapping:\n"
        "    on: pkg_on\n"
        "    no: pkg_no\n"
        "    1.0: version_one\n"
        "    yes_module: 'yes'\n"
    )
    got = parse_external_module_yaml(text)
    assert sorted(got) == ["1.0", "no", "on", "yes_module"]
    assert got["on"].dist == "pkg_on"
    assert got["yes_module"].dist == "yes"


@pytest.mark.parametrize(
    "text",
    [
        "",
        "other: {}\n",
        "manifest:\n  pip_repository: pip\n",
        "manifest:\n  modules_mapping: [a, b]\n",
        "manifest: [\n",
    ],
)
def test_malformed_yaml_manifest(text):
    with pytest.raises(ManifestError):
        parse_external_module_yaml(text)


def test_read_external_module_map_by_suffix(tmp_path):
    tsv = tmp_path / "modules.tsv"
    tsv.write_text("PyYAML\tyaml\t\tpy\n")
    yml = tmp_path / "modules.yaml"
    yml.write_text("manifest:\n  modules_mapping:\n    yaml: PyYAML\n")

    assert read_external_module_map(tsv, "pip_")["yaml"].target == "@pip_PyYAML//:pkg"
    assert read_external_module_map(yml, "pip_")["yaml"].target == ""


def test_read_external_module_map_is_cached(tmp_path):
    tsv = tmp_path / "modules.tsv"
    tsv.write_text("PyYAML\tyaml\t\tpy\n")
    assert read_external_module_map(tsv) is read_external_module_map(tsv)


def test_read_external_module_map_missing(tmp_path):
    with pytest.raises(ManifestError) as excinfo:
        read_external_module_map(tmp_path / "missing.tsv")
    assert "missing.tsv" in str(excinfo.value)


def test_internal_module_list():
    lines = ["# stdlib", "os\n", "  sys  \n", "\n", "os.path\n"]
    assert parse_internal_module_list(lines) == frozenset({"os", "sys", "os.path"})


def test_read_internal_module_list(tmp_path):
    path = tmp_path / "stdlib.txt"
    path.write_text("# comment\nos\njson\n")
    assert read_internal_module_list(path) == frozenset({"os", "json"})


def test_read_internal_module_list_missing(tmp_path):
    with pytest.raises(ManifestError):
        read_internal_module_list(tmp_path / "missing.txt")
