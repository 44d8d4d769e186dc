import json
import os

import pytest

from pnpgen.errors import ManifestError
from pnpgen.resolver import ManifestResolver


def test_from_dict(tmp_path):
    resolver = ManifestResolver.from_dict({
        "seeds": ["a@1"],
        "packages": {
            "a@1": {
                "name": "a",
                "version": "1.0.0",
                "main": "index.js",
                "location": "node_modules/a",
                "dependencies": ["b@1"],
                "peerDependencies": {"react": "^16"},
            },
            "b@1": {"name": "b", "version": 2},
        },
    }, base_dir=str(tmp_path))

    assert resolver.seeds == ["a@1"]
    assert resolver.project_root == str(tmp_path)
    a = resolver.resolve_strict("a@1")
    assert (a.name, a.version, a.main) == ("a", "1.0.0", "index.js")
    assert a.peer_dependencies == {"react": "^16"}
    assert a.reference.location == os.path.join(str(tmp_path), "node_modules/a")
    assert a.reference.dependencies == ["b@1"]

    b = resolver.resolve_strict("b@1")
    assert b.version == "2"
    assert b.reference.location is None
    assert resolver.resolve_strict("c@1") is None


def test_project_is_relative_to_base_dir(tmp_path):
    resolver = ManifestResolver.from_dict({"project": "app", "packages": {"a@1": {"name": "a", "version": "1", "location": "x"}}}, base_dir=str(tmp_path))
    assert resolver.project_root == str(tmp_path / "app")
    assert resolver.resolve_strict("a@1").reference.location == os.path.join(str(tmp_path / "app"), "x")


@pytest.mark.parametrize("data", [
    [],
    {"packages": []},
    {"seeds": "a@1"},
    {"packages": {"a@1": "a"}},
    {"packages": {"a@1": {"version": "1"}}},
    {"packages": {"a@1": {"name": "a"}}},
    {"packages": {"a@1": {"name": "a", "version": "1", "dependencies": "b@1"}}},
    {"packages": {"a@1": {"name": "a", "version": "1", "peerDependencies": ["p"]}}},
    {"packages": {"a@1": {"name": "a", "version": "1", "main": 3}}},
    {"seeds": ""},
    {"packages": {"a@1": {"name": "a", "version": "1", "dependencies": {}}}},
    {"packages": {"a@1": {"name": "a", "version": "1", "peerDependencies": []}}},
])
def test_malformed_manifests(data, tmp_path):
    with pytest.raises(ManifestError):
        ManifestResolver.from_dict(data, base_dir=str(tmp_path))


def test_from_file_yaml_and_json(tmp_path):
    (tmp_path / "m.yaml").write_text(
        "seeds: [a@1]\npackages:\n  a@1:\n    name: a\n    version: '1.0.0'\n    location: node_modules/a\n",
        encoding="utf-8",
    )
    (tmp_path / "m.json").write_text(json.dumps({"packages": {"a@1": {"name": "a", "version": "1.0.0"}}}), encoding="utf-8")

    from_yaml = ManifestResolver.from_file(tmp_path / "m.yaml")
    assert from_yaml.seeds == ["a@1"]
    assert from_yaml.project_root == str(tmp_path.resolve())
    assert len(ManifestResolver.from_file(tmp_path / "m.json")) == 1


def test_from_file_errors(tmp_path):
    with pytest.raises(ManifestError):
        ManifestResolver.from_file(tmp_path / "missing.yaml")
    (tmp_path / "bad.yaml").write_text("packages: [unclosed", encoding="utf-8")
    with pytest.raises(ManifestError):
        ManifestResolver.from_file(tmp_path / "bad.yaml")


def test_empty_and_null_sections_default(tmp_path):
    resolver = ManifestResolver.from_dict(
        {"seeds": None, "packages": {"a@1": {"name": "a", "version": "1", "dependencies": None, "peerDependencies": None}}},
        base_dir=str(tmp_path),
    )
    assert resolver.seeds == []
    a = resolver.resolve_strict("a@1")
    assert a.reference.dependencies == []
    assert a.peer_dependencies == {}


def test_from_file_rejects_empty_list_document(tmp_path):
    (tmp_path / "m.yaml").write_text("[]\n", encoding="utf-8")
    with pytest.raises(ManifestError):
        ManifestResolver.from_file(tmp_path / "m.yaml")
