"""Shared fixtures: real project trees under tmp_path so aliases are real symlinks."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from pnpgen import config as config_mod
from pnpgen.resolver import ManifestResolver
from pnpgen.store import PackageStoreBuilder


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    monkeypatch.delenv("PNPGEN_CONFIG", raising=False)
    yield
    config_mod._CONFIG = None


@pytest.fixture
def project(tmp_path) -> Path:
    root = Path(os.path.realpath(tmp_path)) / "proj"
    (root / "node_modules").mkdir(parents=True)
    return root


@pytest.fixture
def make_resolver(project):
    def _make(packages: Dict[str, Dict[str, Any]], seeds: Optional[List[str]] = None) -> ManifestResolver:
        for entry in packages.values():
            if entry.get("location"):
                (project / entry["location"]).mkdir(parents=True, exist_ok=True)
        return ManifestResolver.from_dict({"packages": packages, "seeds": seeds or []}, base_dir=str(project))
    return _make


@pytest.fixture
def build(project):
    def _build(resolver: ManifestResolver, seeds: List[str], **kwargs):
        builder = PackageStoreBuilder(resolver, separator="/", **kwargs)
        return builder.build(seeds, str(project))
    return _build
