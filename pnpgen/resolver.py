# pnpgen/resolver.py
"""
resolver.py - pattern -> package descriptor lookups for the map generator

Features:
- PackageDescriptor / PackageReference types consumed by the store builder
- ManifestResolver: resolves patterns from an already-solved manifest
  (YAML or JSON file, or an in-memory mapping)
- Relative package locations are anchored on the manifest's project root
- Strict validation of manifest structure (ManifestError)

The generator never solves version constraints: each pattern of the manifest
already names exactly one concrete package.

Manifest format:

    project: .                      # optional, defaults to the manifest's directory
    seeds: ["left-pad@^1.0.0"]      # optional, the project's own dependencies
    packages:
      "left-pad@^1.0.0":
        name: left-pad
        version: 1.3.0
        main: index.js              # optional
        location: node_modules/left-pad   # optional; missing -> unresolved
        dependencies: []            # optional, ordered patterns
        peerDependencies: {}        # optional, name -> range
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from pnpgen.errors import ManifestError
from pnpgen.logging import get_logger

logger = get_logger("resolver")

# -----------------------
# Descriptor types
# -----------------------
@dataclass
class PackageReference:
    location: Optional[str]
    dependencies: List[str] = field(default_factory=list)


@dataclass
class PackageDescriptor:
    name: str
    version: str
    main: Optional[str] = None
    peer_dependencies: Dict[str, str] = field(default_factory=dict)
    reference: Optional[PackageReference] = None

# -----------------------
# Manifest-backed resolver
# -----------------------
class ManifestResolver:
    """
    Provides:
    - resolve_strict(pattern) -> PackageDescriptor or None
    - seeds -> the project's direct dependency patterns
    - project_root -> directory the manifest describes
    """

    def __init__(self, packages: Dict[str, PackageDescriptor], seeds: Optional[List[str]] = None, project_root: Optional[str] = None):
        self._packages = packages
        self.seeds = list(seeds or [])
        self.project_root = project_root or os.getcwd()

    def resolve_strict(self, pattern: str) -> Optional[PackageDescriptor]:
        return self._packages.get(pattern)

    def __len__(self) -> int:
        return len(self._packages)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[str] = None) -> "ManifestResolver":
        if not isinstance(data, dict):
            raise ManifestError("manifest must be a mapping")
        base = base_dir or os.getcwd()
        project = data.get("project")
        if project is not None and not isinstance(project, str):
            raise ManifestError("manifest 'project' must be a path string")
        project_root = os.path.normpath(os.path.join(base, project)) if project else os.path.normpath(base)

        seeds = data.get("seeds")
        if seeds is None:
            seeds = []
        if not isinstance(seeds, list) or not all(isinstance(s, str) for s in seeds):
            raise ManifestError("manifest 'seeds' must be a list of patterns")

        raw_packages = data.get("packages")
        if raw_packages is None:
            raw_packages = {}
        if not isinstance(raw_packages, dict):
            raise ManifestError("manifest 'packages' must be a mapping of pattern -> package")

        packages: Dict[str, PackageDescriptor] = {}
        for pattern, entry in raw_packages.items():
            packages[str(pattern)] = _parse_entry(str(pattern), entry, project_root)

        logger.debug("resolver: loaded %d patterns (project=%s)", len(packages), project_root)
        return cls(packages, seeds=seeds, project_root=project_root)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ManifestResolver":
        p = Path(path)
        try:
            txt = p.read_text(encoding="utf-8")
        except OSError as e:
            raise ManifestError(f"cannot read manifest {p}: {e}") from e
        try:
            # JSON is valid YAML
            data = yaml.safe_load(txt)
        except yaml.YAMLError as e:
            raise ManifestError(f"cannot parse manifest {p}: {e}") from e
        return cls.from_dict(data if data is not None else {}, base_dir=str(p.resolve().parent))


def _parse_entry(pattern: str, entry: Any, project_root: str) -> PackageDescriptor:
    if not isinstance(entry, dict):
        raise ManifestError(f"package entry for {pattern!r} must be a mapping")
    name = entry.get("name")
    version = entry.get("version")
    if not isinstance(name, str) or not name:
        raise ManifestError(f"package entry for {pattern!r} has no name")
    if version is None or isinstance(version, (dict, list)):
        raise ManifestError(f"package entry for {pattern!r} has no version")

    deps = entry.get("dependencies")
    if deps is None:
        deps = []
    if not isinstance(deps, list):
        raise ManifestError(f"dependencies of {pattern!r} must be a list of patterns")
    peers = entry.get("peerDependencies")
    if peers is None:
        peers = {}
    if not isinstance(peers, dict):
        raise ManifestError(f"peerDependencies of {pattern!r} must be a mapping")
    main = entry.get("main")
    if main is not None and not isinstance(main, str):
        raise ManifestError(f"main of {pattern!r} must be a string")

    location = entry.get("location")
    if location is not None:
        location = os.path.join(project_root, str(location))

    return PackageDescriptor(
        name=name,
        version=str(version),
        main=main,
        peer_dependencies={str(k): str(v) for k, v in peers.items()},
        reference=PackageReference(location=location, dependencies=[str(d) for d in deps]),
    )
