# pnpgen/store.py
"""
store.py - package information store and the builder that fills it

Features:
- PackageLocator / PackageInformation / PackageInformationStores data model
- Lock-guarded check-and-insert so a (name, reference) pair is written once
- Two-pass, cycle-safe visit of the dependency graph:
    1. compute_scope_bindings: reference + location of every pattern of a scope
       (virtual "pnp:<hash>" references and aliases for peer-dependent packages)
    2. build_instances: insert-before-recurse into the store, then inject peers
- Exporters: plain dict / JSON and Graphviz DOT
"""

from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from pnpgen.errors import InternalConsistencyError
from pnpgen.fs import atomic_write_text, canonicalize, create_alias
from pnpgen.hasher import DEFAULT_ALGORITHM, Ancestry, virtual_hash
from pnpgen.logging import get_logger
from pnpgen.resolver import PackageDescriptor, PackageReference

logger = get_logger("store")

# -----------------------
# Data model
# -----------------------
@dataclass(frozen=True)
class PackageLocator:
    name: Optional[str]
    reference: Optional[str]

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"name": self.name, "reference": self.reference}


TOP_LEVEL_LOCATOR = PackageLocator(None, None)


@dataclass
class PackageInformation:
    package_location: str
    package_main_entry: Optional[str] = None
    package_dependencies: Dict[str, str] = field(default_factory=dict)


class PackageInformationStores:
    """
    name -> reference -> PackageInformation, in insertion order.

    The root project lives under (None, None). Entries are never removed or
    replaced once inserted.
    """

    def __init__(self):
        self._stores: Dict[Optional[str], Dict[Optional[str], PackageInformation]] = {}
        self._lock = threading.RLock()

    def get(self, name: Optional[str], reference: Optional[str]) -> Optional[PackageInformation]:
        store = self._stores.get(name)
        if store is None:
            return None
        return store.get(reference)

    def insert_if_absent(self, name: Optional[str], reference: Optional[str], info: PackageInformation) -> Tuple[PackageInformation, bool]:
        """Return (entry, inserted). The first writer of a key wins."""
        with self._lock:
            store = self._stores.setdefault(name, {})
            existing = store.get(reference)
            if existing is not None:
                return existing, False
            store[reference] = info
            return info, True

    def __contains__(self, key: Tuple[Optional[str], Optional[str]]) -> bool:
        name, reference = key
        return self.get(name, reference) is not None

    def __len__(self) -> int:
        return sum(len(s) for s in self._stores.values())

    def names(self) -> List[Optional[str]]:
        return list(self._stores.keys())

    def references(self, name: Optional[str]) -> List[Optional[str]]:
        return list(self._stores.get(name, {}).keys())

    def items(self) -> Iterator[Tuple[Optional[str], Dict[Optional[str], PackageInformation]]]:
        return iter(self._stores.items())

    def entries(self) -> Iterator[Tuple[Optional[str], Optional[str], PackageInformation]]:
        for name, store in self._stores.items():
            for reference, info in store.items():
                yield name, reference, info


@dataclass
class ScopeBindings:
    """What each requested name resolved to in one scope, and where it lives."""
    references: Dict[str, str] = field(default_factory=dict)
    locations: Dict[str, str] = field(default_factory=dict)


def normalize_location(location: str, sep: Optional[str] = None) -> str:
    """Replace at most one trailing separator by `sep`."""
    sep = sep or os.sep
    if location.endswith(("/", "\\")):
        location = location[:-1]
    return location + sep

# -----------------------
# Builder
# -----------------------
AliasFactory = Callable[[str, str, str], str]


class PackageStoreBuilder:
    def __init__(
        self,
        resolver: Any,
        hash_algorithm: str = DEFAULT_ALGORITHM,
        virtual_prefix: str = "pnp:",
        alias_prefix: str = "pnp-",
        separator: Optional[str] = None,
        alias_factory: AliasFactory = create_alias,
    ):
        self.resolver = resolver
        self.hash_algorithm = hash_algorithm
        self.virtual_prefix = virtual_prefix
        self.alias_prefix = alias_prefix
        self.separator = separator or os.sep
        self._alias_factory = alias_factory
        # virtual reference -> (version, aliased location) for the current build
        self._virtual_instances: Dict[str, Tuple[str, str]] = {}

    @classmethod
    def from_config(cls, resolver: Any, gen_cfg: Dict[str, Any], **kwargs) -> "PackageStoreBuilder":
        return cls(
            resolver,
            hash_algorithm=gen_cfg.get("hash_algorithm") or DEFAULT_ALGORITHM,
            virtual_prefix=gen_cfg.get("virtual_prefix", "pnp:"),
            alias_prefix=gen_cfg.get("alias_prefix", "pnp-"),
            separator=gen_cfg.get("separator"),
            **kwargs,
        )

    def build(self, seed_patterns: Sequence[str], project_root: str) -> PackageInformationStores:
        """Visit the whole graph from the project's own dependencies."""
        stores = PackageInformationStores()
        self._virtual_instances = {}
        root_dependencies = self.visit(stores, seed_patterns, [])
        root = PackageInformation(
            package_location=normalize_location(canonicalize(project_root), self.separator),
            package_main_entry=None,
            package_dependencies=root_dependencies,
        )
        stores.insert_if_absent(None, None, root)
        logger.info("store: %d package instances across %d names", len(stores), len(stores.names()))
        return stores

    def visit(self, stores: PackageInformationStores, patterns: Sequence[str], ancestry: Ancestry) -> Dict[str, str]:
        """Resolve one scope; return name -> reference for its resolvable patterns."""
        bindings = self.compute_scope_bindings(patterns, ancestry)
        self.build_instances(stores, patterns, ancestry, bindings)
        return dict(bindings.references)

    def _get_resolver_entry(self, pattern: str) -> Optional[Tuple[PackageDescriptor, PackageReference, str]]:
        pkg = self.resolver.resolve_strict(pattern)
        if pkg is None:
            logger.debug("store: pattern %s is not resolved, skipping", pattern)
            return None
        ref = pkg.reference
        if ref is None or not ref.location:
            logger.debug("store: %s@%s has no location, skipping", pkg.name, pkg.version)
            return None
        return pkg, ref, ref.location

    def compute_scope_bindings(self, patterns: Sequence[str], ancestry: Ancestry) -> ScopeBindings:
        bindings = ScopeBindings()
        for pattern in patterns:
            entry = self._get_resolver_entry(pattern)
            if entry is None:
                continue
            pkg, _ref, loc = entry

            package_reference = pkg.version
            # Peer-dependent packages get one instance per ancestry. The hash
            # cannot use what the peers resolve to: they may not be computed
            # yet (A peer-depends on B and B on A).
            if pkg.peer_dependencies:
                reused = self._find_virtual_ancestor(ancestry, pkg.name, pkg.version)
                if reused is not None:
                    # back edge of a cycle: point at the enclosing instance
                    package_reference, loc = reused
                else:
                    digest = virtual_hash(ancestry, pkg.name, pkg.version, algorithm=self.hash_algorithm)
                    loc = self._alias_factory(loc, digest, self.alias_prefix)
                    package_reference = f"{self.virtual_prefix}{digest}"
                    self._virtual_instances[package_reference] = (pkg.version, loc)
                    logger.debug("store: %s@%s virtualized as %s", pkg.name, pkg.version, package_reference)

            bindings.references[pkg.name] = package_reference
            bindings.locations[pkg.name] = loc
        return bindings

    def _find_virtual_ancestor(self, ancestry: Ancestry, name: str, version: str) -> Optional[Tuple[str, str]]:
        for ancestor_name, ancestor_reference in reversed(ancestry):
            if ancestor_name != name:
                continue
            instance = self._virtual_instances.get(ancestor_reference)
            if instance is not None and instance[0] == version:
                return ancestor_reference, instance[1]
        return None

    def build_instances(self, stores: PackageInformationStores, patterns: Sequence[str], ancestry: Ancestry, bindings: ScopeBindings) -> None:
        for pattern in patterns:
            entry = self._get_resolver_entry(pattern)
            if entry is None:
                continue
            pkg, ref, _loc = entry
            name = pkg.name

            reference = bindings.references.get(name)
            if reference is None:
                raise InternalConsistencyError(f"reference of {name} should have been computed during the pre-pass")
            location = bindings.locations.get(name)
            if location is None:
                raise InternalConsistencyError(f"location of {name} should have been computed during the pre-pass")

            # Same name and reference means an interchangeable instance
            if (name, reference) in stores:
                continue

            info = PackageInformation(
                package_location=normalize_location(location, self.separator),
                package_main_entry=pkg.main,
            )
            # insert before recursing so cycles stop at this entry
            info, inserted = stores.insert_if_absent(name, reference, info)
            if not inserted:
                continue

            peer_names = list(pkg.peer_dependencies.keys())
            direct = [p for p in ref.dependencies if not self._is_peer_pattern(p, peer_names)]
            info.package_dependencies = self.visit(stores, direct, list(ancestry) + [(name, reference)])

            for peer_name in peer_names:
                peer_reference = bindings.references.get(peer_name)
                if peer_reference is not None:
                    info.package_dependencies[peer_name] = peer_reference

    def _is_peer_pattern(self, pattern: str, peer_names: Sequence[str]) -> bool:
        if not peer_names:
            return False
        pkg = self.resolver.resolve_strict(pattern)
        return pkg is not None and pkg.name in peer_names

# -----------------------
# Exporters: dict / JSON, Graphviz DOT
# -----------------------
def stores_to_dict(stores: PackageInformationStores) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for name, reference, info in stores.entries():
        out.append({
            "name": name,
            "reference": reference,
            "packageLocation": info.package_location,
            "packageMainEntry": info.package_main_entry,
            "packageDependencies": dict(info.package_dependencies),
        })
    return out


def export_json(stores: PackageInformationStores, path: str) -> None:
    atomic_write_text(path, json.dumps(stores_to_dict(stores), indent=2, ensure_ascii=False) + "\n")


def _dot_id(name: Optional[str], reference: Optional[str]) -> str:
    label = "<root>" if name is None else f"{name}@{reference}"
    return '"' + label.replace("\\", "\\\\").replace('"', '\\"') + '"'


def to_graphviz(stores: PackageInformationStores) -> str:
    lines = ["digraph pnp {"]
    for name, reference, _info in stores.entries():
        lines.append(f"  {_dot_id(name, reference)};")
    for name, reference, info in stores.entries():
        for dep_name, dep_reference in info.package_dependencies.items():
            lines.append(f"  {_dot_id(name, reference)} -> {_dot_id(dep_name, dep_reference)};")
    lines.append("}")
    return "\n".join(lines) + "\n"


def export_graphviz(stores: PackageInformationStores, path: str) -> None:
    atomic_write_text(path, to_graphviz(stores))
