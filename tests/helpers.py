"""Builders for manifest entries used across the tests."""

from __future__ import annotations

from typing import Any, Dict, Optional


def pkg(name: str, version: str, deps=(), peers=None, main=None, location: Optional[str] = "") -> Dict[str, Any]:
    """Manifest entry; location defaults to node_modules/<name>, None means unresolved."""
    entry: Dict[str, Any] = {"name": name, "version": version, "dependencies": list(deps)}
    if location == "":
        location = f"node_modules/{name}"
    if location is not None:
        entry["location"] = location
    if peers:
        entry["peerDependencies"] = dict(peers)
    if main:
        entry["main"] = main
    return entry
