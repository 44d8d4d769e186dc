# pnpgen/location_index.py
"""Reverse index: normalized package location -> package locator."""

from __future__ import annotations

from typing import Dict

from pnpgen.store import PackageInformationStores, PackageLocator

LocationIndex = Dict[str, PackageLocator]


def build_location_index(stores: PackageInformationStores) -> LocationIndex:
    index: LocationIndex = {}
    for name, reference, info in stores.entries():
        index[info.package_location] = PackageLocator(name, reference)
    return index
