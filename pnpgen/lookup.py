# pnpgen/lookup.py
"""
lookup.py - "which package owns this path?" without touching the filesystem

Every package location ends with a separator, so the owner of a file is the
registered location that is a prefix of its path. Locations only come in a
handful of distinct lengths: for each length (most common first) the matcher
checks that the path has a separator at that position and looks the prefix
up in the location index.

Two renditions share the same length ordering:
- find_package_locator_factory: a Python callable
- generate_find_package_locator: JavaScript source for the runtime template
"""

from __future__ import annotations

import os
from collections import Counter
from typing import Callable, List, Optional

from pnpgen.location_index import LocationIndex
from pnpgen.store import PackageLocator

Matcher = Callable[[str], Optional[PackageLocator]]


def sorted_lengths(index: LocationIndex) -> List[int]:
    """Distinct location lengths, most frequent first; ties keep encounter order."""
    counts = Counter(len(location) for location in index)
    # Counter keeps first-encounter order and sorted() is stable
    return sorted(counts, key=lambda length: -counts[length])


def find_package_locator_factory(index: LocationIndex, sep: Optional[str] = None) -> Matcher:
    sep = sep or os.sep
    lengths = sorted_lengths(index)

    def find_package_locator(location: str) -> Optional[PackageLocator]:
        for length in lengths:
            if len(location) >= length and location[length - 1] == sep:
                match = index.get(location[:length])
                if match is not None:
                    return match
        return None

    return find_package_locator


def generate_find_package_locator(index: LocationIndex) -> str:
    code = ""
    code += "exports.findPackageLocator = function findPackageLocator(location) {\n"
    code += "  let match;\n"

    for length in sorted_lengths(index):
        code += "\n"
        code += f"  if (location.length >= {length} && location[{length} - 1] === path.sep)\n"
        code += f"    if (match = locatorsByLocations.get(location.substr(0, {length})))\n"
        code += "      return match;\n"

    code += "\n"
    code += "  return null;\n"
    code += "};\n"
    return code
