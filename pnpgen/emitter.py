# pnpgen/emitter.py
"""
emitter.py - bake the store and the location index into the runtime template

The generated fragment defines, as top-level JavaScript statements:
- packageInformationStores: Map(name -> Map(reference -> {packageLocation, packageMainEntry?, packageDependencies}))
- locatorsByLocations: Map(location -> {name, reference}), root mapped to topLevelLocator
- exports.findPackageLocator (see pnpgen.lookup)

String values go through json.dumps: with ensure_ascii every JSON string is
also a valid JavaScript string literal (U+2028/U+2029 included).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from pnpgen.errors import TemplateMarkerError
from pnpgen.location_index import LocationIndex
from pnpgen.logging import get_logger
from pnpgen.lookup import generate_find_package_locator
from pnpgen.store import PackageInformationStores

logger = get_logger("emitter")

DEFAULT_MARKER = "$$SETUP_STATIC_TABLES();"
DEFAULT_TEMPLATE = Path(__file__).resolve().parent / "templates" / "pnp-api.tpl.js"


def literal(value: Any) -> str:
    return json.dumps(value, ensure_ascii=True)


def generate_maps(stores: PackageInformationStores, index: LocationIndex) -> str:
    code = ""

    code += "let packageInformationStores = new Map([\n"
    for package_name, store in stores.items():
        code += f"  [{literal(package_name)}, new Map([\n"
        for package_reference, info in store.items():
            code += f"    [{literal(package_reference)}, {{\n"
            code += f"      packageLocation: {literal(info.package_location)},\n"
            if info.package_main_entry:
                code += f"      packageMainEntry: {literal(info.package_main_entry)},\n"
            code += "      packageDependencies: new Map([\n"
            for dependency_name, dependency_reference in info.package_dependencies.items():
                code += f"        [{literal(dependency_name)}, {literal(dependency_reference)}],\n"
            code += "      ]),\n"
            code += "    }],\n"
        code += "  ])],\n"
    code += "]);\n"

    code += "\n"

    # inverse map used to find the package owning a path
    code += "let locatorsByLocations = new Map([\n"
    for location, locator in index.items():
        if locator.name is not None:
            encoded = json.dumps(locator.to_dict(), ensure_ascii=True, separators=(",", ":"))
            code += f"  [{literal(location)}, {encoded}],\n"
        else:
            code += f"  [{literal(location)}, topLevelLocator],\n"
    code += "]);\n"

    return code


def generate_static_tables(stores: PackageInformationStores, index: LocationIndex) -> str:
    return generate_maps(stores, index) + "\n" + generate_find_package_locator(index)


def load_template(path: Optional[str] = None) -> str:
    return Path(path or DEFAULT_TEMPLATE).read_text(encoding="utf-8")


def splice(template: str, fragment: str, marker: str = DEFAULT_MARKER) -> str:
    """Replace the first marker occurrence with `fragment`, taken literally."""
    if marker not in template:
        raise TemplateMarkerError(f"template does not contain the {marker!r} marker")
    return template.replace(marker, fragment, 1)


def emit(stores: PackageInformationStores, index: LocationIndex, template: str, marker: str = DEFAULT_MARKER) -> str:
    fragment = generate_static_tables(stores, index)
    out = splice(template, fragment, marker)
    logger.debug("emitter: %d bytes of static tables spliced", len(fragment))
    return out
