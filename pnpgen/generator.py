# pnpgen/generator.py
"""
generator.py - end-to-end map generation

resolver -> PackageStoreBuilder -> build_location_index -> emitter

- generate_pnp_map: returns the artifact text
- write_pnp_map: same, written atomically (nothing is written on failure)
- get_package_information_stores: the store alone, for inspection and lookups
"""

from __future__ import annotations

import time
from typing import Any, Dict, Optional, Sequence

from pnpgen.config import get_generate_config
from pnpgen.errors import TemplateMarkerError
from pnpgen.emitter import DEFAULT_MARKER, emit, load_template
from pnpgen.fs import atomic_write_text
from pnpgen.location_index import build_location_index
from pnpgen.logging import get_logger
from pnpgen.store import PackageInformationStores, PackageStoreBuilder

logger = get_logger("generator")


def get_package_information_stores(
    resolver: Any,
    seed_patterns: Sequence[str],
    project_root: str,
    gen_cfg: Optional[Dict[str, Any]] = None,
) -> PackageInformationStores:
    gen_cfg = gen_cfg if gen_cfg is not None else get_generate_config()
    builder = PackageStoreBuilder.from_config(resolver, gen_cfg)
    return builder.build(seed_patterns, project_root)


def generate_pnp_map(
    resolver: Any,
    seed_patterns: Sequence[str],
    project_root: str,
    template: Optional[str] = None,
    gen_cfg: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Build the store for `seed_patterns` and splice its static tables into
    `template` (the bundled template when None).
    """
    gen_cfg = gen_cfg if gen_cfg is not None else get_generate_config()
    if template is None:
        template = load_template(gen_cfg.get("template"))
    marker = gen_cfg.get("marker") or DEFAULT_MARKER
    if marker not in template:
        raise TemplateMarkerError(f"template does not contain the {marker!r} marker")

    t0 = time.time()
    stores = get_package_information_stores(resolver, seed_patterns, project_root, gen_cfg)
    index = build_location_index(stores)
    out = emit(stores, index, template, marker)
    logger.info("generator: map for %d instances built in %.3fs", len(stores), time.time() - t0)
    return out


def write_pnp_map(output: str, *args, **kwargs) -> str:
    text = generate_pnp_map(*args, **kwargs)
    atomic_write_text(output, text)
    logger.info("generator: wrote %s", output)
    return output
