#!/usr/bin/env python3
# pnpgen/cli.py
"""
pnpgen CLI

Subcommands:
- generate: build the store from a manifest and write the runtime map
- inspect:  print the store as a table, optionally export JSON / Graphviz DOT
- locate:   print the package owning each given path

Messages go to stderr through rich; `generate` without --output writes the
artifact to stdout.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from pnpgen import __version__
from pnpgen import config as config_mod
from pnpgen.errors import PnpGenError
from pnpgen.generator import generate_pnp_map, get_package_information_stores, write_pnp_map
from pnpgen.location_index import build_location_index
from pnpgen.logging import get_logger, set_level
from pnpgen.lookup import find_package_locator_factory
from pnpgen.resolver import ManifestResolver
from pnpgen.store import export_graphviz, export_json

logger = get_logger("cli")

console = Console(stderr=True)

# -----------------------
# Small pretty helpers
# -----------------------
def print_ok(msg: str):
    console.print(f"[bold green]✔[/] {escape(msg)}")

def print_warn(msg: str):
    console.print(f"[bold yellow]![/] {escape(msg)}")

def print_err(msg: str):
    console.print(f"[bold red]✖[/] {escape(msg)}")

def print_info(msg: str):
    console.print(f"[cyan]{escape(msg)}[/cyan]")

# -----------------------
# CLI Implementation
# -----------------------
class PnpGenCLI:
    def __init__(self, gen_cfg: Optional[Dict[str, Any]] = None):
        self.gen_cfg = gen_cfg if gen_cfg is not None else config_mod.get_generate_config()

    def _load(self, manifest: str, project: Optional[str], seeds: Optional[List[str]]):
        resolver = ManifestResolver.from_file(manifest)
        project_root = project or resolver.project_root
        print_info(f"{len(resolver)} patterns loaded from {manifest}")
        seed_patterns = seeds or resolver.seeds
        if not seed_patterns:
            print_warn("no seed patterns: the map will only contain the project itself")
        return resolver, project_root, seed_patterns

    def generate(self, manifest: str, output: Optional[str] = None, template: Optional[str] = None,
                 project: Optional[str] = None, seeds: Optional[List[str]] = None) -> str:
        resolver, project_root, seed_patterns = self._load(manifest, project, seeds)
        gen_cfg = dict(self.gen_cfg)
        if template:
            gen_cfg["template"] = template
        output = output or gen_cfg.get("output")
        if output:
            write_pnp_map(output, resolver, seed_patterns, project_root, gen_cfg=gen_cfg)
            print_ok(f"map written to {output}")
            return output
        text = generate_pnp_map(resolver, seed_patterns, project_root, gen_cfg=gen_cfg)
        sys.stdout.write(text)
        return text

    def inspect(self, manifest: str, project: Optional[str] = None, seeds: Optional[List[str]] = None,
                json_path: Optional[str] = None, dot_path: Optional[str] = None):
        resolver, project_root, seed_patterns = self._load(manifest, project, seeds)
        stores = get_package_information_stores(resolver, seed_patterns, project_root, self.gen_cfg)

        table = Table(title=f"{len(stores)} package instances")
        table.add_column("name")
        table.add_column("reference")
        table.add_column("location")
        table.add_column("dependencies")
        for name, reference, info in stores.entries():
            deps = ", ".join(f"{n}@{r}" for n, r in info.package_dependencies.items())
            table.add_row(escape(name or "<root>"), escape(reference or ""), escape(info.package_location), escape(deps))
        console.print(table)

        if json_path:
            export_json(stores, json_path)
            print_ok(f"store exported to {json_path}")
        if dot_path:
            export_graphviz(stores, dot_path)
            print_ok(f"graph exported to {dot_path}")
        return stores

    def locate(self, manifest: str, paths: List[str], project: Optional[str] = None,
               seeds: Optional[List[str]] = None) -> List[Optional[Dict[str, Optional[str]]]]:
        resolver, project_root, seed_patterns = self._load(manifest, project, seeds)
        stores = get_package_information_stores(resolver, seed_patterns, project_root, self.gen_cfg)
        find_package_locator = find_package_locator_factory(build_location_index(stores), self.gen_cfg.get("separator"))
        results = []
        for p in paths:
            locator = find_package_locator(os.path.abspath(p))
            result = locator.to_dict() if locator is not None else None
            results.append(result)
            sys.stdout.write(f"{p}\t{json.dumps(result)}\n")
        return results

# -----------------------
# Argument parsing
# -----------------------
def make_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="pnpgen", description="Generate a Plug'n'Play package map")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument("--config", help="explicit config file")
    ap.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = ap.add_subparsers(dest="cmd")

    def _common(p: argparse.ArgumentParser):
        p.add_argument("manifest", help="YAML/JSON manifest of resolved packages")
        p.add_argument("--project", help="project root (defaults to the manifest's)")
        p.add_argument("--seed", action="append", dest="seeds", help="seed pattern (repeatable, defaults to the manifest's)")

    p_gen = sub.add_parser("generate", help="write the runtime map")
    _common(p_gen)
    p_gen.add_argument("-o", "--output", help="output file (stdout when omitted)")
    p_gen.add_argument("-t", "--template", help="template containing the static tables marker")

    p_inspect = sub.add_parser("inspect", help="show the package store")
    _common(p_inspect)
    p_inspect.add_argument("--json", dest="json_path", help="export the store as JSON")
    p_inspect.add_argument("--dot", dest="dot_path", help="export the store as Graphviz DOT")

    p_locate = sub.add_parser("locate", help="find the package owning each path")
    _common(p_locate)
    p_locate.add_argument("paths", nargs="+")

    return ap

def main(argv: Optional[List[str]] = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = make_parser()
    args = parser.parse_args(argv)

    try:
        if args.config:
            config_mod.reload(args.config, fatal=True)
        if args.verbose:
            set_level(logging.DEBUG)

        cli = PnpGenCLI()
        if args.cmd == "generate":
            cli.generate(args.manifest, output=args.output, template=args.template, project=args.project, seeds=args.seeds)
        elif args.cmd == "inspect":
            cli.inspect(args.manifest, project=args.project, seeds=args.seeds, json_path=args.json_path, dot_path=args.dot_path)
        elif args.cmd == "locate":
            cli.locate(args.manifest, args.paths, project=args.project, seeds=args.seeds)
        else:
            parser.print_help()
            return 1
    except (PnpGenError, OSError) as e:
        logger.debug("command failed", exc_info=True)
        print_err(f"Command failed: {e}")
        return 2
    return 0

if __name__ == "__main__":
    sys.exit(main())
