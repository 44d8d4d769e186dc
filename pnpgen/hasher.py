# pnpgen/hasher.py
"""
hasher.py - virtual reference digests for peer-dependent package instances

A package that declares peer dependencies is instantiated once per position
in the graph. Its reference is derived from the chain of (name, reference)
pairs leading to it, so the same ancestry always yields the same reference.
"""

from __future__ import annotations

import hashlib
from typing import Iterable, List, Optional, Sequence, Tuple

Ancestry = Sequence[Tuple[Optional[str], Optional[str]]]

DEFAULT_ALGORITHM = "sha1"


def get_hash_from(data: Iterable[str], algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Feed every datum to the digest in order and return the hex encoding."""
    hash_generator = hashlib.new(algorithm)
    for datum in data:
        hash_generator.update(datum.encode("utf-8"))
    return hash_generator.hexdigest()


def ancestry_tokens(ancestry: Ancestry) -> List[str]:
    tokens: List[str] = []
    for name, reference in ancestry:
        # the root locator (None, None) contributes nothing
        if name is not None:
            tokens.append(name)
        if reference is not None:
            tokens.append(reference)
    return tokens


def virtual_hash(ancestry: Ancestry, name: str, version: str, algorithm: str = DEFAULT_ALGORITHM) -> str:
    return get_hash_from(ancestry_tokens(ancestry) + [name, version], algorithm=algorithm)
