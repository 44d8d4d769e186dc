# pnpgen/errors.py
"""
Exception taxonomy for pnpgen.

Unresolvable patterns are not errors (they are omitted from the maps);
everything below aborts the current build.
"""

from __future__ import annotations


class PnpGenError(Exception):
    """Base class for every fatal pnpgen error."""


class InternalConsistencyError(PnpGenError):
    """The two-pass visit protocol was broken (a bug, never bad user data)."""


class AliasCreationError(PnpGenError):
    """A virtual package alias (symlink) could not be created."""


class TemplateMarkerError(PnpGenError):
    """The delivery template does not contain the substitution marker."""


class ManifestError(PnpGenError):
    """The package manifest handed to the resolver is malformed."""


class ConfigError(PnpGenError):
    """Configuration failed validation in fatal mode."""
