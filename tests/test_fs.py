import os

import pytest

from pnpgen.errors import AliasCreationError
from pnpgen.fs import alias_path, atomic_write_text, canonicalize, create_alias


@pytest.fixture
def real(tmp_path):
    target = tmp_path / "node_modules" / "b"
    target.mkdir(parents=True)
    return target


def test_create_alias_makes_relative_symlink(real):
    alias = create_alias(str(real), "abc123")
    assert alias == str(real.parent / "pnp-abc123")
    assert os.path.islink(alias)
    assert os.readlink(alias) == "b"
    assert os.path.realpath(alias) == os.path.realpath(real)


def test_create_alias_accepts_trailing_separator(real):
    assert create_alias(str(real) + "/", "abc") == str(real.parent / "pnp-abc")


def test_create_alias_is_idempotent(real):
    first = create_alias(str(real), "abc")
    second = create_alias(str(real), "abc")
    assert first == second
    assert os.readlink(second) == "b"


def test_create_alias_replaces_stale_link(real):
    other = real.parent / "other"
    other.mkdir()
    os.symlink("other", str(real.parent / "pnp-abc"))
    alias = create_alias(str(real), "abc")
    assert os.readlink(alias) == "b"


def test_create_alias_refuses_to_clobber_directory(real):
    (real.parent / "pnp-abc").mkdir()
    with pytest.raises(AliasCreationError):
        create_alias(str(real), "abc")


def test_create_alias_wraps_os_errors(tmp_path):
    with pytest.raises(AliasCreationError):
        create_alias(str(tmp_path / "does" / "not" / "exist"), "abc")


def test_alias_prefix(real):
    assert alias_path(str(real), "abc", prefix="virtual-") == str(real.parent / "virtual-abc")


def test_canonicalize_resolves_links(real):
    link = real.parent / "link"
    os.symlink(str(real), str(link))
    assert canonicalize(link) == os.path.realpath(real)


def test_atomic_write_text(tmp_path):
    out = tmp_path / "sub" / "out.js"
    atomic_write_text(out, "hello\n")
    assert out.read_text(encoding="utf-8") == "hello\n"
    assert [p.name for p in out.parent.iterdir()] == ["out.js"]
