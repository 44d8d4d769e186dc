import json
import os
import shutil
import subprocess

import pytest

from pnpgen.lookup import find_package_locator_factory, generate_find_package_locator, sorted_lengths
from pnpgen.store import PackageLocator

X = PackageLocator("x", "1.0.0")
Y = PackageLocator("y", "1.0.0")
ROOT = PackageLocator(None, None)


def test_lengths_are_ordered_by_frequency_then_encounter():
    index = {
        "/a/": X,          # 3
        "/bb/": X,         # 4
        "/cc/": X,         # 4
        "/dddd/": X,       # 6
        "/eeee/": X,       # 6
        "/ffff/": X,       # 6
        "/g/": X,          # 3
    }
    assert sorted_lengths(index) == [6, 3, 4]


def test_ties_keep_encounter_order():
    assert sorted_lengths({"/long/path/": X, "/s/": Y}) == [11, 3]
    assert sorted_lengths({"/s/": Y, "/long/path/": X}) == [3, 11]


def test_prefix_match_is_exact():
    find = find_package_locator_factory({"/proj/node_modules/x/": X}, "/")
    assert find("/proj/node_modules/x/lib/index.js") == X
    assert find("/proj/node_modules/x/") == X
    assert find("/proj/node_modules/xy/lib/index.js") is None
    assert find("/proj/node_modules/x") is None


def test_sibling_with_longer_name_is_not_confused():
    find = find_package_locator_factory({"/proj/node_modules/x/": X, "/proj/node_modules/xy/": Y}, "/")
    assert find("/proj/node_modules/xy/lib/index.js") == Y
    assert find("/proj/node_modules/x/lib/index.js") == X


def test_no_registered_prefix_returns_none():
    find = find_package_locator_factory({"/proj/": ROOT, "/proj/node_modules/x/": X}, "/")
    assert find("/usr/lib/node/fs.js") is None
    assert find("") is None


def test_empty_index_never_matches():
    assert find_package_locator_factory({}, "/")("/anything") is None


def test_windows_separator():
    find = find_package_locator_factory({"C:\\proj\\node_modules\\x\\": X}, "\\")
    assert find("C:\\proj\\node_modules\\x\\index.js") == X
    assert find("C:\\proj\\node_modules\\xy\\index.js") is None


def test_generated_javascript_tests_lengths_in_order():
    code = generate_find_package_locator({"/a/": X, "/bb/": X, "/cc/": Y})
    assert code.startswith("exports.findPackageLocator = function findPackageLocator(location) {\n")
    first = code.index("location.length >= 4 && location[4 - 1] === path.sep")
    second = code.index("location.length >= 3 && location[3 - 1] === path.sep")
    assert first < second
    assert "locatorsByLocations.get(location.substr(0, 4))" in code
    assert code.endswith("  return null;\n};\n")


@pytest.mark.parametrize("index", [{}, {"/a/": X}])
def test_generated_javascript_always_falls_back_to_null(index):
    assert "  return null;\n};\n" in generate_find_package_locator(index)


@pytest.mark.skipif(shutil.which("node") is None or os.sep != "/", reason="needs node and a '/' path separator")
def test_generated_javascript_agrees_with_python_matcher(tmp_path):
    index = {
        "/proj/": ROOT,
        "/proj/node_modules/x/": X,
        "/proj/node_modules/xy/": Y,
        "/proj/node_modules/pnp-0123/": PackageLocator("z", "pnp:0123"),
    }
    queries = [
        "/proj/node_modules/x/lib/index.js",
        "/proj/node_modules/xy/index.js",
        "/proj/node_modules/x",
        "/proj/node_modules/pnp-0123/a.js",
        "/proj/src/app.js",
        "/usr/lib/node/fs.js",
        "",
    ]
    script = tmp_path / "find.js"
    script.write_text(
        "const path = require('path');\n"
        f"const locatorsByLocations = new Map(Object.entries({json.dumps({k: v.to_dict() for k, v in index.items()})}));\n"
        + generate_find_package_locator(index)
        + f"process.stdout.write(JSON.stringify({json.dumps(queries)}.map(exports.findPackageLocator)));\n",
        encoding="utf-8",
    )
    proc = subprocess.run(["node", str(script)], capture_output=True, text=True, check=True)

    find = find_package_locator_factory(index, "/")
    expected = [None if find(q) is None else find(q).to_dict() for q in queries]
    assert json.loads(proc.stdout) == expected
    assert expected[0] == X.to_dict() and expected[2] is None
