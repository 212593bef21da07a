"""
setuptools hook for allowhtml.

Metadata lives in pyproject.toml. This script only decides whether the
tokenizer, entity decoder and serializer are compiled with mypyc:

    pip install .                           # pure Python
    ALLOWHTML_USE_MYPYC=1 pip install .     # compiled, needs allowhtml[mypyc]

MYPYC_OPT_LEVEL and MYPYC_DEBUG_LEVEL are passed through to mypyc.
"""

import os
import sys
from pathlib import Path

from setuptools import setup

# These run once per input character or output node; the policy and walker
# run once per element and gain little. sanitize.py also relies on a frozen
# slotted dataclass, which mypyc does not accept.
COMPILED_MODULES = [
    "src/allowhtml/tokenizer.py",
    "src/allowhtml/entities.py",
    "src/allowhtml/serialize.py",
]


def compiled_extensions():
    try:
        from mypyc.build import mypycify
    except ImportError:
        sys.exit("ALLOWHTML_USE_MYPYC=1 needs mypyc: pip install 'allowhtml[mypyc]'")

    missing = [path for path in COMPILED_MODULES if not Path(path).exists()]
    if missing:
        sys.exit(f"cannot compile missing modules: {', '.join(missing)}")

    print(f"allowhtml: compiling {len(COMPILED_MODULES)} modules with mypyc", file=sys.stderr)
    return mypycify(
        COMPILED_MODULES,
        opt_level=os.environ.get("MYPYC_OPT_LEVEL", "3"),
        debug_level=os.environ.get("MYPYC_DEBUG_LEVEL", "0"),
        separate=False,
        multi_file=False,
    )


if __name__ == "__main__":
    use_mypyc = os.environ.get("ALLOWHTML_USE_MYPYC", "0") == "1"
    setup(ext_modules=compiled_extensions() if use_mypyc else [])
