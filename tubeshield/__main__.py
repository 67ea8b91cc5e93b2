"""
TubeShield CLI — Exports the blocked URL list for network-level blockers and
checks single URLs against it.

    python -m tubeshield filters [PATH] [--version X.Y.Z]
    python -m tubeshield check URL...
"""

import json
import sys

from . import __version__
from .config import setup_logging
from .patterns import build_network_filters, is_blocked, write_network_filters

USAGE = "usage: python -m tubeshield filters [PATH] [--version X.Y.Z] | check URL..."


def main(argv=None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print(USAGE, file=sys.stderr)
        return 2

    command, rest = args[0], args[1:]
    if command == "filters":
        version = __version__
        if "--version" in rest:
            i = rest.index("--version")
            if i + 1 >= len(rest):
                print(USAGE, file=sys.stderr)
                return 2
            version = rest[i + 1]
            del rest[i:i + 2]
        if rest:
            setup_logging()
            write_network_filters(rest[0], version=version)
        else:
            print(json.dumps(build_network_filters(version), indent=2))
        return 0

    if command == "check":
        if not rest:
            print(USAGE, file=sys.stderr)
            return 2
        blocked = False
        for url in rest:
            hit = is_blocked(url)
            blocked = blocked or hit
            print(f"{'BLOCKED' if hit else 'allowed'}  {url}")
        return 1 if blocked else 0

    print(USAGE, file=sys.stderr)
    return 2


if __name__ == "__main__":
    sys.exit(main())
