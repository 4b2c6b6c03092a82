"""
Print a bcrypt hash for a password.

Usage:
    python scripts/hash_password.py "<password>"
"""

import sys

sys.path.insert(0, ".")

from herbario.kernel.identity.password import hash_password


def main(argv: list[str]) -> int:
    if len(argv) != 2 or not argv[1]:
        print('Usage: python scripts/hash_password.py "<password>"', file=sys.stderr)
        return 1
    print(hash_password(argv[1]))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
