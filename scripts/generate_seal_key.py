#!/usr/bin/env python3
"""Print a fresh Fernet key for ``FernetSealer``.

Every envelope in the blob store is encrypted with this key. Store it the
way the host stores other credentials; never put it on the ledger or in
the blob store. Losing it makes existing envelopes unreadable.
"""

from __future__ import annotations

import argparse

from sealvault.sealing import FernetSealer


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--env", metavar="NAME",
        help="print as NAME=<key> for a .env file instead of the bare key",
    )
    args = parser.parse_args()

    key = FernetSealer.generate_key()
    print(f"{args.env}={key}" if args.env else key)


if __name__ == "__main__":
    main()
