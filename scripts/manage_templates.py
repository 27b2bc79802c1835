#!/usr/bin/env python3
"""
Issuer Template Management

Inspect and update the per-issuer templates in the configured store
(TEMPLATE_BACKEND / TEMPLATE_DB_PATH).

Usage:
    # Show the template learned for an issuer
    python scripts/manage_templates.py --show "Acme UAB"

    # Merge regions from a JSON file ({"regions": [...]}, stored blob format)
    python scripts/manage_templates.py --merge regions.json --issuer 304123456 --issuer "Acme UAB"

    # Print normalized keys for issuer identities
    python scripts/manage_templates.py --keys 304123456 "Acme UAB" LT100001234
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from invoice_templates.repository.codec import decode
from invoice_templates.repository.template_store import (
    get_template_store,
    issuer_keys,
    reset_template_store,
)


def show_template(identity: str) -> bool:
    """Print the template stored for an issuer identity."""
    keys = issuer_keys(identity)
    if not keys:
        print(f"Error: '{identity}' does not normalize to an issuer key")
        return False

    store = get_template_store()
    regions = asyncio.run(store.load(keys[0]))

    print("=" * 60)
    print(f"Template '{keys[0]}': {len(regions)} regions")
    print("=" * 60)
    for r in sorted(regions, key=lambda r: -r.confidence):
        print(f"  {r.field}")
        print(f"    Box: ({r.left:.3f}, {r.top:.3f}, {r.right:.3f}, {r.bottom:.3f})")
        print(f"    Confidence: {r.confidence:.2%}, Samples: {r.sample_count}")
    return True


def merge_file(regions_file: Path, identities) -> bool:
    """Merge regions from a JSON file under every issuer key."""
    if not regions_file.exists():
        print(f"Error: File not found: {regions_file}")
        return False

    keys = issuer_keys(*identities)
    if not keys:
        print("Error: no usable issuer identity given (--issuer)")
        return False

    regions = decode(regions_file.read_text(encoding="utf-8"))
    if not regions:
        print("Error: no regions in file")
        return False

    store = get_template_store()
    results = asyncio.run(store.merge_all(keys, regions))

    for key, merged in results.items():
        print(f"✓ Merged {len(regions)} regions into '{key}' ({len(merged)} regions total)")
    return True


def main():
    parser = argparse.ArgumentParser(
        description="Issuer Template Management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--show", metavar="ISSUER", help="Show the template for an issuer")
    parser.add_argument("--merge", type=Path, metavar="FILE", help="Merge regions from a JSON file")
    parser.add_argument(
        "--issuer",
        action="append",
        default=[],
        help="Issuer identity for --merge (company number, name or VAT number; repeatable)"
    )
    parser.add_argument("--keys", nargs="+", metavar="IDENTITY", help="Print normalized issuer keys")

    args = parser.parse_args()

    try:
        if args.keys:
            for key in issuer_keys(*args.keys):
                print(key)
            ok = True
        elif args.show:
            ok = show_template(args.show)
        elif args.merge:
            ok = merge_file(args.merge, args.issuer)
        else:
            parser.print_help()
            ok = True
    finally:
        reset_template_store()

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
