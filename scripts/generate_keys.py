#!/usr/bin/env python3
"""
Generate a Solana keypair for the transaction engine.

This script writes:
- Keypair file (id.json, 64-byte JSON array as used by solana-keygen)
- Key info file with the public key
"""

import argparse
import json
from pathlib import Path

from solders.keypair import Keypair


def generate_keys(output_dir: str = "./keys") -> dict:
    """
    Generate a new keypair.

    Args:
        output_dir: Directory to save keys

    Returns:
        Dictionary with key info
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    keypair = Keypair()

    keypair_path = output_path / "id.json"
    with open(keypair_path, "w") as f:
        json.dump(list(bytes(keypair)), f)
    keypair_path.chmod(0o600)

    info = {
        "keypair_path": str(keypair_path),
        "public_key": str(keypair.pubkey()),
    }

    info_path = output_path / "key_info.json"
    with open(info_path, "w") as f:
        json.dump(info, f, indent=2)

    return info


def main():
    parser = argparse.ArgumentParser(description="Generate a Solana keypair")
    parser.add_argument(
        "--output-dir", "-o",
        default="./keys",
        help="Output directory for keys (default: ./keys)"
    )
    parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Overwrite existing keys"
    )

    args = parser.parse_args()

    output_path = Path(args.output_dir)
    keypair_path = output_path / "id.json"

    if keypair_path.exists() and not args.force:
        print(f"Keypair already exists at {keypair_path}")
        print("   Use --force to overwrite")

        info_path = output_path / "key_info.json"
        if info_path.exists():
            with open(info_path) as f:
                info = json.load(f)
            print(f"   Public key: {info['public_key']}")
        return

    print("Generating new Solana keypair...")
    info = generate_keys(args.output_dir)

    print(f"\nKeypair saved to: {info['keypair_path']} (KEEP SECRET!)")
    print(f"Public key: {info['public_key']}")

    print("\nTo use it with the engine:")
    print(f"   export TXENGINE_WALLET_KEYPAIR_PATH={info['keypair_path']}")

    print("\nTo fund on devnet:")
    print(f"   solana airdrop 1 {info['public_key']} --url devnet")


if __name__ == "__main__":
    main()
