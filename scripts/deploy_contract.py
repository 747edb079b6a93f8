#!/usr/bin/env python3
"""
Mock deployment script for the Midnight Lace transfer verifier contract.

Validates the contract source, fabricates a deployment address and writes
deployment-info.json next to the contract. Use the real Midnight tooling for
an actual deployment.
"""
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from midnight_lace.catalog import CatalogProvider
from midnight_lace.config import get_config
from midnight_lace.contract import (
    ContractError,
    deploy_contract,
    initialize_contract,
    load_contract,
    save_deployment_info,
    validate_contract,
)

CONTRACT_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "contract")


def main():
    """Load, validate, deploy and initialise the contract."""
    print("🎵 Midnight Lace - Contract Deployment")
    print("=" * 50)

    cfg = get_config()
    contract_path = os.getenv("CONTRACT_PATH", os.path.join(CONTRACT_DIR, "transfer-verifier.compact"))

    try:
        source = load_contract(contract_path)
        print(f"\n📄 Contract loaded ({len(source)} bytes)")

        validate_contract(source)
        print("✅ Contract syntax validation passed")

        deployment = deploy_contract(source, cfg["NODE_URL"], delay=1.0)
        print(f"\n🚀 Contract deployed: {deployment['address']}")

        artist_address = CatalogProvider.from_file(cfg["CATALOG_PATH"]).artist_address
        info = initialize_contract(deployment, artist_address, cfg["PROOF_THRESHOLD"])
        print(f"⚙️  Threshold for {artist_address[:32]}...: {cfg['PROOF_THRESHOLD']} tDust")

        output_path = os.path.join(os.path.dirname(contract_path), "deployment-info.json")
        save_deployment_info(info, output_path)
        print(f"\n💾 Deployment info saved to: {output_path}")

        print("\n" + "=" * 50)
        print("✨ Deployment Complete!")
        return 0

    except ContractError as e:
        print(f"\n❌ Deployment failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
