#!/usr/bin/env python3

import os
import sys

from ape_accounts import import_account_from_private_key

from deployment.networks import get_network_profile, load_environment

ACCOUNT_ALIAS = "LAUNCHPAD_DEPLOYER"


def main(network_profile: str):
    load_environment()
    try:
        passphrase = os.environ["DEPLOYER_ACCOUNT_PASSPHRASE"]
    except KeyError:
        raise Exception(
            "There are missing environment variables. Please set DEPLOYER_ACCOUNT_PASSPHRASE."
        )
    profile = get_network_profile(network_profile).validate()
    private_key = next((key for key in profile.accounts if key), None)
    if private_key is None:
        raise Exception(f"Network profile '{profile.name}' has no signing credential to import.")
    account = import_account_from_private_key(ACCOUNT_ALIAS, passphrase, private_key)
    print(f"Account imported for {profile.name}: {account.address}")


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "sepolia")
