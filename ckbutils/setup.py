# Copyright (C) 2024-2025 The ckb-signing-utils developers
#
# This file is part of ckb-signing-utils
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of ckb-signing-utils, including this file, may be copied, modified,
# propagated, or distributed except according to the terms contained in the
# LICENSE file.

from typing import Optional

from ckbutils.constants import NETWORK_SCRIPTS

NETWORK = "testnet"
networks = {"mainnet", "testnet", "devnet"}

# Script deployments registered by the user (override the predefined ones)
CUSTOM_SCRIPTS: dict = {}


def setup(network: str = "testnet", scripts: Optional[dict] = None) -> str:
    """Setup ckb utils library with the specified network and options.

    Args:
        network: The network to use (mainnet, testnet, devnet)
        scripts: Optional mapping of script name (e.g. 'SECP256K1_BLAKE160')
                 to its deployment config. Required for devnet since system
                 scripts are deployed differently on every dev chain.
    """
    global NETWORK, CUSTOM_SCRIPTS
    if network not in networks:
        raise ValueError(f"Unknown network '{network}'")
    NETWORK = network
    CUSTOM_SCRIPTS = dict(scripts) if scripts else {}
    return NETWORK


def get_network() -> str:
    global NETWORK
    return NETWORK


def is_mainnet() -> bool:
    global NETWORK
    return NETWORK == "mainnet"


def is_testnet() -> bool:
    global NETWORK
    return NETWORK == "testnet"


def is_devnet() -> bool:
    global NETWORK
    return NETWORK == "devnet"


def get_script_config(name: str) -> dict:
    """Returns the deployment config of a script for the configured network

    Raises
    ------
    ValueError
        if the script is not known for the current network
    """
    global NETWORK, CUSTOM_SCRIPTS
    if name in CUSTOM_SCRIPTS:
        return CUSTOM_SCRIPTS[name]
    try:
        return NETWORK_SCRIPTS[NETWORK][name]
    except KeyError:
        raise ValueError(
            f"Script '{name}' is not configured for network '{NETWORK}'"
        ) from None
