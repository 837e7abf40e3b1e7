import json
import os
import sys

import pytest
from eth_account import Account
from web3 import Web3

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from signing.base import TxRequest

# Private key 1; its address is well known. Test-only, never fund it.
TEST_PRIVATE_KEY = "0x0000000000000000000000000000000000000000000000000000000000000001"
TEST_ADDRESS = "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"
REGISTRY = "0x8004a818bfb912233c491871b3d84c89a494bd9e"


@pytest.fixture
def tx_request():
    return TxRequest(to=REGISTRY, data="0x1234")


@pytest.fixture
def keystore_file(tmp_path):
    # Single pbkdf2 round keeps decryption fast.
    keystore = Account.encrypt(TEST_PRIVATE_KEY, "correct horse", kdf="pbkdf2", iterations=1)
    path = tmp_path / "keystore.json"
    path.write_text(json.dumps(keystore))
    return path


@pytest.fixture
def prepared_tx():
    return {
        "from": TEST_ADDRESS,
        "to": Web3.to_checksum_address(REGISTRY),
        "data": "0x1234",
        "value": 0,
        "chainId": 11155111,
        "nonce": 0,
        "gas": 100000,
        "type": 2,
        "maxPriorityFeePerGas": 1_000_000_000,
        "maxFeePerGas": 3_000_000_000,
    }
