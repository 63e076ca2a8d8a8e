import logging
import sys
from pathlib import Path

import pytest

# Make ``helpeth`` importable from a plain checkout (no editable install).
project_root = Path(__file__).resolve().parents[2]
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

# Sender of the EIP-155 reference transaction
PRIVATE_KEY_HEX = "0x" + "46" * 32
ADDRESS_CHECKSUMMED = "0x9d8A62f656a8d1615C1294fd71e9CFb3E4855A4F"

RECIPIENT = "0x" + "35" * 20

# nonce 9, 20 gwei, 21000 gas, 1 ether, chain id 1
EIP155_SIGNED_TX = (
    "0xf86c098504a817c800825208943535353535353535353535353535353535353535880de0b6b3a7640000"
    "8025a028ef61340bd939bc2195fe537567866003e1a15d3c71ff63e1590620aa636276a067cbe9d8997f76"
    "1aecb703304b3800ccf555c9f3dc64214b297fb1966a3b6d83"
)

MNEMONIC = (
    "abandon abandon abandon abandon abandon abandon "
    "abandon abandon abandon abandon abandon about"
)
MNEMONIC_ADDRESS = "0x9858EfFD232B4033E47d90003D41EC34EcaEda94"


@pytest.fixture
def private_key_hex():
    return PRIVATE_KEY_HEX


@pytest.fixture
def wallet():
    from helpeth.core.wallet import Wallet

    return Wallet.from_hex(PRIVATE_KEY_HEX)


@pytest.fixture
def keystore_file(tmp_path, wallet):
    """A fast (pbkdf2, 2 rounds) keystore for the reference key, password 'hunter2'."""
    from helpeth.core.keystore import save_keystore

    return save_keystore(wallet, "hunter2", tmp_path / "keys", kdf="pbkdf2", iterations=2)


@pytest.fixture(autouse=True)
def reset_helpeth_logger():
    """Drop handlers a CLI invocation bound to its captured streams."""
    yield
    logger = logging.getLogger("helpeth")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
