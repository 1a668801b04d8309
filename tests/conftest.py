from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.signature import Signature

from token_metadata import MetadataAccountLayout
from wallet import SolanaWallet


def rpc_response(value):
    return SimpleNamespace(value=value)


@pytest.fixture
def payer():
    return Keypair()


@pytest.fixture
def client():
    fake = MagicMock()
    fake.get_latest_blockhash.return_value = rpc_response(SimpleNamespace(blockhash=Hash.default()))
    fake.get_minimum_balance_for_rent_exemption.return_value = rpc_response(1_461_600)
    fake.send_transaction.return_value = rpc_response(Signature.default())
    return fake


@pytest.fixture
def wallet(payer, client):
    return SolanaWallet(keypair=payer, client=client)


def metadata_account_bytes(update_authority, mint, collection_key, size=679):
    """A zero-padded metadata account as the token metadata program stores it."""
    data = MetadataAccountLayout.build({
        "key": 4,
        "update_authority": bytes(update_authority),
        "mint": bytes(mint),
        "name": "game nft 1".ljust(32, "\x00"),
        "symbol": "".ljust(10, "\x00"),
        "uri": "ipfs://123".ljust(200, "\x00"),
        "seller_fee_basis_points": 0,
        "creators": None,
        "primary_sale_happened": False,
        "is_mutable": False,
        "edition_nonce": 254,
        "token_standard": 0,
        "collection": {"verified": False, "key": bytes(collection_key)},
        "uses": None,
        "collection_details": None,
        "programmable_config": None,
    })
    return data + bytes(size - len(data))
