import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.sysvar import RENT
from spl.token.constants import TOKEN_PROGRAM_ID

from conftest import metadata_account_bytes
from token_metadata import (
    TOKEN_METADATA_PROGRAM_ID,
    Collection,
    CreateMasterEditionArgsLayout,
    CreateMetadataAccountArgsV3Layout,
    create_master_edition_v3,
    create_metadata_account_v3,
    decode_metadata,
    get_master_edition_pda,
    get_metadata_pda,
)


def test_metadata_pda_uses_metadata_seeds():
    mint = Keypair().pubkey()
    expected, _ = Pubkey.find_program_address(
        [b"metadata", bytes(TOKEN_METADATA_PROGRAM_ID), bytes(mint)],
        TOKEN_METADATA_PROGRAM_ID,
    )
    assert get_metadata_pda(mint) == expected
    assert get_metadata_pda(str(mint)) == expected


def test_master_edition_pda_differs_from_metadata_pda():
    mint = Keypair().pubkey()
    expected, _ = Pubkey.find_program_address(
        [b"metadata", bytes(TOKEN_METADATA_PROGRAM_ID), bytes(mint), b"edition"],
        TOKEN_METADATA_PROGRAM_ID,
    )
    assert get_master_edition_pda(mint) == expected
    assert get_master_edition_pda(mint) != get_metadata_pda(mint)


def test_create_metadata_account_v3_encoding():
    payer = Keypair().pubkey()
    mint = Keypair().pubkey()
    collection_key = Keypair().pubkey()
    metadata = get_metadata_pda(mint)

    ix = create_metadata_account_v3(
        metadata=metadata,
        mint=mint,
        mint_authority=payer,
        payer=payer,
        update_authority=payer,
        name="game nft 1",
        uri="ipfs://123",
        collection=Collection(verified=False, key=collection_key),
    )

    assert ix.program_id == TOKEN_METADATA_PROGRAM_ID
    assert ix.data[0] == 33
    args = CreateMetadataAccountArgsV3Layout.parse(bytes(ix.data[1:]))
    assert args.data.name == "game nft 1"
    assert args.data.symbol == ""
    assert args.data.uri == "ipfs://123"
    assert args.data.seller_fee_basis_points == 0
    assert args.data.creators is None
    assert args.data.uses is None
    assert not args.data.collection.verified
    assert bytes(args.data.collection.key) == bytes(collection_key)
    assert not args.is_mutable
    assert args.collection_details is None

    assert [m.pubkey for m in ix.accounts] == [metadata, mint, payer, payer, payer, SYSTEM_PROGRAM_ID]
    assert ix.accounts[0].is_writable
    assert ix.accounts[4].is_signer


def test_create_master_edition_v3_encoding():
    payer = Keypair().pubkey()
    mint = Keypair().pubkey()
    edition = get_master_edition_pda(mint)
    metadata = get_metadata_pda(mint)

    ix = create_master_edition_v3(
        edition=edition,
        mint=mint,
        update_authority=payer,
        mint_authority=payer,
        payer=payer,
        metadata=metadata,
        max_supply=0,
    )

    assert ix.data[0] == 17
    assert CreateMasterEditionArgsLayout.parse(bytes(ix.data[1:])).max_supply == 0
    assert [m.pubkey for m in ix.accounts] == [
        edition, mint, payer, payer, payer, metadata,
        TOKEN_PROGRAM_ID, SYSTEM_PROGRAM_ID, RENT,
    ]


def test_decode_metadata_strips_padding():
    authority = Keypair().pubkey()
    mint = Keypair().pubkey()
    collection_key = Keypair().pubkey()

    meta = decode_metadata(metadata_account_bytes(authority, mint, collection_key))

    assert meta.update_authority == authority
    assert meta.mint == mint
    assert meta.name == "game nft 1"
    assert meta.symbol == ""
    assert meta.uri == "ipfs://123"
    assert meta.edition_nonce == 254
    assert meta.token_standard == "NonFungible"
    assert meta.collection.key == collection_key
    assert meta.collection.verified is False
    assert meta.is_mutable is False

    as_dict = meta.to_dict()
    assert as_dict["mint"] == str(mint)
    assert as_dict["collection"] == {"verified": False, "key": str(collection_key)}


def test_decode_metadata_rejects_other_accounts():
    with pytest.raises(ValueError):
        decode_metadata(bytes(82))
    with pytest.raises(ValueError):
        decode_metadata(b"")
