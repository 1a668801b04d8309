"""Metaplex Token Metadata program bindings: PDAs, instructions, account decoding."""

from dataclasses import dataclass, fields, is_dataclass
from typing import Any, Dict, List, Optional, Union

from borsh_construct import Bool, CStruct, Option, String, U8, U16, U64, Vec
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.sysvar import RENT
from spl.token.constants import TOKEN_PROGRAM_ID


TOKEN_METADATA_PROGRAM_ID = Pubkey.from_string("metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s")

METADATA_SEED = b"metadata"
EDITION_SEED = b"edition"

# Instruction discriminators in the token metadata program
CREATE_MASTER_EDITION_V3 = 17
CREATE_METADATA_ACCOUNT_V3 = 33

TOKEN_STANDARDS = [
    "NonFungible",
    "FungibleAsset",
    "Fungible",
    "NonFungibleEdition",
    "ProgrammableNonFungible",
    "ProgrammableNonFungibleEdition",
]
USE_METHODS = ["Burn", "Multiple", "Single"]

# Unit-variant enums are encoded as their u8 index, same as borsh does.
CreatorLayout = CStruct(
    "address" / U8[32],
    "verified" / Bool,
    "share" / U8,
)
CollectionLayout = CStruct(
    "verified" / Bool,
    "key" / U8[32],
)
UsesLayout = CStruct(
    "use_method" / U8,
    "remaining" / U64,
    "total" / U64,
)
# V1 { size: u64 } and V2 { padding: [u8; 8] } share the same width.
CollectionDetailsLayout = CStruct(
    "variant" / U8,
    "size" / U64,
)
ProgrammableConfigLayout = CStruct(
    "variant" / U8,
    "rule_set" / Option(U8[32]),
)

DataV2Layout = CStruct(
    "name" / String,
    "symbol" / String,
    "uri" / String,
    "seller_fee_basis_points" / U16,
    "creators" / Option(Vec(CreatorLayout)),
    "collection" / Option(CollectionLayout),
    "uses" / Option(UsesLayout),
)
CreateMetadataAccountArgsV3Layout = CStruct(
    "data" / DataV2Layout,
    "is_mutable" / Bool,
    "collection_details" / Option(CollectionDetailsLayout),
)
CreateMasterEditionArgsLayout = CStruct(
    "max_supply" / Option(U64),
)

MetadataAccountLayout = CStruct(
    "key" / U8,
    "update_authority" / U8[32],
    "mint" / U8[32],
    "name" / String,
    "symbol" / String,
    "uri" / String,
    "seller_fee_basis_points" / U16,
    "creators" / Option(Vec(CreatorLayout)),
    "primary_sale_happened" / Bool,
    "is_mutable" / Bool,
    "edition_nonce" / Option(U8),
    "token_standard" / Option(U8),
    "collection" / Option(CollectionLayout),
    "uses" / Option(UsesLayout),
    "collection_details" / Option(CollectionDetailsLayout),
    "programmable_config" / Option(ProgrammableConfigLayout),
)


@dataclass(frozen=True)
class Creator:
    address: Pubkey
    verified: bool
    share: int


@dataclass(frozen=True)
class Collection:
    verified: bool
    key: Pubkey


@dataclass(frozen=True)
class Uses:
    use_method: str
    remaining: int
    total: int


@dataclass
class TokenMetadata:
    """Decoded metadata account of a token mint."""

    key: int
    update_authority: Pubkey
    mint: Pubkey
    name: str
    symbol: str
    uri: str
    seller_fee_basis_points: int
    creators: Optional[List[Creator]]
    primary_sale_happened: bool
    is_mutable: bool
    edition_nonce: Optional[int]
    token_standard: Optional[str]
    collection: Optional[Collection]
    uses: Optional[Uses]
    collection_details_size: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return _jsonable(self)


def _jsonable(value: Any) -> Any:
    if is_dataclass(value):
        return {f.name: _jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Pubkey):
        return str(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


def _to_pubkey(value: Union[str, Pubkey]) -> Pubkey:
    return value if isinstance(value, Pubkey) else Pubkey.from_string(value)


def _pubkey_from_array(raw) -> Pubkey:
    return Pubkey.from_bytes(bytes(raw))


def _strip(value: str) -> str:
    return value.rstrip("\x00")


def get_metadata_pda(mint: Union[str, Pubkey]) -> Pubkey:
    """Derive the metadata account address for a mint."""
    seeds = [METADATA_SEED, bytes(TOKEN_METADATA_PROGRAM_ID), bytes(_to_pubkey(mint))]
    return Pubkey.find_program_address(seeds, TOKEN_METADATA_PROGRAM_ID)[0]


def get_master_edition_pda(mint: Union[str, Pubkey]) -> Pubkey:
    """Derive the master edition account address for a mint."""
    seeds = [
        METADATA_SEED,
        bytes(TOKEN_METADATA_PROGRAM_ID),
        bytes(_to_pubkey(mint)),
        EDITION_SEED,
    ]
    return Pubkey.find_program_address(seeds, TOKEN_METADATA_PROGRAM_ID)[0]


def create_metadata_account_v3(
    *,
    metadata: Pubkey,
    mint: Pubkey,
    mint_authority: Pubkey,
    payer: Pubkey,
    update_authority: Pubkey,
    name: str,
    uri: str,
    symbol: str = "",
    seller_fee_basis_points: int = 0,
    creators: Optional[List[Creator]] = None,
    collection: Optional[Collection] = None,
    uses: Optional[Uses] = None,
    is_mutable: bool = False,
    update_authority_is_signer: bool = True,
    collection_details_size: Optional[int] = None,
) -> Instruction:
    """Build a CreateMetadataAccountV3 instruction."""
    args = {
        "data": {
            "name": name,
            "symbol": symbol,
            "uri": uri,
            "seller_fee_basis_points": seller_fee_basis_points,
            "creators": None if creators is None else [
                {"address": bytes(c.address), "verified": c.verified, "share": c.share}
                for c in creators
            ],
            "collection": None if collection is None else {
                "verified": collection.verified,
                "key": bytes(collection.key),
            },
            "uses": None if uses is None else {
                "use_method": USE_METHODS.index(uses.use_method),
                "remaining": uses.remaining,
                "total": uses.total,
            },
        },
        "is_mutable": is_mutable,
        "collection_details": None if collection_details_size is None else {
            "variant": 0,
            "size": collection_details_size,
        },
    }
    data = bytes([CREATE_METADATA_ACCOUNT_V3]) + CreateMetadataAccountArgsV3Layout.build(args)

    accounts = [
        AccountMeta(pubkey=metadata, is_signer=False, is_writable=True),
        AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
        AccountMeta(pubkey=mint_authority, is_signer=True, is_writable=False),
        AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
        AccountMeta(pubkey=update_authority, is_signer=update_authority_is_signer, is_writable=False),
        AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(TOKEN_METADATA_PROGRAM_ID, data, accounts)


def create_master_edition_v3(
    *,
    edition: Pubkey,
    mint: Pubkey,
    update_authority: Pubkey,
    mint_authority: Pubkey,
    payer: Pubkey,
    metadata: Pubkey,
    max_supply: Optional[int] = 0,
) -> Instruction:
    """Build a CreateMasterEditionV3 instruction.

    ``max_supply=0`` makes the edition unprintable; ``None`` means unlimited.
    """
    data = bytes([CREATE_MASTER_EDITION_V3]) + CreateMasterEditionArgsLayout.build(
        {"max_supply": max_supply}
    )
    accounts = [
        AccountMeta(pubkey=edition, is_signer=False, is_writable=True),
        AccountMeta(pubkey=mint, is_signer=False, is_writable=True),
        AccountMeta(pubkey=update_authority, is_signer=True, is_writable=False),
        AccountMeta(pubkey=mint_authority, is_signer=True, is_writable=False),
        AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
        AccountMeta(pubkey=metadata, is_signer=False, is_writable=True),
        AccountMeta(pubkey=TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
        AccountMeta(pubkey=RENT, is_signer=False, is_writable=False),
    ]
    return Instruction(TOKEN_METADATA_PROGRAM_ID, data, accounts)


def decode_metadata(data: bytes) -> TokenMetadata:
    """Decode a metadata account.

    Accounts are allocated at their maximum size and zero filled, so unused
    trailing optional fields decode as ``None``.

    Raises:
        ValueError: If the data is not a metadata account.
    """
    if not data or data[0] != 4:
        raise ValueError("Account data is not a MetadataV1 account")

    parsed = MetadataAccountLayout.parse(data)

    creators = None
    if parsed.creators is not None:
        creators = [
            Creator(
                address=_pubkey_from_array(c.address),
                verified=bool(c.verified),
                share=c.share,
            )
            for c in parsed.creators
        ]

    collection = None
    if parsed.collection is not None:
        collection = Collection(
            verified=bool(parsed.collection.verified),
            key=_pubkey_from_array(parsed.collection.key),
        )

    uses = None
    if parsed.uses is not None:
        uses = Uses(
            use_method=USE_METHODS[parsed.uses.use_method],
            remaining=parsed.uses.remaining,
            total=parsed.uses.total,
        )

    token_standard = None
    if parsed.token_standard is not None and parsed.token_standard < len(TOKEN_STANDARDS):
        token_standard = TOKEN_STANDARDS[parsed.token_standard]

    return TokenMetadata(
        key=parsed.key,
        update_authority=_pubkey_from_array(parsed.update_authority),
        mint=_pubkey_from_array(parsed.mint),
        name=_strip(parsed.name),
        symbol=_strip(parsed.symbol),
        uri=_strip(parsed.uri),
        seller_fee_basis_points=parsed.seller_fee_basis_points,
        creators=creators,
        primary_sale_happened=bool(parsed.primary_sale_happened),
        is_mutable=bool(parsed.is_mutable),
        edition_nonce=parsed.edition_nonce,
        token_standard=token_standard,
        collection=collection,
        uses=uses,
        collection_details_size=(
            None if parsed.collection_details is None else parsed.collection_details.size
        ),
    )
