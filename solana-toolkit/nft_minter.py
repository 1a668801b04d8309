"""Mint, transfer and inspect Metaplex NFTs backed by the SPL Token program."""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import CreateAccountParams, create_account
from solders.transaction import Transaction
from spl.token.constants import MINT_LEN, TOKEN_PROGRAM_ID
from spl.token.instructions import (
    InitializeMintParams,
    MintToParams,
    TransferCheckedParams,
    create_associated_token_account,
    create_idempotent_associated_token_account,
    get_associated_token_address,
    initialize_mint,
    mint_to,
    transfer_checked,
)

from token_metadata import (
    Collection,
    TokenMetadata,
    create_master_edition_v3,
    create_metadata_account_v3,
    decode_metadata,
    get_master_edition_pda,
    get_metadata_pda,
)
from wallet import SolanaWallet

logger = logging.getLogger(__name__)


class NFTOperationError(RuntimeError):
    """An RPC or SDK step of a mint, transfer or lookup failed."""


@dataclass(frozen=True)
class NftMintRequest:
    receiver: Pubkey
    name: str
    uri: str
    collection: Pubkey


@dataclass(frozen=True)
class NftTransferRequest:
    # Token account currently holding the NFT, not the mint.
    token_address: Pubkey
    sender: Keypair
    receiver: Pubkey


@dataclass
class NftInfo:
    token_address: Pubkey
    token_account: Dict[str, Any]
    mint_address: Pubkey
    mint_account: Dict[str, Any]
    metadata_address: Pubkey
    metadata: TokenMetadata

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token_address": str(self.token_address),
            "token_account": self.token_account,
            "mint_address": str(self.mint_address),
            "mint_account": self.mint_account,
            "metadata_address": str(self.metadata_address),
            "metadata": self.metadata.to_dict(),
        }


def parse_pubkey(value: Union[str, Pubkey]) -> Pubkey:
    """Parse a base58 public key.

    Raises:
        ValueError: If the value is not a valid public key.
    """
    if isinstance(value, Pubkey):
        return value
    try:
        return Pubkey.from_string(value)
    except Exception as e:
        raise ValueError(f"Invalid public key {value!r}: {e}") from e


@contextmanager
def _step(description: str):
    try:
        yield
    except NFTOperationError:
        raise
    except Exception as e:
        logger.error("failed to %s: %s", description, e)
        raise NFTOperationError(f"failed to {description}: {e}") from e


class NFTMinter:
    """Mint and move one-of-one NFTs paid for by a single fee payer."""

    def __init__(self, wallet: Optional[SolanaWallet] = None):
        """Initialize NFTMinter.

        Args:
            wallet: SolanaWallet instance whose keypair pays fees and rent.
                Creates default if None.
        """
        self.wallet = wallet or SolanaWallet()
        self.client: Client = self.wallet.client
        self.payer: Keypair = self.wallet.keypair

    def _send_tx(self, ixs: list[Instruction], signers: list[Keypair]) -> Signature:
        with _step("get recent blockhash"):
            blockhash = self.client.get_latest_blockhash(Confirmed).value.blockhash

        with _step("build tx"):
            msg = Message.new_with_blockhash(ixs, self.payer.pubkey(), blockhash)
            tx = Transaction.new_unsigned(msg)
            tx.sign(signers, blockhash)

        with _step("send tx"):
            resp = self.client.send_transaction(
                tx,
                opts=TxOpts(preflight_commitment=Confirmed),
            )
            if resp.value is None:
                raise RuntimeError(f"Transaction send failed: {resp}")
        return resp.value

    def _get_parsed_account(self, address: Pubkey, kind: str) -> Dict[str, Any]:
        label = "token account" if kind == "account" else f"{kind} account"
        with _step(f"get {label} {address}"):
            resp = self.client.get_account_info_json_parsed(address, commitment=Confirmed)
            if resp.value is None:
                raise RuntimeError("account not found")
            parsed = getattr(resp.value.data, "parsed", None)
            if not isinstance(parsed, dict) or parsed.get("type") != kind:
                raise RuntimeError(f"account is not a {label}")
        return parsed["info"]

    def mint_nft(self, request: NftMintRequest) -> Tuple[Signature, Pubkey]:
        """Mint a new NFT to ``request.receiver``.

        One transaction creates the mint (0 decimals), its metadata account,
        the receiver's associated token account, mints exactly 1 token and
        locks supply with a master edition.

        Returns:
            (transaction signature, receiver's token account)

        Raises:
            NFTOperationError: If any RPC or SDK step fails.
        """
        mint = Keypair()
        payer = self.payer.pubkey()

        with _step("find a valid ata"):
            ata = get_associated_token_address(request.receiver, mint.pubkey())
        with _step("find a valid token metadata"):
            metadata_pda = get_metadata_pda(mint.pubkey())
        with _step("find a valid master edition"):
            edition_pda = get_master_edition_pda(mint.pubkey())

        with _step("get mint account rent"):
            rent = self.client.get_minimum_balance_for_rent_exemption(MINT_LEN).value

        ixs = [
            create_account(
                CreateAccountParams(
                    from_pubkey=payer,
                    to_pubkey=mint.pubkey(),
                    lamports=rent,
                    space=MINT_LEN,
                    owner=TOKEN_PROGRAM_ID,
                )
            ),
            initialize_mint(
                InitializeMintParams(
                    program_id=TOKEN_PROGRAM_ID,
                    mint=mint.pubkey(),
                    decimals=0,
                    mint_authority=payer,
                    freeze_authority=payer,
                )
            ),
            create_metadata_account_v3(
                metadata=metadata_pda,
                mint=mint.pubkey(),
                mint_authority=payer,
                payer=payer,
                update_authority=payer,
                name=request.name,
                uri=request.uri,
                collection=Collection(verified=False, key=request.collection),
                is_mutable=False,
            ),
            create_associated_token_account(payer, request.receiver, mint.pubkey()),
            mint_to(
                MintToParams(
                    program_id=TOKEN_PROGRAM_ID,
                    mint=mint.pubkey(),
                    dest=ata,
                    mint_authority=payer,
                    amount=1,
                )
            ),
            create_master_edition_v3(
                edition=edition_pda,
                mint=mint.pubkey(),
                update_authority=payer,
                mint_authority=payer,
                payer=payer,
                metadata=metadata_pda,
                max_supply=0,
            ),
        ]

        sig = self._send_tx(ixs, [mint, self.payer])
        logger.info("Mint %s sent in tx %s", mint.pubkey(), sig)
        return sig, ata

    def transfer_nft(self, request: NftTransferRequest) -> Tuple[Signature, Pubkey]:
        """Move the NFT held in ``request.token_address`` to ``request.receiver``.

        The receiver's associated token account is created if it does not
        exist yet; the fee payer funds it.

        Returns:
            (transaction signature, receiver's token account)

        Raises:
            NFTOperationError: If any RPC or SDK step fails.
        """
        token_info = self._get_parsed_account(request.token_address, "account")
        with _step("parse mint of token account"):
            mint = Pubkey.from_string(token_info["mint"])

        sender = request.sender.pubkey()
        with _step("find sender's ATA"):
            sender_ata = get_associated_token_address(sender, mint)
        with _step("find recipient's ATA"):
            receiver_ata = get_associated_token_address(request.receiver, mint)

        ixs = [
            create_idempotent_associated_token_account(
                self.payer.pubkey(),
                request.receiver,
                mint,
            ),
            transfer_checked(
                TransferCheckedParams(
                    program_id=TOKEN_PROGRAM_ID,
                    source=sender_ata,
                    mint=mint,
                    dest=receiver_ata,
                    owner=sender,
                    amount=1,
                    decimals=0,
                )
            ),
        ]

        sig = self._send_tx(ixs, [self.payer, request.sender])
        logger.info("Transfer of %s to %s sent in tx %s", mint, request.receiver, sig)
        return sig, receiver_ata

    def get_nft_info(self, token_address: Union[str, Pubkey]) -> NftInfo:
        """Read the token account, mint account and metadata behind a token account.

        Raises:
            NFTOperationError: If any account is missing or cannot be decoded.
        """
        token_pubkey = parse_pubkey(token_address)
        token_account = self._get_parsed_account(token_pubkey, "account")
        with _step("parse mint of token account"):
            mint = Pubkey.from_string(token_account["mint"])

        mint_account = self._get_parsed_account(mint, "mint")

        with _step("get metadata account"):
            metadata_pda = get_metadata_pda(mint)
            resp = self.client.get_account_info(metadata_pda, commitment=Confirmed)
            if resp.value is None:
                raise RuntimeError(f"metadata account {metadata_pda} not found")
        with _step("parse metadata account"):
            metadata = decode_metadata(bytes(resp.value.data))

        return NftInfo(
            token_address=token_pubkey,
            token_account=token_account,
            mint_address=mint,
            mint_account=mint_account,
            metadata_address=metadata_pda,
            metadata=metadata,
        )
