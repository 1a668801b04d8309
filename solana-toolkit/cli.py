#!/usr/bin/env python3
"""Solana NFT Toolkit CLI."""

import argparse
import json
import logging
import sys
from typing import Optional

from rich.logging import RichHandler
from solders.keypair import Keypair

from config import get_settings
from confirmation import wait_for_confirmation
from nft_minter import NFTMinter, NftMintRequest, NftTransferRequest, parse_pubkey
from wallet import SolanaWallet, keypair_from_mnemonic, load_keypair_from_path

logger = logging.getLogger(__name__)


def positive_float(value: str) -> float:
    """argparse type: a float greater than zero."""
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {value}")
    return number


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if root.handlers:
        return
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _create_wallet(args) -> SolanaWallet:
    return SolanaWallet(
        keypair_path=args.keypair,
        network=args.network,
        mnemonic=args.mnemonic,
    )


def _create_minter(args) -> NFTMinter:
    return NFTMinter(_create_wallet(args))


def _print_nft_info(minter: NFTMinter, token_address) -> None:
    info = minter.get_nft_info(token_address)
    print(f"token info for: {info.token_address} " + "-" * 43)
    print(json.dumps(info.to_dict(), indent=2))
    print("-" * 69)


def cmd_balance(args):
    """Show SOL balance."""
    wallet = _create_wallet(args)
    bal = wallet.get_balance()
    print(f"Wallet: {wallet.pubkey}")
    print(f"Network: {wallet.network}")
    print(f"SOL Balance: {bal:.9f}")


def cmd_airdrop(args):
    """Request SOL airdrop (devnet/testnet)."""
    wallet = _create_wallet(args)
    print(f"Requesting {args.amount} SOL airdrop to {wallet.pubkey}...")
    sig = wallet.airdrop(args.amount)
    print(f"Airdrop tx: {sig}")


def cmd_mint_nft(args):
    """Mint an NFT to a wallet."""
    minter = _create_minter(args)
    receiver = parse_pubkey(args.to) if args.to else minter.wallet.pubkey
    collection = parse_pubkey(args.collection) if args.collection else Keypair().pubkey()
    sig, token_address = minter.mint_nft(
        NftMintRequest(receiver=receiver, name=args.name, uri=args.uri, collection=collection)
    )
    print(f"Mint tx: {sig}")
    print(f"Token account: {token_address}")
    if not args.no_wait:
        wait_for_confirmation(minter.client, sig, interval=args.poll_interval)


def _load_sender(args) -> Optional[Keypair]:
    if args.sender_mnemonic:
        return keypair_from_mnemonic(args.sender_mnemonic)
    if args.sender_keypair:
        return load_keypair_from_path(args.sender_keypair)
    return None


def cmd_transfer_nft(args):
    """Transfer an NFT held in a token account to a recipient wallet."""
    minter = _create_minter(args)
    request = NftTransferRequest(
        token_address=parse_pubkey(args.token_address),
        sender=_load_sender(args) or minter.payer,
        receiver=parse_pubkey(args.to),
    )
    sig, token_address = minter.transfer_nft(request)
    print(f"Transfer tx: {sig}")
    print(f"Recipient token account: {token_address}")
    if not args.no_wait:
        wait_for_confirmation(minter.client, sig, interval=args.poll_interval)


def cmd_nft_info(args):
    """Show token, mint and metadata accounts of an NFT."""
    _print_nft_info(_create_minter(args), args.token_address)


def cmd_wait(args):
    """Wait for a transaction to be confirmed."""
    wallet = _create_wallet(args)
    wait_for_confirmation(wallet.client, args.signature, interval=args.poll_interval)


def cmd_demo(args):
    """Mint an NFT to a holder, then move it to a fresh receiver, inspecting both steps."""
    minter = _create_minter(args)
    wallet = minter.wallet

    holder = keypair_from_mnemonic(args.holder_mnemonic) if args.holder_mnemonic else Keypair()
    print(f"feePayer: {wallet.pubkey}\n")
    print(f"holder: {holder.pubkey()}\n")
    print(f"feePayer balance: {wallet.get_balance_lamports()}\n")
    print(f"holder balance: {wallet.get_balance_lamports(holder.pubkey())}\n")

    collection = Keypair().pubkey()
    print(f"collection: {collection}\n")
    receiver = Keypair().pubkey()
    print(f"receiver: {receiver}\n")

    sig, token_address = minter.mint_nft(
        NftMintRequest(receiver=holder.pubkey(), name=args.name, uri=args.uri, collection=collection)
    )
    wait_for_confirmation(minter.client, sig, interval=args.poll_interval)
    _print_nft_info(minter, token_address)

    sig, token_address = minter.transfer_nft(
        NftTransferRequest(token_address=token_address, sender=holder, receiver=receiver)
    )
    wait_for_confirmation(minter.client, sig, interval=args.poll_interval)
    _print_nft_info(minter, token_address)


def build_parser(settings=None) -> argparse.ArgumentParser:
    settings = settings or get_settings()

    parser = argparse.ArgumentParser(description="Solana NFT Toolkit")
    parser.add_argument("--keypair", default=settings.keypair_path, help="Path to fee payer keypair file")
    parser.add_argument("--mnemonic", default=settings.mnemonic, help="Fee payer BIP-39 mnemonic (overrides --keypair)")
    parser.add_argument("--network", default=settings.network, help="Solana network or RPC URL")
    parser.add_argument("--poll-interval", type=positive_float, default=settings.poll_interval, help="Seconds between confirmation polls")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")

    sub = parser.add_subparsers(dest="command", required=True)

    # balance
    sub.add_parser("balance", help="Show SOL balance")

    # airdrop
    p = sub.add_parser("airdrop", help="Request SOL airdrop")
    p.add_argument("amount", type=float, default=1.0, nargs="?", help="Amount in SOL")

    # mint-nft
    p = sub.add_parser("mint-nft", help="Mint an NFT")
    p.add_argument("--name", required=True, help="NFT name")
    p.add_argument("--uri", required=True, help="Metadata URI")
    p.add_argument("--to", help="Recipient pubkey (default: own wallet)")
    p.add_argument("--collection", help="Collection pubkey (default: a new random key)")
    p.add_argument("--no-wait", action="store_true", help="Do not wait for confirmation")

    # transfer-nft
    p = sub.add_parser("transfer-nft", help="Transfer an NFT")
    p.add_argument("token_address", help="Token account holding the NFT")
    p.add_argument("--to", required=True, help="Recipient wallet pubkey")
    p.add_argument("--sender-keypair", help="Path to the current holder's keypair file (default: fee payer)")
    p.add_argument("--sender-mnemonic", help="Current holder's BIP-39 mnemonic")
    p.add_argument("--no-wait", action="store_true", help="Do not wait for confirmation")

    # nft-info
    p = sub.add_parser("nft-info", help="Show NFT accounts")
    p.add_argument("token_address", help="Token account holding the NFT")

    # wait
    p = sub.add_parser("wait", help="Wait for a transaction to be confirmed")
    p.add_argument("signature", help="Transaction signature")

    # demo
    p = sub.add_parser("demo", help="Run the mint -> inspect -> transfer -> inspect flow")
    p.add_argument("--holder-mnemonic", help="Mnemonic of the first holder (default: new keypair)")
    p.add_argument("--name", default="game nft 1", help="NFT name")
    p.add_argument("--uri", default="ipfs://123", help="Metadata URI")

    return parser


CMD_MAP = {
    "balance": cmd_balance,
    "airdrop": cmd_airdrop,
    "mint-nft": cmd_mint_nft,
    "transfer-nft": cmd_transfer_nft,
    "nft-info": cmd_nft_info,
    "wait": cmd_wait,
    "demo": cmd_demo,
}


def main(argv=None):
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level.upper())
    try:
        CMD_MAP[args.command](args)
    except Exception as e:
        logger.error("%s failed: %s", args.command, e)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
