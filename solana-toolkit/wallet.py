import json
import logging
import time
from pathlib import Path
from typing import Optional

from solana.rpc.api import Client
from solders.keypair import Keypair

from config import resolve_rpc_url

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000


def load_keypair_from_path(keypair_path: str) -> Keypair:
    """
    Load a keypair from a Solana CLI JSON keypair file (array of 64 ints).

    Raises:
        FileNotFoundError: If the keypair file does not exist.
        ValueError: If the keypair file contains invalid data.
    """
    expanded_path = Path(keypair_path).expanduser()

    if not expanded_path.exists():
        raise FileNotFoundError(f"Keypair file not found: {expanded_path}")

    try:
        with open(expanded_path, 'r') as f:
            secret_key = json.load(f)
        return Keypair.from_bytes(bytes(secret_key))
    except (json.JSONDecodeError, ValueError, TypeError) as e:
        raise ValueError(f"Invalid keypair file format: {e}")


def keypair_from_mnemonic(mnemonic: str, passphrase: str = "") -> Keypair:
    """
    Derive a keypair from a BIP-39 mnemonic.

    The ed25519 seed is the first 32 bytes of the BIP-39 seed, the same key
    ``solana-keygen recover`` gives when no derivation path is used.

    The phrase is not checked against the BIP-39 word list.

    Raises:
        ValueError: If the phrase is empty.
    """
    phrase = " ".join(mnemonic.split())
    if not phrase:
        raise ValueError("Empty mnemonic")
    return Keypair.from_seed_phrase_and_passphrase(phrase, passphrase)


class SolanaWallet:
    """A Solana wallet wrapper for keypair management and basic RPC operations."""

    def __init__(
        self,
        keypair_path: str = "~/.config/solana/id.json",
        network: str = "devnet",
        mnemonic: Optional[str] = None,
        keypair: Optional[Keypair] = None,
        client: Optional[Client] = None,
    ):
        """
        Initialize the wallet by loading a keypair and setting up the RPC client.

        The keypair source is, in order of precedence: an explicit ``keypair``,
        a ``mnemonic``, then the JSON file at ``keypair_path``.

        Args:
            keypair_path: Path to the JSON keypair file. Defaults to ~/.config/solana/id.json.
            network: 'devnet', 'testnet', 'mainnet-beta' or an RPC URL. Defaults to 'devnet'.
            mnemonic: Optional BIP-39 phrase for the wallet keypair.
            keypair: Optional already-loaded keypair.
            client: Optional RPC client; one is created for ``network`` if omitted.

        Raises:
            FileNotFoundError: If the keypair file is needed and does not exist.
            ValueError: If the keypair file or mnemonic is invalid.
        """
        if keypair is not None:
            self.keypair = keypair
        elif mnemonic:
            self.keypair = keypair_from_mnemonic(mnemonic)
        else:
            self.keypair = load_keypair_from_path(keypair_path)

        self.rpc_url = resolve_rpc_url(network)
        self.client = client or Client(self.rpc_url)
        self.network = network
        self.pubkey = self.keypair.pubkey()

    def get_balance_lamports(self, pubkey=None) -> int:
        """
        Get the balance of the wallet, or of ``pubkey`` if given, in lamports.

        Raises:
            RuntimeError: If the RPC request returns no value.
        """
        response = self.client.get_balance(pubkey or self.pubkey)

        if response.value is None:
            raise RuntimeError("Failed to retrieve balance from RPC")

        return response.value

    def get_balance(self, pubkey=None) -> float:
        """
        Get the SOL balance of the wallet, or of ``pubkey`` if given.

        Returns:
            float: The balance in SOL (9 decimal places).
        """
        return self.get_balance_lamports(pubkey) / LAMPORTS_PER_SOL

    def airdrop(self, amount_sol: float, retries: int = 3, delay: float = 2.0) -> str:
        """
        Request an airdrop of SOL (devnet/testnet only).

        Args:
            amount_sol: Amount of SOL to request.
            retries: Number of attempts before failing.
            delay: Initial delay between retries in seconds.

        Returns:
            str: The transaction signature as a base58-encoded string.

        Raises:
            RuntimeError: If every airdrop attempt fails.
        """
        lamports = int(amount_sol * LAMPORTS_PER_SOL)
        current_delay = delay
        last_error = None

        for attempt in range(1, retries + 1):
            try:
                response = self.client.request_airdrop(self.pubkey, lamports)
                if response.value is None:
                    raise RuntimeError(f"Airdrop request failed: {response}")
                return str(response.value)
            except Exception as e:
                last_error = e
                if attempt < retries:
                    logger.warning("Airdrop attempt %d/%d failed: %s", attempt, retries, e)
                    time.sleep(current_delay)
                    current_delay *= 1.5

        raise RuntimeError(f"Airdrop request failed after {retries} attempts: {last_error}")
