"""Poll a transaction signature until the cluster reports it confirmed."""

import logging
import time
from typing import Callable, Union

from solana.rpc.api import Client
from solders.signature import Signature
from solders.transaction_status import TransactionConfirmationStatus

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0

# Finalized is deeper than confirmed, so it also counts as reached.
REACHED_STATUSES = (
    TransactionConfirmationStatus.Confirmed,
    TransactionConfirmationStatus.Finalized,
)


def _to_signature(value: Union[str, Signature]) -> Signature:
    return value if isinstance(value, Signature) else Signature.from_string(value)


def wait_for_confirmation(
    client: Client,
    signature: Union[str, Signature],
    interval: float = DEFAULT_POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
):
    """Block until ``signature`` reaches confirmed commitment.

    Any status query failure (transport, RPC error, unparseable reply) is
    logged and retried. There is no attempt limit and no timeout: the loop
    only ends once the status is confirmed (or finalized).

    Raises:
        ValueError: If ``interval`` is not positive.

    Returns:
        The transaction status reported when confirmation was reached.
    """
    if interval <= 0:
        raise ValueError(f"Poll interval must be positive, got {interval}")
    sig = _to_signature(signature)
    print(f"waiting for tx {sig} confirmation...")

    while True:
        try:
            resp = client.get_signature_statuses([sig])
        except Exception as e:
            logger.warning("Failed to get signature statuses: %s", e)
            sleep(interval)
            continue

        status = resp.value[0] if resp.value else None
        if status is None:
            print("Transaction status not yet available...")
        elif status.confirmation_status in REACHED_STATUSES:
            if status.err:
                logger.error("Transaction %s confirmed with error: %s", sig, status.err)
            print("Transaction successfully confirmed!\n")
            return status
        else:
            print("Transaction is being processed...")

        sleep(interval)
