from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from solana.rpc.core import RPCException
from solders.signature import Signature
from solders.transaction_status import TransactionConfirmationStatus

from confirmation import wait_for_confirmation


def _statuses(*statuses):
    return SimpleNamespace(value=list(statuses))


def _status(level, err=None):
    return SimpleNamespace(confirmation_status=level, err=err)


def test_returns_once_confirmed():
    client = MagicMock()
    confirmed = _status(TransactionConfirmationStatus.Confirmed)
    client.get_signature_statuses.return_value = _statuses(confirmed)
    sleeps = []

    result = wait_for_confirmation(client, Signature.default(), sleep=sleeps.append)

    assert result is confirmed
    assert sleeps == []
    client.get_signature_statuses.assert_called_once_with([Signature.default()])


def test_keeps_polling_until_confirmed(capsys):
    client = MagicMock()
    client.get_signature_statuses.side_effect = [
        _statuses(None),
        _statuses(_status(TransactionConfirmationStatus.Processed)),
        _statuses(_status(TransactionConfirmationStatus.Confirmed)),
    ]
    sleeps = []

    wait_for_confirmation(client, Signature.default(), interval=0.5, sleep=sleeps.append)

    assert sleeps == [0.5, 0.5]
    out = capsys.readouterr().out
    assert "Transaction status not yet available..." in out
    assert "Transaction is being processed..." in out
    assert "Transaction successfully confirmed!" in out


def test_rpc_failures_are_retried(caplog):
    client = MagicMock()
    client.get_signature_statuses.side_effect = [
        RPCException("node is behind"),
        RPCException("node is behind"),
        _statuses(_status(TransactionConfirmationStatus.Confirmed)),
    ]
    sleeps = []

    wait_for_confirmation(client, Signature.default(), sleep=sleeps.append)

    assert client.get_signature_statuses.call_count == 3
    assert len(sleeps) == 2
    assert "Failed to get signature statuses" in caplog.text


def test_finalized_counts_as_confirmed():
    client = MagicMock()
    client.get_signature_statuses.return_value = _statuses(
        _status(TransactionConfirmationStatus.Finalized)
    )

    result = wait_for_confirmation(client, Signature.default(), sleep=lambda _: None)

    assert result.confirmation_status == TransactionConfirmationStatus.Finalized


def test_empty_status_list_is_not_available_yet():
    client = MagicMock()
    client.get_signature_statuses.side_effect = [
        _statuses(),
        _statuses(_status(TransactionConfirmationStatus.Confirmed)),
    ]
    sleeps = []

    wait_for_confirmation(client, Signature.default(), sleep=sleeps.append)

    assert len(sleeps) == 1


def test_confirmed_with_error_is_logged_and_returned(caplog):
    client = MagicMock()
    failed = _status(TransactionConfirmationStatus.Confirmed, err="InstructionError")
    client.get_signature_statuses.return_value = _statuses(failed)

    result = wait_for_confirmation(client, str(Signature.default()), sleep=lambda _: None)

    assert result is failed
    assert "confirmed with error" in caplog.text


def test_unparseable_reply_is_retried(caplog):
    client = MagicMock()
    client.get_signature_statuses.side_effect = [
        ValueError("expected value at line 1 column 1"),
        _statuses(_status(TransactionConfirmationStatus.Confirmed)),
    ]
    sleeps = []

    result = wait_for_confirmation(client, Signature.default(), sleep=sleeps.append)

    assert result.confirmation_status == TransactionConfirmationStatus.Confirmed
    assert sleeps == [2.0]
    assert "expected value at line 1 column 1" in caplog.text


@pytest.mark.parametrize("interval", [0, -1.0])
def test_interval_must_be_positive(interval):
    client = MagicMock()
    with pytest.raises(ValueError):
        wait_for_confirmation(client, Signature.default(), interval=interval)
    client.get_signature_statuses.assert_not_called()
