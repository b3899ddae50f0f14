"""Shared test fixtures."""

import threading

import pytest

from peek_queue import PeekPolicy, RefetchPolicy

QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/orders"


def raw_message(msg_id, body="payload", handle=None, sent=None):
    raw = {
        'MessageId': msg_id,
        'Body': body,
        'ReceiptHandle': handle or f"rh-{msg_id}",
        'Attributes': {},
    }
    if sent is not None:
        raw['Attributes']['SentTimestamp'] = str(sent)
    return raw


class FakeSqs:
    """
    Scripted transport. `rounds` is a list of batches (or exceptions to raise)
    consumed one per receive call; once exhausted `default` is returned.
    """

    def __init__(self, rounds=None, default=None, approx=0):
        self.rounds = list(rounds or [])
        self.default = default
        self.approx = approx
        self.calls = []
        self.count_calls = 0

    def get_approximate_count(self, queue_url):
        self.count_calls += 1
        return self.approx

    def receive(self, queue_url, max_batch=10, visibility_timeout=30,
                wait_time=0, with_attributes=True):
        self.calls.append({
            'queue_url': queue_url,
            'max_batch': max_batch,
            'visibility_timeout': visibility_timeout,
            'wait_time': wait_time,
        })
        batch = self.rounds.pop(0) if self.rounds else self.default
        if isinstance(batch, Exception):
            raise batch
        if callable(batch):
            return batch(len(self.calls))
        return list(batch or [])


@pytest.fixture
def queue_url() -> str:
    return QUEUE_URL


@pytest.fixture
def fast_peek() -> PeekPolicy:
    return PeekPolicy(min_rounds=4, max_rounds=8, empty_round_stop_threshold=2,
                      inter_round_delay=0, visibility_timeout=1,
                      first_wait_seconds=2, wait_seconds=1, batch_size=10)


@pytest.fixture
def fast_refetch() -> RefetchPolicy:
    return RefetchPolicy(max_attempts=5, visibility_timeout=30,
                         wait_seconds=0, retry_delay=0, batch_size=10)


class RecordingEvent(threading.Event):
    """Event that records every wait() timeout and never blocks."""

    def __init__(self):
        super().__init__()
        self.waits = []

    def wait(self, timeout=None):
        self.waits.append(timeout)
        return self.is_set()
