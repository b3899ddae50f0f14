import base64
import binascii
import re
import time
from dataclasses import dataclass, field
from urllib.parse import urlparse

QUEUE_NAME_RE = re.compile(r'^[A-Za-z0-9_-]{1,80}(\.fifo)?$')


class InvalidQueueReference(ValueError):
    """Raised when a queue URL is malformed, before any network call."""


@dataclass(frozen=True)
class Message:
    id: str
    body: str
    receipt_handle: str
    attributes: dict = field(default_factory=dict)
    timestamp: int = 0

    def __hash__(self):
        # attributes is a dict; equal messages share id and handle
        return hash((self.id, self.receipt_handle))

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'body': self.body,
            'receiptHandle': self.receipt_handle,
            'attributes': dict(self.attributes),
            'timestamp': self.timestamp,
        }


def extract_timestamp(attributes: dict, now=None) -> int:
    """
    Derives a display time in epoch milliseconds.

    Args:
        attributes (dict): System attributes returned with the message.
        now (float): Capture time in seconds, defaults to the wall clock.

    Returns:
        int: The SentTimestamp attribute when present and numeric,
        otherwise the capture time.
    """
    sent = (attributes or {}).get('SentTimestamp')
    if sent is not None:
        try:
            return int(sent)
        except (TypeError, ValueError):
            pass
    if now is None:
        now = time.time()
    return int(now * 1000)


def to_message(raw: dict, now=None) -> Message:
    attributes = raw.get('Attributes') or {}
    return Message(
        id=raw.get('MessageId', ''),
        body=raw.get('Body', ''),
        receipt_handle=raw.get('ReceiptHandle', ''),
        attributes=dict(attributes),
        timestamp=extract_timestamp(attributes, now),
    )


def collect_new(batch, seen: frozenset, limit: int):
    """
    Picks the messages of one receive batch whose ids are not in `seen`.

    Duplicates inside the batch are dropped too, first occurrence wins.
    At most `limit` messages are taken.

    Returns:
        tuple[list[Message], frozenset]: the new messages and the updated
        seen-ids set. `seen` itself is left untouched.
    """
    fresh = []
    ids = set(seen)
    for raw in batch:
        if len(fresh) >= limit:
            break
        msg = to_message(raw)
        if msg.id in ids:
            continue
        ids.add(msg.id)
        fresh.append(msg)
    return fresh, frozenset(ids)


def queue_name(queue_url: str) -> str:
    return queue_url.rstrip('/').split('/')[-1] or queue_url


def validate_queue_url(queue_url) -> str:
    if not isinstance(queue_url, str) or not queue_url.strip():
        raise InvalidQueueReference("Queue URL is required")
    parsed = urlparse(queue_url)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise InvalidQueueReference(f"Not a queue URL: {queue_url!r}")
    name = parsed.path.rstrip('/').split('/')[-1]
    if not QUEUE_NAME_RE.match(name):
        raise InvalidQueueReference(f"Invalid queue name in URL: {queue_url!r}")
    return queue_url


def encode_queue_url(queue_url: str) -> str:
    return base64.urlsafe_b64encode(queue_url.encode('utf-8')).decode('ascii').rstrip('=')


def decode_queue_url(token: str) -> str:
    """Reverses encode_queue_url and validates the result."""
    padded = token + '=' * (-len(token) % 4)
    try:
        queue_url = base64.urlsafe_b64decode(padded.encode('ascii')).decode('utf-8')
    except (binascii.Error, UnicodeError, ValueError):
        raise InvalidQueueReference(f"Malformed queue reference: {token!r}")
    return validate_queue_url(queue_url)
