#!/usr/bin/env python3
"""
peek_queue.py — Browse an SQS queue without consuming it.

SQS only offers a destructive receive, so a peek is approximated with several
short-visibility receive rounds, deduplicated by message id. Peeked receipt
handles expire almost immediately; to delete a peeked message, refetch it by
id with a longer visibility window and use the fresh handle.

Both routines are best effort and never raise transport errors: a failed
round counts as an empty one, and a queue that could not be read looks the
same as an empty queue.
"""

import json
import math
import logging
import argparse
import threading
from dataclasses import dataclass

import config
from aws_adapter import SqsAdmin, make_sqs_client
from common.utils import collect_new, to_message, validate_queue_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PeekPolicy:
    min_rounds: int = config.PEEK_MIN_ROUNDS
    max_rounds: int = config.PEEK_MAX_ROUNDS
    empty_round_stop_threshold: int = config.PEEK_EMPTY_ROUNDS
    inter_round_delay: float = config.PEEK_ROUND_DELAY
    visibility_timeout: int = config.PEEK_VISIBILITY_TIMEOUT
    first_wait_seconds: int = config.PEEK_FIRST_WAIT
    wait_seconds: int = config.PEEK_WAIT
    batch_size: int = config.SQS_MAX_BATCH
    use_advisory_count: bool = True

    def __post_init__(self):
        if self.min_rounds < 1 or self.max_rounds < self.min_rounds:
            raise ValueError("need 1 <= min_rounds <= max_rounds")
        if self.empty_round_stop_threshold < 2:
            raise ValueError("empty_round_stop_threshold must be at least 2")
        if self.batch_size < 1:
            raise ValueError("batch_size must be positive")

    def rounds_for(self, approx_count: int) -> int:
        wanted = math.ceil(max(approx_count, 0) / self.batch_size)
        return min(self.max_rounds, max(self.min_rounds, wanted))


@dataclass(frozen=True)
class RefetchPolicy:
    max_attempts: int = config.REFETCH_ATTEMPTS
    visibility_timeout: int = config.REFETCH_VISIBILITY_TIMEOUT
    wait_seconds: int = config.REFETCH_WAIT
    retry_delay: float = config.REFETCH_DELAY
    batch_size: int = config.SQS_MAX_BATCH

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be positive")


def peek(sqs, queue_url: str, max_messages: int = config.PEEK_DEFAULT_MAX,
         policy: PeekPolicy = None, cancel: threading.Event = None) -> list:
    """
    Returns up to `max_messages` distinct messages currently in the queue.

    Args:
        sqs: Transport with receive() and get_approximate_count().
        queue_url (str): Queue to browse, passed to the transport unchanged.
        max_messages (int): Upper bound on the result.
        policy (PeekPolicy): Round and timing limits.
        cancel (threading.Event): When set, remaining rounds are skipped and
            the messages collected so far are returned.

    Returns:
        list[Message]: in round order, first-seen receipt handle per id.
    """
    validate_queue_url(queue_url)
    if max_messages < 1:
        raise ValueError("max_messages must be at least 1")
    policy = policy or PeekPolicy()
    stop = cancel or threading.Event()

    approx = None
    if policy.use_advisory_count:
        try:
            approx = sqs.get_approximate_count(queue_url)
        except Exception as e:
            logger.warning("Approximate count for %s unavailable: %s", queue_url, e)
    rounds = policy.rounds_for(approx or 0)
    logger.debug("Peeking %s: approx=%s, up to %d rounds", queue_url, approx, rounds)

    seen = frozenset()
    messages = []
    idle_rounds = 0

    for round_no in range(rounds):
        if stop.is_set():
            logger.info("Peek of %s cancelled after %d rounds", queue_url, round_no)
            break

        wait = policy.first_wait_seconds if round_no == 0 else policy.wait_seconds
        try:
            batch = sqs.receive(
                queue_url,
                max_batch=policy.batch_size,
                visibility_timeout=policy.visibility_timeout,
                wait_time=wait,
                with_attributes=True,
            )
        except Exception as e:
            logger.warning("Peek round %d on %s failed: %s", round_no + 1, queue_url, e)
            batch = []

        fresh, seen = collect_new(batch, seen, max_messages - len(messages))
        messages.extend(fresh)
        idle_rounds = 0 if fresh else idle_rounds + 1
        logger.debug("Round %d: %d received, %d new, %d total",
                     round_no + 1, len(batch), len(fresh), len(messages))

        if len(messages) >= max_messages:
            break
        if idle_rounds >= policy.empty_round_stop_threshold:
            break
        if round_no == 0 and approx == 0 and not batch:
            break
        if round_no + 1 < rounds and stop.wait(policy.inter_round_delay):
            logger.info("Peek of %s cancelled after %d rounds", queue_url, round_no + 1)
            break

    return messages[:max_messages]


def refetch_by_id(sqs, queue_url: str, message_id: str,
                  policy: RefetchPolicy = None, cancel: threading.Event = None):
    """
    Receives `message_id` again to get a receipt handle that is still valid
    for deletion. Returns the Message, or None if no attempt surfaced it.
    """
    validate_queue_url(queue_url)
    if not message_id:
        raise ValueError("message_id is required")
    policy = policy or RefetchPolicy()
    stop = cancel or threading.Event()

    for attempt in range(1, policy.max_attempts + 1):
        if stop.is_set():
            logger.info("Refetch of %s cancelled after %d attempts", message_id, attempt - 1)
            return None

        try:
            batch = sqs.receive(
                queue_url,
                max_batch=policy.batch_size,
                visibility_timeout=policy.visibility_timeout,
                wait_time=policy.wait_seconds,
                with_attributes=True,
            )
        except Exception as e:
            logger.warning("Refetch attempt %d on %s failed: %s", attempt, queue_url, e)
            batch = []

        for raw in batch:
            if raw.get('MessageId') == message_id:
                logger.info("Refetched %s on attempt %d", message_id, attempt)
                return to_message(raw)

        if attempt < policy.max_attempts and stop.wait(policy.retry_delay):
            logger.info("Refetch of %s cancelled after %d attempts", message_id, attempt)
            return None

    logger.info("Message %s not found in %s after %d attempts",
                message_id, queue_url, policy.max_attempts)
    return None


def main(argv=None):
    logging.basicConfig(level=logging.INFO,
                        format='[PEEK] %(asctime)s %(levelname)s %(message)s')

    parser = argparse.ArgumentParser(description="Peek at an SQS queue without consuming it")
    parser.add_argument('queue_url')
    parser.add_argument('--max', type=int, default=config.PEEK_DEFAULT_MAX)
    parser.add_argument('--id', dest='message_id', help="refetch one message by id instead")
    args = parser.parse_args(argv)

    sqs = SqsAdmin(make_sqs_client())
    if args.message_id:
        msg = refetch_by_id(sqs, args.queue_url, args.message_id)
        print(json.dumps(msg.to_dict() if msg else None, indent=2))
        return 0 if msg else 1

    msgs = peek(sqs, args.queue_url, args.max)
    print(json.dumps([m.to_dict() for m in msgs], indent=2))
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
