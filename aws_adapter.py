import os
import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

import config
from common.utils import queue_name, to_message

logger = logging.getLogger(__name__)

AWS_ERRORS = (ClientError, BotoCoreError)


def make_sqs_client(region=None, endpoint_url=None):
    """
    Builds the boto3 SQS client. Called once by the composition root.

    With an endpoint override (local emulators) dummy credentials are used
    unless real ones are set in the environment.
    """
    region = region or config.AWS_REGION
    endpoint_url = endpoint_url or config.SQS_ENDPOINT
    if not endpoint_url:
        return boto3.client('sqs', region_name=region)
    return boto3.client(
        'sqs',
        region_name=region,
        endpoint_url=endpoint_url,
        aws_access_key_id=os.environ.get('AWS_ACCESS_KEY_ID', 'test'),
        aws_secret_access_key=os.environ.get('AWS_SECRET_ACCESS_KEY', 'test'),
    )


def _clamp(value, low, high):
    return max(low, min(int(value), high))


class SqsAdmin:
    def __init__(self, client, max_batch=None, max_visibility=None, max_wait=None):
        self.client = client
        self.max_batch = max_batch or config.SQS_MAX_BATCH
        self.max_visibility = max_visibility or config.SQS_MAX_VISIBILITY
        self.max_wait = max_wait or config.SQS_MAX_WAIT

    # ── transport used by peek / refetch ─────────────────────────────────────

    def receive(self, queue_url: str, max_batch=10, visibility_timeout=30,
                wait_time=0, with_attributes=True) -> list:
        params = {
            'QueueUrl': queue_url,
            'MaxNumberOfMessages': _clamp(max_batch, 1, self.max_batch),
            'VisibilityTimeout': _clamp(visibility_timeout, 0, self.max_visibility),
            'WaitTimeSeconds': _clamp(wait_time, 0, self.max_wait),
        }
        if with_attributes:
            params['AttributeNames'] = ['All']
            params['MessageAttributeNames'] = ['All']
        resp = self.client.receive_message(**params)
        return resp.get('Messages', [])

    def get_approximate_count(self, queue_url: str):
        """Advisory message count, or None when the queue attributes cannot be read."""
        try:
            resp = self.client.get_queue_attributes(
                QueueUrl=queue_url,
                AttributeNames=['ApproximateNumberOfMessages']
            )
            return int(resp.get('Attributes', {}).get('ApproximateNumberOfMessages', 0))
        except (AWS_ERRORS + (ValueError,)) as e:
            logger.warning("Approximate count unavailable for %s: %s", queue_url, e)
            return None

    def delete(self, queue_url: str, receipt_handle: str) -> bool:
        try:
            self.client.delete_message(QueueUrl=queue_url, ReceiptHandle=receipt_handle)
            return True
        except AWS_ERRORS:
            logger.exception("Error deleting message from queue %s", queue_url)
            return False

    # ── queue CRUD ───────────────────────────────────────────────────────────

    def list_queues(self, next_token=None, limit=10):
        params = {'MaxResults': _clamp(limit, 1, 1000)}
        if next_token:
            params['NextToken'] = next_token
        try:
            resp = self.client.list_queues(**params)
        except AWS_ERRORS:
            logger.exception("Error listing queues")
            return [], None
        queues = [{'url': u, 'name': queue_name(u)} for u in resp.get('QueueUrls', [])]
        return queues, resp.get('NextToken')

    def get_attributes(self, queue_url: str) -> dict:
        try:
            resp = self.client.get_queue_attributes(QueueUrl=queue_url, AttributeNames=['All'])
            return resp.get('Attributes', {})
        except AWS_ERRORS:
            logger.exception("Error getting attributes for queue %s", queue_url)
            return {}

    def send(self, queue_url: str, body: str) -> bool:
        try:
            self.client.send_message(QueueUrl=queue_url, MessageBody=body)
            return True
        except AWS_ERRORS:
            logger.exception("Error sending message to queue %s", queue_url)
            return False

    def receive_messages(self, queue_url: str, max_messages=10) -> list:
        """Plain receive: messages stay hidden for the full receive visibility window."""
        try:
            raw = self.receive(
                queue_url,
                max_batch=max_messages,
                visibility_timeout=config.RECEIVE_VISIBILITY_TIMEOUT,
                wait_time=0,
            )
        except AWS_ERRORS:
            logger.exception("Error receiving messages from queue %s", queue_url)
            return []
        return [to_message(m) for m in raw]

    def create_queue(self, name: str, is_fifo=False, delay_seconds=None,
                     message_retention_period=None, visibility_timeout=None,
                     max_message_size=None):
        if is_fifo and not name.endswith('.fifo'):
            name = f"{name}.fifo"

        attributes = {}
        if is_fifo:
            attributes['FifoQueue'] = 'true'
            attributes['ContentBasedDeduplication'] = 'true'
        optional = {
            'DelaySeconds': delay_seconds,
            'MessageRetentionPeriod': message_retention_period,
            'VisibilityTimeout': visibility_timeout,
            'MaximumMessageSize': max_message_size,
        }
        for key, value in optional.items():
            if value is not None:
                attributes[key] = str(int(value))

        try:
            resp = self.client.create_queue(QueueName=name, Attributes=attributes)
        except AWS_ERRORS:
            logger.exception("Error creating queue %s", name)
            return None
        url = resp.get('QueueUrl')
        if not url:
            logger.error("No QueueUrl returned creating %s", name)
            return None
        logger.info("Created queue %s", url)
        return {'url': url, 'name': name, 'attributes': self.get_attributes(url)}

    def delete_queue(self, queue_url: str) -> bool:
        try:
            self.client.delete_queue(QueueUrl=queue_url)
            return True
        except AWS_ERRORS:
            logger.exception("Error deleting queue %s", queue_url)
            return False
