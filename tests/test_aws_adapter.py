"""Tests for the boto3 SQS wrapper, using botocore's Stubber."""

import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.stub import ANY, Stubber

from aws_adapter import SqsAdmin, make_sqs_client
from conftest import QUEUE_URL
from peek_queue import PeekPolicy, peek


@pytest.fixture
def client():
    return boto3.client('sqs', region_name='us-east-1',
                        aws_access_key_id='test', aws_secret_access_key='test')


@pytest.fixture
def stubber(client):
    with Stubber(client) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def sqs(client, stubber):
    return SqsAdmin(client, max_batch=10, max_visibility=43200, max_wait=20)


def test_make_sqs_client_with_endpoint():
    client = make_sqs_client(region='eu-west-1', endpoint_url='http://localhost:9324')
    assert client.meta.endpoint_url == 'http://localhost:9324'
    assert client.meta.region_name == 'eu-west-1'


def test_receive_clamps_to_service_limits(sqs, stubber):
    stubber.add_response('receive_message', {'Messages': [
        {'MessageId': 'm1', 'ReceiptHandle': 'h1', 'Body': 'hello'},
    ]}, {
        'QueueUrl': QUEUE_URL,
        'MaxNumberOfMessages': 10,
        'VisibilityTimeout': 43200,
        'WaitTimeSeconds': 0,
        'AttributeNames': ['All'],
        'MessageAttributeNames': ['All'],
    })
    msgs = sqs.receive(QUEUE_URL, max_batch=50, visibility_timeout=10**6, wait_time=-3)
    assert msgs[0]['MessageId'] == 'm1'


def test_receive_propagates_client_errors(sqs, stubber):
    stubber.add_client_error('receive_message', service_error_code='AWS.SimpleQueueService.NonExistentQueue')
    with pytest.raises(ClientError):
        sqs.receive(QUEUE_URL)


def test_approximate_count(sqs, stubber):
    stubber.add_response('get_queue_attributes',
                         {'Attributes': {'ApproximateNumberOfMessages': '37'}},
                         {'QueueUrl': QUEUE_URL, 'AttributeNames': ['ApproximateNumberOfMessages']})
    assert sqs.get_approximate_count(QUEUE_URL) == 37


def test_approximate_count_unknown_on_failure(sqs, stubber):
    stubber.add_client_error('get_queue_attributes', service_error_code='AccessDenied')
    assert sqs.get_approximate_count(QUEUE_URL) is None


def test_peek_keeps_going_when_count_unreadable(sqs, stubber):
    stubber.add_client_error('get_queue_attributes', service_error_code='AccessDenied')
    stubber.add_response('receive_message', {})
    stubber.add_response('receive_message', {'Messages': [
        {'MessageId': 'm1', 'ReceiptHandle': 'h1', 'Body': 'hello'},
    ]})
    policy = PeekPolicy(min_rounds=2, max_rounds=2, inter_round_delay=0)
    assert [m.id for m in peek(sqs, QUEUE_URL, 10, policy=policy)] == ['m1']


def test_delete(sqs, stubber):
    stubber.add_response('delete_message', {}, {'QueueUrl': QUEUE_URL, 'ReceiptHandle': 'h1'})
    stubber.add_client_error('delete_message', service_error_code='ReceiptHandleIsInvalid')
    assert sqs.delete(QUEUE_URL, 'h1') is True
    assert sqs.delete(QUEUE_URL, 'stale') is False


def test_list_queues(sqs, stubber):
    stubber.add_response('list_queues', {
        'QueueUrls': [QUEUE_URL, 'http://localhost:9324/000000000000/jobs.fifo'],
        'NextToken': 'tok-2',
    }, {'MaxResults': 2, 'NextToken': 'tok-1'})
    queues, token = sqs.list_queues('tok-1', 2)
    assert [q['name'] for q in queues] == ['orders', 'jobs.fifo']
    assert token == 'tok-2'


def test_list_queues_failure_is_empty(sqs, stubber):
    stubber.add_client_error('list_queues', service_error_code='AccessDenied')
    assert sqs.list_queues() == ([], None)


def test_send_and_attributes(sqs, stubber):
    stubber.add_response('send_message', {'MessageId': 'm9'},
                         {'QueueUrl': QUEUE_URL, 'MessageBody': '{"a": 1}'})
    stubber.add_client_error('get_queue_attributes', service_error_code='AccessDenied')
    assert sqs.send(QUEUE_URL, '{"a": 1}') is True
    assert sqs.get_attributes(QUEUE_URL) == {}


def test_receive_messages_normalizes(sqs, stubber):
    stubber.add_response('receive_message', {'Messages': [{
        'MessageId': 'm1', 'ReceiptHandle': 'h1', 'Body': 'hello',
        'Attributes': {'SentTimestamp': '1700000000000'},
    }]}, {
        'QueueUrl': QUEUE_URL,
        'MaxNumberOfMessages': 5,
        'VisibilityTimeout': 30,
        'WaitTimeSeconds': 0,
        'AttributeNames': ['All'],
        'MessageAttributeNames': ['All'],
    })
    msgs = sqs.receive_messages(QUEUE_URL, 5)
    assert msgs[0].id == 'm1'
    assert msgs[0].timestamp == 1700000000000


def test_create_fifo_queue(sqs, stubber):
    url = 'https://sqs.us-east-1.amazonaws.com/123456789012/jobs.fifo'
    stubber.add_response('create_queue', {'QueueUrl': url}, {
        'QueueName': 'jobs.fifo',
        'Attributes': {
            'FifoQueue': 'true',
            'ContentBasedDeduplication': 'true',
            'DelaySeconds': '5',
        },
    })
    stubber.add_response('get_queue_attributes', {'Attributes': {'FifoQueue': 'true'}},
                         {'QueueUrl': url, 'AttributeNames': ['All']})
    result = sqs.create_queue('jobs', is_fifo=True, delay_seconds=5)
    assert result == {'url': url, 'name': 'jobs.fifo', 'attributes': {'FifoQueue': 'true'}}


def test_create_queue_failure(sqs, stubber):
    stubber.add_client_error('create_queue', service_error_code='QueueAlreadyExists')
    assert sqs.create_queue('orders') is None


def test_delete_queue(sqs, stubber):
    stubber.add_response('delete_queue', {}, {'QueueUrl': ANY})
    assert sqs.delete_queue(QUEUE_URL) is True
