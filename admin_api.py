#!/usr/bin/env python3
"""
admin_api.py — Flask API for SQS queue administration: list, inspect, create
and delete queues, send messages, peek at queue contents and delete peeked
messages.

Queue URLs travel in paths as URL-safe base64 (see common.utils).
"""

import json
import logging

from flask import Flask, request, jsonify
from flask_cors import CORS

import config
from aws_adapter import SqsAdmin, make_sqs_client
from common.utils import (InvalidQueueReference, decode_queue_url, queue_name,
                          validate_queue_url)
from peek_queue import peek, refetch_by_id

logger = logging.getLogger(__name__)


def _json_body():
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _int_arg(name, default):
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return None


def create_app(sqs=None, peek_policy=None, refetch_policy=None):
    app = Flask(__name__)
    CORS(app)
    if sqs is None:
        sqs = SqsAdmin(make_sqs_client())
    app.config['SQS'] = sqs

    @app.errorhandler(InvalidQueueReference)
    def bad_queue_reference(e):
        return jsonify({'error': str(e)}), 400

    @app.route('/health')
    def health():
        return 'OK', 200

    @app.route('/queues')
    def list_queues():
        limit = _int_arg('limit', 10)
        if limit is None:
            return jsonify({'error': 'limit must be an integer'}), 400
        queues, next_token = sqs.list_queues(request.args.get('nextToken'), limit)
        items = [dict(q, attributes=sqs.get_attributes(q['url'])) for q in queues]
        return jsonify({'items': items, 'nextToken': next_token}), 200

    @app.route('/queues/<encoded>')
    def queue_details(encoded):
        queue_url = decode_queue_url(encoded)
        return jsonify({
            'url': queue_url,
            'name': queue_name(queue_url),
            'attributes': sqs.get_attributes(queue_url),
        }), 200

    @app.route('/queues/create', methods=['POST'])
    def create_queue():
        body = _json_body()
        name = (body.get('queueName') or '').strip()
        if not name:
            return jsonify({'error': 'Queue name is required'}), 400
        try:
            options = {
                key: int(body[field])
                for key, field in (('delay_seconds', 'delaySeconds'),
                                   ('message_retention_period', 'messageRetentionPeriod'),
                                   ('visibility_timeout', 'visibilityTimeout'),
                                   ('max_message_size', 'maxMessageSize'))
                if body.get(field) is not None
            }
        except (TypeError, ValueError):
            return jsonify({'error': 'Queue settings must be integers'}), 400

        result = sqs.create_queue(name, is_fifo=body.get('isFifo') is True, **options)
        if not result:
            return jsonify({'error': 'Failed to create queue'}), 500
        return jsonify(result), 200

    @app.route('/queues/delete', methods=['POST'])
    def delete_queue():
        body = _json_body()
        if not body.get('queueUrl'):
            return jsonify({'error': 'Queue URL is required'}), 400
        queue_url = validate_queue_url(body['queueUrl'])
        if not sqs.delete_queue(queue_url):
            return jsonify({'error': 'Failed to delete queue'}), 500
        return jsonify({'success': True}), 200

    @app.route('/queues/<encoded>/messages', methods=['GET'])
    def get_messages(encoded):
        queue_url = decode_queue_url(encoded)
        max_messages = _int_arg('max', config.PEEK_DEFAULT_MAX)
        if max_messages is None or max_messages < 1:
            return jsonify({'error': 'max must be a positive integer'}), 400

        if request.args.get('mode', 'peek') == 'receive':
            messages = sqs.receive_messages(queue_url, max_messages)
        else:
            messages = peek(sqs, queue_url, max_messages, policy=peek_policy)
        return jsonify([m.to_dict() for m in messages]), 200

    @app.route('/queues/<encoded>/messages', methods=['POST'])
    def send_message(encoded):
        queue_url = decode_queue_url(encoded)
        body = _json_body()
        message = body.get('message')
        if not message:
            return jsonify({'error': 'Message body is required'}), 400
        if not isinstance(message, str):
            message = json.dumps(message)
        if not sqs.send(queue_url, message):
            return jsonify({'error': 'Failed to send message'}), 500
        return jsonify({'success': True}), 200

    @app.route('/queues/<encoded>/messages', methods=['DELETE'])
    def delete_message(encoded):
        queue_url = decode_queue_url(encoded)
        body = _json_body()
        message_id = body.get('messageId')
        receipt_handle = body.get('receiptHandle')

        if body.get('peekMode') and message_id:
            # peeked handles are stale by now; get a fresh one
            msg = refetch_by_id(sqs, queue_url, message_id, policy=refetch_policy)
            if msg is None:
                logger.info("Peek-mode delete of %s: not found in %s", message_id, queue_url)
                return jsonify({'error': 'Message not found or no longer available'}), 404
            receipt_handle = msg.receipt_handle
        elif not receipt_handle:
            return jsonify({'error': 'Receipt handle or message ID is required'}), 400

        if not sqs.delete(queue_url, receipt_handle):
            return jsonify({'error': 'Failed to delete message'}), 500
        return jsonify({'success': True}), 200

    return app


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO,
                        format='[ADMIN] %(asctime)s %(levelname)s %(message)s')
    create_app().run(host='0.0.0.0', port=config.ADMIN_PORT, threaded=True)
