import json
from types import SimpleNamespace

import pytest
from pika.exceptions import AMQPConnectionError, ConnectionClosedByBroker

from order_service import config
from order_service.consumer import InvalidMessage, QueueListener, build_handlers, decode_order_id
from order_service.status import OrderStatus

from fakes import make_items


class RecordingChannel:
    def __init__(self):
        self.acked = []
        self.nacked = []

    def basic_ack(self, delivery_tag):
        self.acked.append(delivery_tag)

    def basic_nack(self, delivery_tag, requeue):
        self.nacked.append((delivery_tag, requeue))


def _deliver(listener, body, tag=1):
    ch = RecordingChannel()
    listener.on_message(ch, SimpleNamespace(delivery_tag=tag), None, body)
    return ch


class TestDecode:

    def test_json_string(self):
        assert decode_order_id(json.dumps("o-1").encode()) == "o-1"

    @pytest.mark.parametrize("body", [b"o-1", b'{"id": "o-1"}', b'""', b"\xff"])
    def test_rejects_anything_else(self, body):
        with pytest.raises(InvalidMessage):
            decode_order_id(body)


class TestQueueListener:

    def test_ack_after_success(self):
        seen = []
        ch = _deliver(QueueListener("order", seen.append), json.dumps("o-1").encode())

        assert seen == ["o-1"]
        assert ch.acked == [1]
        assert ch.nacked == []

    def test_requeue_on_failure(self):
        def handler(order_id):
            raise RuntimeError("boom")

        ch = _deliver(QueueListener("order", handler), json.dumps("o-1").encode())

        assert ch.acked == []
        assert ch.nacked == [(1, True)]

    def test_drop_undecodable(self):
        seen = []
        ch = _deliver(QueueListener("order", seen.append), b"not json")

        assert seen == []
        assert ch.nacked == [(1, False)]


class TestHandlers:

    def test_order_queue_checks_out(self, service, payments):
        order = service.create("customer-1", make_items(("p1", 1, 5)))
        listener = QueueListener(config.ORDER_QUEUE, build_handlers(service)[config.ORDER_QUEUE])

        ch = _deliver(listener, json.dumps(order.id).encode())

        assert ch.acked == [1]
        assert payments.calls == [order.id]
        assert service.get_by_id(order.id).status == OrderStatus.PAYMENT_PENDING

    def test_payment_outcomes(self, service):
        handlers = build_handlers(service)
        payed = service.create("customer-1", make_items(("p1", 1, 5)))
        cancelled = service.create("customer-1", make_items(("p1", 1, 5)))
        service.checkout_order(payed.id)
        service.checkout_order(cancelled.id)

        _deliver(QueueListener("payed", handlers[config.PAYMENT_PAYED_QUEUE]), json.dumps(payed.id).encode())
        _deliver(QueueListener("cancelled", handlers[config.PAYMENT_CANCELLED_QUEUE]), json.dumps(cancelled.id).encode())

        assert service.get_by_id(payed.id).status == OrderStatus.PAYED
        assert service.get_by_id(cancelled.id).status == OrderStatus.CANCELLED

    def test_payment_for_unknown_order_is_dropped(self, service):
        handler = build_handlers(service)[config.PAYMENT_PAYED_QUEUE]

        ch = _deliver(QueueListener("payed", handler), json.dumps("missing").encode())

        assert ch.acked == []
        assert ch.nacked == [(1, False)]

    def test_duplicate_checkout_message_is_dropped(self, service, payments):
        order = service.create("customer-1", make_items(("p1", 1, 5)))
        listener = QueueListener(config.ORDER_QUEUE, build_handlers(service)[config.ORDER_QUEUE])
        body = json.dumps(order.id).encode()

        first = _deliver(listener, body, tag=1)
        redeliveries = [_deliver(listener, body, tag=tag) for tag in (2, 3)]

        assert first.acked == [1]
        assert [ch.nacked for ch in redeliveries] == [[(2, False)], [(3, False)]]
        assert payments.calls == [order.id]
        assert service.get_by_id(order.id).status == OrderStatus.PAYMENT_PENDING

    def test_payment_failure_is_requeued(self, service, payments):
        order = service.create("customer-1", make_items(("p1", 1, 5)))
        payments.fail = True
        listener = QueueListener(config.ORDER_QUEUE, build_handlers(service)[config.ORDER_QUEUE])

        ch = _deliver(listener, json.dumps(order.id).encode())

        assert ch.nacked == [(1, True)]
        assert service.get_by_id(order.id).status == OrderStatus.RECEIVED


class ConsumingChannel:
    def __init__(self, on_start):
        self.on_start = on_start
        self.consumed = []

    def queue_declare(self, **kwargs):
        pass

    def basic_qos(self, **kwargs):
        pass

    def basic_consume(self, queue, on_message_callback, auto_ack):
        self.consumed.append((queue, auto_ack))

    def start_consuming(self):
        self.on_start()


class ConsumingConnection:
    def __init__(self, channel):
        self.channel_ = channel
        self.is_open = True

    def channel(self):
        return self.channel_

    def close(self):
        self.is_open = False


class TestListenerReconnect:

    def test_reconnects_after_broker_failure(self):
        attempts = []
        connections = []

        def factory(params):
            attempts.append(params)
            if len(attempts) == 1:
                raise AMQPConnectionError("connection refused")
            conn = ConsumingConnection(ConsumingChannel(listener.stop))
            connections.append(conn)
            return conn

        listener = QueueListener("order", lambda order_id: None, params=object(),
                                 connection_factory=factory, retry_delay=0)
        listener.run()

        assert len(attempts) == 2
        assert connections[0].channel_.consumed == [("order", False)]
        assert connections[0].is_open is False

    def test_consume_loop_restarts_after_disconnect(self):
        calls = []

        def factory(params):
            calls.append(params)

            def on_start():
                if len(calls) < 3:
                    raise ConnectionClosedByBroker(320, "CONNECTION_FORCED")
                listener.stop()

            return ConsumingConnection(ConsumingChannel(on_start))

        listener = QueueListener("payed", lambda order_id: None, params=object(),
                                 connection_factory=factory, retry_delay=0)
        listener.run()

        assert len(calls) == 3
