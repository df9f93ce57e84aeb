"""Domain and activity events published through the Kafka producer."""
import json
import logging

import pytest
from aiokafka.errors import KafkaConnectionError

from marketplace import kafka
from marketplace.config import Settings
from marketplace.kafka import KafkaProducer


class RecordingBroker:
    def __init__(self):
        self.sent = []

    async def send_and_wait(self, topic, value):
        self.sent.append((topic, json.loads(value)))

    async def stop(self):
        pass

    def events(self, topic):
        return [message for t, message in self.sent if t == topic]


class DownBroker:
    async def send_and_wait(self, topic, value):
        raise KafkaConnectionError("broker unavailable")

    async def stop(self):
        pass


@pytest.fixture
def attach_producer(client):
    from marketplace.main import app

    def _attach(broker=None) -> KafkaProducer:
        producer = KafkaProducer()
        producer._producer = broker
        app.state.producer = producer
        return producer

    yield _attach
    app.state.producer = None


@pytest.fixture
async def parties(make_user, make_product):
    seller = await make_user("Seller")
    buyer = await make_user("Buyer")
    product = await make_product(seller.id, name="Lamp", price=10000)
    return seller, buyer, product


async def test_negotiation_publishes_each_step(client, parties, auth_header, attach_producer):
    seller, buyer, product = parties
    broker = RecordingBroker()
    attach_producer(broker)

    offer = (await client.post(
        f"/products/{product.id}/offers/", json={"amount": 5000}, headers=auth_header(buyer)
    )).json()
    counter = (await client.post(
        f"/offers/{offer['id']}/counter/", json={"amount": 6000}, headers=auth_header(seller)
    )).json()
    await client.post(f"/offers/{counter['id']}/accept/", headers=auth_header(buyer))
    sale = (await client.post(
        f"/products/{product.id}/purchase/", json={"offer_id": counter["id"]}, headers=auth_header(buyer)
    )).json()

    events = broker.events(Settings.KAFKA_TOPIC)
    assert [e["event"] for e in events] == ["offer_created", "offer_countered", "offer_accepted", "product_sold"]
    created, countered, accepted, sold = events
    assert (created["offer_id"], created["buyer_id"], created["amount"]) == (offer["id"], buyer.id, 5000)
    assert (countered["parent_offer_id"], countered["proposed_by"]) == (offer["id"], "seller")
    assert (accepted["offer_id"], accepted["accepted_by"], accepted["amount"]) == (counter["id"], buyer.id, 6000)
    assert (sold["transaction_id"], sold["final_price"]) == (sale["transaction_id"], 6000)
    assert all("timestamp" in e for e in events)


async def test_every_request_reports_activity(client, parties, auth_header, attach_producer):
    _, buyer, product = parties
    broker = RecordingBroker()
    attach_producer(broker)

    await client.post(f"/products/{product.id}/offers/", json={"amount": 0}, headers=auth_header(buyer))
    await client.get("/auth/health")

    assert broker.events(Settings.KAFKA_TOPIC) == []
    activity = broker.events(Settings.ACTIVITY_TOPIC)
    assert [(a["method"], a["path"], a["status"], a["user_id"]) for a in activity] == [
        ("POST", f"/products/{product.id}/offers/", 422, buyer.id),
        ("GET", "/auth/health", 200, "anon"),
    ]


async def test_broker_outage_does_not_fail_committed_work(
    client, parties, auth_header, attach_producer, fetch, caplog
):
    _, buyer, product = parties
    attach_producer(DownBroker())

    with caplog.at_level(logging.ERROR, logger="marketplace.kafka"):
        made = await client.post(
            f"/products/{product.id}/offers/", json={"amount": 5000}, headers=auth_header(buyer)
        )
        bought = await client.post(f"/products/{product.id}/purchase/", json={}, headers=auth_header(buyer))

    assert made.status_code == 201
    assert bought.status_code == 200
    assert await fetch.pending_count(product.id, buyer.id) == 1
    assert (await fetch.product(product.id)).status == "sold"
    assert "Failed to publish product_sold event" in caplog.text


async def test_failed_lazy_start_is_logged_not_raised(
    client, parties, auth_header, attach_producer, fetch, monkeypatch
):
    _, buyer, product = parties

    class Unreachable:
        def __init__(self, **kwargs):
            pass

        async def start(self):
            raise KafkaConnectionError("no brokers")

    monkeypatch.setattr(kafka, "AIOKafkaProducer", Unreachable)
    producer = attach_producer(None)

    bought = await client.post(f"/products/{product.id}/purchase/", json={}, headers=auth_header(buyer))

    assert bought.status_code == 200
    assert (await fetch.product(product.id)).status == "sold"
    assert producer._producer is None
