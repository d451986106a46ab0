"""
Integration tests for the sensor -> classifier -> session -> broker pipeline.

A ``SimulatedSensorFeed`` plays a scripted sequence of phases into the
session's device; the transport is backed by ``FakePahoClient``.
"""

import asyncio
import json

import pytest

from sxm.config.settings import get_test_settings
from sxm.filters import Vector3Filter
from sxm.sensing import SimulatedSensorFeed
from sxm.session import SxmSession
from sxm.transport import BrokerConfig, MqttClient
from tests.mocks.broker_mocks import FakeBroker

STEP = 1.0 / 60.0

SCRIPT = [
    ("resting", 1.0),
    ("sliding", 1.0),
    ("resting", 1.0),
    ("handheld", 1.0),
]


@pytest.fixture
def broker():
    return FakeBroker()


@pytest.fixture
def session(broker):
    settings = get_test_settings()
    client = MqttClient(BrokerConfig.from_settings(settings, "test-device_capore"), client_factory=broker)
    return SxmSession(settings, client=client)


def play(feed, device, seconds):
    for _ in range(int(round(seconds / STEP))):
        feed.step(STEP)
        device.update()


def box_statuses(broker):
    return [
        (status["device_movement"], status["device_tilt"])
        for status in map(json.loads, broker.client.published_payloads("sxm/test-room/box"))
    ]


@pytest.mark.integration
class TestStatusPipeline:
    def test_scripted_session_reports_each_reportable_change(self, session, broker):
        session.connect()
        broker.client.simulate_connect()
        feed = SimulatedSensorFeed(session.device, seed=11, script=SCRIPT)

        play(feed, session.device, sum(duration for _, duration in SCRIPT) - STEP)

        assert box_statuses(broker) == [
            ("moving", "horizontal"),
            ("stationary", "horizontal"),
            ("stationary", "tilted"),
        ]

    def test_changes_while_offline_are_delivered_in_order(self, session, broker):
        feed = SimulatedSensorFeed(session.device, seed=5, script=SCRIPT)
        play(feed, session.device, 2.5)
        assert len(session.client.queued_messages) == 2

        session.connect()
        broker.client.simulate_connect()

        assert box_statuses(broker) == [
            ("moving", "horizontal"),
            ("stationary", "horizontal"),
        ]
        assert session.client.queued_messages == ()

    def test_smoothed_orientation_still_detects_tilt(self, session, broker):
        session.connect()
        broker.client.simulate_connect()
        feed = SimulatedSensorFeed(
            session.device,
            seed=3,
            script=[("resting", 1.0), ("handheld", 1.0)],
            orientation_filter=Vector3Filter(**session.settings.get_filter_config()),
        )

        play(feed, session.device, 2.0 - STEP)

        assert box_statuses(broker) == [("stationary", "tilted")]

    def test_table_commands_reach_callbacks(self, session, broker):
        received = []
        session.on_start = lambda payload: received.append(("start", payload))
        session.on_down = lambda payload: received.append(("down", payload))
        session.connect()
        broker.client.simulate_connect()

        broker.client.deliver("sxm/test-room/start", b"go")
        broker.client.deliver("sxm/test-room/test-device/down", b"placed")
        broker.client.deliver("sxm/test-room/test-device/up", b"ignored")

        assert received == [("start", b"go"), ("down", b"placed")]

    @pytest.mark.asyncio
    async def test_running_session_publishes_periodically(self, session, broker):
        feed = SimulatedSensorFeed(session.device, seed=1, script=[("resting", 10.0)])
        session.connect()
        broker.client.simulate_connect()

        session.start(interval=0.02)
        for _ in range(6):
            feed.step(STEP)
            await asyncio.sleep(0.015)
        session.stop()

        statuses = box_statuses(broker)
        assert len(statuses) >= 2
        assert statuses[-1] == ("stationary", "horizontal")
