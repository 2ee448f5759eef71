"""Tests for the rangefinder BLE event source with a fake bleak client."""

import asyncio

import pytest
from bleak.exc import BleakError

from rangefinder_bridge.ble import rangefinder as rf
from rangefinder_bridge.ble.rangefinder import RANGE_CHAR_UUID, RangefinderSource, find_rangefinder
from rangefinder_bridge.errors import SensorNotFoundError, SensorProtocolError
from rangefinder_bridge.interfaces import Connected, Disconnected, RangeUpdate


class FakeDevice:
    def __init__(self, address="C0:FF:EE:00:00:01", name="Rangefinder"):
        self.address = address
        self.name = name


class FakeServices:
    def __init__(self, has_range_char):
        self.has_range_char = has_range_char

    def get_characteristic(self, uuid):
        if self.has_range_char and uuid == RANGE_CHAR_UUID:
            return uuid
        return None


class FakeBleakClient:
    """Records calls the way bleak would receive them."""

    def __init__(self, device, disconnected_callback=None, has_range_char=True):
        self.device = device
        self.disconnected_callback = disconnected_callback
        self.services = FakeServices(has_range_char)
        self.is_connected = False
        self.notify_callback = None
        self.calls = []

    async def connect(self):
        self.calls.append("connect")
        self.is_connected = True

    async def start_notify(self, characteristic, callback):
        self.calls.append("start_notify")
        self.notify_callback = callback

    async def stop_notify(self, characteristic):
        self.calls.append("stop_notify")

    async def disconnect(self):
        self.calls.append("disconnect")
        self.is_connected = False

    def drop_link(self):
        self.is_connected = False
        self.disconnected_callback(self)


class _Created(list):
    pass


@pytest.fixture
def clients(monkeypatch):
    created = _Created()
    created.has_range_char = True

    def make_client(device, disconnected_callback=None):
        client = FakeBleakClient(device, disconnected_callback, has_range_char=created.has_range_char)
        created.append(client)
        return client

    monkeypatch.setattr(rf, "BleakClient", make_client)
    return created


class TestRangefinderSource:
    """Test suite for the BLE event stream."""

    def test_stream_until_link_drops(self, clients):
        source = RangefinderSource(FakeDevice())

        async def scenario():
            events = source.events()
            received = [await events.__anext__()]
            client = clients[0]

            client.notify_callback(None, bytearray(b"\x2c\x01"))
            client.notify_callback(None, bytearray(b"\x01"))
            client.drop_link()

            async for event in events:
                received.append(event)
            return received

        received = asyncio.run(scenario())

        assert received == [Connected(), RangeUpdate(300), Disconnected()]
        assert source.sample_count == 1
        assert clients[0].calls == ["connect", "start_notify"]

    def test_missing_range_characteristic(self, clients):
        clients.has_range_char = False
        source = RangefinderSource(FakeDevice())

        async def scenario():
            async for _ in source.events():
                pass

        with pytest.raises(SensorProtocolError):
            asyncio.run(scenario())

        assert clients[0].calls == ["connect", "disconnect"]

    def test_consumer_closing_stream_releases_client(self, clients):
        source = RangefinderSource(FakeDevice())

        async def scenario():
            events = source.events()
            first = await events.__anext__()
            await events.aclose()
            return first

        assert asyncio.run(scenario()) == Connected()
        assert clients[0].calls == ["connect", "start_notify", "stop_notify", "disconnect"]

    def test_cancellation_releases_client(self, clients):
        source = RangefinderSource(FakeDevice())

        async def scenario():
            connected = asyncio.Event()

            async def consume():
                async for event in source.events():
                    if isinstance(event, Connected):
                        connected.set()

            task = asyncio.ensure_future(consume())
            await asyncio.wait_for(connected.wait(), timeout=2.0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())

        assert clients[0].calls == ["connect", "start_notify", "stop_notify", "disconnect"]


class TestFindRangefinder:
    """Test suite for scanning."""

    def patch_scanner(self, monkeypatch, result):
        class FakeScanner:
            calls = []

            @staticmethod
            async def find_device_by_name(name, timeout=10.0):
                FakeScanner.calls.append((name, timeout))
                if isinstance(result, Exception):
                    raise result
                return result

        monkeypatch.setattr(rf, "BleakScanner", FakeScanner)
        return FakeScanner

    def test_found(self, monkeypatch):
        device = FakeDevice()
        scanner = self.patch_scanner(monkeypatch, device)

        source = asyncio.run(find_rangefinder("Rangefinder", 3.0))

        assert isinstance(source, RangefinderSource)
        assert source.device is device
        assert scanner.calls == [("Rangefinder", 3.0)]

    def test_scan_timeout(self, monkeypatch):
        self.patch_scanner(monkeypatch, None)

        with pytest.raises(SensorNotFoundError, match="not found"):
            asyncio.run(find_rangefinder("Rangefinder", 0.1))

    def test_scan_failure(self, monkeypatch):
        self.patch_scanner(monkeypatch, BleakError("adapter off"))

        with pytest.raises(SensorNotFoundError, match="adapter off"):
            asyncio.run(find_rangefinder("Rangefinder", 0.1))
