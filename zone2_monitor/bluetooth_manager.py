import asyncio
import logging
import time

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError
from kivy.event import EventDispatcher

from .async_utils import safe_create_task
from .sensor_source import HeartRateSource, register_source
from .zone_models import AuthorizationDenied, DeviceUnavailable, SensorStatus

logger = logging.getLogger(__name__)

# Standard Bluetooth GATT UUIDs
HEART_RATE_SERVICE_UUID = "0000180d-0000-1000-8000-00805f9b34fb"
HEART_RATE_CHARACTERISTIC_UUID = "00002a37-0000-1000-8000-00805f9b34fb"
BATTERY_CHARACTERISTIC_UUID = "00002a19-0000-1000-8000-00805f9b34fb"

HR_NAME_HINTS = ("heart", "hr", "pulse", "band", "watch", "monitor", "polar", "garmin", "wahoo")


def parse_heart_rate_measurement(data):
    """
    Decode bpm from a Heart Rate Measurement (0x2A37) payload.

    Bit 0 of the flags byte selects a 16-bit little-endian value in bytes
    1-2, otherwise bpm is the 8-bit value in byte 1. Other flag bits are
    ignored.

    Args:
        data (bytes): Raw characteristic value

    Returns:
        int: Heart rate in bpm, 0 for an empty or truncated payload
    """
    if not data:
        return 0
    flags = data[0]
    if flags & 0x01:
        if len(data) < 3:
            return 0
        return int.from_bytes(bytes(data[1:3]), byteorder="little")
    if len(data) < 2:
        return 0
    return data[1]


def looks_like_hr_device(name):
    name = (name or "").lower()
    return any(term in name for term in HR_NAME_HINTS)


def status_for_error(error):
    """Map a BLE failure onto the status shown to the user."""
    if isinstance(error, (AuthorizationDenied, DeviceUnavailable)):
        return error.status
    if isinstance(error, PermissionError):
        return SensorStatus.AUTHORIZATION_DENIED
    text = str(error).lower()
    if "powered off" in text or "turned off" in text:
        return SensorStatus.POWERED_OFF
    if "not authorized" in text or "permission" in text or "unauthorized" in text:
        return SensorStatus.AUTHORIZATION_DENIED
    return SensorStatus.DEVICE_UNAVAILABLE


@register_source("bluetooth")
class BluetoothManager(HeartRateSource, EventDispatcher):
    """
    Bluetooth LE heart rate monitor source using bleak.

    Decoded readings go to ``sink.on_sample`` stamped with the receive time;
    connection problems go to ``sink.on_authorization_change``. Scan
    results are published through the ``on_devices_found`` event.
    """

    __events__ = ("on_devices_found",)

    def __init__(self, sink, device_address=None, scan_timeout=5.0, **kwargs):
        HeartRateSource.__init__(self, sink)
        EventDispatcher.__init__(self, **kwargs)
        self.client = None
        self.discovered_devices = []
        self.device_name = ""
        self.battery_level = 0
        self.scan_timeout = scan_timeout
        self._device_address = device_address
        self._scan_task = None
        self._connection_task = None

    def on_devices_found(self, devices):
        pass

    def start(self):
        """Connect to the configured device, scanning first if there is none."""
        if self._device_address:
            self.connect(self._device_address)
        else:
            self.start_scan()

    def stop(self):
        self.disconnect()

    def start_scan(self):
        """Start scanning for BLE heart rate monitors"""
        if self.status == SensorStatus.SCANNING:
            return
        self.discovered_devices = []
        self._set_status(SensorStatus.SCANNING)
        self._scan_task = safe_create_task(self._scan())
        if self._scan_task is None:
            self._set_status(SensorStatus.DEVICE_UNAVAILABLE)

    async def _scan(self):
        try:
            devices = await BleakScanner.discover(timeout=self.scan_timeout, return_adv=True)
            self.discovered_devices = []
            for device, adv in devices.values():
                name = device.name or adv.local_name or "Unknown Device"
                advertises_hr = HEART_RATE_SERVICE_UUID in (adv.service_uuids or [])
                self.discovered_devices.append({
                    "name": name,
                    "address": device.address,
                    "rssi": adv.rssi,
                    "is_hr_device": advertises_hr or looks_like_hr_device(name),
                })
            # Likely monitors first
            self.discovered_devices.sort(key=lambda d: (not d["is_hr_device"], d["name"]))
            logger.info("Scan completed, found %d devices", len(self.discovered_devices))
        except (BleakError, OSError) as e:
            logger.warning("Scan error: %s", e)
            self._set_status(status_for_error(e))
            return
        self._set_status(SensorStatus.IDLE)
        self.dispatch("on_devices_found", self.discovered_devices)

    def get_discovered_devices(self):
        return self.discovered_devices

    def connect(self, device_address=None):
        """Connect to a heart rate monitor by address"""
        if self.is_connected():
            return True

        if device_address:
            self._device_address = device_address
        elif not self._device_address and self.discovered_devices:
            self._device_address = self.discovered_devices[0]["address"]

        if not self._device_address:
            self._set_status(SensorStatus.DEVICE_UNAVAILABLE)
            return False

        self._set_status(SensorStatus.CONNECTING)
        self._connection_task = safe_create_task(self._connect())
        return self._connection_task is not None

    async def _connect(self):
        try:
            self.client = BleakClient(
                self._device_address,
                disconnected_callback=self._on_disconnected,
            )
            await self.client.connect()
            if not self.client.is_connected:
                raise DeviceUnavailable(f"Could not connect to {self._device_address}")

            self.device_name = self._lookup_name(self._device_address)
            await self.client.start_notify(HEART_RATE_CHARACTERISTIC_UUID, self._heart_rate_changed)

            try:
                battery = await self.client.read_gatt_char(BATTERY_CHARACTERISTIC_UUID)
                self.battery_level = battery[0]
            except (BleakError, IndexError):
                self.battery_level = 0
        except (BleakError, OSError, asyncio.TimeoutError, DeviceUnavailable) as e:
            logger.warning("Connection error: %s", e)
            self._set_status(status_for_error(e))
            return False

        logger.info("Connected to %s (%s)", self.device_name, self._device_address)
        self._set_status(SensorStatus.CONNECTED)
        return True

    def disconnect(self):
        if self.client is None:
            self._set_status(SensorStatus.DISCONNECTED)
            return True
        self._connection_task = safe_create_task(self._disconnect())
        return self._connection_task is not None

    async def _disconnect(self):
        try:
            if self.client and self.client.is_connected:
                await self.client.stop_notify(HEART_RATE_CHARACTERISTIC_UUID)
                await self.client.disconnect()
        except BleakError as e:
            logger.warning("Disconnect error: %s", e)
        finally:
            self.client = None
            self._set_status(SensorStatus.DISCONNECTED)

    def _on_disconnected(self, client):
        # Reconnect policy belongs to the user; just report it
        logger.info("Device %s disconnected", self._device_address)
        self._set_status(SensorStatus.DISCONNECTED)

    def _lookup_name(self, address):
        for device in self.discovered_devices:
            if device["address"] == address:
                return device["name"]
        return "Heart Rate Monitor"

    def _heart_rate_changed(self, sender, data):
        """Callback for heart rate characteristic notifications"""
        bpm = parse_heart_rate_measurement(data)
        if bpm <= 0:
            logger.debug("Ignoring empty heart rate payload from %s", sender)
            return
        self.sink.on_sample(bpm, time.time())