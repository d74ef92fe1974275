"""Sensirion SCD40 CO2 / temperature / humidity sensor over raw I2C.

The bus object passed to :class:`Scd40Sensor` needs two methods:
``write(address, data)`` and ``read(address, length) -> bytes``; both raise
:class:`OSError` (for example :class:`I2cError`) when the device does not
acknowledge.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)

I2C_ADDRESS = 0x62

CMD_START_PERIODIC = 0x21B1
CMD_DATA_READY = 0xE4B8
CMD_READ_MEASUREMENT = 0xEC05
CMD_STOP_PERIODIC = 0x3F86

POLL_INTERVAL = 15.0
WRITE_ATTEMPTS = 60
WRITE_RETRY_DELAY = 0.1
RESPONSE_DELAY = 0.001
MEASUREMENT_LENGTH = 9


class I2cError(OSError):
    """An I2C transfer failed or returned corrupt data."""


class I2cBus(Protocol):
    def write(self, address: int, data: bytes) -> None: ...

    def read(self, address: int, length: int) -> bytes: ...


class AirQuality(IntEnum):
    """Air quality levels, numbered as in the Matter Air Quality cluster."""

    UNKNOWN = 0
    GOOD = 1
    FAIR = 2
    MODERATE = 3
    POOR = 4
    VERY_POOR = 5
    EXTREMELY_POOR = 6


def co2_to_air_quality(co2_ppm: int) -> AirQuality:
    """Map a CO2 concentration in ppm to an air quality level."""
    if co2_ppm < 400:
        return AirQuality.GOOD
    if co2_ppm < 600:
        return AirQuality.FAIR
    if co2_ppm < 1000:
        return AirQuality.MODERATE
    if co2_ppm < 1500:
        return AirQuality.POOR
    if co2_ppm < 2000:
        return AirQuality.VERY_POOR
    return AirQuality.EXTREMELY_POOR


@dataclass(frozen=True)
class Scd40Reading:
    """One measurement: CO2 in ppm, temperature in 0.01 °C, humidity in 0.01 %."""

    co2_ppm: int
    temp_001c: int
    rh_001pct: int

    @property
    def air_quality(self) -> AirQuality:
        return co2_to_air_quality(self.co2_ppm)


def sensirion_crc(data: bytes) -> int:
    """Sensirion CRC-8 (polynomial 0x31, initial value 0xFF)."""
    crc = 0xFF
    for byte in data:
        crc ^= byte
        for _ in range(8):
            crc = ((crc << 1) ^ 0x31 if crc & 0x80 else crc << 1) & 0xFF
    return crc


def command_bytes(cmd: int) -> bytes:
    """The two big-endian bytes of a 16-bit command."""
    if not 0 <= cmd <= 0xFFFF:
        raise ValueError(f"command out of range: {cmd:#x}")
    return cmd.to_bytes(2, "big")


def parse_measurement(buf: bytes) -> Scd40Reading:
    """Decode a 9-byte measurement response, checking each word's CRC."""
    if len(buf) < MEASUREMENT_LENGTH:
        raise ValueError(f"measurement needs {MEASUREMENT_LENGTH} bytes, got {len(buf)}")
    words = []
    for i in range(0, MEASUREMENT_LENGTH, 3):
        if sensirion_crc(buf[i : i + 2]) != buf[i + 2]:
            raise I2cError(f"SCD40 CRC mismatch at byte {i}")
        words.append(int.from_bytes(buf[i : i + 2], "big"))
    co2_raw, temp_raw, rh_raw = words
    temp_001c = -4500 + 17500 * temp_raw // 65535
    rh_001pct = 10000 * rh_raw // 65535
    return Scd40Reading(co2_raw, temp_001c, rh_001pct)


def is_data_ready(buf: bytes) -> bool:
    """Whether a data-ready status response says a measurement is waiting."""
    if len(buf) < 2:
        raise ValueError("data-ready status needs at least 2 bytes")
    return (int.from_bytes(buf[:2], "big") & 0x07FF) != 0


class Scd40Sensor:
    """Drives an SCD40 in periodic measurement mode."""

    def __init__(self, bus: I2cBus, sleep: Callable[[float], None] = time.sleep) -> None:
        self.bus = bus
        self.sleep = sleep
        self.last_reading: Optional[Scd40Reading] = None

    def write_command(self, cmd: int) -> None:
        """Send a command, retrying while the sensor is busy measuring."""
        data = command_bytes(cmd)
        error: Optional[OSError] = None
        # The sensor NACKs while busy (~5 s cycle); retry for about 6 s.
        for attempt in range(WRITE_ATTEMPTS):
            try:
                self.bus.write(I2C_ADDRESS, data)
            except OSError as exc:
                error = exc
                self.sleep(WRITE_RETRY_DELAY)
                continue
            if attempt > 0:
                logger.info("write 0x%04X succeeded on attempt %d", cmd, attempt)
            return
        assert error is not None
        raise error

    def read_measurement(self) -> Scd40Reading:
        """Request and decode one measurement."""
        self.write_command(CMD_READ_MEASUREMENT)
        self.sleep(RESPONSE_DELAY)
        return parse_measurement(self.bus.read(I2C_ADDRESS, MEASUREMENT_LENGTH))

    def poll(self) -> Optional[Scd40Reading]:
        """Read a new measurement if one is ready; failures are logged, not raised."""
        try:
            self.write_command(CMD_DATA_READY)
        except OSError as exc:
            logger.warning("SCD40 data_ready cmd failed: %s", exc)
            return None
        self.sleep(RESPONSE_DELAY)
        try:
            ready = self.bus.read(I2C_ADDRESS, 3)
        except OSError as exc:
            logger.warning("SCD40 data_ready read failed: %s", exc)
            return None
        if not is_data_ready(ready):
            return None
        try:
            reading = self.read_measurement()
        except OSError as exc:
            logger.warning("SCD40 read_measurement failed: %s", exc)
            return None
        self.last_reading = reading
        return reading

    def start(self) -> None:
        """Restart periodic measurement; raises if the sensor will not start."""
        self.sleep(1.0)
        try:
            self.write_command(CMD_STOP_PERIODIC)
        except OSError:
            pass
        self.sleep(0.5)
        try:
            self.write_command(CMD_START_PERIODIC)
        except OSError as exc:
            logger.error("SCD40 start_periodic failed: %s", exc)
            raise
        logger.info("SCD40 periodic measurement started")