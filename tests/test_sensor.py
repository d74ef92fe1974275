import pytest

from acremote.sensor import (
    CMD_DATA_READY,
    CMD_READ_MEASUREMENT,
    CMD_START_PERIODIC,
    CMD_STOP_PERIODIC,
    I2C_ADDRESS,
    WRITE_ATTEMPTS,
    AirQuality,
    I2cError,
    Scd40Reading,
    Scd40Sensor,
    co2_to_air_quality,
    command_bytes,
    is_data_ready,
    parse_measurement,
    sensirion_crc,
)


def word(value):
    data = value.to_bytes(2, "big")
    return data + bytes((sensirion_crc(data),))


def measurement(co2, temp_raw, rh_raw):
    return word(co2) + word(temp_raw) + word(rh_raw)


class FakeBus:
    def __init__(self, responses=None, write_failures=0, read_error=False):
        self.responses = responses or {}
        self.write_failures = write_failures
        self.read_error = read_error
        self.writes = []
        self.last_cmd = None

    def write(self, address, data):
        self.writes.append((address, bytes(data)))
        if self.write_failures:
            self.write_failures -= 1
            raise I2cError("nack")
        self.last_cmd = int.from_bytes(data, "big")

    def read(self, address, length):
        if self.read_error:
            raise I2cError("read failed")
        return self.responses[self.last_cmd][:length]

    def commands(self):
        return [int.from_bytes(data, "big") for _, data in self.writes]


def test_crc_datasheet_example():
    assert sensirion_crc(b"\xbe\xef") == 0x92


def test_command_bytes_big_endian():
    assert command_bytes(CMD_READ_MEASUREMENT) == b"\xec\x05"
    with pytest.raises(ValueError):
        command_bytes(0x10000)


def test_parse_measurement_extremes():
    low = parse_measurement(measurement(500, 0, 0))
    assert low == Scd40Reading(500, -4500, 0)
    high = parse_measurement(measurement(500, 0xFFFF, 0xFFFF))
    assert high.temp_001c == 13000
    assert high.rh_001pct == 10000


def test_parse_measurement_crc_mismatch():
    buf = bytearray(measurement(800, 0x6667, 0x5EB9))
    buf[5] ^= 0xFF
    with pytest.raises(I2cError):
        parse_measurement(bytes(buf))


def test_parse_measurement_short_buffer():
    with pytest.raises(ValueError):
        parse_measurement(b"\x00\x00")


def test_data_ready_mask():
    assert is_data_ready(word(0x0001))
    assert is_data_ready(word(0x07FF))
    assert not is_data_ready(word(0x8000))
    assert not is_data_ready(word(0x0000))


@pytest.mark.parametrize(
    ("ppm", "level"),
    [
        (0, AirQuality.GOOD),
        (399, AirQuality.GOOD),
        (400, AirQuality.FAIR),
        (599, AirQuality.FAIR),
        (600, AirQuality.MODERATE),
        (999, AirQuality.MODERATE),
        (1000, AirQuality.POOR),
        (1499, AirQuality.POOR),
        (1500, AirQuality.VERY_POOR),
        (1999, AirQuality.VERY_POOR),
        (2000, AirQuality.EXTREMELY_POOR),
    ],
)
def test_air_quality_thresholds(ppm, level):
    assert co2_to_air_quality(ppm) is level
    assert Scd40Reading(ppm, 0, 0).air_quality is level


def test_write_command_retries_until_ack():
    bus = FakeBus(write_failures=2)
    sleeps = []
    Scd40Sensor(bus, sleeps.append).write_command(CMD_START_PERIODIC)
    assert bus.writes == [(I2C_ADDRESS, b"\x21\xb1")] * 3
    assert sleeps == [0.1, 0.1]


def test_write_command_gives_up():
    bus = FakeBus(write_failures=1000)
    with pytest.raises(I2cError):
        Scd40Sensor(bus, lambda s: None).write_command(CMD_START_PERIODIC)
    assert len(bus.writes) == WRITE_ATTEMPTS


def test_poll_reads_when_ready():
    buf = measurement(1200, 0, 0xFFFF)
    bus = FakeBus({CMD_DATA_READY: word(0x0001), CMD_READ_MEASUREMENT: buf})
    sensor = Scd40Sensor(bus, lambda s: None)
    reading = sensor.poll()
    assert reading == parse_measurement(buf)
    assert sensor.last_reading == reading
    assert bus.commands() == [CMD_DATA_READY, CMD_READ_MEASUREMENT]


def test_poll_not_ready_returns_none():
    bus = FakeBus({CMD_DATA_READY: word(0x8000)})
    sensor = Scd40Sensor(bus, lambda s: None)
    assert sensor.poll() is None
    assert sensor.last_reading is None
    assert bus.commands() == [CMD_DATA_READY]


def test_poll_swallows_bus_errors():
    sensor = Scd40Sensor(FakeBus(read_error=True), lambda s: None)
    assert sensor.poll() is None
    assert sensor.last_reading is None


def test_poll_keeps_previous_reading_on_crc_error():
    bad = bytearray(measurement(700, 0, 0))
    bad[2] ^= 0x01
    bus = FakeBus({CMD_DATA_READY: word(1), CMD_READ_MEASUREMENT: bytes(bad)})
    sensor = Scd40Sensor(bus, lambda s: None)
    sensor.last_reading = Scd40Reading(450, 2100, 4000)
    assert sensor.poll() is None
    assert sensor.last_reading == Scd40Reading(450, 2100, 4000)


def test_start_stops_then_starts():
    bus = FakeBus()
    sleeps = []
    Scd40Sensor(bus, sleeps.append).start()
    assert bus.commands() == [CMD_STOP_PERIODIC, CMD_START_PERIODIC]
    assert sleeps == [1.0, 0.5]


def test_start_raises_when_sensor_missing():
    bus = FakeBus(write_failures=10_000)
    with pytest.raises(I2cError):
        Scd40Sensor(bus, lambda s: None).start()
    assert len(bus.writes) == 2 * WRITE_ATTEMPTS