# acremote

Building blocks for a small home-automation controller that drives a
Hitachi air conditioner over infrared, reports room climate from an SCD40
sensor, and confirms each command by listening for the unit's 2 kHz
acknowledgement beep.

Hardware access is always injected: the IR transmitter, the I2C bus, the
LED and the microphone samples are plain callables or objects you pass in,
so every part runs on a desktop and is easy to test.

## Modules

- `acremote.ir_protocol`: `AcState` (power, `AcMode`, temperature,
  `FanSpeed`) is encoded into the 25 raw bytes (`encode_raw`), the 53-byte
  frame with complement bytes (`encode_command`), and the list of `IrPulse`
  mark/space pairs in microseconds (`encode_pulses`).
- `acremote.ir_sender`: `IrSender(transmit, detector, retries=10,
  ack_timeout=1.0)` calls `transmit(pulses)`, opens a listen window on the
  detector and retries until `collect_ack` reports a beep. `send_command`
  returns `True` on acknowledgement and `False` after the last attempt.
  `IrDispatcher(sender)` sends on a worker thread; `dispatch` replaces any
  command still waiting, and `close` (or leaving its `with` block) sends the
  queued command and stops the worker.
- `acremote.ack_detector`: `hann_window`, and `cfar_detect(samples,
  threshold)` for one 1024-sample buffer. It returns a `CfarResult` with the
  target-bin power, the noise estimate, the threshold and `detected`.
  `AckDetector` keeps the threshold and offers `start_listen`, `feed`,
  `collect_ack(timeout)`, `verbose_start` / `verbose_stop`, and
  `save_threshold` / `load_settings`. With a `settings_path` the threshold
  is saved to and loaded from a small JSON file.
- `acremote.sensor`: Sensirion SCD40 support over a bus object with
  `write(address, data)` and `read(address, length)`. It has
  `sensirion_crc`, `command_bytes`, `parse_measurement`, `is_data_ready`,
  `co2_to_air_quality` (giving an `AirQuality` level) and the `Scd40Reading`
  record. `Scd40Sensor` has `start`, `write_command` (retries while the
  sensor is busy), `read_measurement` and `poll`, which keeps `last_reading`.
  Bad CRCs raise `I2cError`.
- `acremote.hw_pairing`: `derive_credentials(id0, id1)` turns a 64-bit
  hardware identifier into `PairingCredentials` (12-bit discriminator, setup
  passcode, 16-byte salt). `PairingCredentials.verifier()` gives the 97-byte
  SPAKE2+ verifier over P-256. `fnv1a32`, `make_passcode` and
  `spake2p_verifier` are also available.
- `acremote.qr_segment`, `acremote.qr_ecc`, `acremote.qr_code`: a QR Code
  encoder covering versions 1–40, the four `Ecc` levels, numeric,
  alphanumeric, byte and ECI segments, and automatic mask selection.
  Use `encode_text`, `encode_binary`, `encode_segments` or
  `encode_segments_advanced`. Each returns a `QrCode` with `size` and
  `get_module(x, y)`, and raises `DataTooLongError` when the data fits no
  allowed version.
- `acremote.identify`: `IdentifyBlinker(set_led, period=0.25)` toggles an
  LED through `set_led(on)`. `start` blinks until `stop`; `trigger(duration=5.0)`
  blinks for a fixed time and then switches the LED off.
- `acremote.shell`: `AcShell(dispatcher, sensor, detector, blinker)` offers
  the operator commands `off`, `scd`, `cfar`, `threshold`, `identify` and
  `qr`. Each returns the text to show. `render_qr` and `format_reading` are
  the helpers behind them.

## Installing

```
pip install acremote
```

For running the test suite:

```
pip install "acremote[test]"
pytest
```

## Examples

Sensirion CRC-8 over a command word:

```python
from acremote.sensor import sensirion_crc

assert sensirion_crc(b"\xbe\xef") == 0x92
```

Encoding a power-off frame:

```python
from acremote.ir_protocol import AcMode, AcState, FanSpeed, encode_pulses

pulses = encode_pulses(AcState(power=False, mode=AcMode.COOLING, temp_c=24, fan=FanSpeed.AUTO))
assert len(pulses) == 427
```

Pairing credentials from a hardware identifier:

```python
from acremote.hw_pairing import derive_credentials

creds = derive_credentials(0x00000001, 0x00000002)
verifier = creds.verifier()
```

## Command line

```
acremote --help
acremote qr "MT:EXAMPLE" 12345678901
acremote threshold
acremote threshold 30 --settings settings.json
acremote off
```

- `qr PAYLOAD [MANUAL]` prints the payload as a text QR code (versions 1–9)
  followed by both codes.
- `threshold [VALUE] [--settings FILE]` shows the detection threshold, or
  sets a new one and saves it to the settings file.
- `off` prints the power-off frame as one "mark space" line per pulse.

## What it does not do

The package contains no device drivers and no network stack. It does not
drive an IR LED, capture microphone audio or open an I2C bus. Those are
supplied by the caller as the callables and objects described above. Nothing
here polls the sensor on a timer: call `Scd40Sensor.poll` yourself. It also
does not run a smart-home commissioning server, publish attributes, factory
reset or reboot a device. `hw_pairing` only computes the credentials such a
server would use.