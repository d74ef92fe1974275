"""Infrared AC control, climate sensing, acknowledgement detection, pairing and QR helpers."""

__version__ = "0.1.0"

__all__ = [
    "ack_detector",
    "hw_pairing",
    "identify",
    "ir_protocol",
    "ir_sender",
    "qr_code",
    "qr_ecc",
    "qr_segment",
    "sensor",
    "shell",
]