"""Shared fixtures: a scripted OCR engine and synthetic screenshots."""

import io
import struct
import zlib
from datetime import datetime

import numpy as np
import pytest
from PIL import Image


class FakeEngine:
    """
    OCR engine that replays scripted raw results in call order.

    Every call records the parameters in effect, so tests can check which
    page segmentation mode and whitelist each crop was read with.
    """

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.parameters = {}
        self.calls = []
        self.closed = False

    def set_parameters(self, params):
        self.parameters.update(params)

    def recognize(self, image):
        self.calls.append({'params': dict(self.parameters), 'shape': image.shape})
        if self.responses:
            return self.responses.pop(0)
        return {}

    def close(self):
        self.closed = True


def png_bytes(width=400, height=600, color=255):
    buffer = io.BytesIO()
    Image.new('L', (width, height), color=color).save(buffer, format='PNG')
    return buffer.getvalue()


def word(text, y0, y1, x0=10, x1=120, confidence=95):
    return {'text': text, 'bbox': {'x0': x0, 'y0': y0, 'x1': x1, 'y1': y1}, 'confidence': confidence}


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def white_png():
    return png_bytes()


@pytest.fixture
def summer_2025():
    return datetime(2025, 8, 1, 12, 0)


def huge_png_header(width=20000, height=20000):
    """PNG with a header and no pixel data; declares a size Pillow refuses to open."""
    def chunk(kind, payload):
        crc = zlib.crc32(kind + payload) & 0xffffffff
        return struct.pack('>I', len(payload)) + kind + payload + struct.pack('>I', crc)

    ihdr = struct.pack('>IIBBBBB', width, height, 8, 0, 0, 0, 0)
    return b'\x89PNG\r\n\x1a\n' + chunk(b'IHDR', ihdr) + chunk(b'IEND', b'')
