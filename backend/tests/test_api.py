"""Tests for the HTTP API, with the printer replaced by a scripted transport."""

from __future__ import annotations

import base64
import io
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from qlraster.main import app
from qlraster.printer import protocol
from qlraster.printer import transport as transport_mod
from qlraster.printer.constants import ErrorInformation1, StatusType
from qlraster.printer.errors import DeviceUnavailable, TransportIOError
from qlraster.services import printer_service


@pytest.fixture
def client():
    return TestClient(app)


class _Created(list):
    """Transports handed out by the factory, plus the frames each one replays."""
    frames: list[bytes]
    close_error: Exception | None


@pytest.fixture
def printer(monkeypatch, transport_cls):
    """Install a fake transport factory; returns the transports it created."""
    created = _Created()
    created.frames = []
    created.close_error = None

    def factory(serial):
        tr = transport_cls(list(created.frames), close_error=created.close_error)
        tr.serial = serial
        created.append(tr)
        return tr

    monkeypatch.setattr(printer_service, "transport_factory", factory)
    monkeypatch.setattr(protocol, "time",
                        SimpleNamespace(monotonic=lambda: 0.0, sleep=lambda s: None))
    return created


def _png(size=(40, 20), colour="black") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, colour).save(buf, format="PNG")
    return buf.getvalue()


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok", "version": "1.0.0"}


def test_discover(client, monkeypatch):
    found = [{"type": "usb", "product": "QL-700", "product_id": 0x2042,
              "serial": "X", "manufacturer": "Brother"}]
    monkeypatch.setattr(transport_mod, "discover_usb_printers", lambda: found)
    assert client.get("/api/printer/discover").json() == {"printers": found}


class TestStatus:
    def test_reports_media(self, client, printer, make_frame):
        printer.frames.append(make_frame(width=62))
        resp = client.get("/api/printer/status", params={"serial": "ABC"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["media_type"] == "CONTINUOUS"
        assert body["printable_dots"] == 696
        assert body["supply"] == "DK-22205 62mm continuous"
        assert printer[0].serial == "ABC"
        assert printer[0].closed

    def test_no_printer(self, client, monkeypatch):
        def factory(serial):
            raise DeviceUnavailable("No supported USB printer found")
        monkeypatch.setattr(printer_service, "transport_factory", factory)
        resp = client.get("/api/printer/status")
        assert resp.status_code == 503
        assert "No supported" in resp.json()["detail"]


class TestPreview:
    def test_preview(self, client, printer, make_frame):
        printer.frames.append(make_frame(width=29))
        resp = client.post("/api/label/preview",
                           files={"file": ("label.png", _png(), "image/png")},
                           data={"brightness": "100", "contrast": "100"})
        assert resp.status_code == 200
        body = resp.json()
        assert (body["width"], body["height"]) == (306, 612)
        png = base64.b64decode(body["image"].split(",", 1)[1])
        assert Image.open(io.BytesIO(png)).size == (306, 612)
        assert printer[0].closed

    def test_not_an_image(self, client, printer, make_frame):
        printer.frames.append(make_frame())
        resp = client.post("/api/label/preview",
                           files={"file": ("label.txt", b"hello", "text/plain")})
        assert resp.status_code == 422
        assert printer[0].closed

    def test_bad_brightness(self, client, printer):
        resp = client.post("/api/label/preview",
                           files={"file": ("label.png", _png(), "image/png")},
                           data={"brightness": "-5"})
        assert resp.status_code == 422
        assert printer == []


class TestPrint:
    def test_prints_with_cut(self, client, printer, make_frame):
        printer.frames.extend([
            make_frame(width=12),
            make_frame(width=12, status_type=StatusType.PHASE_CHANGE),
            make_frame(width=12, status_type=StatusType.PRINTING_COMPLETED),
        ])
        resp = client.post("/api/label/print",
                           files={"file": ("label.png", _png(), "image/png")})
        assert resp.status_code == 200
        body = resp.json()
        assert body["state"] == "completed"
        assert body["printable_dots"] == 106
        assert body["status"]["status_type"] == "PRINTING_COMPLETED"
        tr = printer[0]
        assert bytes.fromhex("1B 69 4B 08") in tr.writes
        assert bytes.fromhex("1B 69 4D 40") not in tr.writes
        assert tr.closed

    def test_auto_cut_option(self, client, printer, make_frame):
        printer.frames.extend([
            make_frame(width=12),
            make_frame(width=12, status_type=StatusType.PRINTING_COMPLETED),
        ])
        resp = client.post("/api/label/print",
                           files={"file": ("label.png", _png(), "image/png")},
                           data={"auto_cut": "true", "cut_at_end": "false"})
        assert resp.status_code == 200
        writes = printer[0].writes
        assert bytes.fromhex("1B 69 4D 40") in writes
        assert bytes.fromhex("1B 69 41 01") in writes
        assert bytes.fromhex("1B 69 4B 08") not in writes

    def test_device_error(self, client, printer, make_frame):
        printer.frames.extend([
            make_frame(width=12),
            make_frame(width=12, status_type=StatusType.ERROR_OCCURRED,
                       err1=ErrorInformation1.NO_MEDIA),
        ])
        resp = client.post("/api/label/print",
                           files={"file": ("label.png", _png(), "image/png")})
        assert resp.status_code == 409
        assert "no media" in resp.json()["detail"]
        assert printer[0].closed

    def test_device_error_survives_release_failure(self, client, printer, make_frame):
        printer.close_error = TransportIOError("Cannot release printer")
        printer.frames.extend([
            make_frame(width=12),
            make_frame(width=12, status_type=StatusType.ERROR_OCCURRED,
                       err1=ErrorInformation1.CUTTER_JAM),
        ])
        resp = client.post("/api/label/print",
                           files={"file": ("label.png", _png(), "image/png")})
        assert resp.status_code == 409
        assert "cutter jam" in resp.json()["detail"]
        assert "error1=0x04" in resp.json()["detail"]
        assert printer[0].closed

    def test_unknown_media(self, client, printer, make_frame):
        printer.frames.append(make_frame(width=70))
        resp = client.post("/api/label/print",
                           files={"file": ("label.png", _png(), "image/png")})
        assert resp.status_code == 422
        assert printer[0].closed

    def test_timeout(self, client, printer, make_frame):
        # only the connect frame is queued, so the first poll read times out
        printer.frames.append(make_frame(width=12))
        resp = client.post("/api/label/print",
                           files={"file": ("label.png", _png(), "image/png")})
        assert resp.status_code == 504
        assert printer[0].closed
