import json
from datetime import datetime

import pytest

from shift_engine.config import FULL_PAGE_WHITELIST, PSM_AUTO
from shift_engine.main import process_batch, process_files, process_screenshot, save_to_json
from shift_engine.ocr_engine import OCRSession
from shift_engine.utils import ValidationError

from conftest import FakeEngine, huge_png_header, png_bytes

TZ = "America/New_York"

FALLBACK_PAGE = "\n".join([
    "August 11, 2025 - August 17, 2025",
    "Working 9:00am - 5:00pm",
    "Wednesday",
])


def test_fallback_runs_when_structured_finds_nothing(white_png, summer_2025):
    engine = FakeEngine([
        {'text': "", 'confidence': 0},
        {'text': "", 'confidence': 0},
        {'text': FALLBACK_PAGE, 'confidence': 75},
    ])

    result = process_screenshot(white_png, OCRSession(engine), TZ, "batch", "week.png", now=summer_2025)

    assert result.mode == "fallback"
    assert result.filename == "week.png"
    assert [(s.date, s.start_time, s.end_time) for s in result.shifts] == [("2025-08-13", "09:00", "17:00")]
    assert result.fallback_text == FALLBACK_PAGE
    assert result.structured_debug.rows_detected == 0

    page_params = engine.calls[-1]['params']
    assert page_params['tessedit_pageseg_mode'] == PSM_AUTO
    assert page_params['tessedit_char_whitelist'] == FULL_PAGE_WHITELIST


def test_undecodable_image_skips_fallback(summer_2025, capsys):
    engine = FakeEngine()

    result = process_screenshot(b"garbage", OCRSession(engine), TZ, "batch", "broken.png", now=summer_2025)

    assert result.mode == "structured"
    assert result.shifts == []
    assert result.text == "Missing image dimensions"
    assert engine.calls == []
    assert "Warning: broken.png" in capsys.readouterr().out


def test_batch_keeps_input_order_and_source(summer_2025):
    engine = FakeEngine()
    images = [("a.png", png_bytes()), ("b.png", b"garbage")]

    response = process_batch(images, timezone=TZ, engine=engine, now=summer_2025, batch_id="batch-1")

    assert [image.filename for image in response.images] == ["a.png", "b.png"]
    assert response.batch_id == "batch-1"
    assert len(response) == 2
    assert not engine.closed


def test_parallel_batch_uses_one_engine_per_image(summer_2025):
    created = []

    def factory():
        engine = FakeEngine()
        created.append(engine)
        return engine

    images = [(f"{i}.png", png_bytes()) for i in range(3)]
    response = process_batch(images, timezone=TZ, engine_factory=factory, max_workers=2, now=summer_2025)

    assert [image.filename for image in response.images] == ["0.png", "1.png", "2.png"]
    assert len(created) == 3
    assert all(engine.closed for engine in created)


def test_batch_needs_an_engine():
    with pytest.raises(ValueError):
        process_batch([("a.png", b"")], timezone=TZ, engine=FakeEngine(), max_workers=4)
    with pytest.raises(ValueError):
        process_batch([("a.png", b"")], timezone=TZ)


def test_batch_rejects_unknown_timezone():
    with pytest.raises(ValidationError):
        process_batch([], timezone="Nowhere/Special", engine=FakeEngine())


def test_process_files_validates_paths(tmp_path):
    with pytest.raises(FileNotFoundError):
        process_files([str(tmp_path / "missing.png")], timezone=TZ, engine=FakeEngine())

    document = tmp_path / "week.pdf"
    document.write_bytes(b"%PDF")
    with pytest.raises(ValueError):
        process_files([str(document)], timezone=TZ, engine=FakeEngine())


def test_process_files_and_save(tmp_path):
    screenshot = tmp_path / "week.png"
    screenshot.write_bytes(png_bytes())
    output = tmp_path / "shifts.json"

    response = process_files([str(screenshot)], timezone=TZ, engine=FakeEngine())
    save_to_json(response, str(output))

    data = json.loads(output.read_text(encoding='utf-8'))
    assert data['timezone'] == TZ
    assert data['images'][0]['filename'] == "week.png"
    assert data['images'][0]['mode'] == "fallback"
    assert data['images'][0]['shifts'] == []
    assert 'structured' in data['images'][0]['debug']


def test_oversized_image_does_not_stop_the_batch(summer_2025):
    images = [("huge.png", huge_png_header()), ("ok.png", png_bytes())]

    response = process_batch(images, timezone=TZ, engine=FakeEngine(), now=summer_2025)

    huge, ok = response.images
    assert (huge.filename, huge.shifts, huge.text) == ("huge.png", [], "Missing image dimensions")
    assert ok.filename == "ok.png"
