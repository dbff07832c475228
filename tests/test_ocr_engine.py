import numpy as np
import pytest

from shift_engine.config import OCR_DPI, PSM_AUTO, PSM_SINGLE_LINE, TIME_WHITELIST
from shift_engine.models import BoundingBox, OCRResult, OCRWord
from shift_engine.ocr_engine import OCRSession, PaddleOCREngine, create_engine

from conftest import FakeEngine, word


class StubPaddle:
    def __init__(self, result):
        self.result = result

    def ocr(self, image):
        return self.result


def _paddle_engine(result):
    # bypass __init__ so no paddle installation is needed
    engine = PaddleOCREngine.__new__(PaddleOCREngine)
    engine.ocr = StubPaddle(result)
    engine.parameters = {}
    return engine


def test_session_sets_parameters_before_recognizing():
    engine = FakeEngine([{'text': " 9:00 am - 5:00 pm ", 'confidence': 87.5}])
    result = OCRSession(engine).recognize(np.zeros((4, 4), dtype=np.uint8), PSM_SINGLE_LINE, TIME_WHITELIST)

    params = engine.calls[0]['params']
    assert params == {
        'tessedit_pageseg_mode': PSM_SINGLE_LINE,
        'tessedit_char_whitelist': TIME_WHITELIST,
        'preserve_interword_spaces': '1',
        'user_defined_dpi': OCR_DPI,
    }
    assert result.text == "9:00 am - 5:00 pm"
    assert result.confidence == pytest.approx(0.875)


def test_from_raw_coerces_malformed_shapes():
    assert OCRResult.from_raw(None) == OCRResult()
    assert OCRResult.from_raw("text") == OCRResult()

    result = OCRResult.from_raw({
        'text': None,
        'confidence': "high",
        'words': [word("Working", 10, 30), {'text': "bad", 'bbox': None}, "junk"],
    })
    assert result.text == ""
    assert result.confidence == 0.0
    assert result.words == [OCRWord("Working", BoundingBox(10.0, 10.0, 120.0, 30.0), 95.0)]


def test_from_raw_clamps_confidence():
    assert OCRResult.from_raw({'text': "x", 'confidence': 150}).confidence == 1.0
    assert OCRResult.from_raw({'text': "x", 'confidence': -5}).confidence == 0.0
    assert OCRResult.from_raw({'text': "x", 'confidence': True}).confidence == 0.0


def test_from_raw_passes_results_through():
    ready = OCRResult(text="Aug", confidence=0.4)
    assert OCRResult.from_raw(ready) is ready


def test_create_engine_rejects_unknown_backend():
    with pytest.raises(ValueError):
        create_engine("easyocr")


def test_paddle_old_style_output_is_grouped_into_lines():
    result = [[
        [[[100, 10], [200, 10], [200, 30], [100, 30]], ("Aug", 0.9)],
        [[[10, 12], [90, 12], [90, 32], [10, 32]], ("13", 0.8)],
        [[[10, 60], [210, 60], [210, 80], [10, 80]], ("Working hard", 0.7)],
    ]]
    engine = _paddle_engine(result)

    raw = engine.recognize(np.zeros((100, 300), dtype=np.uint8))

    assert raw['text'] == "13 Aug\nWorking hard"
    assert raw['confidence'] == pytest.approx(80.0)
    assert [w['text'] for w in raw['words']] == ["Aug", "13", "Working", "hard"]
    working = raw['words'][2]['bbox']
    assert working['x0'] == pytest.approx(10.0)
    assert working['x1'] == pytest.approx(10.0 + 7 * 200 / 12)


def test_paddle_new_style_output_and_whitelist():
    result = [{
        'rec_texts': ["9:00 am - 5:00 pm!", "Off"],
        'rec_scores': [0.9, 0.6],
        'rec_polys': [
            [[0, 0], [100, 0], [100, 20], [0, 20]],
            [[0, 40], [30, 40], [30, 60], [0, 60]],
        ],
    }]
    engine = _paddle_engine(result)
    engine.set_parameters({'tessedit_char_whitelist': TIME_WHITELIST, 'tessedit_pageseg_mode': PSM_SINGLE_LINE})

    raw = engine.recognize(np.zeros((80, 120), dtype=np.uint8))

    # "Off" has no allowed characters and is dropped
    assert raw['text'] == "9:00 am - 5:00 pm"
    assert raw['confidence'] == pytest.approx(90.0)


def test_paddle_failures_become_empty_results(capsys):
    class Broken:
        def ocr(self, image):
            raise RuntimeError("model not loaded")

    engine = _paddle_engine(None)
    engine.ocr = Broken()
    engine.set_parameters({'tessedit_pageseg_mode': PSM_AUTO})

    assert engine.recognize(np.zeros((5, 5), dtype=np.uint8)) == {}
    assert engine.recognize(np.zeros((0, 0), dtype=np.uint8)) == {}
    assert "Warning: PaddleOCR recognition failed" in capsys.readouterr().out


def test_tesseract_config_from_parameters():
    pytest.importorskip("pytesseract")
    from shift_engine.ocr_engine import TesseractEngine

    engine = TesseractEngine()
    engine.set_parameters({
        'tessedit_pageseg_mode': '7',
        'tessedit_char_whitelist': TIME_WHITELIST,
        'preserve_interword_spaces': '1',
        'user_defined_dpi': '300',
    })

    config = engine.build_config()
    assert config.startswith("--psm 7 --dpi 300 ")
    assert "-c tessedit_char_whitelist=0123456789:apmAPM-" in config
    assert config.endswith("-c preserve_interword_spaces=1")


def test_from_raw_clamps_ready_results():
    clamped = OCRResult.from_raw(OCRResult(text="Aug", confidence=87.0))
    assert clamped.confidence == 1.0
    assert clamped.text == "Aug"
