"""OCR engine capability, scoped recognition session and backend adapters."""

import shlex
import threading
from typing import Any, Dict, List, Optional, Protocol, Union

import cv2
import numpy as np

from .config import OCR_DPI, TESSERACT_CMD, PSM_SINGLE_LINE
from .models import OCRResult
from .utils import median


class OCREngine(Protocol):
    """
    Anything that can recognize text in an image.

    Recognition parameters are engine-wide state: they apply to every
    `recognize` call until changed, so callers go through `OCRSession`.
    """

    def set_parameters(self, params: Dict[str, str]) -> None:
        ...

    def recognize(self, image: np.ndarray) -> Union[OCRResult, Dict[str, Any]]:
        ...


class OCRSession:
    """
    Serializes "set parameters, then recognize" against one engine.

    The lock is held for the whole pair so a parameter change from another
    caller can never land between them. Share a session only between
    callers that may wait on each other; parallel work needs one engine each.
    """

    def __init__(self, engine: OCREngine):
        self.engine = engine
        self._lock = threading.Lock()

    def recognize(self, image: np.ndarray, psm: str, whitelist: str) -> OCRResult:
        """
        Recognize text with the given page segmentation mode and whitelist.

        Args:
            image: Grayscale or color image array
            psm: Tesseract page segmentation mode code
            whitelist: Characters the engine may emit

        Returns:
            OCRResult normalized at this boundary
        """
        params = {
            'tessedit_pageseg_mode': psm,
            'tessedit_char_whitelist': whitelist,
            'preserve_interword_spaces': '1',
            'user_defined_dpi': OCR_DPI,
        }
        with self._lock:
            self.engine.set_parameters(params)
            raw = self.engine.recognize(image)
        return OCRResult.from_raw(raw)


def create_engine(name: str, **kwargs) -> OCREngine:
    """
    Build an OCR backend by name.

    Args:
        name: "paddle" or "tesseract"

    Raises:
        ValueError: If the backend name is unknown
    """
    name = (name or '').strip().lower()
    if name in ('paddle', 'paddleocr'):
        return PaddleOCREngine(**kwargs)
    if name in ('tesseract', 'pytesseract'):
        return TesseractEngine(**kwargs)
    raise ValueError(f"Unsupported OCR engine: {name}. Use 'paddle' or 'tesseract'")


class PaddleOCREngine:
    """OCR backend using PaddleOCR."""

    def __init__(self, lang: str = 'en'):
        """
        Initialize the PaddleOCR backend.

        PaddleOCR has no page segmentation or whitelist settings; the
        whitelist is enforced by filtering recognized characters and the
        segmentation mode only decides how lines are joined.

        Args:
            lang: Language code for OCR (default: 'en')
        """
        try:
            from paddleocr import PaddleOCR
        except ImportError:
            raise ImportError(
                "paddleocr is required for the PaddleOCR engine. "
                "Install with: pip install 'shift-processor[paddle]'"
            )

        self.ocr = PaddleOCR(
            use_angle_cls=True,  # Enable angle classification for rotated text
            lang=lang,
            det_db_box_thresh=0.3,  # Lower threshold for better detection of faint text
            det_db_unclip_ratio=2.0,  # Expand detected boxes slightly
        )
        self.parameters: Dict[str, str] = {}

    def set_parameters(self, params: Dict[str, str]) -> None:
        self.parameters.update(params)

    def close(self) -> None:
        self.ocr = None

    def recognize(self, image: np.ndarray) -> Dict[str, Any]:
        """
        Run PaddleOCR and convert its output to the engine result shape.

        Args:
            image: Input image as numpy array (grayscale or BGR)

        Returns:
            Dict with 'text', 'confidence' (0-100) and 'words'
        """
        try:
            if image is None or not isinstance(image, np.ndarray) or image.size == 0:
                print("    Warning: Empty image passed to PaddleOCR")
                return {}

            if image.ndim == 2:
                image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)

            result = self.ocr.ocr(image)
            if not result:
                return {}

            items = self._parse_result(result)
        except Exception as e:
            print(f"    Warning: PaddleOCR recognition failed: {type(e).__name__}: {e}")
            return {}

        whitelist = self.parameters.get('tessedit_char_whitelist') or None
        words = []
        kept = []
        for item in items:
            text = self._apply_whitelist(item['text'], whitelist)
            if not text.strip():
                continue
            kept.append({**item, 'text': text})
            words.extend(self._split_words(text, item['box'], item['confidence']))

        single_line = self.parameters.get('tessedit_pageseg_mode') == PSM_SINGLE_LINE
        lines = [' '.join(i['text'].strip() for i in row) for row in self._group_rows(kept)]
        text = ' '.join(lines) if single_line else '\n'.join(lines)
        scores = [i['confidence'] for i in kept]

        return {
            'text': text,
            'confidence': (sum(scores) / len(scores) * 100) if scores else 0.0,
            'words': words,
        }

    def _parse_result(self, result: list) -> List[Dict[str, Any]]:
        """Normalize both PaddleOCR output styles to text/box/confidence items."""
        items = []
        first = result[0]

        # New-style output (dict) from newer PaddleOCR versions
        if isinstance(first, dict) and 'rec_texts' in first:
            rec_texts = first.get('rec_texts', [])
            rec_scores = first.get('rec_scores', [])
            rec_polys = first.get('rec_polys')
            if rec_polys is None:
                rec_polys = first.get('rec_boxes')

            for idx, text in enumerate(rec_texts):
                text = str(text).strip()
                if not text or rec_polys is None or idx >= len(rec_polys):
                    continue
                box = self._to_box(rec_polys[idx])
                if box is None:
                    continue
                score = float(rec_scores[idx]) if idx < len(rec_scores) else 0.0
                items.append({'text': text, 'box': box, 'confidence': score})
            return items

        # Older-style output: list of [ [box], (text, score) ]
        for line in first if isinstance(first, list) else result:
            try:
                if not line or len(line) < 2:
                    continue
                text_info = line[1]
                text = str(text_info[0]).strip() if text_info and text_info[0] else ""
                box = self._to_box(line[0])
                if not text or box is None:
                    continue
                items.append({'text': text, 'box': box, 'confidence': float(text_info[1])})
            except (IndexError, ValueError, TypeError) as line_error:
                print(f"    Warning: Skipping malformed OCR result: {line_error}")
                continue
        return items

    @staticmethod
    def _to_box(poly) -> Optional[tuple]:
        """(x0, y0, x1, y1) from a 4-point polygon or a flat 4-number box."""
        try:
            points = [(float(p[0]), float(p[1])) for p in poly]
        except (TypeError, IndexError):
            try:
                x1, y1, x2, y2 = (float(v) for v in poly)
            except (TypeError, ValueError):
                return None
            return (x1, y1, x2, y2)
        if len(points) < 4:
            return None
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        return (min(xs), min(ys), max(xs), max(ys))

    @staticmethod
    def _apply_whitelist(text: str, whitelist: Optional[str]) -> str:
        if not whitelist:
            return text
        allowed = set(whitelist) | {' '}
        return ''.join(ch for ch in text if ch in allowed)

    @staticmethod
    def _split_words(text: str, box: tuple, confidence: float) -> List[Dict[str, Any]]:
        """Split a line box into word boxes proportionally to character offsets."""
        x0, y0, x1, y1 = box
        length = max(1, len(text))
        char_w = (x1 - x0) / length
        words = []
        pos = 0
        for token in text.split(' '):
            if token:
                words.append({
                    'text': token,
                    'bbox': {
                        'x0': x0 + pos * char_w,
                        'y0': y0,
                        'x1': x0 + (pos + len(token)) * char_w,
                        'y1': y1,
                    },
                    'confidence': confidence * 100,
                })
            pos += len(token) + 1
        return words

    @staticmethod
    def _group_rows(items: List[Dict[str, Any]]) -> List[List[Dict[str, Any]]]:
        """
        Group text boxes into lines based on vertical position.

        Boxes whose centers are within half a typical box height of the
        current line's first box join that line.
        """
        if not items:
            return []

        def center_y(item):
            return (item['box'][1] + item['box'][3]) / 2

        ordered = sorted(items, key=lambda i: (center_y(i), i['box'][0]))
        row_threshold = (median([i['box'][3] - i['box'][1] for i in ordered]) or 0) / 2

        rows = []
        current_row = [ordered[0]]
        current_y = center_y(ordered[0])

        for item in ordered[1:]:
            y = center_y(item)
            if abs(y - current_y) <= row_threshold:
                current_row.append(item)
            else:
                current_row.sort(key=lambda i: i['box'][0])
                rows.append(current_row)
                current_row = [item]
                current_y = y

        current_row.sort(key=lambda i: i['box'][0])
        rows.append(current_row)
        return rows


class TesseractEngine:
    """OCR backend using Tesseract through pytesseract."""

    def __init__(self, lang: str = 'eng', tesseract_cmd: str = TESSERACT_CMD):
        try:
            import pytesseract
        except ImportError:
            raise ImportError(
                "pytesseract is required for the Tesseract engine. "
                "Install with: pip install 'shift-processor[tesseract]'"
            )

        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self._tesseract = pytesseract
        self.lang = lang
        self.parameters: Dict[str, str] = {}

    def set_parameters(self, params: Dict[str, str]) -> None:
        self.parameters.update(params)

    def close(self) -> None:
        pass

    def build_config(self) -> str:
        """Command line flags for the current parameters."""
        args = []
        psm = self.parameters.get('tessedit_pageseg_mode')
        if psm:
            args.append(f"--psm {psm}")
        dpi = self.parameters.get('user_defined_dpi')
        if dpi:
            args.append(f"--dpi {dpi}")
        # tesseract separates words regardless of the whitelist
        whitelist = (self.parameters.get('tessedit_char_whitelist') or '').replace(' ', '').replace('\n', '')
        if whitelist:
            args.append(f"-c tessedit_char_whitelist={shlex.quote(whitelist)}")
        if self.parameters.get('preserve_interword_spaces'):
            args.append(f"-c preserve_interword_spaces={self.parameters['preserve_interword_spaces']}")
        return ' '.join(args)

    def recognize(self, image: np.ndarray) -> Dict[str, Any]:
        try:
            data = self._tesseract.image_to_data(
                image,
                lang=self.lang,
                config=self.build_config(),
                output_type=self._tesseract.Output.DICT,
            )
        except Exception as e:
            print(f"    Warning: Tesseract recognition failed: {type(e).__name__}: {e}")
            return {}

        lines: Dict[tuple, List[str]] = {}
        words = []
        scores = []
        for idx, raw_text in enumerate(data.get('text', [])):
            text = str(raw_text).strip()
            if not text:
                continue
            try:
                conf = float(data['conf'][idx])
            except (KeyError, IndexError, TypeError, ValueError):
                conf = -1.0
            key = (data['block_num'][idx], data['par_num'][idx], data['line_num'][idx])
            lines.setdefault(key, []).append(text)
            left, top = data['left'][idx], data['top'][idx]
            words.append({
                'text': text,
                'bbox': {
                    'x0': left,
                    'y0': top,
                    'x1': left + data['width'][idx],
                    'y1': top + data['height'][idx],
                },
                'confidence': max(0.0, conf),
            })
            if conf >= 0:
                scores.append(conf)

        return {
            'text': '\n'.join(' '.join(tokens) for tokens in lines.values()),
            'confidence': sum(scores) / len(scores) if scores else 0.0,
            'words': words,
        }
