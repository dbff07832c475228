"""Shift Engine Package for Schedule Screenshot Extraction."""

__version__ = "0.1.0"

from .main import process_screenshot, process_batch, process_files, save_to_json
from .models import DraftShift, OcrImageResult, OcrResponse, Weekday, DetectionMethod
from .preprocessor import ImagePreprocessor
from .ocr_engine import OCRSession, PaddleOCREngine, TesseractEngine, create_engine
from .extractor import WeeklyScheduleExtractor
from .fallback_parser import FallbackLineParser
from .utils import validate_shifts, is_supported_file

__all__ = [
    'process_screenshot',
    'process_batch',
    'process_files',
    'save_to_json',
    'DraftShift',
    'OcrImageResult',
    'OcrResponse',
    'Weekday',
    'DetectionMethod',
    'ImagePreprocessor',
    'OCRSession',
    'PaddleOCREngine',
    'TesseractEngine',
    'create_engine',
    'WeeklyScheduleExtractor',
    'FallbackLineParser',
    'validate_shifts',
    'is_supported_file',
]
