"""Main module for running shift engine."""

import sys

from shift_engine.config import OCR_ENGINE
from shift_engine.main import process_files
from shift_engine.ocr_engine import create_engine

if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python -m shift_engine <image_path> [<image_path> ...]")
        print("\nExample: python -m shift_engine /path/to/week.png")
        sys.exit(1)

    process_files(sys.argv[1:], engine_factory=lambda: create_engine(OCR_ENGINE))
