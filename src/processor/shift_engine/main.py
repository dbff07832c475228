"""Core execution logic for shift extraction."""

import json
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .config import DEFAULT_TIMEZONE, FULL_PAGE_WHITELIST, PSM_AUTO, SUPPORTED_EXTENSIONS
from .extractor import WeeklyScheduleExtractor
from .fallback_parser import FallbackLineParser
from .models import ImageLayers, OcrImageResult, OcrResponse
from .ocr_engine import OCREngine, OCRSession
from .preprocessor import ImagePreprocessor
from .utils import get_zone

EngineFactory = Callable[[], OCREngine]


def process_screenshot(
    data: bytes,
    session: OCRSession,
    timezone: str,
    source: str,
    filename: str = "screenshot",
    now: Optional[datetime] = None,
) -> OcrImageResult:
    """
    Extract draft shifts from one screenshot.

    Runs structured extraction first. When it yields no shifts, the whole
    text layer is recognized again with full-page OCR parameters and
    parsed line by line.

    Args:
        data: Encoded image bytes
        session: OCR session; used for every recognition call of this image
        timezone: IANA timezone stamped on every shift
        source: Batch identifier stamped on every shift
        filename: Name reported in the result
        now: Override for the current time

    Returns:
        OcrImageResult in "structured" or "fallback" mode
    """
    try:
        layers = ImagePreprocessor().process(data)
    except ValueError as e:
        print(f"    Warning: {filename}: {e}")
        empty = np.zeros((0, 0), dtype=np.uint8)
        layers = ImageLayers(detection=empty, text=empty)

    structured = WeeklyScheduleExtractor(session).extract(layers, timezone, source, now)
    if structured.shifts or layers.text.size == 0:
        return OcrImageResult(
            filename=filename,
            text=structured.debug_text,
            shifts=structured.shifts,
            mode="structured",
            structured_debug=structured.debug,
        )

    # Whole-page parameters so crop whitelists don't blank out the page
    page = session.recognize(layers.text, PSM_AUTO, FULL_PAGE_WHITELIST)
    shifts = FallbackLineParser().parse(page.text, timezone, source, now)
    return OcrImageResult(
        filename=filename,
        text=page.text,
        shifts=shifts,
        mode="fallback",
        structured_debug=structured.debug,
        fallback_text=page.text,
    )


def process_batch(
    images: Sequence[Tuple[str, bytes]],
    timezone: Optional[str] = None,
    engine: Optional[OCREngine] = None,
    engine_factory: Optional[EngineFactory] = None,
    max_workers: int = 1,
    now: Optional[datetime] = None,
    batch_id: Optional[str] = None,
) -> OcrResponse:
    """
    Extract draft shifts from a batch of screenshots.

    With one worker, all images share a single engine and are processed
    in order. With more, every image gets its own engine from
    `engine_factory`, since engine parameters are not safe to share.

    Args:
        images: (filename, bytes) pairs
        timezone: IANA timezone (default: DEFAULT_TIMEZONE)
        engine: Engine to use for sequential processing
        engine_factory: Creates engines; required for parallel processing
        max_workers: Number of images processed at the same time
        now: Override for the current time
        batch_id: Identifier stamped on every shift (default: random)

    Returns:
        OcrResponse with one result per image, in input order

    Raises:
        ValueError: If no engine can be obtained for the requested mode
    """
    timezone = timezone or DEFAULT_TIMEZONE
    get_zone(timezone)
    batch_id = batch_id or str(uuid.uuid4())
    response = OcrResponse(batch_id=batch_id, timezone=timezone)

    if max_workers > 1:
        if engine_factory is None:
            raise ValueError("Parallel processing needs an engine_factory (one engine per worker)")

        def _run(item: Tuple[str, bytes]) -> OcrImageResult:
            worker_engine = engine_factory()
            try:
                return process_screenshot(item[1], OCRSession(worker_engine), timezone, batch_id, item[0], now)
            finally:
                _close_engine(worker_engine)

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            response.images.extend(executor.map(_run, images))
        return response

    owned = engine is None
    if owned:
        if engine_factory is None:
            raise ValueError("Either engine or engine_factory is required")
        engine = engine_factory()

    session = OCRSession(engine)
    try:
        for idx, (filename, data) in enumerate(images):
            print(f"  → Processing image {idx + 1}/{len(images)}: {filename}")
            result = process_screenshot(data, session, timezone, batch_id, filename, now)
            print(f"    {result.mode}: {len(result.shifts)} shift(s)")
            response.images.append(result)
    finally:
        if owned:
            _close_engine(engine)

    return response


def process_files(
    file_paths: List[str],
    timezone: Optional[str] = None,
    engine: Optional[OCREngine] = None,
    engine_factory: Optional[EngineFactory] = None,
    max_workers: int = 1,
) -> OcrResponse:
    """
    Process screenshot files and extract draft shifts.

    Args:
        file_paths: Paths to screenshot images
        timezone: IANA timezone (default: DEFAULT_TIMEZONE)
        engine: Engine to use for sequential processing
        engine_factory: Creates engines; required for parallel processing
        max_workers: Number of images processed at the same time

    Returns:
        OcrResponse for all files

    Raises:
        FileNotFoundError: If a file does not exist
        ValueError: If a file format is not supported
    """
    try:
        paths = [Path(p) for p in file_paths]
        for path in paths:
            if not path.exists():
                raise FileNotFoundError(f"File not found: {path}")
            if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
                raise ValueError(
                    f"Unsupported file format: {path.suffix}. "
                    f"Supported formats: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
                )

        print(f"▶ Processing {len(paths)} screenshot(s)")

        print("\n[1/2] Extracting shifts...")
        images = [(path.name, path.read_bytes()) for path in paths]
        response = process_batch(
            images,
            timezone=timezone,
            engine=engine,
            engine_factory=engine_factory,
            max_workers=max_workers,
        )

        print("\n[2/2] Extraction Summary")
        print(f"{'─'*60}")
        _print_response_summary(response)

        print(f"\n{'='*60}")
        print("✓ Shift extraction completed successfully")
        print(f"{'='*60}\n")

        return response

    except (FileNotFoundError, ValueError) as e:
        print(f"\n✗ Validation error: {str(e)}")
        raise
    except Exception as e:
        print(f"\n✗ Error during shift extraction: {type(e).__name__}: {str(e)}")
        raise


def save_to_json(response: OcrResponse, output_path: str) -> None:
    """
    Save extracted shifts and debug traces to a JSON file.

    Args:
        response: OcrResponse to save
        output_path: Path to output JSON file
    """
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(response.to_dict(), f, indent=2, ensure_ascii=False)

    print(f"✓ Saved to: {output_path}")


def _close_engine(engine: OCREngine) -> None:
    close = getattr(engine, 'close', None)
    if callable(close):
        close()


def _print_response_summary(response: OcrResponse) -> None:
    """Print a summary of the extracted batch."""
    print(f"  Batch: {response.batch_id}")
    print(f"  Timezone: {response.timezone}")

    for image in response.images:
        print(f"\n  {image.filename} [{image.mode}]: {len(image.shifts)} shift(s)")
        debug = image.structured_debug
        if debug is not None:
            skipped = sum(1 for row in debug.rows if row.skipped_reason)
            print(f"    Rows detected: {debug.rows_detected} ({debug.detection_method.value}), skipped: {skipped}")
        for i, shift in enumerate(image.shifts[:3], 1):
            print(f"    {i}. {shift}")
        if len(image.shifts) > 3:
            print(f"    ... and {len(image.shifts) - 3} more shifts")
