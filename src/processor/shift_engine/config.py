"""
Tunable settings for schedule screenshot extraction.

Layout fractions are relative to the preprocessed screenshot and were
calibrated against the weekly list view (header week range on top,
one card per day with "Working" in the right-hand column).
"""

import os

# =============================================================================
# ENVIRONMENT
# =============================================================================

DEFAULT_TIMEZONE = os.getenv('DEFAULT_TIMEZONE', '').strip() or 'America/New_York'

# OCR backend used by the command line ("paddle" or "tesseract")
OCR_ENGINE = os.getenv('OCR_ENGINE', 'paddle').strip().lower()

# Optional path to the tesseract binary
TESSERACT_CMD = os.getenv('TESSERACT_CMD', '')

SUPPORTED_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.bmp', '.tiff', '.tif', '.webp'}

# =============================================================================
# PREPROCESSING
# =============================================================================

WORKING_WIDTH = 2200
DETECTION_THRESHOLD = 180

CHAR_CROP_WIDTH = 900
CHAR_CROP_THRESHOLD = 170
TIME_CROP_WIDTH = 1200

PROJECTION_THRESHOLD = 210

# =============================================================================
# OCR PARAMETERS (tesseract page segmentation modes)
# =============================================================================

PSM_AUTO = '3'
PSM_SINGLE_COLUMN = '4'
PSM_SINGLE_BLOCK = '6'
PSM_SINGLE_LINE = '7'
PSM_SPARSE_TEXT = '11'

LETTERS = 'ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz'
DIGITS = '0123456789'

HEADER_WHITELIST = LETTERS + DIGITS + ',-:<>/ '
RIGHT_COLUMN_WHITELIST = LETTERS
DAY_WHITELIST = DIGITS + 'Oo'
MONTH_WHITELIST = LETTERS
WEEKDAY_WHITELIST = LETTERS
TIME_WHITELIST = DIGITS + ':apmAPM -'
FULL_PAGE_WHITELIST = LETTERS + DIGITS + ':,-/<>|()[]{} .\n'

OCR_DPI = '300'

# =============================================================================
# LAYOUT (fractions of image width / height)
# =============================================================================

HEADER_TOP = 0.17
HEADER_HEIGHT = 0.12
LIST_GAP = 0.01
LIST_BOTTOM = 0.86
RIGHT_COLUMN_LEFT = 0.7
RIGHT_COLUMN_WIDTH = 0.3

# Field crops: (left, top, width, height); left/width scale with image
# width, top/height with the row band height.
DAY_CROP = (0.08, 0.14, 0.22, 0.56)
MONTH_CROP = (0.03, 0.02, 0.30, 0.24)
WEEKDAY_CROP = (0.03, 0.70, 0.30, 0.26)
SCHEDULED_CROP = (0.28, 0.08, 0.50, 0.36)

BAND_HALF_HEIGHT = 0.48

# =============================================================================
# ROW DETECTION
# =============================================================================

WORKING_TOKEN = 'working'
DEFAULT_ROW_PX = 140
MIN_ROW_DELTA_PX = 20
PEAK_RATIO = 0.35
MIN_PEAK_DISTANCE_PX = 18
PEAK_SPACING_DIVISOR = 2.2
SMOOTHING_DIVISOR = 220
MIN_SMOOTHING_WINDOW = 5
PROJECTION_OFFSET_RATIO = 0.22
UNIFORM_PADDING = 0.03

# =============================================================================
# CONFIDENCE
# =============================================================================

STRUCTURED_TIME_CONFIDENCE = 0.98
TOKEN_PAIR_PENALTY = 0.9
OCR_CONFIDENCE_FLOOR = 0.35

FALLBACK_MERIDIEM_CONFIDENCE = 0.95
FALLBACK_24H_CONFIDENCE = 0.85
FALLBACK_AMBIGUOUS_CONFIDENCE = 0.55
FALLBACK_DATED_LINE = 0.65
FALLBACK_UNDATED_LINE = 0.45
WEEKDAY_LOOKAHEAD_LINES = 6

LOW_CONFIDENCE = 0.5
