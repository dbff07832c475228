"""Per-row field crops (day number, month, weekday, scheduled time) and their OCR."""

import re
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .config import (
    BAND_HALF_HEIGHT, DAY_CROP, MONTH_CROP, WEEKDAY_CROP, SCHEDULED_CROP,
    DAY_WHITELIST, MONTH_WHITELIST, WEEKDAY_WHITELIST, TIME_WHITELIST,
    PSM_SINGLE_BLOCK, PSM_SINGLE_LINE,
)
from .models import Band, OCRResult, Rect, Weekday
from .ocr_engine import OCRSession
from .preprocessor import crop, enhance_crop_for_ocr, enhance_crop_for_time_ocr
from .utils import parse_month_name, parse_weekday


@dataclass
class RowFields:
    """OCR output and derived values for one schedule row."""
    band: Band
    crops: dict[str, Rect]
    day_ocr: OCRResult
    month_ocr: OCRResult
    weekday_ocr: OCRResult
    scheduled_ocr: OCRResult
    day: Optional[int]
    month: Optional[int]
    weekday: Optional[Weekday]


class FieldExtractor:
    """Cuts and recognizes the four fields of a row band."""

    def __init__(self, session: OCRSession):
        self.session = session

    @staticmethod
    def row_band(y_center: float, typical_row: float, list_height: int) -> Band:
        top = max(0, round(y_center - typical_row * BAND_HALF_HEIGHT))
        height = min(list_height - top, round(typical_row * BAND_HALF_HEIGHT * 2))
        return Band(top=top, height=max(1, height))

    @staticmethod
    def field_rects(band: Band, width: int) -> dict[str, Rect]:
        def rect(fractions):
            left, top, w, h = fractions
            return Rect(
                left=round(width * left),
                top=band.top + round(band.height * top),
                width=round(width * w),
                height=round(band.height * h),
            )

        return {
            'day': rect(DAY_CROP),
            'month': rect(MONTH_CROP),
            'weekday': rect(WEEKDAY_CROP),
            'scheduled': rect(SCHEDULED_CROP),
        }

    def extract(
        self,
        list_image: np.ndarray,
        y_center: float,
        typical_row: float,
        fallback_month: Optional[int] = None,
    ) -> RowFields:
        """
        OCR every field of the row centered at `y_center`.

        Args:
            list_image: List region of the text layer
            y_center: Row center, relative to the list region
            typical_row: Typical row spacing in pixels
            fallback_month: Header month used when the month crop is unreadable

        Returns:
            RowFields with raw OCR results and parsed day/month/weekday
        """
        list_height, width = list_image.shape[:2]
        band = self.row_band(y_center, typical_row, list_height)
        rects = self.field_rects(band, width)

        day_ocr = self.session.recognize(
            enhance_crop_for_ocr(crop(list_image, rects['day'])), PSM_SINGLE_BLOCK, DAY_WHITELIST
        )
        # month labels are small and thin; upscaling and thresholding erase them
        month_ocr = self.session.recognize(
            crop(list_image, rects['month']), PSM_SINGLE_LINE, MONTH_WHITELIST
        )
        weekday_ocr = self.session.recognize(
            enhance_crop_for_ocr(crop(list_image, rects['weekday'])), PSM_SINGLE_LINE, WEEKDAY_WHITELIST
        )
        scheduled_ocr = self.session.recognize(
            enhance_crop_for_time_ocr(crop(list_image, rects['scheduled'])), PSM_SINGLE_LINE, TIME_WHITELIST
        )

        month = parse_month_name(month_ocr.text)
        return RowFields(
            band=band,
            crops=rects,
            day_ocr=day_ocr,
            month_ocr=month_ocr,
            weekday_ocr=weekday_ocr,
            scheduled_ocr=scheduled_ocr,
            day=parse_day_digits(day_ocr.text),
            month=month if month is not None else fallback_month,
            weekday=parse_weekday(weekday_ocr.text),
        )


def parse_day_digits(text: str) -> Optional[int]:
    """Day of month from the last two digits, tolerating stray leading noise."""
    digits = re.sub(r'\D', '', text or '')
    if not digits:
        return None
    return int(digits[-2:])
