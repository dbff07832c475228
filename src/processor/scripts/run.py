"""Command-line entry point for shift engine."""

import sys
from pathlib import Path

from dotenv import load_dotenv

# Add parent directory to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Settings are read from the environment when shift_engine is imported
load_dotenv()

from shift_engine import (
    process_files,
    save_to_json,
    validate_shifts,
    is_supported_file,
    create_engine,
)
from shift_engine.config import OCR_ENGINE, DEFAULT_TIMEZONE
from shift_engine.utils import format_confidence_report

OPTIONS_WITH_VALUES = ('--engine', '--timezone', '--output', '--workers')


def _option(name, default=None):
    """Value following `name` in argv, or `default`."""
    if name in sys.argv:
        idx = sys.argv.index(name)
        if idx + 1 < len(sys.argv):
            return sys.argv[idx + 1]
    return default


def _positional_args():
    args = []
    skip = False
    for arg in sys.argv[1:]:
        if skip:
            skip = False
            continue
        if arg in OPTIONS_WITH_VALUES:
            skip = True
            continue
        args.append(arg)
    return args


def main():
    """Main entry point for command-line execution."""

    file_paths = _positional_args()
    if not file_paths:
        print("="*70)
        print("SHIFT PROCESSOR - Command Line Interface")
        print("="*70)
        print("\nUsage: python scripts/run.py <image_path> [<image_path> ...] [options]")
        print("\nArguments:")
        print("  image_path   Schedule screenshot(s) to read (required)")
        print("\nOptions:")
        print(f"  --engine     OCR backend: paddle or tesseract (default: {OCR_ENGINE})")
        print(f"  --timezone   IANA timezone for the shifts (default: {DEFAULT_TIMEZONE})")
        print("  --output     Specify output JSON file path")
        print("  --workers    Number of screenshots processed in parallel (default: 1)")
        print("\nSupported formats: PNG, JPG, JPEG, BMP, TIFF, WEBP")
        print("\nExamples:")
        print("  python scripts/run.py week.png")
        print("  python scripts/run.py week1.png week2.png --output shifts.json")
        print("  python scripts/run.py week.png --engine tesseract --timezone Europe/London")
        sys.exit(1)

    engine_name = _option('--engine', OCR_ENGINE)
    timezone = _option('--timezone', DEFAULT_TIMEZONE)
    output_path = _option('--output') or Path(file_paths[0]).stem + "_shifts.json"

    try:
        workers = int(_option('--workers', '1'))
    except ValueError:
        print("\n✗ Error: --workers must be an integer")
        sys.exit(1)

    # Validate files
    for file_path in file_paths:
        if not is_supported_file(file_path):
            print(f"\n✗ Error: Unsupported file format: {file_path}")
            print("  Supported formats: PNG, JPG, JPEG, BMP, TIFF, WEBP")
            sys.exit(1)

    try:
        response = process_files(
            file_paths,
            timezone=timezone,
            engine_factory=lambda: create_engine(engine_name),
            max_workers=max(1, workers),
        )
        shifts = response.all_shifts()

        # Validate results
        warnings = validate_shifts(shifts)
        if warnings:
            print("\n" + "="*70)
            print("VALIDATION WARNINGS")
            print("="*70)
            for warning in warnings:
                print(f"⚠ {warning}")

        # Display confidence report
        print("\n" + "="*70)
        print("CONFIDENCE ANALYSIS")
        print("="*70)
        print(format_confidence_report(shifts))

        # Save to JSON
        print("\n" + "="*70)
        print("SAVING RESULTS")
        print("="*70)
        save_to_json(response, output_path)

        print("\n✓ Processing completed successfully!")
        print(f"\nNext step: Review the draft shifts in '{output_path}' before importing them")

    except FileNotFoundError as e:
        print(f"\n✗ File Error: {e}")
        sys.exit(1)
    except ImportError as e:
        print(f"\n✗ OCR Backend Error: {e}")
        sys.exit(1)
    except ValueError as e:
        print(f"\n✗ Validation Error: {e}")
        sys.exit(1)
    except Exception as e:
        print(f"\n✗ Processing Error: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
