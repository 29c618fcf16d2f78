"""
Command Line Interface for LiteOCR
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import (
    DetectorConfig,
    PipelineConfig,
    RecognizerConfig,
    UNIT_RANGE,
    ZERO_CENTERED,
)
from .errors import OCRError
from .pipeline import OCRPipeline


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Detect and read text in an image with a detector/recognizer model pair",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Read all text in a photo
  lite-ocr photo.jpg --det det.onnx --rec rec.onnx

  # Join characters through the link map and keep small blobs
  lite-ocr photo.jpg --det det.onnx --rec rec.onnx --use-link-mask --min-area 4

  # Save an annotated copy of the image
  lite-ocr photo.jpg --det det.onnx --rec rec.onnx --preview boxes.png
        """
    )

    # Input/Models
    parser.add_argument('input', type=str, help='Input image file path')
    parser.add_argument('--det', required=True, help='Detection ONNX model')
    parser.add_argument('--rec', required=True, help='Recognition ONNX model')
    parser.add_argument(
        '--alphabet-file',
        default=None,
        help='Character dictionary, one character per line (default: EasyOCR latin set)'
    )
    parser.add_argument(
        '--space-char',
        action='store_true',
        help='Append a space character to --alphabet-file'
    )

    # Detection options
    parser.add_argument('--text-threshold', type=float, default=0.5,
                        help='Text probability threshold (default: 0.5)')
    parser.add_argument('--link-threshold', type=float, default=0.5,
                        help='Link probability threshold (default: 0.5)')
    parser.add_argument('--min-area', type=int, default=10,
                        help='Smallest text blob in mask cells (default: 10)')
    parser.add_argument('--use-link-mask', action='store_true',
                        help='Merge link mask into text mask before boxing')

    # Recognition options
    parser.add_argument('--zero-centered-rec', action='store_true',
                        help='Normalize recognizer input as (v - 127) / 255')
    parser.add_argument('--workers', type=int, default=1,
                        help='Threads for per-box recognition (default: 1)')

    # Output
    parser.add_argument('--preview', default=None,
                        help='Write the image with drawn boxes to this path')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose output')
    return parser


def main(argv=None):
    """Main CLI entry point"""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file '{args.input}' not found", file=sys.stderr)
        return 1

    try:
        config = PipelineConfig(
            detector=DetectorConfig(
                text_threshold=args.text_threshold,
                link_threshold=args.link_threshold,
                min_area=args.min_area,
                use_link_mask=args.use_link_mask,
            ),
            recognizer=RecognizerConfig(
                char_dict_path=args.alphabet_file,
                use_space_char=args.space_char,
                normalize=ZERO_CENTERED if args.zero_centered_rec else UNIT_RANGE,
            ),
            max_workers=args.workers,
        )
        pipeline = OCRPipeline(args.det, args.rec, config)
        if args.verbose:
            print(pipeline)

        results = pipeline(str(input_path))

        for result in results:
            x, y, w, h = result.box.as_tuple()
            if result.ok:
                print(f"{x},{y},{w},{h}\t{result.text.text}")
            else:
                print(f"{x},{y},{w},{h}\t<error: {result.error}>")

        if args.preview:
            from .preview import draw_results
            image = pipeline.image_source.open(str(input_path))
            draw_results(image, results).save(args.preview)
            print(f"Saved preview to: {args.preview}")

        return 0

    except KeyboardInterrupt:
        print("\n\nInterrupted by user", file=sys.stderr)
        return 130
    except (OCRError, ValueError, FileNotFoundError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
