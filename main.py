#!/usr/bin/env python3
"""Command-line interface for local Laplacian filtering.

This script provides a clean CLI for:
- Edge-aware detail enhancement, detail smoothing and tone mapping
- Gaussian / Laplacian pyramid visualization
"""

import argparse
import logging
import sys

from local_laplacian.config import FilterConfig
from local_laplacian.core.pyramids import GaussianPyramid, LaplacianPyramid
from local_laplacian.pipeline import LocalLaplacianPipeline
from local_laplacian.pipelines.local_laplacian import DEFAULT_BASE_SIZE
from local_laplacian.utils.io import load_image, setup_logging
from local_laplacian.utils.visualization import save_pyramid_visualization

logger = logging.getLogger(__name__)


def build_config(args: argparse.Namespace) -> FilterConfig:
    """Create the filter configuration from a JSON file and/or CLI flags.

    Flags given on the command line override values from the config file.
    """
    if args.config:
        config = FilterConfig.from_json(args.config)
        if args.image:
            config.input_path = args.image
    elif args.image:
        config = FilterConfig(input_path=args.image)
    else:
        raise ValueError("An input image or --config must be given")

    for name in ("alpha", "beta", "sigma_r", "output", "base_size"):
        value = getattr(args, name)
        if value is None:
            continue
        if name == "output":
            config.output_path = value
        elif name == "base_size":
            config.desired_base_size = value
        else:
            setattr(config, name, value)

    if args.grayscale:
        config.grayscale = True
    if args.save_levels:
        config.save_levels = True
    if args.save_original:
        config.save_original = True
    return config


def run_filter(args: argparse.Namespace) -> int:
    config = build_config(args)
    output_path = LocalLaplacianPipeline(config).run()
    logger.info(f"Success! Output image: {output_path}")
    return 0


def run_pyramid(args: argparse.Namespace) -> int:
    image, _ = load_image(args.image, grayscale=args.grayscale)
    num_levels = args.levels
    if num_levels is None:
        num_levels = LaplacianPyramid.get_level_count(
            image.shape[0], image.shape[1], DEFAULT_BASE_SIZE
        )

    gaussian = GaussianPyramid(image, num_levels)
    laplacian = LaplacianPyramid(image, num_levels)
    logger.info(f"\n{gaussian}")
    save_pyramid_visualization(gaussian, laplacian, args.output)
    return 0


def main() -> int:
    """Main entry point for the local Laplacian CLI.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = argparse.ArgumentParser(
        description="Local Laplacian filtering and pyramid visualization",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Tone mapping (default: alpha=1, beta=0, sigma_r=0.3)
  python main.py filter input.png --output output.png

  # Detail enhancement
  python main.py filter input.png --alpha 0.25 --beta 1 --sigma-r 0.4

  # Run from a JSON config, dumping every output level
  python main.py filter --config config.json --save-levels

  # Visualize Gaussian and Laplacian pyramids
  python main.py pyramid input.png --levels 4
        """
    )
    parser.add_argument(
        '--verbose',
        '-v',
        action='store_true',
        help='Enable verbose logging (DEBUG level)'
    )

    subparsers = parser.add_subparsers(dest='mode', help='Processing mode')

    # Filter subcommand
    filter_parser = subparsers.add_parser(
        'filter',
        help='Apply the local Laplacian filter to an image'
    )
    filter_parser.add_argument(
        'image',
        type=str,
        nargs='?',
        default=None,
        help='Path to input image (optional when --config is given)'
    )
    filter_parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to JSON configuration file'
    )
    filter_parser.add_argument(
        '--alpha',
        type=float,
        default=None,
        help='Detail exponent (< 1 enhances detail, > 1 suppresses it)'
    )
    filter_parser.add_argument(
        '--beta',
        type=float,
        default=None,
        help='Edge slope (< 1 compresses tones, > 1 expands them)'
    )
    filter_parser.add_argument(
        '--sigma-r',
        dest='sigma_r',
        type=float,
        default=None,
        help='Edge threshold in [0, 1] range space'
    )
    filter_parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Output filename (default: output.png)'
    )
    filter_parser.add_argument(
        '--base-size',
        dest='base_size',
        type=int,
        default=None,
        help='Approximate size of the residual pyramid level (default: 30)'
    )
    filter_parser.add_argument(
        '--grayscale',
        action='store_true',
        help='Load the input as a single channel image'
    )
    filter_parser.add_argument(
        '--save-levels',
        action='store_true',
        help='Save each output Laplacian level as levelN.png'
    )
    filter_parser.add_argument(
        '--save-original',
        action='store_true',
        help='Save the unfiltered input as original.png next to the output'
    )

    # Pyramid visualization subcommand
    pyramid_parser = subparsers.add_parser(
        'pyramid',
        help='Save a visualization of the Gaussian and Laplacian pyramids'
    )
    pyramid_parser.add_argument(
        'image',
        type=str,
        help='Path to input image'
    )
    pyramid_parser.add_argument(
        '--levels',
        type=int,
        default=None,
        help='Number of pyramid levels (default: residual of about 30 pixels)'
    )
    pyramid_parser.add_argument(
        '--grayscale',
        action='store_true',
        help='Load the input as a single channel image'
    )
    pyramid_parser.add_argument(
        '--output',
        type=str,
        default='pyramids.png',
        help='Output filename (default: pyramids.png)'
    )

    args = parser.parse_args()

    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.mode is None:
        parser.print_help()
        return 1

    try:
        if args.mode == 'filter':
            return run_filter(args)
        return run_pyramid(args)

    except KeyboardInterrupt:
        logger.warning("Operation cancelled by user.")
        return 1
    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
