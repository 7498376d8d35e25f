# src/main.py - v3
"""CLI entry point - generate, image, schedule commands.

Usage:
    gendispatch generate <context> [--provider P] [--tier T] [--shape S]
    gendispatch image <prompt> [--width W] [--height H] [-o DIR]
    gendispatch schedule [--once]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING

from gendispatch.core.models import ExpectedShape, ModelClass, ModelProviderName
from gendispatch.version import __version__

if TYPE_CHECKING:
    from gendispatch.config.settings import Settings
    from gendispatch.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from gendispatch.config.settings import load_settings
    from gendispatch.logging.logger import setup_logging_from_settings

    settings = load_settings()
    setup_logging_from_settings(settings, verbose=args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="gendispatch",
        description=f"gendispatch v{__version__} - multi-provider generation dispatch",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- generate ---
    p_generate = subparsers.add_parser(
        "generate", help="Run one generation request",
    )
    p_generate.add_argument("context", help="Prompt context")
    p_generate.add_argument(
        "--provider", default=None, choices=[p.value for p in ModelProviderName],
        help="Provider (default: MODEL_PROVIDER)",
    )
    p_generate.add_argument(
        "--tier", default=ModelClass.MEDIUM.value, choices=[c.value for c in ModelClass],
        help="Model tier (default: medium)",
    )
    p_generate.add_argument(
        "--shape", default=ExpectedShape.TEXT.value, choices=[s.value for s in ExpectedShape],
        help="Expected result shape (default: text)",
    )
    p_generate.set_defaults(func=_cmd_generate)

    # --- image ---
    p_image = subparsers.add_parser(
        "image", help="Generate an image and save it locally",
    )
    p_image.add_argument("prompt", help="Image prompt")
    p_image.add_argument("--width", type=int, default=1024, help="Width in pixels (default: 1024)")
    p_image.add_argument("--height", type=int, default=1024, help="Height in pixels (default: 1024)")
    p_image.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Output directory (default: IMAGE_OUTPUT_DIR)",
    )
    p_image.set_defaults(func=_cmd_image)

    # --- schedule ---
    p_schedule = subparsers.add_parser(
        "schedule", help="Run the scheduled image publishing loop",
    )
    p_schedule.add_argument(
        "--once", action="store_true",
        help="Run a single cycle and exit",
    )
    p_schedule.set_defaults(func=_cmd_schedule)

    return parser


async def _cmd_generate(args: argparse.Namespace, settings: Settings) -> int:
    """Execute one generation request and print the result."""
    from gendispatch.llm.generation import GenerationService

    service = GenerationService(settings, provider=args.provider)
    request = service.build_request(
        args.context, ModelClass(args.tier), ExpectedShape(args.shape),
    )
    try:
        result = await service.generate(request)
    finally:
        _save_call_log(service.call_logger, settings)
    print(_render(result))
    return 0


async def _cmd_image(args: argparse.Namespace, settings: Settings) -> int:
    """Generate one image and write it to disk."""
    from gendispatch.core.models import ImageGenerationSpec
    from gendispatch.image.poller import create_image_poller
    from gendispatch.storage.image_writer import ImageWriter

    poller = create_image_poller(settings)
    writer = ImageWriter(args.output or settings.image_output_dir)
    try:
        result = await poller.generate_image(
            ImageGenerationSpec(prompt=args.prompt, width=args.width, height=args.height)
        )
        if not result.success:
            logger.error("Image generation %s: %s", result.outcome.value, result.error)
            return 1
        path, _ = await writer.write(result.assets[0], int(time.time() * 1000))
    finally:
        await poller.client.close()

    print(f"\nImage saved: {path}")
    return 0


async def _cmd_schedule(args: argparse.Namespace, settings: Settings) -> int:
    """Run the scheduled publishing loop (or one cycle)."""
    from gendispatch.publishing.scheduler import create_scheduled_publisher

    scheduler = create_scheduled_publisher(settings)
    try:
        if args.once:
            result = await scheduler.run_cycle()
            print("\nCycle complete:")
            print(f"  Published:   {result.published}")
            print(f"  Next delay:  {result.delay_s / 60:.0f} min")
            if result.image_path:
                print(f"  Image:       {result.image_path}")
            if result.error:
                print(f"  Error:       {result.error}")
            return 0 if result.error is None else 1

        if not scheduler.start_if_enabled():
            logger.error("Set ENABLE_SCHEDULED_IMAGES=true to run the loop")
            return 1
        try:
            await scheduler.wait_stopped()
        finally:
            scheduler.stop()
        return 0
    finally:
        await scheduler.close()
        if scheduler.generation is not None:
            _save_call_log(scheduler.generation.call_logger, settings)


def _save_call_log(call_logger: CallLogger | None, settings: Settings) -> None:
    """Log call totals and write the records when CALL_LOG_FILE is set."""
    if call_logger is None or not call_logger.total_calls:
        return
    logger.info(
        "Provider calls: %d (%d failed), %d tokens",
        call_logger.total_calls, call_logger.failed_calls, call_logger.total_tokens,
    )
    if settings.call_log_file is not None:
        call_logger.save(settings.call_log_file.expanduser())


def _render(result: object) -> str:
    """Format a generation result for stdout."""
    if isinstance(result, str):
        return result
    if hasattr(result, "model_dump"):
        return json.dumps(result.model_dump(), indent=2)
    return json.dumps(result, indent=2, ensure_ascii=False)


if __name__ == "__main__":
    sys.exit(main())
