"""Command line entry point: ``av-reencode <input_file> <output_file> <bitrate_kbps>``."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from av_reencode.configs import settings
from av_reencode.const import EXIT_FAILURE, EXIT_SUCCESS, SUCCESS_MESSAGE, USAGE
from av_reencode.errors import SetupError, StreamError, TranscodeError, UsageError
from av_reencode.schemas import TranscodeJob
from av_reencode.transcoder.codecs import init_codec_library
from av_reencode.transcoder.pipeline import transcode

logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str):
        raise UsageError(message)


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog=prog,
        usage=USAGE,
        description="Re-encode the video stream of a media file at a target bitrate",
        add_help=False,
    )
    parser.add_argument("input_file", type=Path)
    parser.add_argument("output_file", type=Path)
    parser.add_argument("bitrate_kbps", type=int)
    return parser


def parse_args(argv: Optional[List[str]] = None, parser: Optional[argparse.ArgumentParser] = None) -> TranscodeJob:
    """Parse exactly three positional arguments into a :class:`TranscodeJob`.

    Raises:
        UsageError: Wrong number of arguments or an invalid bitrate.
    """
    parser = parser or build_parser()
    args = parser.parse_args(argv)
    try:
        return TranscodeJob(
            input_path=args.input_file,
            output_path=args.output_file,
            bitrate_kbps=args.bitrate_kbps,
        )
    except ValidationError as exc:
        raise UsageError(str(exc)) from exc


def configure_logging() -> None:
    logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI and return the process exit code."""
    parser = build_parser()
    try:
        job = parse_args(argv, parser)
    except UsageError as exc:
        logger.debug("Invalid arguments: %s", exc)
        print(parser.format_usage().rstrip())
        return EXIT_FAILURE

    configure_logging()
    init_codec_library()

    try:
        transcode(job)
    except SetupError as exc:
        print(f"Setup failed ({exc.stage}): {exc.message}", file=sys.stderr)
        return EXIT_FAILURE
    except StreamError as exc:
        print(f"Transcoding failed ({exc.stage}): {exc}", file=sys.stderr)
        return EXIT_FAILURE
    except TranscodeError as exc:
        print(f"Transcoding failed: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    print(SUCCESS_MESSAGE)
    return EXIT_SUCCESS


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":  # pragma: no cover
    run()
