#!/usr/bin/env python3
"""
Interactive assistant session over stdin/stdout.

Usage:
    assistable-chat [--input PATH ...] [--output-dir DIR] [--log-level LEVEL]

Settings not given on the command line come from the environment (.env).
"""

import argparse
import logging
import sys
from dotenv import load_dotenv

load_dotenv()

from assistable.assist.config import Config
from assistable.assist.provisioner import ProvisioningError
from assistable.assist.session import ChatSession

LOGGER = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat with an assistant over uploaded files")
    parser.add_argument("--input", dest="inputs", action="append",
                        help="Local file to upload (repeatable, defaults to INPUT_FILE_PATHS)")
    parser.add_argument("--output-dir", help="Directory for downloaded outputs (defaults to OUTPUT_DIR)")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    return parser.parse_args(argv)


def build_session(config: Config, output_dir: str, input_fn=input, out=None) -> ChatSession:
    return ChatSession(
        gateway=config.get_gateway(),
        assistant_id=config.get_assistant_id(),
        output_dir=output_dir,
        font_file_id=config.get_font_file_id(),
        font_name=config.get_font_name(),
        upload_dir=config.get_upload_dir(),
        poll_interval=config.get_poll_interval(),
        input_fn=input_fn,
        out=out,
    )


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    config = Config.config()
    input_paths = args.inputs or config.get_input_file_paths()
    output_dir = args.output_dir or config.get_output_dir()

    try:
        session = build_session(config, output_dir)
    except Exception as e:
        LOGGER.error(f"Unable to configure session: {e}", exc_info=True)
        print(f"An error occurred: {e}")
        return 1

    try:
        session.run(input_paths)
    except ProvisioningError as e:
        print(f"An error occurred: {e}")
        return 1
    except KeyboardInterrupt:
        LOGGER.warning("Interrupted while a run was in flight; the remote run was not cancelled")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
