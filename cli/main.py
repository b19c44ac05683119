"""CLI entry point."""

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

from cli.commands import handle_merge, handle_status, handle_upload
from cli.config import DEFAULT_CONFIG_PATH, Config
from cli.upload_client import UploadClient
from common.logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chunk-upload",
        description="Resumable chunked uploads to a chunk assembler server",
    )
    parser.add_argument('--config', type=Path, default=DEFAULT_CONFIG_PATH,
                        help="Path to the JSON config file")
    parser.add_argument('--debug', action='store_true', help="Enable debug logging")

    subparsers = parser.add_subparsers(dest='command', required=True)

    upload = subparsers.add_parser('upload', help="Upload a file and merge it on the server")
    upload.add_argument('file')
    upload.add_argument('--name', help="Display name on the server (default: file name)")
    upload.add_argument('--chunk-size', type=int, help="Chunk size in bytes")
    upload.add_argument('--workers', type=int, help="Parallel chunk uploads")

    status = subparsers.add_parser('status', help="Show which chunks of a file are on the server")
    status.add_argument('file')
    status.add_argument('--chunk-size', type=int, help="Chunk size in bytes")

    merge = subparsers.add_parser('merge', help="Merge chunks already uploaded for a file")
    merge.add_argument('file')
    merge.add_argument('--name', help="Display name on the server (default: file name)")
    merge.add_argument('--chunk-size', type=int, help="Chunk size in bytes")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for CLI."""
    args = build_parser().parse_args(argv)

    log_level = 'DEBUG' if args.debug else os.getenv('LOG_LEVEL', 'WARNING')
    logger = setup_logging('cli', log_level=log_level)
    logger.debug("Debug logging enabled")

    if args.chunk_size is not None and args.chunk_size < 1:
        print("Error: --chunk-size must be at least 1", file=sys.stderr)
        return 2

    client = UploadClient(Config(args.config))
    try:
        if args.command == 'upload':
            message = handle_upload(client, args.file, name=args.name,
                                    chunk_size=args.chunk_size, workers=args.workers)
        elif args.command == 'status':
            message = handle_status(client, args.file, chunk_size=args.chunk_size)
        else:
            message = handle_merge(client, args.file, name=args.name, chunk_size=args.chunk_size)
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        client.close()

    print(message)
    return 1 if message.startswith(("Error", "Upload failed", "Merge failed", "Status check failed")) else 0


if __name__ == "__main__":
    sys.exit(main())
